# -*- coding: utf-8 -*-
"""
CareBalance-N web app (gradio).

Start:
    python app_web.py

Port: $PORT or $GRADIO_SERVER_PORT (default 7860); the next free port is used if taken.
"""
from __future__ import annotations

import logging
import os

from carebalance.ui import build_demo

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("carebalance")


def _find_free_port(preferred: int) -> int:
    import socket
    for port in range(preferred, preferred + 50):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind(("0.0.0.0", port))
                return port
            except OSError:
                continue
    return preferred


def main():
    demo = build_demo()
    port = int(os.environ.get("PORT", os.environ.get("GRADIO_SERVER_PORT", "7860")))
    port = _find_free_port(port)
    logger.info("starting on port %s", port)
    demo.launch(
        server_name="0.0.0.0",
        server_port=port,
        share=False,
    )


if __name__ == "__main__":
    main()
