#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
validate_rules.py

Small validator for CareBalance-N rules YAML files.

Usage:
    python validate_rules.py [path/to/rules.yaml]

Exit code:
    0 = ok
    1 = problems found
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import yaml

from carebalance.rules import RULES_PATH, check_rules, load_yaml


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    path = Path(args[0]) if args else RULES_PATH

    if not path.exists():
        print(f"{path}: file not found")
        return 1

    try:
        obj = load_yaml(path)
    except yaml.YAMLError as e:
        print(f"{path}: {e}")
        return 1

    errors = check_rules(obj)
    if errors:
        print("\n".join(f"{path}: {e}" for e in errors))
        return 1

    print(f"OK: {path.name} validation passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
