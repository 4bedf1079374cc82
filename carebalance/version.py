# -*- coding: utf-8 -*-
APP_NAME = "CareBalance-N"
APP_VERSION = "1.2.0"
RULES_SCHEMA_VERSION = 1
