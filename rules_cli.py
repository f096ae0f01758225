#!/usr/bin/env python3
"""
fluent_rules CLI

Diagnostics for rule configuration and message catalogs:
  python rules_cli.py describe myapp.validation:configure
  python rules_cli.py catalog messages.yaml
"""

import sys

from fluent_rules.cli import main

if __name__ == "__main__":
    sys.exit(main())
