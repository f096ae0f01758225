"""
Argument parser setup for the rules CLI.

Defines the subcommands and their arguments:
- describe: Run a configure function against a fresh root and print its rules
- catalog: List the keys of a YAML message catalog
"""

import argparse
from typing import List, Optional


def setup_argparse(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments for rules_cli.

    Supports:
      describe MODULE:FUNC     Configure rules and print the rule table
      catalog PATH             Print catalog keys per locale
    """
    parser = argparse.ArgumentParser(
        description="fluent_rules - rule registry and message catalog diagnostics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python rules_cli.py describe myapp.validation:configure
  python rules_cli.py describe myapp.validation:configure --type User
  python rules_cli.py catalog messages.yaml --locale fr
        """
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Quiet mode: errors only"
    )
    verbosity.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Debug mode: log every rule registration and failure"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _setup_describe_subcommand(subparsers)
    _setup_catalog_subcommand(subparsers)

    return parser.parse_args(argv)


def _setup_describe_subcommand(subparsers) -> None:
    describe = subparsers.add_parser(
        "describe",
        help="Configure rules from a module and print them",
        description="Imports MODULE, calls FUNC(root) with a fresh ValidatorRoot, builds every "
                    "configured type and prints the registered rules."
    )
    describe.add_argument(
        "target",
        help="Configure function as module.path:function"
    )
    describe.add_argument(
        "--type",
        dest="type_name",
        default=None,
        help="Only show rules declared on this type name"
    )
    describe.add_argument(
        "--no-enforce",
        action="store_true",
        default=False,
        help="Disable when(...) configuration enforcement"
    )


def _setup_catalog_subcommand(subparsers) -> None:
    catalog = subparsers.add_parser(
        "catalog",
        help="List the keys of a YAML message catalog",
    )
    catalog.add_argument(
        "path",
        help="Path to the YAML catalog"
    )
    catalog.add_argument(
        "--locale",
        default=None,
        help="Only show this locale"
    )
