"""
Command-line diagnostics for fluent_rules.

Entry point: main(), also exposed as the `fluent-rules` console script and
through rules_cli.py.
"""

import sys
from typing import List, Optional

from ..utils.logger import setup_logger
from .argparser import setup_argparse
from .subcommands import console, handle_catalog, handle_describe


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    # Parse CLI arguments FIRST (before any logging)
    args = setup_argparse(argv)

    if args.debug:
        setup_logger(log_level="DEBUG")
    elif args.quiet:
        setup_logger(log_level="ERROR")
    else:
        setup_logger(log_level="WARNING")

    if args.command == "describe":
        return handle_describe(args)
    if args.command == "catalog":
        return handle_catalog(args)

    console.print("[yellow]Usage: rules_cli.py {describe|catalog} --help[/]")
    return 1


__all__ = ["main", "setup_argparse", "handle_describe", "handle_catalog"]


if __name__ == "__main__":
    sys.exit(main())
