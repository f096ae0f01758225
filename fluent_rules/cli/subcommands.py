"""
Subcommand handlers for the rules CLI.

All handle_* functions are module-level, accept an `args` namespace and
return a process exit code. They are dispatched from main().
"""

import importlib
from typing import Callable, Optional

from rich.console import Console

from ..diagnostics import render_catalog_table, render_rules_table
from ..rules.errors import FluentRulesError
from ..rules.localization import YamlCatalogLocalizer
from ..rules.root import RootSettings, ValidatorRoot

console = Console()


# =============================================================================
# SHARED HELPERS
# =============================================================================

def load_target(target: str) -> Callable:
    """Resolve "package.module:function" to the function."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Cannot parse target: '{target}'. Use module.path:function")
    module = importlib.import_module(module_name)
    func = getattr(module, attr, None)
    if not callable(func):
        raise ValueError(f"'{attr}' in module '{module_name}' is not callable")
    return func


def _find_type(root: ValidatorRoot, type_name: str) -> Optional[type]:
    for model_type in root.registry.registered_types():
        if model_type.__name__ == type_name:
            return model_type
    return None


# =============================================================================
# HANDLERS
# =============================================================================

def handle_describe(args) -> int:
    """Run a configure function against a fresh root and print the registered rules."""
    try:
        configure = load_target(args.target)
    except (ImportError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1

    settings = RootSettings.from_config()
    if args.no_enforce:
        settings.enforce_configuration = False
    root = ValidatorRoot(settings=settings)

    try:
        configure(root)
        count = root.build_all()
    except FluentRulesError as e:
        console.print(f"[bold red]Configuration error:[/] {e}")
        return 1

    model_type = None
    if args.type_name:
        model_type = _find_type(root, args.type_name)
        if model_type is None:
            console.print(f"[yellow]No rules registered for type '{args.type_name}'[/]")
            return 1

    console.print(render_rules_table(root.registry, model_type))
    console.print(f"[dim]{count} rule(s) built, {len(root.registry)} registered[/]")
    return 0


def handle_catalog(args) -> int:
    """Print the keys of a YAML message catalog."""
    try:
        localizer = YamlCatalogLocalizer.from_file(args.path)
    except (FluentRulesError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1

    if args.locale and args.locale not in localizer.locales:
        console.print(
            f"[yellow]Locale '{args.locale}' not in catalog "
            f"(available: {', '.join(localizer.locales)})[/]"
        )
        return 1

    console.print(render_catalog_table(localizer, args.locale))
    return 0
