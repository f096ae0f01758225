"""
Rich tables describing registered rules and message catalogs.

Usage:
    from rich.console import Console
    Console().print(render_rules_table(root.registry, User))
"""

from typing import Optional

from rich.table import Table

from .rules.conditions import describe_condition
from .rules.localization import YamlCatalogLocalizer
from .rules.registry import RuleRegistry
from .rules.rule import Rule


def _gate(rule: Rule) -> str:
    if rule.async_condition is not None:
        return f"async {describe_condition(rule.async_condition)}"
    return describe_condition(rule.condition)


def _message(rule: Rule) -> str:
    if rule.message_resolver is not None:
        return "<resolver>"
    if rule.message:
        return rule.message
    if rule.resource_key:
        return f"@{rule.resource_key}"
    return "[dim]default[/]"


def render_rules_table(registry: RuleRegistry, model_type: Optional[type] = None) -> Table:
    """One row per rule: declaring type, member, check, gate, message source and key."""
    title = f"Rules for {model_type.__name__}" if model_type is not None else "Registered Rules"
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Type", style="cyan")
    table.add_column("Member", style="bold")
    table.add_column("Check")
    table.add_column("When", style="dim")
    table.add_column("Message")
    table.add_column("Key", style="dim")

    for declaring_type, member, rules in registry.enumerate_rules(model_type):
        built = "" if registry.is_built(declaring_type) else " [yellow](unbuilt)[/]"
        for rule in rules:
            check = repr(rule.check) if rule.check is not None else "[dim]placeholder[/]"
            table.add_row(
                f"{declaring_type.__name__}{built}",
                rule.display_name,
                check,
                _gate(rule),
                _message(rule),
                rule.key or "",
            )
    return table


def render_catalog_table(localizer: YamlCatalogLocalizer, locale: Optional[str] = None) -> Table:
    """Catalog keys per locale, with the text for each."""
    source = localizer.source.name if localizer.source is not None else "catalog"
    table = Table(title=f"Message Catalog: {source}", show_header=True, header_style="bold")
    table.add_column("Locale", style="cyan")
    table.add_column("Key", style="bold")
    table.add_column("Text")

    locales = [locale] if locale else localizer.locales
    for current in locales:
        for key in localizer.keys(current):
            resource, _, name = key.rpartition(".")
            text = localizer.lookup(name, current, resource or None)
            table.add_row(current, key, text or "")
    return table
