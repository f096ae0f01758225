"""
fluent_rules - Fluent Validation Rules

Composes conditional validation rules for Python objects with a fluent
builder, stores them in a thread-safe registry, validates nested
collections with positional error paths, and resolves localizable failure
messages.
"""

__version__ = "0.1.0"
__author__ = "fluent_rules"

from .config import get_config
from .discovery import discover_rules, register_discovered
from .rules import (
    CancellationToken,
    ConfigurationError,
    FluentRulesError,
    MessageResolver,
    RootSettings,
    RuleBehavior,
    RuleRegistry,
    ValidationFailure,
    ValidationResult,
    Validator,
    ValidatorRoot,
    YamlCatalogLocalizer,
    validation_resource,
)

__all__ = [
    "__version__",
    "get_config",
    "ValidatorRoot",
    "RootSettings",
    "RuleRegistry",
    "RuleBehavior",
    "Validator",
    "ValidationResult",
    "ValidationFailure",
    "MessageResolver",
    "YamlCatalogLocalizer",
    "CancellationToken",
    "validation_resource",
    "discover_rules",
    "register_discovered",
    "FluentRulesError",
    "ConfigurationError",
]
