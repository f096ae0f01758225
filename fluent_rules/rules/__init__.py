"""
Conditional rule engine.

Rule model, fluent builders, registry, collection traversal, message
resolution and the reference validator.
"""

from .builder import CheckShortcuts, RuleBuilder
from .checks import (
    AsyncMustCheck,
    Compare,
    ComparisonOperator,
    EmailAddress,
    Empty,
    Equal,
    ExactLength,
    LeafCheck,
    Length,
    MaxLength,
    Maximum,
    MinLength,
    Minimum,
    MustCheck,
    NotEmpty,
    NotEqual,
    Range,
    Regex,
    Required,
    ValidationContext,
)
from .collection import (
    AsyncCollectionCheck,
    AsyncNestedCheck,
    CollectionCheck,
    EachCheck,
    NestedCheck,
    NestedRulesCheck,
    build_item_path,
    extract_indices,
)
from .conditions import AllCondition, AsyncAllCondition, AsyncNotCondition, NotCondition
from .errors import (
    AsyncRuleError,
    ConfigurationError,
    EmptyScopeError,
    FluentRulesError,
    OperationCancelledError,
    RulesNotBuiltError,
    TypeMismatchError,
    ValidationFailedError,
)
from .localization import CatalogNotFoundError, YamlCatalogLocalizer
from .messages import (
    MessageResolver,
    conventional_key,
    format_message,
    get_format_value,
    normalize_format_args,
    validation_resource,
)
from .pending import PendingRule
from .registry import RuleGroup, RuleGroupList, RuleRegistry, group_rules
from .results import ValidationFailure, ValidationResult
from .root import RootSettings, ValidatorRoot
from .rule import Rule
from .type_validator import TypeValidator
from .types import CancellationToken, MemberRef, RuleBehavior
from .validator import Validator, evaluate_rules, evaluate_rules_async

__all__ = [
    # Model
    "Rule",
    "PendingRule",
    "MemberRef",
    "RuleBehavior",
    "CancellationToken",
    # Checks
    "LeafCheck",
    "ValidationContext",
    "Required",
    "Length",
    "MinLength",
    "MaxLength",
    "ExactLength",
    "Range",
    "Minimum",
    "Maximum",
    "Regex",
    "EmailAddress",
    "Compare",
    "ComparisonOperator",
    "Equal",
    "NotEqual",
    "Empty",
    "NotEmpty",
    "MustCheck",
    "AsyncMustCheck",
    "EachCheck",
    "NestedRulesCheck",
    "NestedCheck",
    "AsyncNestedCheck",
    "CollectionCheck",
    "AsyncCollectionCheck",
    # Conditions
    "AllCondition",
    "NotCondition",
    "AsyncAllCondition",
    "AsyncNotCondition",
    # Builders
    "ValidatorRoot",
    "RootSettings",
    "TypeValidator",
    "RuleBuilder",
    "CheckShortcuts",
    # Registry
    "RuleRegistry",
    "RuleGroup",
    "RuleGroupList",
    "group_rules",
    # Messages
    "MessageResolver",
    "YamlCatalogLocalizer",
    "CatalogNotFoundError",
    "validation_resource",
    "conventional_key",
    "format_message",
    "get_format_value",
    "normalize_format_args",
    # Evaluation
    "Validator",
    "ValidationFailure",
    "ValidationResult",
    "evaluate_rules",
    "evaluate_rules_async",
    "build_item_path",
    "extract_indices",
    # Errors
    "FluentRulesError",
    "ConfigurationError",
    "EmptyScopeError",
    "TypeMismatchError",
    "AsyncRuleError",
    "RulesNotBuiltError",
    "OperationCancelledError",
    "ValidationFailedError",
]
