"""
Per-property rule builder and the shared check shortcuts.

RuleBuilder is returned by `TypeValidator.rule_for(member)` and
`TypeValidator.rule_for_each(member)`. Each call that adds a check creates
one Rule; scoped `when(predicate, configure)` / `otherwise(configure)`
calls run `configure` against a temporary nested builder and compose the
gate into every rule it produced.

Usage:
    users.rule_for("password") \\
        .when(lambda u: u.is_new, lambda b: b.required().minimum_length(8)) \\
        .otherwise(lambda b: b.must(lambda p: p is None))
"""

from typing import TYPE_CHECKING, Any, Callable, List, Optional, Union

from ..utils.logger import get_logger
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
)
from .collection import EachCheck, NestedRulesCheck, make_nested_check
from .conditions import (
    AllCondition,
    AsyncAllCondition,
    AsyncNotCondition,
    NotCondition,
)
from .errors import ConfigurationError, EmptyScopeError
from .pending import PendingRule
from .rule import Rule
from .types import MemberRef

if TYPE_CHECKING:
    from .type_validator import TypeValidator

logger = get_logger()


class CheckShortcuts:
    """
    Chained shortcuts for the standard checks.

    Subclasses implement add_check(). Keyword arguments (error_message,
    resource_name, resource_type) are passed through to the check.
    """

    def add_check(self, check: LeafCheck, when: Optional[Callable[[Any], bool]] = None):
        raise NotImplementedError

    def required(self, allow_empty_strings: bool = False, **kwargs):
        return self.add_check(Required(allow_empty_strings, **kwargs))

    def length(self, minimum_length: int, maximum_length: int, **kwargs):
        return self.add_check(Length(minimum_length, maximum_length, **kwargs))

    def minimum_length(self, length: int, **kwargs):
        return self.add_check(MinLength(length, **kwargs))

    def maximum_length(self, length: int, **kwargs):
        return self.add_check(MaxLength(length, **kwargs))

    def exact_length(self, length: int, **kwargs):
        return self.add_check(ExactLength(length, **kwargs))

    def range(self, minimum: Any, maximum: Any, **kwargs):
        return self.add_check(Range(minimum, maximum, **kwargs))

    def minimum(self, value: Any, exclusive: bool = False, **kwargs):
        return self.add_check(Minimum(value, exclusive, **kwargs))

    def maximum(self, value: Any, exclusive: bool = False, **kwargs):
        return self.add_check(Maximum(value, exclusive, **kwargs))

    def matches(self, pattern: str, flags: int = 0, **kwargs):
        return self.add_check(Regex(pattern, flags, **kwargs))

    def email_address(self, **kwargs):
        return self.add_check(EmailAddress(**kwargs))

    def compare(self, other_property: str, op: ComparisonOperator = ComparisonOperator.EQUAL, **kwargs):
        return self.add_check(Compare(other_property, op, **kwargs))

    def equal(self, expected: Any, **kwargs):
        return self.add_check(Equal(expected, **kwargs))

    def not_equal(self, unexpected: Any, **kwargs):
        return self.add_check(NotEqual(unexpected, **kwargs))

    def empty(self, **kwargs):
        return self.add_check(Empty(**kwargs))

    def not_empty(self, **kwargs):
        return self.add_check(NotEmpty(**kwargs))


# =============================================================================
# Gate composition helpers
# =============================================================================

def _gate(rule: Rule, predicate: Callable[[Any], bool]) -> Rule:
    """predicate AND the rule's own gate, on both the sync and async path."""
    changes = {"condition": AllCondition(predicate, rule.condition)}
    if rule.async_condition is not None:
        changes["async_condition"] = AsyncAllCondition(
            predicate, gate_is_async=False, inner_async=rule.async_condition
        )
    return rule.with_changes(**changes)


def _gate_async(rule: Rule, predicate: Callable) -> Rule:
    """await predicate AND the rule's own gate (async first, else sync)."""
    return rule.with_changes(
        async_condition=AsyncAllCondition(
            predicate,
            gate_is_async=True,
            inner_async=rule.async_condition,
            inner_sync=rule.condition,
        )
    )


# =============================================================================
# RuleBuilder
# =============================================================================

class RuleBuilder(CheckShortcuts):
    """
    Fluent builder for the rules of one member.

    Only one when/otherwise pair is tracked per builder: a second when()
    replaces the gate that otherwise() will negate. Nest scopes by calling
    when() on the nested builder passed to `configure`.
    """

    def __init__(self, pending: PendingRule, validator: "TypeValidator", collection: bool = False):
        self._pending = pending
        self._validator = validator
        self._rules: List[Rule] = []
        self._last_condition: Optional[Callable[[Any], bool]] = None
        self._last_async_condition: Optional[Callable] = None
        self.collection = collection

    @property
    def member(self) -> MemberRef:
        return self._pending.member

    @property
    def pending(self) -> PendingRule:
        return self._pending

    @property
    def model_type(self) -> type:
        return self._validator.model_type

    @property
    def is_async(self) -> bool:
        return any(rule.is_async for rule in self._rules)

    def get_rules(self) -> List[Rule]:
        return list(self._rules)

    def remove_rules(self, predicate: Callable[[Rule], bool]) -> int:
        kept = [r for r in self._rules if not predicate(r)]
        removed = len(self._rules) - len(kept)
        self._rules = kept
        return removed

    def _error(self, message: str) -> ConfigurationError:
        return ConfigurationError(message, member=self.member.name, model_type=self.model_type)

    def _nested(self) -> "RuleBuilder":
        return RuleBuilder(self._pending, self._validator, self.collection)

    def _append(self, check: Optional[LeafCheck], **gates) -> "RuleBuilder":
        self._rules.append(self._pending.create_rule(check, **gates))
        return self

    def _replace_last(self, **changes) -> "RuleBuilder":
        if not self._rules:
            raise self._error("no rule to configure; add a check first")
        self._rules[-1] = self._rules[-1].with_changes(**changes)
        return self

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def add_check(self, check: LeafCheck, when: Optional[Callable[[Any], bool]] = None) -> "RuleBuilder":
        """
        Add a rule for `check`. On collection builders plain checks apply to
        each element. A second check of the same kind is skipped unless the
        check allows multiples.
        """
        if self.collection and not isinstance(check, (NestedRulesCheck, EachCheck)):
            check = EachCheck(check)
        if not check.allow_multiple and any(
            r.check is not None and r.check.is_identical(check) for r in self._rules
        ):
            logger.rule("SKIPPED", self.model_type.__name__, self.member.name, check=repr(check))
            return self
        if when is None:
            return self._append(check)
        return self._append(check, condition=AllCondition(when, self._pending.condition))

    def set_check(self, check: LeafCheck) -> "RuleBuilder":
        return self.add_check(check)

    def must(self, predicate: Callable[[Any], bool], message: Optional[str] = None) -> "RuleBuilder":
        """Rule whose check is `predicate(value)`; always applies."""
        check: LeafCheck = MustCheck(predicate)
        if self.collection:
            check = EachCheck(check)
        self._append(check, condition=None, async_condition=None)
        if message is not None:
            self.with_message(message)
        return self

    def must_async(self, predicate: Callable, message: Optional[str] = None) -> "RuleBuilder":
        """Rule whose check is `await predicate(value, token)`; always applies."""
        check: LeafCheck = AsyncMustCheck(predicate)
        if self.collection:
            check = EachCheck(check)
        self._append(check, condition=None, async_condition=None)
        if message is not None:
            self.with_message(message)
        return self

    def child_rules(self, configure: Callable[["TypeValidator"], Any],
                    element_type: Optional[type] = None) -> "RuleBuilder":
        """
        Build a child rule set for the member's value (each element on
        collection builders) and attach it as a single check.
        """
        nested = self._validator.nested(element_type)
        configure(nested)
        rules = nested.build()
        if not rules:
            raise EmptyScopeError("child_rules", self.member.name, self.model_type)
        check = make_nested_check(rules, indexed=self.collection, element_type=element_type)
        return self._append(check)

    # -------------------------------------------------------------------------
    # Scopes
    # -------------------------------------------------------------------------

    def _collect_scope(self, scope: str, configure: Callable[["RuleBuilder"], Any]) -> List[Rule]:
        nested = self._nested()
        configure(nested)
        rules = nested.get_rules()
        if not rules:
            raise EmptyScopeError(scope, self.member.name, self.model_type)
        return rules

    def when(self, predicate: Callable[[Any], bool],
             configure: Callable[["RuleBuilder"], Any]) -> "RuleBuilder":
        """Rules built by `configure` apply only where `predicate(instance)` holds."""
        rules = self._collect_scope("when", configure)
        self._rules.extend(_gate(rule, predicate) for rule in rules)
        self._last_condition = predicate
        return self

    def otherwise(self, configure: Callable[["RuleBuilder"], Any]) -> "RuleBuilder":
        """Rules built by `configure` apply where the preceding when() predicate fails."""
        if self._last_condition is None:
            raise self._error("otherwise() must follow when() on the same builder")
        negated = NotCondition(self._last_condition)
        rules = self._collect_scope("otherwise", configure)
        self._rules.extend(_gate(rule, negated) for rule in rules)
        self._last_condition = None
        return self

    def when_async(self, predicate: Callable,
                   configure: Callable[["RuleBuilder"], Any]) -> "RuleBuilder":
        """Async gate `(instance, token) -> bool` for the rules built by `configure`."""
        rules = self._collect_scope("when_async", configure)
        self._rules.extend(_gate_async(rule, predicate) for rule in rules)
        self._last_async_condition = predicate
        return self

    def otherwise_async(self, configure: Callable[["RuleBuilder"], Any]) -> "RuleBuilder":
        if self._last_async_condition is None:
            raise self._error("otherwise_async() must follow when_async() on the same builder")
        negated = AsyncNotCondition(self._last_async_condition)
        rules = self._collect_scope("otherwise_async", configure)
        self._rules.extend(_gate_async(rule, negated) for rule in rules)
        self._last_async_condition = None
        return self

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def with_message(self, message: Union[str, Callable[[Any], str]]) -> "RuleBuilder":
        """Message template for the last rule, or a resolver `(instance) -> str`."""
        if callable(message):
            return self._replace_last(message_resolver=message)
        return self._replace_last(message=message)

    def with_key(self, key: str) -> "RuleBuilder":
        return self._replace_last(key=key)

    def localized(self, resource_key: str, resource_type: Any = None) -> "RuleBuilder":
        changes = {"resource_key": resource_key}
        if resource_type is not None:
            changes["resource_type"] = resource_type
        return self._replace_last(**changes)

    def with_locale(self, locale: str) -> "RuleBuilder":
        return self._replace_last(locale=locale)

    def use_fallback_message(self, fallback_message: str) -> "RuleBuilder":
        return self._replace_last(fallback_message=fallback_message)

    def override_property_name(self, name: str) -> "RuleBuilder":
        """Display name used in messages and failures for every rule of this builder."""
        self._pending.property_name = name
        self._rules = [r.with_changes(property_name=name) for r in self._rules]
        return self

    def before_validation(self, transform: Callable[[Any, str, Any], Any]) -> "RuleBuilder":
        """Transform `(instance, member_name, value) -> value` applied before checks run."""
        current = self._pending.before_validation
        if current is not None and current is not transform:
            raise self._error("a before-validation transform can only be assigned once per member")
        self._validator.ensure_single_before_validation(self.member, transform)
        self._pending.before_validation = transform
        self._rules = [r.with_changes(before_validation=transform) for r in self._rules]
        return self
