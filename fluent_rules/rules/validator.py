"""
Reference evaluator.

Walks the rules registered for an instance's type member by member:

1. Placeholder rules (no check) gate the member: when a member has any and
   none of them applies, its checks are skipped.
2. The member value is read once, through the member's before-validation
   transform if one is configured.
3. Every applicable rule runs its check; failures get a resolved message.

Collection and nested checks recurse into their child rule sets and tag
failures with an item path plus collection indices.

Usage:
    validator = root.validator()
    result = validator.validate(order)
    if not result.is_valid:
        for failure in result.failures:
            print(failure.describe())

    result = await validator.validate_async(order, token)
"""

from collections import OrderedDict
from typing import Any, Iterable, List, Optional

from ..utils.logger import get_logger
from .checks import ValidationContext
from .collection import (
    EachCheck,
    NestedRulesCheck,
    build_item_path,
    child_prefix,
    extract_indices,
    iter_elements,
)
from .errors import AsyncRuleError, OperationCancelledError
from .messages import MessageResolver
from .registry import RuleRegistry
from .results import ValidationFailure, ValidationResult
from .rule import Rule
from .types import CancellationToken, MemberRef

logger = get_logger()


def _failure(resolver: MessageResolver, instance: Any, rule: Rule, path: str,
             value: Any) -> ValidationFailure:
    message = resolver.resolve(instance, rule.display_name, rule.check, rule)
    collection_index, parent_index = extract_indices(path)
    failure = ValidationFailure(
        property_name=rule.display_name,
        error_message=message,
        attempted_value=value,
        collection_index=collection_index,
        parent_collection_index=parent_index,
        item_path=path,
        origin=rule.check.get_short_name() if rule.check is not None else None,
        error_code=rule.key,
    )
    logger.failure(type(instance).__name__, path, message)
    return failure


def group_by_member(rules: Iterable[Rule]) -> "OrderedDict[str, List[Rule]]":
    """Rules keyed by member name, in first-seen order."""
    grouped: "OrderedDict[str, List[Rule]]" = OrderedDict()
    for rule in rules:
        grouped.setdefault(rule.member.name, []).append(rule)
    return grouped


class _MemberValue:
    """Reads a member value once, through its before-validation transform."""

    _UNSET = object()

    def __init__(self, instance: Any, rules: List[Rule]):
        self._instance = instance
        self._source = next((r for r in rules if r.before_validation is not None), rules[0])
        self._value = self._UNSET

    def get(self) -> Any:
        if self._value is self._UNSET:
            self._value = self._source.get_value(self._instance)
        return self._value


# =============================================================================
# Synchronous evaluation
# =============================================================================

def evaluate_rules(
    instance: Any,
    rules: Iterable[Rule],
    resolver: Optional[MessageResolver] = None,
    prefix: str = "",
    failures: Optional[List[ValidationFailure]] = None,
) -> List[ValidationFailure]:
    """
    Evaluate `rules` against `instance` and append failures to `failures`.

    Every applicable rule runs; nothing short-circuits across rules or
    collection elements.

    Args:
        instance: Object being validated
        rules: Rules in configuration order
        resolver: Message resolver (a default one when None)
        prefix: Item path prefix for nested evaluation ("Items[3].")
        failures: List to append to (a new one when None)

    Returns:
        The failures list
    """
    resolver = resolver or MessageResolver()
    failures = [] if failures is None else failures

    for name, member_rules in group_by_member(rules).items():
        gates = [r for r in member_rules if r.check is None]
        if gates and not any(r.applies(instance) for r in gates):
            continue

        value = _MemberValue(instance, member_rules)
        context = ValidationContext(instance, name, type(instance))
        for rule in member_rules:
            if rule.check is None or not rule.applies(instance):
                continue
            _run_check(instance, rule, value.get(), context, resolver, prefix, failures)

    return failures


def _run_check(instance, rule, value, context, resolver, prefix, failures) -> None:
    check = rule.check
    name = rule.member.name

    if isinstance(check, NestedRulesCheck):
        for index, target in check.targets(value):
            path = build_item_path(prefix, name, index)
            evaluate_rules(target, check.rules, resolver, child_prefix(path), failures)
    elif isinstance(check, EachCheck):
        for index, item in iter_elements(value):
            if not check.inner.is_valid(item, context):
                path = build_item_path(prefix, name, index)
                failures.append(_failure(resolver, instance, rule, path, item))
    elif not check.is_valid(value, context):
        failures.append(_failure(resolver, instance, rule, build_item_path(prefix, name), value))


# =============================================================================
# Asynchronous evaluation
# =============================================================================

async def evaluate_rules_async(
    instance: Any,
    rules: Iterable[Rule],
    resolver: Optional[MessageResolver] = None,
    prefix: str = "",
    failures: Optional[List[ValidationFailure]] = None,
    token: Optional[CancellationToken] = None,
) -> List[ValidationFailure]:
    """
    Async analogue of evaluate_rules().

    The token is checked before each rule and each element; cancellation
    raises OperationCancelledError with `failures` holding what was
    collected so far.
    """
    resolver = resolver or MessageResolver()
    failures = [] if failures is None else failures
    token = token or CancellationToken.none()

    for name, member_rules in group_by_member(rules).items():
        token.raise_if_cancelled()
        gates = [r for r in member_rules if r.check is None]
        if gates:
            applies = False
            for gate in gates:
                if await gate.applies_async(instance, token):
                    applies = True
                    break
            if not applies:
                continue

        value = _MemberValue(instance, member_rules)
        context = ValidationContext(instance, name, type(instance))
        for rule in member_rules:
            token.raise_if_cancelled()
            if rule.check is None or not await rule.applies_async(instance, token):
                continue
            await _run_check_async(
                instance, rule, value.get(), context, resolver, prefix, failures, token
            )

    return failures


async def _run_check_async(instance, rule, value, context, resolver, prefix, failures, token) -> None:
    check = rule.check
    name = rule.member.name

    if isinstance(check, NestedRulesCheck):
        for index, target in check.targets(value):
            token.raise_if_cancelled()
            path = build_item_path(prefix, name, index)
            await evaluate_rules_async(target, check.rules, resolver, child_prefix(path), failures, token)
    elif isinstance(check, EachCheck):
        for index, item in iter_elements(value):
            token.raise_if_cancelled()
            if not await check.inner.is_valid_async(item, context, token):
                path = build_item_path(prefix, name, index)
                failures.append(_failure(resolver, instance, rule, path, item))
    elif not await check.is_valid_async(value, context, token):
        failures.append(_failure(resolver, instance, rule, build_item_path(prefix, name), value))


# =============================================================================
# Validator
# =============================================================================

class Validator:
    """
    Validates instances against the rules of a registry.

    Args:
        source: A ValidatorRoot (registry and message settings are taken from
            it) or a bare RuleRegistry
        resolver: Message resolver; defaults to the root's, or a plain one
    """

    def __init__(self, source: Any, resolver: Optional[MessageResolver] = None):
        if isinstance(source, RuleRegistry):
            self.registry = source
            self.resolver = resolver or MessageResolver()
        else:
            self.registry = source.registry
            self.resolver = resolver or source.message_resolver()

    def _rules_for(self, instance: Any, member: Optional[str] = None) -> List[Rule]:
        if instance is None:
            raise ValueError("Cannot validate None")
        model_type = type(instance)
        rules = self.registry.get_rules_for_type(model_type)
        if member is not None:
            ref = MemberRef.of(member, model_type)
            rules = [r for r in rules if r.member.same_member(ref)]
        return rules

    def validate(self, instance: Any) -> ValidationResult:
        """
        Run every rule for the instance's type synchronously.

        Raises:
            RulesNotBuiltError: the type was configured but not built
            AsyncRuleError: a rule needs the async path
        """
        return self._validate(instance, self._rules_for(instance))

    def validate_member(self, instance: Any, member: str) -> ValidationResult:
        """Run only the rules configured for one member."""
        return self._validate(instance, self._rules_for(instance, member))

    def _validate(self, instance: Any, rules: List[Rule]) -> ValidationResult:
        for rule in rules:
            if rule.is_async:
                raise AsyncRuleError(rule.member.name, rule.declaring_type)
        failures = evaluate_rules(instance, rules, self.resolver)
        return ValidationResult(type(instance), failures)

    async def validate_async(self, instance: Any,
                             token: Optional[CancellationToken] = None) -> ValidationResult:
        """
        Run every rule, awaiting async gates and checks.

        A cancelled token yields a result with cancelled=True that keeps the
        failures collected before cancellation.
        """
        rules = self._rules_for(instance)
        result = ValidationResult(type(instance))
        try:
            await evaluate_rules_async(instance, rules, self.resolver, "", result.failures, token)
        except OperationCancelledError as e:
            result.cancelled = True
            logger.info(
                f"Validation of {type(instance).__name__} cancelled "
                f"after {len(result.failures)} failure(s): {e}"
            )
        return result
