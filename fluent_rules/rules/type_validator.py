"""
TypeValidator: fluent rule configuration for one model type.

Usage:
    root = ValidatorRoot()
    users = root.for_type(User)

    users.rule("email").required().email_address()
    users.rule("nickname").maximum_length(20).when(lambda u: u.nickname is not None)
    users.rule_for("password").when(
        lambda u: u.is_new,
        lambda b: b.required().minimum_length(8),
    )
    users.rule_for_each("addresses").child_rules(
        lambda a: a.rule("city").required(), element_type=Address
    )
    users.build()

rule(member) and the attribute-style shortcuts accumulate checks on one
PendingRule at a time; rule_for / rule_for_each hand out per-property
builders. build() expands everything into Rules and merges them into the
registry.
"""

from typing import TYPE_CHECKING, Any, Callable, List, Optional, Union

from ..utils.logger import get_logger
from .builder import CheckShortcuts, RuleBuilder
from .checks import LeafCheck, MustCheck
from .errors import ConfigurationError
from .pending import PendingRule
from .registry import RuleRegistry, group_rules
from .rule import Rule
from .types import MemberRef, RuleBehavior

if TYPE_CHECKING:
    from .root import ValidatorRoot

logger = get_logger()

MemberLike = Union[str, MemberRef]


class TypeValidator(CheckShortcuts):
    """Rule configuration for `model_type`, committed to a registry by build()."""

    def __init__(self, root: "ValidatorRoot", model_type: type, registry: Optional[RuleRegistry] = None):
        if not isinstance(model_type, type):
            raise ValueError(f"model_type must be a type, got {model_type!r}")
        self.root = root
        self.model_type = model_type
        self.registry = registry if registry is not None else root.registry

        self._pending_rules: List[PendingRule] = []
        self._builders: List[RuleBuilder] = []
        self._current: Optional[PendingRule] = None
        self._rules_from_last_build: List[Rule] = []

        settings = root.settings
        self._use_conventional_keys = settings.use_conventional_keys
        self._fallback_message: Optional[str] = None
        self._enforcement_disabled: Optional[bool] = None
        self._resource_type: Any = None
        self._locale: Optional[str] = None

    # =========================================================================
    # Internals
    # =========================================================================

    def _ref(self, member: MemberLike) -> MemberRef:
        return MemberRef.of(member, self.model_type)

    def _new_pending(self, member: MemberLike, condition=None, async_condition=None) -> PendingRule:
        return PendingRule(
            member=self._ref(member),
            condition=condition,
            async_condition=async_condition,
            resource_type=self._resource_type,
            locale=self._locale,
            fallback_message=self._fallback_message,
            use_conventional_keys=self._use_conventional_keys,
        )

    def _commit(self) -> None:
        if self._current is not None:
            self._pending_rules.append(self._current)
            self._current = None

    def _mark_unbuilt(self) -> None:
        self.registry.mark_built(self.model_type, False)

    def _require_current(self, operation: str) -> PendingRule:
        if self._current is None:
            raise ConfigurationError(
                f"You must create a rule with rule(...) before calling {operation}()",
                model_type=self.model_type,
            )
        return self._current

    @property
    def is_empty(self) -> bool:
        return self._current is None and not self._pending_rules and not self._builders

    @property
    def enforcement_enabled(self) -> bool:
        if self._enforcement_disabled is not None:
            return not self._enforcement_disabled
        return self.root.settings.enforce_configuration

    def _local_rules_for(self, ref: MemberRef) -> List[Rule]:
        rules: List[Rule] = []
        pendings = self._pending_rules + ([self._current] if self._current is not None else [])
        for pending in pendings:
            if pending.member.same_member(ref):
                rules.extend(pending.to_rules())
        for builder in self._builders:
            if builder.member.same_member(ref):
                rules.extend(builder.get_rules())
        return rules

    def ensure_contains_any_rule(self, member: MemberLike) -> None:
        """
        Raise unless the member already has a leaf-check rule, either in the
        registry or in this validator's unbuilt configuration.
        """
        if not self.enforcement_enabled:
            return
        ref = self._ref(member)
        if any(rule.has_check for rule in self._local_rules_for(ref)):
            return
        if self.registry.contains_any(self.model_type, ref):
            return
        raise ConfigurationError(
            f"There is no rule for the {ref.name} member",
            member=ref.name,
            model_type=self.model_type,
        )

    def ensure_single_before_validation(self, member: MemberLike,
                                        transform: Optional[Callable]) -> None:
        """Raise if another before-validation transform already targets the member."""
        ref = self._ref(member)

        def conflicts(rule: Rule) -> bool:
            return rule.before_validation is not None and rule.before_validation is not transform

        if any(conflicts(r) for r in self._local_rules_for(ref)) or self.registry.contains(
            self.model_type, ref, conflicts
        ):
            raise ConfigurationError(
                f"A before-validation transform can only be assigned once per member "
                f"({ref.name}) on type '{self.model_type.__name__}'",
                member=ref.name,
                model_type=self.model_type,
            )

    def nested(self, element_type: Optional[type] = None) -> "TypeValidator":
        """Validator for a child rule set, on a private registry."""
        child = TypeValidator(self.root, element_type or object, registry=RuleRegistry())
        child._use_conventional_keys = self._use_conventional_keys
        child._fallback_message = self._fallback_message
        child._enforcement_disabled = self._enforcement_disabled
        child._resource_type = self._resource_type
        child._locale = self._locale
        return child

    # =========================================================================
    # Opening rules
    # =========================================================================

    def rule(self, member: MemberLike, behavior: Union[str, RuleBehavior, None] = None,
             must: Optional[Callable[[Any], bool]] = None) -> "TypeValidator":
        """
        Open a rule for `member`, committing the previous one.

        Args:
            member: Member name or ref
            behavior: REPLACE (default from settings) drops existing rules for
                the member; PRESERVE keeps them
            must: Optional predicate attached as a MustCheck
        """
        self._commit()
        behavior = RuleBehavior.parse(behavior or self.root.settings.default_behavior)
        if behavior is RuleBehavior.REPLACE:
            self.remove_rules_for(member)
        self._current = self._new_pending(member)
        self._mark_unbuilt()
        if must is not None:
            self.add_check(MustCheck(must))
        return self

    def rule_for(self, member: MemberLike) -> RuleBuilder:
        self._commit()
        builder = RuleBuilder(self._new_pending(member), self)
        self._builders.append(builder)
        self._mark_unbuilt()
        return builder

    def rule_for_each(self, member: MemberLike) -> RuleBuilder:
        """Builder whose checks and child rules apply to each element of a collection member."""
        self._commit()
        builder = RuleBuilder(self._new_pending(member), self, collection=True)
        self._builders.append(builder)
        self._mark_unbuilt()
        return builder

    def for_type(self, next_type: type) -> "TypeValidator":
        """Commit the open rule and continue with another type."""
        self._commit()
        return self.root.for_type(next_type)

    # =========================================================================
    # Conditions
    # =========================================================================

    def when(self, condition: Callable[[Any], bool], member: Optional[MemberLike] = None) -> "TypeValidator":
        """
        Gate the current rule (or, with `member`, that member's rule) on
        `condition(instance)`.
        """
        if member is None:
            current = self._require_current("when")
            if not current.checks:
                self.ensure_contains_any_rule(current.member)
            current.condition = condition
            return self

        ref = self._ref(member)
        current = self._current
        if current is None or not current.member.same_member(ref):
            self.ensure_contains_any_rule(ref)
            self._commit()
            self._current = self._new_pending(ref, condition=condition)
            self._mark_unbuilt()
            return self
        if not current.checks:
            self.ensure_contains_any_rule(ref)
        current.condition = condition
        return self

    def when_async(self, condition: Callable, member: Optional[MemberLike] = None) -> "TypeValidator":
        """Async analogue of when(); `condition(instance, token)` is awaited."""
        if member is None:
            current = self._require_current("when_async")
            if not current.checks:
                self.ensure_contains_any_rule(current.member)
            current.async_condition = condition
            return self

        ref = self._ref(member)
        current = self._current
        if current is None or not current.member.same_member(ref):
            self.ensure_contains_any_rule(ref)
            self._commit()
            self._current = self._new_pending(ref, async_condition=condition)
            self._mark_unbuilt()
            return self
        if not current.checks:
            self.ensure_contains_any_rule(ref)
        current.async_condition = condition
        return self

    def also(self, member: MemberLike, condition: Callable[[Any], bool]) -> "TypeValidator":
        return self.when(condition, member=member)

    def except_for(self, member: MemberLike) -> "TypeValidator":
        """Drop every rule for `member`."""
        self._commit()
        return self.remove_rules_for(member)

    def always_validate(self, member: MemberLike) -> "TypeValidator":
        return self.when(lambda _: True, member=member)

    # =========================================================================
    # Checks and metadata on the current rule
    # =========================================================================

    def add_check(self, check: LeafCheck, when: Optional[Callable[[Any], bool]] = None) -> "TypeValidator":
        """Attach a check to the current rule; a duplicate kind is skipped unless allowed."""
        if self._current is None:
            raise ConfigurationError(
                f"No pending rule to attach {type(check).__name__} to",
                model_type=self.model_type,
            )
        if not self._current.add_check(check):
            logger.rule(
                "SKIPPED", self.model_type.__name__, self._current.member.name, check=repr(check)
            )
        if when is not None:
            self._current.condition = when
        return self

    def with_message(self, message: Union[str, Callable[[Any], str]]) -> "TypeValidator":
        """Message for the most recent check, or a resolver `(instance) -> str` for the rule."""
        current = self._require_current("with_message")
        if callable(message):
            current.message_resolver = message
        else:
            current.set_message(message)
        return self

    def with_key(self, key: str) -> "TypeValidator":
        self._require_current("with_key").key = key
        return self

    def localized(self, resource_key: str) -> "TypeValidator":
        self._require_current("localized").resource_key = resource_key
        return self

    def disable_conventional_keys(self) -> "TypeValidator":
        self._use_conventional_keys = False
        if self._current is not None:
            self._current.use_conventional_keys = False
        return self

    def disable_configuration_enforcement(self, disabled: bool = True) -> "TypeValidator":
        self._enforcement_disabled = disabled
        return self

    def use_fallback_message(self, fallback_message: str) -> "TypeValidator":
        self._fallback_message = fallback_message
        if self._current is not None:
            self._current.fallback_message = fallback_message
        return self

    def with_validation_resource(self, resource: Any) -> "TypeValidator":
        """Resource used for message lookups by rules opened from now on."""
        self._resource_type = resource
        if self._current is not None:
            self._current.resource_type = resource
        return self

    def with_locale(self, locale: str) -> "TypeValidator":
        self._locale = locale
        if self._current is not None:
            self._current.locale = locale
        return self

    def before_validation(self, transform: Callable[[Any, str, Any], Any]) -> "TypeValidator":
        current = self._require_current("before_validation")
        self.ensure_single_before_validation(current.member, transform)
        current.before_validation = transform
        return self

    # =========================================================================
    # Removal
    # =========================================================================

    def remove_rules_for(self, member: MemberLike, check_type: Optional[type] = None) -> "TypeValidator":
        """Remove registered and pending rules for `member` (optionally one check kind)."""
        ref = self._ref(member)
        self.registry.remove_all(self.model_type, ref, check_type)
        if check_type is None:
            self._pending_rules = [p for p in self._pending_rules if not p.member.same_member(ref)]
            self._builders = [b for b in self._builders if not b.member.same_member(ref)]
            if self._current is not None and self._current.member.same_member(ref):
                self._current = None
        else:
            for pending in self._pending_rules:
                if pending.member.same_member(ref):
                    pending.remove_checks(check_type)
            for builder in self._builders:
                if builder.member.same_member(ref):
                    builder.remove_rules(lambda r: isinstance(r.check, check_type))
        return self

    def remove_rules_except_for(self, member: MemberLike) -> "TypeValidator":
        ref = self._ref(member)
        self._commit()
        self.registry.remove_where(self.model_type, lambda m: not m.same_member(ref))
        self._pending_rules = [p for p in self._pending_rules if p.member.same_member(ref)]
        self._builders = [b for b in self._builders if b.member.same_member(ref)]
        return self

    def clear_rules(self) -> "TypeValidator":
        self._current = None
        self._pending_rules = []
        self._builders = []
        self._rules_from_last_build = []
        self.registry.remove_all_for_type(self.model_type)
        return self

    def discard_rules_from_last_build(self) -> None:
        self._rules_from_last_build = []

    # =========================================================================
    # Build
    # =========================================================================

    def build(self) -> List[Rule]:
        """
        Expand pending configuration into Rules and merge them into the
        registry.

        Calling build() again with no new configuration returns the rules of
        the previous build that are still registered, without registering
        anything.
        """
        self._commit()
        if self.is_empty:
            self.registry.mark_built(self.model_type)
            self._rules_from_last_build = self._still_registered(self._rules_from_last_build)
            return list(self._rules_from_last_build)

        rules: List[Rule] = []
        for pending in self._pending_rules:
            rules.extend(pending.to_rules())
        for builder in self._builders:
            rules.extend(builder.get_rules())

        self._check_before_validation(rules)

        grouped = group_rules(rules)
        for model_type, groups in grouped.items():
            self.registry.add_groups(model_type, groups)
            self.registry.mark_built(model_type)
        self.registry.mark_built(self.model_type)

        self._pending_rules = []
        self._builders = []
        self._rules_from_last_build = rules
        logger.rule("BUILT", self.model_type.__name__, rules=len(rules))
        return list(rules)

    def _still_registered(self, rules: List[Rule]) -> List[Rule]:
        declaring_types = {rule.declaring_type for rule in rules}
        live = {
            rule.unique_key
            for declaring_type in declaring_types
            for _, _, group in self.registry.enumerate_rules(declaring_type)
            for rule in group
        }
        return [rule for rule in rules if rule.unique_key in live]

    def _check_before_validation(self, rules: List[Rule]) -> None:
        transforms: dict = {}
        for rule in rules:
            if rule.before_validation is None:
                continue
            seen = transforms.setdefault(rule.member, [])
            if not any(t is rule.before_validation for t in seen):
                seen.append(rule.before_validation)

        for member, seen in transforms.items():
            existing = self.registry.contains(
                member.declaring_type,
                member,
                lambda r: r.before_validation is not None
                and not any(t is r.before_validation for t in seen),
            )
            if len(seen) > 1 or existing:
                raise ConfigurationError(
                    f"A before-validation transform can only be assigned once per member "
                    f"({member.name}) on type '{self.model_type.__name__}'",
                    member=member.name,
                    model_type=self.model_type,
                )
