"""
PendingRule: mutable per-member builder state.

A PendingRule collects checks and message metadata while a member is being
configured. On build it expands into one Rule per attached check (sharing
the same gate), or into a single placeholder Rule when no check is attached.
PendingRule objects are builder-local and never shared across threads.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .checks import LeafCheck
from .rule import Rule
from .types import CancellationToken, MemberRef


@dataclass(eq=False)
class PendingRule:
    """Builder-side accumulator for one member."""

    member: MemberRef
    condition: Optional[Callable[[Any], bool]] = None
    async_condition: Optional[Callable[[Any, CancellationToken], Any]] = None
    checks: List[LeafCheck] = field(default_factory=list)
    check_messages: Dict[int, str] = field(default_factory=dict)
    message: Optional[str] = None
    message_resolver: Optional[Callable[[Any], str]] = None
    key: Optional[str] = None
    resource_key: Optional[str] = None
    resource_type: Optional[Any] = None
    locale: Optional[str] = None
    fallback_message: Optional[str] = None
    use_conventional_keys: bool = True
    property_name: Optional[str] = None
    before_validation: Optional[Callable[[Any, str, Any], Any]] = None

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def find_same_kind(self, check: LeafCheck) -> Optional[LeafCheck]:
        for existing in self.checks:
            if type(existing) is type(check):
                return existing
        return None

    def add_check(self, check: LeafCheck) -> bool:
        """
        Attach a check. A second check of the same kind is skipped unless the
        check type allows multiples.

        Returns:
            True if the check was attached
        """
        if self.find_same_kind(check) is not None and not check.allow_multiple:
            return False
        self.checks.append(check)
        return True

    def remove_checks(self, check_type: type) -> int:
        kept: List[LeafCheck] = []
        messages: Dict[int, str] = {}
        for i, check in enumerate(self.checks):
            if isinstance(check, check_type):
                continue
            if i in self.check_messages:
                messages[len(kept)] = self.check_messages[i]
            kept.append(check)
        removed = len(self.checks) - len(kept)
        self.checks = kept
        self.check_messages = messages
        return removed

    def set_message(self, message: str) -> None:
        """Explicit message for the most recent check, or for the rule if none."""
        if self.checks:
            self.check_messages[len(self.checks) - 1] = message
        else:
            self.message = message

    # -------------------------------------------------------------------------
    # Expansion
    # -------------------------------------------------------------------------

    def create_rule(
        self,
        check: Optional[LeafCheck] = None,
        message: Optional[str] = None,
        condition: Any = ...,
        async_condition: Any = ...,
    ) -> Rule:
        """
        Create a Rule from this pending state.

        `condition` / `async_condition` default to the pending gates; pass
        None explicitly for an always-applicable rule.
        """
        return Rule(
            member=self.member,
            condition=self.condition if condition is ... else condition,
            async_condition=self.async_condition if async_condition is ... else async_condition,
            check=check,
            message=message if message is not None else self.message,
            message_resolver=self.message_resolver,
            key=self.key,
            resource_key=self.resource_key,
            resource_type=self.resource_type,
            locale=self.locale,
            fallback_message=self.fallback_message,
            use_conventional_keys=self.use_conventional_keys,
            property_name=self.property_name,
            before_validation=self.before_validation,
        )

    def to_rules(self) -> List[Rule]:
        if not self.checks:
            return [self.create_rule()]
        return [
            self.create_rule(check, message=self.check_messages.get(i))
            for i, check in enumerate(self.checks)
        ]
