"""
Rule: one conditionally-applicable check on one member.

Rules are frozen once created. Builder operations that "modify" a rule
(attach a message, compose a gate) create a replacement with
dataclasses.replace() before the rule is committed to the registry.
"""

import inspect
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

from .checks import LeafCheck
from .errors import AsyncRuleError
from .types import CancellationToken, MemberRef


def _new_unique_key() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Rule:
    """
    A leaf check plus its applicability gate and message metadata.

    Attributes:
        member: The configured member
        condition: Sync gate `(instance) -> bool`; None means always
        async_condition: Async gate `(instance, token) -> bool`; authoritative
            on the async path when set
        check: Leaf check; None marks a placeholder rule
        message: Explicit message template ({0} is the member name)
        message_resolver: `(instance) -> str`, highest message priority
        key: Failure key surfaced as ValidationFailure.error_code
        resource_key / resource_type / locale: Localized message lookup
        fallback_message: Used when nothing else resolves
        use_conventional_keys: Look up `Member_CheckName` resource keys
        property_name: Display-name override for messages and failures
        before_validation: `(instance, member_name, value) -> value` transform
        unique_key: Opaque identity used for idempotent re-registration
    """

    member: MemberRef
    condition: Optional[Callable[[Any], bool]] = None
    async_condition: Optional[Callable[[Any, CancellationToken], Any]] = None
    check: Optional[LeafCheck] = None
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
    unique_key: str = field(default_factory=_new_unique_key)

    @property
    def has_check(self) -> bool:
        return self.check is not None

    @property
    def is_async(self) -> bool:
        """True when this rule can only be evaluated on the async path."""
        return self.async_condition is not None or (
            self.check is not None and self.check.is_async
        )

    @property
    def display_name(self) -> str:
        return self.property_name or self.member.name

    @property
    def declaring_type(self) -> type:
        return self.member.declaring_type

    def applies(self, instance: Any) -> bool:
        """Evaluate the sync gate. Raises AsyncRuleError for async-gated rules."""
        if self.async_condition is not None:
            raise AsyncRuleError(self.member.name, self.member.declaring_type)
        if self.condition is None:
            return True
        return bool(self.condition(instance))

    async def applies_async(self, instance: Any, token: Optional[CancellationToken] = None) -> bool:
        token = token or CancellationToken.none()
        token.raise_if_cancelled()
        if self.async_condition is not None:
            outcome = self.async_condition(instance, token)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return bool(outcome)
        if self.condition is None:
            return True
        return bool(self.condition(instance))

    def get_value(self, instance: Any) -> Any:
        """Member value after the before-validation transform, if any."""
        value = self.member.value_of(instance)
        if self.before_validation is not None:
            value = self.before_validation(instance, self.member.name, value)
        return value

    def with_changes(self, **changes) -> "Rule":
        """Copy with changes, keeping the unique key."""
        return replace(self, **changes)

    def copy(self) -> "Rule":
        """Copy with a fresh unique key."""
        return replace(self, unique_key=_new_unique_key())

    def __repr__(self) -> str:
        check = repr(self.check) if self.check is not None else "placeholder"
        return f"Rule({self.member.qualified_name}, {check})"
