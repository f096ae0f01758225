"""
Rule engine value types.

MemberRef identifies a configured property, RuleBehavior controls how a new
rule interacts with existing ones, and CancellationToken carries cooperative
cancellation through the async evaluation path.
"""

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .errors import OperationCancelledError


class RuleBehavior(str, Enum):
    """
    How `rule(member)` treats rules already defined for the member.

    REPLACE discards previously registered and pending rules for the member.
    PRESERVE keeps them and adds the new rule alongside.
    """

    REPLACE = "replace"
    PRESERVE = "preserve"

    @classmethod
    def parse(cls, value: Union[str, "RuleBehavior"]) -> "RuleBehavior":
        """Parse a behavior from a string (case-insensitive) or pass one through."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(b.value for b in cls)
            raise ValueError(f"Unknown rule behavior '{value}'. Valid: {valid}") from None


@dataclass(frozen=True)
class MemberRef:
    """
    Identity of a property or field on a model type.

    Two refs denote the same member when their names match and one
    declaring type is a subclass of the other, so rules registered on a
    base class also apply to overriding members on subclasses.
    """

    name: str
    declaring_type: type

    def __post_init__(self):
        if not self.name or not isinstance(self.name, str):
            raise ValueError(f"Member name must be a non-empty string, got {self.name!r}")
        if not isinstance(self.declaring_type, type):
            raise ValueError(
                f"declaring_type must be a type, got {type(self.declaring_type).__name__}"
            )

    @classmethod
    def of(cls, member: Union[str, "MemberRef"], declaring_type: type) -> "MemberRef":
        """Resolve a member name (or an existing ref) against a declaring type."""
        if isinstance(member, MemberRef):
            return member
        return cls(member, declaring_type)

    def same_member(self, other: Optional["MemberRef"]) -> bool:
        if other is None or self.name != other.name:
            return False
        a, b = self.declaring_type, other.declaring_type
        return issubclass(a, b) or issubclass(b, a)

    def value_of(self, instance: Any) -> Any:
        """
        Read this member from an instance.

        Mapping instances are read by key; everything else by attribute.
        Missing members read as None.
        """
        if instance is None:
            return None
        if isinstance(instance, Mapping):
            return instance.get(self.name)
        return getattr(instance, self.name, None)

    @property
    def qualified_name(self) -> str:
        return f"{self.declaring_type.__name__}.{self.name}"

    def __str__(self) -> str:
        return self.name


class CancellationToken:
    """
    Cooperative cancellation signal for async validation.

    Usage:
        token = CancellationToken()
        task = asyncio.create_task(validator.validate_async(model, token))
        token.cancel()
        result = await task
        assert result.cancelled
    """

    def __init__(self):
        self._cancelled = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self._reason = reason
        self._cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise OperationCancelledError(self._reason)

    @classmethod
    def none(cls) -> "CancellationToken":
        """A token that is never cancelled by the library itself."""
        return cls()
