"""
Leaf checks: the atomic pass/fail units attached to rules.

The engine treats a check as opaque. It only relies on the LeafCheck
contract:
- is_valid(value, context) -> bool
- is_valid_async(value, context, token) -> bool (defaults to is_valid)
- format_error_message(member_name) -> str
- is_identical(other) plus the allow_multiple class flag, to avoid
  attaching the same kind of check twice to one member

The standard checks below mirror the usual data-annotation set. Checks
whose outcome depends on other members (Compare) read the owning instance
from the ValidationContext.
"""

import inspect
import operator
import re
from collections.abc import Sized
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Optional, Tuple

from .errors import AsyncRuleError
from .types import CancellationToken, MemberRef


@dataclass(frozen=True)
class ValidationContext:
    """What a check may know about the value it is validating."""

    instance: Any
    member_name: str
    model_type: Optional[type] = None


class LeafCheck:
    """
    Base class for leaf checks.

    Subclasses set `default_message` (a str.format template where {0} is the
    member name and {1}.. are `message_args()`) and implement `is_valid`.
    """

    default_message: ClassVar[str] = "The field {0} is invalid."
    allow_multiple: ClassVar[bool] = False
    is_async: ClassVar[bool] = False
    short_name: ClassVar[Optional[str]] = None

    def __init__(
        self,
        error_message: Optional[str] = None,
        resource_name: Optional[str] = None,
        resource_type: Optional[Any] = None,
    ):
        self.error_message = error_message
        self.resource_name = resource_name
        self.resource_type = resource_type

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def is_valid(self, value: Any, context: Optional[ValidationContext] = None) -> bool:
        raise NotImplementedError

    async def is_valid_async(
        self,
        value: Any,
        context: Optional[ValidationContext] = None,
        token: Optional[CancellationToken] = None,
    ) -> bool:
        if token is not None:
            token.raise_if_cancelled()
        return self.is_valid(value, context)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def message_args(self) -> Tuple[Any, ...]:
        return ()

    def format_error_message(self, member_name: str) -> str:
        template = self.error_message or self.default_message
        return template.format(member_name, *self.message_args())

    @classmethod
    def get_short_name(cls) -> str:
        """Kind name used in conventional resource keys (e.g. Required)."""
        if cls.short_name:
            return cls.short_name
        name = cls.__name__
        for suffix in ("Check", "Attribute"):
            if name.endswith(suffix) and len(name) > len(suffix):
                return name[: -len(suffix)]
        return name

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    def identity(self) -> Tuple[Any, ...]:
        return self.message_args()

    def is_identical(self, other: Any) -> bool:
        return type(self) is type(other) and self.identity() == other.identity()

    def __repr__(self) -> str:
        args = ", ".join(repr(a) for a in self.identity())
        return f"{type(self).__name__}({args})"


def _length(value: Any) -> Optional[int]:
    if isinstance(value, Sized):
        return len(value)
    return None


# =============================================================================
# Standard checks
# =============================================================================

class Required(LeafCheck):
    default_message = "The {0} field is required."

    def __init__(self, allow_empty_strings: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.allow_empty_strings = allow_empty_strings

    def is_valid(self, value, context=None):
        if value is None:
            return False
        if isinstance(value, str) and not self.allow_empty_strings:
            return bool(value.strip())
        return True

    def identity(self):
        return (self.allow_empty_strings,)


class Length(LeafCheck):
    """Inclusive length bounds for strings and sized collections. None passes."""

    default_message = (
        "The field {0} must be a string or collection with a minimum length "
        "of {1} and a maximum length of {2}."
    )

    def __init__(self, minimum_length: int = 0, maximum_length: int = -1, **kwargs):
        super().__init__(**kwargs)
        if minimum_length < 0:
            raise ValueError(f"minimum_length must be >= 0, got {minimum_length}")
        if 0 <= maximum_length < minimum_length:
            raise ValueError(
                f"maximum_length ({maximum_length}) must be >= minimum_length ({minimum_length})"
            )
        self.minimum_length = minimum_length
        self.maximum_length = maximum_length

    def is_valid(self, value, context=None):
        size = _length(value)
        if size is None:
            return value is None
        if size < self.minimum_length:
            return False
        return self.maximum_length < 0 or size <= self.maximum_length

    def message_args(self):
        return (self.minimum_length, self.maximum_length)


class MinLength(LeafCheck):
    default_message = "The field {0} must be a string or collection with a minimum length of '{1}'."

    def __init__(self, length: int, **kwargs):
        super().__init__(**kwargs)
        self.length = length

    def is_valid(self, value, context=None):
        size = _length(value)
        return value is None if size is None else size >= self.length

    def message_args(self):
        return (self.length,)


class MaxLength(LeafCheck):
    default_message = "The field {0} must be a string or collection with a maximum length of '{1}'."

    def __init__(self, length: int, **kwargs):
        super().__init__(**kwargs)
        self.length = length

    def is_valid(self, value, context=None):
        size = _length(value)
        return value is None if size is None else size <= self.length

    def message_args(self):
        return (self.length,)


class ExactLength(LeafCheck):
    default_message = "The field {0} must have exactly {1} items or characters."

    def __init__(self, length: int, **kwargs):
        super().__init__(**kwargs)
        self.length = length

    def is_valid(self, value, context=None):
        size = _length(value)
        return value is None if size is None else size == self.length

    def message_args(self):
        return (self.length,)


class Range(LeafCheck):
    """Inclusive bounds on comparable values. None passes."""

    default_message = "The field {0} must be between {1} and {2}."

    def __init__(self, minimum: Any, maximum: Any, **kwargs):
        super().__init__(**kwargs)
        self.minimum = minimum
        self.maximum = maximum

    def is_valid(self, value, context=None):
        if value is None:
            return True
        try:
            return self.minimum <= value <= self.maximum
        except TypeError:
            return False

    def message_args(self):
        return (self.minimum, self.maximum)


class Minimum(LeafCheck):
    """Lower bound on comparable values. None and empty strings pass."""

    default_message = "The field {0} must be greater than or equal to {1}."

    def __init__(self, value: Any, exclusive: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.value = value
        self.exclusive = exclusive

    def is_valid(self, value, context=None):
        if value is None or value == "":
            return True
        try:
            return value > self.value if self.exclusive else value >= self.value
        except TypeError:
            return False

    def format_error_message(self, member_name: str) -> str:
        if self.exclusive and self.error_message is None:
            return "The field {0} must be greater than {1}.".format(member_name, self.value)
        return super().format_error_message(member_name)

    def message_args(self):
        return (self.value,)

    def identity(self):
        return (self.value, self.exclusive)


class Maximum(LeafCheck):
    """Upper bound on comparable values. None and empty strings pass."""

    default_message = "The field {0} must be less than or equal to {1}."

    def __init__(self, value: Any, exclusive: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.value = value
        self.exclusive = exclusive

    def is_valid(self, value, context=None):
        if value is None or value == "":
            return True
        try:
            return value < self.value if self.exclusive else value <= self.value
        except TypeError:
            return False

    def format_error_message(self, member_name: str) -> str:
        if self.exclusive and self.error_message is None:
            return "The field {0} must be less than {1}.".format(member_name, self.value)
        return super().format_error_message(member_name)

    def message_args(self):
        return (self.value,)

    def identity(self):
        return (self.value, self.exclusive)


class Regex(LeafCheck):
    """The whole string value must match `pattern`. None and empty strings pass."""

    default_message = "The field {0} must match the regular expression '{1}'."

    def __init__(self, pattern: str, flags: int = 0, **kwargs):
        super().__init__(**kwargs)
        self.pattern = pattern
        self._compiled = re.compile(pattern, flags)

    def is_valid(self, value, context=None):
        if value is None or value == "":
            return True
        return self._compiled.fullmatch(str(value)) is not None

    def message_args(self):
        return (self.pattern,)


class EmailAddress(LeafCheck):
    """Exactly one '@' that is neither first nor last. None passes."""

    default_message = "The {0} field is not a valid e-mail address."

    def is_valid(self, value, context=None):
        if value is None:
            return True
        if not isinstance(value, str):
            return False
        at = value.find("@")
        return at > 0 and at == value.rfind("@") and at != len(value) - 1


class ComparisonOperator(str, Enum):
    EQUAL = "=="
    NOT_EQUAL = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="

    def apply(self, left: Any, right: Any) -> bool:
        return _COMPARISONS[self](left, right)


_COMPARISONS = {
    ComparisonOperator.EQUAL: operator.eq,
    ComparisonOperator.NOT_EQUAL: operator.ne,
    ComparisonOperator.GREATER_THAN: operator.gt,
    ComparisonOperator.GREATER_THAN_OR_EQUAL: operator.ge,
    ComparisonOperator.LESS_THAN: operator.lt,
    ComparisonOperator.LESS_THAN_OR_EQUAL: operator.le,
}


class Compare(LeafCheck):
    """Compare the value with another member of the same instance."""

    default_message = "'{0}' and '{1}' do not match."

    def __init__(
        self,
        other_property: str,
        op: ComparisonOperator = ComparisonOperator.EQUAL,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.other_property = other_property
        self.op = ComparisonOperator(op)

    def is_valid(self, value, context=None):
        if context is None:
            raise ValueError(f"Compare({self.other_property!r}) needs a validation context")
        other = MemberRef(self.other_property, type(context.instance)).value_of(context.instance)
        try:
            return self.op.apply(value, other)
        except TypeError:
            return False

    def message_args(self):
        return (self.other_property,)

    def identity(self):
        return (self.other_property, self.op)


class Equal(LeafCheck):
    default_message = "The field {0} must equal '{1}'."

    def __init__(self, expected: Any, **kwargs):
        super().__init__(**kwargs)
        self.expected = expected

    def is_valid(self, value, context=None):
        return value == self.expected

    def message_args(self):
        return (self.expected,)


class NotEqual(LeafCheck):
    default_message = "The field {0} must not equal '{1}'."

    def __init__(self, unexpected: Any, **kwargs):
        super().__init__(**kwargs)
        self.unexpected = unexpected

    def is_valid(self, value, context=None):
        return value != self.unexpected

    def message_args(self):
        return (self.unexpected,)


class Empty(LeafCheck):
    """None, blank strings and empty collections count as empty."""

    default_message = "The field {0} must be empty."

    def is_valid(self, value, context=None):
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        size = _length(value)
        return size == 0 if size is not None else False


class NotEmpty(Empty):
    default_message = "The field {0} must not be empty."

    def is_valid(self, value, context=None):
        return not super().is_valid(value, context)


# =============================================================================
# Predicate checks
# =============================================================================

class MustCheck(LeafCheck):
    """Wraps a user predicate over the member value."""

    allow_multiple = True
    short_name = "Must"

    def __init__(self, predicate: Callable[[Any], bool], **kwargs):
        super().__init__(**kwargs)
        if not callable(predicate):
            raise ValueError("must() requires a callable predicate")
        self.predicate = predicate

    def is_valid(self, value, context=None):
        return bool(self.predicate(value))

    def identity(self):
        return (self.predicate,)


class AsyncMustCheck(LeafCheck):
    """Wraps an async predicate `(value, token) -> bool`."""

    allow_multiple = True
    is_async = True
    short_name = "MustAsync"

    def __init__(self, predicate: Callable[[Any, CancellationToken], Awaitable[bool]], **kwargs):
        super().__init__(**kwargs)
        if not callable(predicate):
            raise ValueError("must_async() requires a callable predicate")
        self.predicate = predicate

    def is_valid(self, value, context=None):
        raise AsyncRuleError(context.member_name if context else "<unknown>")

    async def is_valid_async(self, value, context=None, token=None):
        token = token or CancellationToken.none()
        token.raise_if_cancelled()
        outcome = self.predicate(value, token)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return bool(outcome)

    def identity(self):
        return (self.predicate,)
