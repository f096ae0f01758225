"""
Exceptions raised by the rule engine.

Configuration errors are programming mistakes and fail fast while rules are
being composed. Validation failures are never raised by the engine; they
are returned as ValidationFailure records (see results.py).
"""

from typing import Any, List, Optional


def _type_name(model_type: Optional[type]) -> str:
    return getattr(model_type, "__name__", str(model_type))


class FluentRulesError(Exception):
    """Base class for every error raised by fluent_rules."""


class ConfigurationError(FluentRulesError):
    """Invalid rule configuration, with the offending member and type when known."""

    def __init__(
        self,
        message: str,
        member: Optional[str] = None,
        model_type: Optional[type] = None,
    ):
        self.member = member
        self.model_type = model_type
        self.reason = message
        full_msg = message
        if member is not None and model_type is not None:
            full_msg = f"{_type_name(model_type)}.{member}: {message}"
        elif member is not None:
            full_msg = f"{member}: {message}"
        super().__init__(full_msg)


class EmptyScopeError(ConfigurationError):
    """A when/otherwise scope produced no rules."""

    def __init__(self, scope: str, member: Optional[str] = None, model_type: Optional[type] = None):
        self.scope = scope
        super().__init__(
            f"The {scope}(...) scope must define at least one rule",
            member=member,
            model_type=model_type,
        )


class TypeMismatchError(ConfigurationError):
    """A rule group was merged into a group list keyed by another type."""

    def __init__(self, expected: type, actual: type):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Object type mismatch: all groups in the collection must be of type "
            f"{_type_name(expected)}, got {_type_name(actual)}"
        )


class AsyncRuleError(ConfigurationError):
    """An async-only rule was evaluated on the synchronous path."""

    def __init__(self, member: str, model_type: Optional[type] = None):
        super().__init__(
            "rule has an asynchronous condition or check; use validate_async()",
            member=member,
            model_type=model_type,
        )


class RulesNotBuiltError(FluentRulesError):
    """Rules for a type were configured but build() was never called."""

    def __init__(self, model_type: type):
        self.model_type = model_type
        name = _type_name(model_type)
        super().__init__(
            f"Validation rules for {name} were not finalized. "
            f"Did you forget to call for_type({name}).build()?"
        )


class OperationCancelledError(FluentRulesError):
    """Raised by CancellationToken.raise_if_cancelled()."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(f"Validation was cancelled: {reason}" if reason else "Validation was cancelled")


class ValidationFailedError(FluentRulesError):
    """Raised by ValidationResult.raise_if_invalid() for callers that want an exception."""

    def __init__(self, model_type: Optional[type], failures: List[Any]):
        self.model_type = model_type
        self.failures = failures
        lines = "\n".join(f"  - {f.describe()}" for f in failures)
        super().__init__(
            f"{_type_name(model_type)} failed validation with {len(failures)} error(s):\n{lines}"
        )
