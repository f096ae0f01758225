"""
Gate predicate composition for when/otherwise scopes.

Conditions are plain callables:
- sync:  condition(instance) -> bool
- async: condition(instance, token) -> awaitable bool

The nodes below compose them without losing readability in diagnostics
(each has a repr) and with short-circuit semantics: the gate is always
evaluated first and the inner condition only runs when the gate passes.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .types import CancellationToken

SyncCondition = Callable[[Any], bool]
AsyncCondition = Callable[[Any, CancellationToken], Any]


def describe_condition(condition: Optional[Callable]) -> str:
    """Short human-readable form of a condition for tables and logs."""
    if condition is None:
        return "always"
    if isinstance(condition, (AllCondition, NotCondition, AsyncAllCondition, AsyncNotCondition)):
        return repr(condition)
    name = getattr(condition, "__qualname__", None) or type(condition).__name__
    return "<lambda>" if "<lambda>" in name else name


# =============================================================================
# Synchronous nodes
# =============================================================================

@dataclass(frozen=True)
class AllCondition:
    """
    gate(instance) AND inner(instance), gate first.

    `inner` may be None, in which case the node is the gate alone.
    """

    gate: SyncCondition
    inner: Optional[SyncCondition] = None

    def __call__(self, instance: Any) -> bool:
        if not self.gate(instance):
            return False
        return True if self.inner is None else bool(self.inner(instance))

    def __repr__(self) -> str:
        if self.inner is None:
            return describe_condition(self.gate)
        return f"All({describe_condition(self.gate)}, {describe_condition(self.inner)})"


@dataclass(frozen=True)
class NotCondition:
    """Negation of a sync predicate."""

    predicate: SyncCondition

    def __call__(self, instance: Any) -> bool:
        return not self.predicate(instance)

    def __repr__(self) -> str:
        return f"Not({describe_condition(self.predicate)})"


# =============================================================================
# Asynchronous nodes
# =============================================================================

async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(frozen=True)
class AsyncAllCondition:
    """
    Async gate AND the rule's own gate.

    `gate` is either sync (instance) or async (instance, token) depending on
    `gate_is_async`. The inner side prefers `inner_async` (authoritative on
    the async path) and falls back to `inner_sync`. Inner conditions are not
    evaluated when the gate fails.
    """

    gate: Callable
    gate_is_async: bool = True
    inner_async: Optional[AsyncCondition] = None
    inner_sync: Optional[SyncCondition] = None

    async def __call__(self, instance: Any, token: Optional[CancellationToken] = None) -> bool:
        token = token or CancellationToken.none()
        token.raise_if_cancelled()
        if self.gate_is_async:
            passed = await _maybe_await(self.gate(instance, token))
        else:
            passed = self.gate(instance)
        if not passed:
            return False
        if self.inner_async is not None:
            token.raise_if_cancelled()
            return bool(await _maybe_await(self.inner_async(instance, token)))
        if self.inner_sync is not None:
            return bool(self.inner_sync(instance))
        return True

    def __repr__(self) -> str:
        inner = self.inner_async if self.inner_async is not None else self.inner_sync
        gate = describe_condition(self.gate)
        if inner is None:
            return f"Async({gate})"
        return f"AsyncAll({gate}, {describe_condition(inner)})"


@dataclass(frozen=True)
class AsyncNotCondition:
    """Negation of an async predicate."""

    predicate: AsyncCondition

    async def __call__(self, instance: Any, token: Optional[CancellationToken] = None) -> bool:
        token = token or CancellationToken.none()
        return not await _maybe_await(self.predicate(instance, token))

    def __repr__(self) -> str:
        return f"AsyncNot({describe_condition(self.predicate)})"
