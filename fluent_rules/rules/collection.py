"""
Collection and nested-object checks.

A child rule set built with `rule_for_each(member).child_rules(...)` (or
`rule_for(member).child_rules(...)` for a single nested object) is wrapped
as one leaf check on the parent member. The evaluator walks the elements
and runs the child rules against each one; every failure is tagged with an
item path such as `Items[3].Products[0].Orders[1].OrderId`, from which the
collection index (innermost) and parent collection index (one level up)
are derived.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any, Iterator, Optional, Sequence, Tuple

from .checks import LeafCheck, ValidationContext
from .rule import Rule
from .types import CancellationToken

_INDEX_PATTERN = re.compile(r"\[(\d+)\]")


# =============================================================================
# Item paths
# =============================================================================

def build_item_path(prefix: str, member_name: str, index: Optional[int] = None) -> str:
    """
    Append a member segment to a path prefix.

    build_item_path("", "Items", 3)               -> "Items[3]"
    build_item_path("Items[3].", "Products", 0)   -> "Items[3].Products[0]"
    build_item_path("", "Address")                -> "Address"
    """
    if index is None or index < 0:
        return f"{prefix}{member_name}"
    return f"{prefix}{member_name}[{index}]"


def child_prefix(path: str) -> str:
    return f"{path}." if path else ""


def get_indices(path: str) -> Tuple[int, ...]:
    return tuple(int(m) for m in _INDEX_PATTERN.findall(path or ""))


def extract_indices(path: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """
    (collection_index, parent_collection_index) for an item path.

    The innermost index is the collection index; the one before it is the
    parent index. Missing levels are None.
    """
    if not path:
        return None, None
    indices = get_indices(path)
    collection_index = indices[-1] if indices else None
    parent_index = indices[-2] if len(indices) > 1 else None
    return collection_index, parent_index


def iter_elements(value: Any) -> Iterator[Tuple[int, Any]]:
    """Enumerate collection elements in iteration order. None yields nothing."""
    if value is None:
        return
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise TypeError(
            f"Expected a collection of elements, got {type(value).__name__}"
        )
    yield from enumerate(value)


# =============================================================================
# Checks
# =============================================================================

class NestedRulesCheck(LeafCheck):
    """
    A built child rule set applied to a nested object (indexed=False) or to
    every element of a collection (indexed=True).
    """

    short_name = "Nested"
    indexed: bool = False

    def __init__(self, rules: Sequence[Rule], element_type: Optional[type] = None, **kwargs):
        super().__init__(**kwargs)
        self.rules: Tuple[Rule, ...] = tuple(rules)
        self.element_type = element_type

    def targets(self, value: Any) -> Iterator[Tuple[Optional[int], Any]]:
        """(index, target) pairs; index is None for a scalar nested object."""
        if self.indexed:
            yield from iter_elements(value)
        elif value is not None:
            yield None, value

    def is_valid(self, value: Any, context: Optional[ValidationContext] = None) -> bool:
        from .validator import evaluate_rules

        for _, target in self.targets(value):
            if evaluate_rules(target, self.rules):
                return False
        return True

    async def is_valid_async(self, value, context=None, token=None) -> bool:
        from .validator import evaluate_rules_async

        token = token or CancellationToken.none()
        for _, target in self.targets(value):
            if await evaluate_rules_async(target, self.rules, token=token):
                return False
        return True

    def identity(self):
        return tuple(rule.unique_key for rule in self.rules)

    def __repr__(self) -> str:
        name = self.element_type.__name__ if self.element_type else "?"
        return f"{type(self).__name__}[{name}]({len(self.rules)} rules)"


class NestedCheck(NestedRulesCheck):
    short_name = "Nested"
    indexed = False


class AsyncNestedCheck(NestedCheck):
    short_name = "NestedAsync"
    is_async = True


class CollectionCheck(NestedRulesCheck):
    short_name = "Collection"
    indexed = True


class AsyncCollectionCheck(CollectionCheck):
    short_name = "CollectionAsync"
    is_async = True


def make_nested_check(rules: Sequence[Rule], indexed: bool,
                      element_type: Optional[type] = None) -> NestedRulesCheck:
    """Pick the sync or async variant depending on the child rules."""
    uses_async = any(rule.is_async for rule in rules)
    if indexed:
        cls = AsyncCollectionCheck if uses_async else CollectionCheck
    else:
        cls = AsyncNestedCheck if uses_async else NestedCheck
    return cls(rules, element_type)


class EachCheck(LeafCheck):
    """Applies a plain check to every element of a collection member."""

    allow_multiple = True

    def __init__(self, inner: LeafCheck, **kwargs):
        super().__init__(**kwargs)
        self.inner = inner

    @property
    def is_async(self) -> bool:
        return self.inner.is_async

    def get_short_name(self) -> str:
        return self.inner.get_short_name()

    def is_valid(self, value, context=None) -> bool:
        return all(self.inner.is_valid(item, context) for _, item in iter_elements(value))

    async def is_valid_async(self, value, context=None, token=None) -> bool:
        for _, item in iter_elements(value):
            if not await self.inner.is_valid_async(item, context, token):
                return False
        return True

    def format_error_message(self, member_name: str) -> str:
        return self.inner.format_error_message(member_name)

    def identity(self):
        return (type(self.inner), self.inner.identity())

    def __repr__(self) -> str:
        return f"Each({self.inner!r})"
