"""
Rule Registry - thread-safe storage of built rules.

Rules are grouped per (declaring type, member) in a RuleGroup and per
declaring type in a RuleGroupList. The registry never mutates a published
group or group list: every write builds a replacement under the lock and
swaps it in, so concurrent readers always see a complete snapshot.

Usage:
    registry = RuleRegistry()
    registry.add_rules(User, "email", [rule1, rule2])
    registry.mark_built(User)
    rules = registry.get_rules_for_type(User)
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ..utils.logger import get_logger
from .checks import LeafCheck
from .errors import RulesNotBuiltError, TypeMismatchError
from .rule import Rule
from .types import MemberRef

logger = get_logger()

MemberLike = Union[str, MemberRef]
RulePredicate = Callable[[Rule], bool]


def _is_duplicate(existing: Iterable[Rule], rule: Rule, dedupe: bool) -> bool:
    for current in existing:
        if current.unique_key == rule.unique_key:
            return True
        if (
            dedupe
            and current.check is not None
            and rule.check is not None
            and not rule.check.allow_multiple
            and current.check.is_identical(rule.check)
        ):
            return True
    return False


# =============================================================================
# RuleGroup / RuleGroupList
# =============================================================================

@dataclass(frozen=True)
class RuleGroup:
    """All rules for one (declaring type, member) pair."""

    declaring_type: type
    member: MemberRef
    rules: Tuple[Rule, ...] = ()

    @property
    def has_checks(self) -> bool:
        return any(r.has_check for r in self.rules)

    def merged(self, rules: Iterable[Rule], dedupe: bool = False) -> Tuple["RuleGroup", int]:
        """
        Return a group with `rules` appended and the number actually added.

        Rules already present by unique key are skipped; with dedupe=True,
        rules whose check is identical to an existing one are skipped too.
        """
        combined = list(self.rules)
        added = 0
        for rule in rules:
            if _is_duplicate(combined, rule, dedupe):
                continue
            combined.append(rule)
            added += 1
        return RuleGroup(self.declaring_type, self.member, tuple(combined)), added

    def without(self, predicate: RulePredicate) -> Tuple["RuleGroup", int]:
        kept = tuple(r for r in self.rules if not predicate(r))
        return RuleGroup(self.declaring_type, self.member, kept), len(self.rules) - len(kept)

    def without_check_type(self, check_type: type) -> Tuple["RuleGroup", int]:
        return self.without(lambda r: isinstance(r.check, check_type))

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)


@dataclass
class RuleGroupList:
    """
    All rule groups for one declaring type.

    Merging combines groups for the same member instead of duplicating them.
    """

    model_type: type
    groups: List[RuleGroup] = field(default_factory=list)

    def _index_of(self, member: MemberRef) -> int:
        for i, group in enumerate(self.groups):
            if group.member.same_member(member):
                return i
        return -1

    def find(self, member: MemberRef) -> Optional[RuleGroup]:
        i = self._index_of(member)
        return self.groups[i] if i >= 0 else None

    def merge(self, group: RuleGroup, dedupe: bool = False) -> int:
        """
        Merge a group into this list.

        Raises:
            TypeMismatchError: group belongs to another declaring type

        Returns:
            Number of rules added
        """
        if group.declaring_type is not self.model_type:
            raise TypeMismatchError(self.model_type, group.declaring_type)
        i = self._index_of(group.member)
        if i < 0:
            fresh, added = RuleGroup(self.model_type, group.member).merged(group.rules, dedupe)
            if fresh.rules:
                self.groups.append(fresh)
            return added
        self.groups[i], added = self.groups[i].merged(group.rules, dedupe)
        return added

    def merge_all(self, other: "RuleGroupList", dedupe: bool = False) -> int:
        return sum(self.merge(group, dedupe) for group in other.groups)

    def remove_rules(self, member_predicate: Callable[[MemberRef], bool],
                     rule_predicate: Optional[RulePredicate] = None) -> int:
        """Remove rules of matching members (all, or those matching rule_predicate)."""
        removed = 0
        kept: List[RuleGroup] = []
        for group in self.groups:
            if not member_predicate(group.member):
                kept.append(group)
                continue
            if rule_predicate is None:
                removed += len(group.rules)
                continue
            group, count = group.without(rule_predicate)
            removed += count
            if group.rules:
                kept.append(group)
        self.groups = kept
        return removed

    def rules(self) -> List[Rule]:
        return [rule for group in self.groups for rule in group.rules]

    def copy(self) -> "RuleGroupList":
        return RuleGroupList(self.model_type, list(self.groups))

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[RuleGroup]:
        return iter(self.groups)


def group_rules(rules: Iterable[Rule]) -> Dict[type, RuleGroupList]:
    """Group rules by declaring type, then by member, keeping first-seen order."""
    by_type: "OrderedDict[type, OrderedDict[MemberRef, List[Rule]]]" = OrderedDict()
    for rule in rules:
        members = by_type.setdefault(rule.declaring_type, OrderedDict())
        members.setdefault(rule.member, []).append(rule)
    return {
        model_type: RuleGroupList(
            model_type,
            [RuleGroup(model_type, member, tuple(rs)) for member, rs in members.items()],
        )
        for model_type, members in by_type.items()
    }


# =============================================================================
# Registry
# =============================================================================

class RuleRegistry:
    """
    Thread-safe registry of rules keyed by declaring type and member.

    Many readers and occasional writers may use one registry concurrently;
    all methods return snapshots rather than live references.
    """

    def __init__(self):
        self._lists: Dict[type, RuleGroupList] = {}
        self._built: Dict[type, bool] = {}
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def add_rules(self, model_type: type, member: MemberLike, rules: Iterable[Rule],
                  dedupe: bool = False) -> int:
        """
        Merge rules into the group for (model_type, member).

        Args:
            model_type: Declaring type
            member: Member name or ref
            rules: Rules to merge
            dedupe: Also skip rules whose check is identical to an existing one

        Returns:
            Number of rules added
        """
        ref = MemberRef.of(member, model_type)
        return self.add_groups(
            model_type,
            RuleGroupList(model_type, [RuleGroup(model_type, ref, tuple(rules))]),
            dedupe=dedupe,
        )

    def add_groups(self, model_type: type, groups: RuleGroupList, dedupe: bool = False) -> int:
        """Merge a whole group list (as produced by a build) into the registry."""
        if groups.model_type is not model_type:
            raise TypeMismatchError(model_type, groups.model_type)
        with self._lock:
            current = self._lists.get(model_type)
            updated = current.copy() if current is not None else RuleGroupList(model_type)
            added = updated.merge_all(groups, dedupe)
            self._lists[model_type] = updated
            self._built.setdefault(model_type, False)
        for group in groups:
            logger.rule("ADDED", model_type.__name__, group.member.name, count=len(group.rules))
        return added

    def add_discovered(self, triples: Iterable[Tuple[type, MemberLike, LeafCheck]]) -> int:
        """
        Register (declaring type, member, check) triples from a model scanner.

        Each triple becomes an always-applicable rule. The affected types are
        marked built.
        """
        rules_by_key: "OrderedDict[Tuple[type, str], List[Rule]]" = OrderedDict()
        for model_type, member, check in triples:
            ref = MemberRef.of(member, model_type)
            rules_by_key.setdefault((model_type, ref.name), []).append(Rule(member=ref, check=check))

        added = 0
        types = []
        for (model_type, name), rules in rules_by_key.items():
            added += self.add_rules(model_type, name, rules, dedupe=True)
            if model_type not in types:
                types.append(model_type)
        for model_type in types:
            self.mark_built(model_type)
        return added

    def _rewrite(self, model_type: type, edit: Callable[[RuleGroupList], int]) -> int:
        with self._lock:
            current = self._lists.get(model_type)
            if current is None:
                return 0
            updated = current.copy()
            removed = edit(updated)
            if removed:
                self._lists[model_type] = updated
            return removed

    def remove_all(self, model_type: type, member: MemberLike,
                   check_type: Optional[type] = None) -> int:
        """
        Remove rules for a member, optionally only those whose check is a
        `check_type` instance.

        Returns:
            Number of rules removed (0 means nothing matched)
        """
        ref = MemberRef.of(member, model_type)
        rule_predicate = None
        if check_type is not None:
            rule_predicate = lambda r: isinstance(r.check, check_type)  # noqa: E731
        removed = self._rewrite(
            model_type, lambda groups: groups.remove_rules(ref.same_member, rule_predicate)
        )
        if removed:
            logger.rule("REMOVED", model_type.__name__, ref.name, count=removed)
        return removed

    def remove_where(self, model_type: type, member_predicate: Callable[[MemberRef], bool]) -> int:
        """Remove every rule whose member matches `member_predicate`."""
        removed = self._rewrite(model_type, lambda groups: groups.remove_rules(member_predicate))
        if removed:
            logger.rule("REMOVED", model_type.__name__, count=removed)
        return removed

    def remove_all_for_type(self, model_type: type) -> int:
        """Drop every rule for a type. Returns the number of rules removed."""
        with self._lock:
            current = self._lists.pop(model_type, None)
            self._built.pop(model_type, None)
        removed = len(current.rules()) if current is not None else 0
        if removed:
            logger.rule("CLEARED", model_type.__name__, count=removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._lists = {}
            self._built = {}

    def mark_built(self, model_type: type, built: bool = True) -> None:
        with self._lock:
            self._built[model_type] = built

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def is_built(self, model_type: type) -> bool:
        with self._lock:
            return self._built.get(model_type, False)

    def is_known(self, model_type: type) -> bool:
        with self._lock:
            return model_type in self._lists or model_type in self._built

    def registered_types(self) -> List[type]:
        with self._lock:
            return list(self._lists.keys())

    def get_rules_for_type(self, model_type: type, inherited: bool = True) -> List[Rule]:
        """
        Snapshot of the rules that apply to `model_type`.

        Includes rules registered for base classes (most generic first)
        unless inherited=False.

        Raises:
            RulesNotBuiltError: the type was configured but build() was not called
        """
        with self._lock:
            if self._built.get(model_type) is False:
                raise RulesNotBuiltError(model_type)
            lineage = reversed(model_type.__mro__) if inherited else (model_type,)
            lists = [self._lists[t] for t in lineage if t in self._lists]
        return [rule for groups in lists for rule in groups.rules()]

    def get_rules_for_member(self, model_type: type, member: MemberLike) -> List[Rule]:
        ref = MemberRef.of(member, model_type)
        with self._lock:
            lists = list(self._lists.values())
        return [
            rule
            for groups in lists
            for group in groups
            if group.member.same_member(ref)
            for rule in group.rules
        ]

    def enumerate_rules(self, model_type: Optional[type] = None) -> List[Tuple[type, MemberRef, Tuple[Rule, ...]]]:
        """
        Diagnostic snapshot: (declaring type, member, rules) rows.

        Args:
            model_type: Only this declaring type (all types when None)
        """
        with self._lock:
            if model_type is None:
                lists = list(self._lists.values())
            else:
                lists = [self._lists[model_type]] if model_type in self._lists else []
        return [(g.declaring_type, g.member, g.rules) for groups in lists for g in groups]

    def find_rules(self, model_type: type, member: MemberLike,
                   predicate: Optional[RulePredicate] = None) -> List[Rule]:
        rules = self.get_rules_for_member(model_type, member)
        return rules if predicate is None else [r for r in rules if predicate(r)]

    def try_get_rules(self, model_type: type, member: MemberLike,
                      predicate: Optional[RulePredicate] = None) -> Tuple[bool, List[Rule]]:
        """Result-style lookup: (found, rules)."""
        rules = self.find_rules(model_type, member, predicate)
        return bool(rules), rules

    def contains(self, model_type: type, member: MemberLike,
                 predicate: Optional[RulePredicate] = None) -> bool:
        """True when the member has at least one rule (matching `predicate`)."""
        return bool(self.find_rules(model_type, member, predicate))

    def contains_any(self, model_type: type, member: MemberLike,
                     predicate: Optional[RulePredicate] = None) -> bool:
        """
        True when the member has a leaf-check rule (or any rule matching
        `predicate`); placeholder rules alone do not count unless the
        predicate accepts them.
        """
        predicate = predicate or (lambda r: r.has_check)
        return self.contains(model_type, member, predicate)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(groups.rules()) for groups in self._lists.values())
