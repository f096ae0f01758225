"""
Tests for RuleRegistry, RuleGroup and RuleGroupList.
"""

import threading
from dataclasses import dataclass
from typing import Optional

import pytest

from fluent_rules.rules import (
    EmailAddress,
    MemberRef,
    MustCheck,
    Required,
    Rule,
    RuleGroup,
    RuleGroupList,
    RuleRegistry,
    RulesNotBuiltError,
    TypeMismatchError,
    group_rules,
)


@dataclass
class Person:
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass
class Employee(Person):
    badge: Optional[str] = None


@dataclass
class Invoice:
    number: Optional[str] = None


def _rule(member="email", check=None, model_type=Person, **kwargs):
    return Rule(member=MemberRef(member, model_type), check=check, **kwargs)


class TestAddRules:
    """Merge semantics of add_rules()."""

    def test_same_rule_objects_are_not_duplicated(self):
        registry = RuleRegistry()
        rules = [_rule(check=Required()), _rule(check=EmailAddress())]

        assert registry.add_rules(Person, "email", rules) == 2
        assert registry.add_rules(Person, "email", rules) == 0
        assert len(registry) == 2

    def test_dedupe_skips_identical_checks(self):
        registry = RuleRegistry()
        registry.add_rules(Person, "email", [_rule(check=Required())], dedupe=True)

        assert registry.add_rules(Person, "email", [_rule(check=Required())], dedupe=True) == 0
        assert registry.add_rules(Person, "email", [_rule(check=EmailAddress())], dedupe=True) == 1
        assert len(registry.get_rules_for_member(Person, "email")) == 2

    def test_identical_checks_accumulate_without_dedupe(self):
        registry = RuleRegistry()
        registry.add_rules(Person, "email", [_rule(check=Required())])
        registry.add_rules(Person, "email", [_rule(check=Required())])
        assert len(registry) == 2

    def test_multiple_allowed_checks_survive_dedupe(self):
        predicate = lambda v: True  # noqa: E731
        registry = RuleRegistry()
        registry.add_rules(Person, "email", [_rule(check=MustCheck(predicate))], dedupe=True)
        registry.add_rules(Person, "email", [_rule(check=MustCheck(predicate))], dedupe=True)
        assert len(registry) == 2

    def test_groups_are_kept_per_member(self):
        registry = RuleRegistry()
        registry.add_rules(Person, "email", [_rule(check=Required())])
        registry.add_rules(Person, "name", [_rule("name", check=Required())])
        registry.add_rules(Person, "email", [_rule(check=EmailAddress())])

        rows = registry.enumerate_rules(Person)
        assert [(m.name, len(rules)) for _, m, rules in rows] == [("email", 2), ("name", 1)]


class TestRemoval:
    def _registry(self):
        registry = RuleRegistry()
        registry.add_rules(Person, "email", [_rule(check=Required()), _rule(check=EmailAddress())])
        registry.add_rules(Person, "name", [_rule("name", check=Required())])
        return registry

    def test_remove_all_for_member(self):
        registry = self._registry()
        assert registry.remove_all(Person, "email") == 2
        assert registry.get_rules_for_member(Person, "email") == []
        assert registry.remove_all(Person, "email") == 0

    def test_remove_all_by_check_type(self):
        registry = self._registry()
        assert registry.remove_all(Person, "email", EmailAddress) == 1
        rules = registry.get_rules_for_member(Person, "email")
        assert [type(r.check) for r in rules] == [Required]

    def test_remove_where(self):
        registry = self._registry()
        assert registry.remove_where(Person, lambda m: m.name != "name") == 2
        assert [m.name for _, m, _ in registry.enumerate_rules()] == ["name"]

    def test_remove_all_for_type_and_clear(self):
        registry = self._registry()
        registry.add_rules(Invoice, "number", [_rule("number", Required(), Invoice)])

        assert registry.remove_all_for_type(Person) == 3
        assert registry.registered_types() == [Invoice]
        registry.clear()
        assert len(registry) == 0

    def test_removal_does_not_touch_published_snapshots(self):
        registry = self._registry()
        registry.mark_built(Person)
        before = registry.get_rules_for_type(Person)
        registry.remove_all(Person, "email")
        assert len(before) == 3


class TestLookups:
    def test_contains_counts_placeholders_but_contains_any_does_not(self):
        registry = RuleRegistry()
        registry.add_rules(Person, "name", [_rule("name")])

        assert registry.contains(Person, "name")
        assert not registry.contains_any(Person, "name")

    def test_contains_any_with_predicate(self):
        registry = RuleRegistry()
        registry.add_rules(Person, "email", [_rule(check=Required(), key="REQ")])
        assert registry.contains_any(Person, "email", lambda r: r.key == "REQ")
        assert not registry.contains_any(Person, "email", lambda r: r.key == "OTHER")

    def test_try_get_rules(self):
        registry = RuleRegistry()
        rule = _rule(check=Required())
        registry.add_rules(Person, "email", [rule])

        assert registry.try_get_rules(Person, "email") == (True, [rule])
        assert registry.try_get_rules(Person, "name") == (False, [])

    def test_base_class_rules_apply_to_subclasses(self):
        registry = RuleRegistry()
        base_rule = _rule("name", check=Required())
        own_rule = _rule("badge", check=Required(), model_type=Employee)
        registry.add_rules(Person, "name", [base_rule])
        registry.add_rules(Employee, "badge", [own_rule])
        registry.mark_built(Person)
        registry.mark_built(Employee)

        assert registry.get_rules_for_type(Employee) == [base_rule, own_rule]
        assert registry.get_rules_for_type(Employee, inherited=False) == [own_rule]
        assert registry.get_rules_for_type(Person) == [base_rule]

    def test_unknown_type_has_no_rules(self):
        assert RuleRegistry().get_rules_for_type(Invoice) == []

    def test_unbuilt_type_raises(self):
        """Rules added without mark_built() are not served."""
        registry = RuleRegistry()
        registry.add_rules(Person, "email", [_rule(check=Required())])

        with pytest.raises(RulesNotBuiltError, match="were not finalized"):
            registry.get_rules_for_type(Person)
        registry.mark_built(Person)
        assert len(registry.get_rules_for_type(Person)) == 1

    def test_add_discovered_marks_types_built(self):
        registry = RuleRegistry()
        added = registry.add_discovered([
            (Person, "email", Required()),
            (Person, "email", EmailAddress()),
            (Invoice, "number", Required()),
        ])

        assert added == 3
        assert registry.is_built(Person) and registry.is_built(Invoice)


class TestGroups:
    def test_group_without_check_type(self):
        ref = MemberRef("email", Person)
        group = RuleGroup(Person, ref, (_rule(check=Required()), _rule(check=EmailAddress())))
        smaller, removed = group.without_check_type(Required)

        assert removed == 1
        assert len(group) == 2
        assert [type(r.check) for r in smaller] == [EmailAddress]

    def test_group_list_merge_combines_same_member(self):
        ref = MemberRef("email", Person)
        groups = RuleGroupList(Person)
        groups.merge(RuleGroup(Person, ref, (_rule(check=Required()),)))
        groups.merge(RuleGroup(Person, ref, (_rule(check=EmailAddress()),)))

        assert len(groups) == 1
        assert len(groups.find(ref)) == 2

    def test_group_list_rejects_other_types(self):
        groups = RuleGroupList(Person)
        with pytest.raises(TypeMismatchError, match="Object type mismatch"):
            groups.merge(RuleGroup(Invoice, MemberRef("number", Invoice)))

    def test_add_groups_rejects_mismatched_list(self):
        with pytest.raises(TypeMismatchError):
            RuleRegistry().add_groups(Person, RuleGroupList(Invoice))

    def test_group_rules_by_type_and_member(self):
        rules = [
            _rule(check=Required()),
            _rule("number", Required(), Invoice),
            _rule(check=EmailAddress()),
        ]
        grouped = group_rules(rules)

        assert list(grouped) == [Person, Invoice]
        assert len(grouped[Person].find(MemberRef("email", Person))) == 2


class TestConcurrency:
    def test_concurrent_writers_and_readers(self):
        """Many threads merging into one registry lose no rules and readers never fail."""
        registry = RuleRegistry()
        registry.mark_built(Person)
        errors = []

        def writer(n):
            for i in range(50):
                registry.add_rules(Person, f"field_{n}", [_rule(f"field_{n}", check=Required())])

        def reader():
            for _ in range(200):
                try:
                    rules = registry.get_rules_for_type(Person)
                    assert all(r.check is not None for r in rules)
                except Exception as e:  # noqa: BLE001
                    errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(registry) == 8 * 50
        assert len(registry.enumerate_rules(Person)) == 8
