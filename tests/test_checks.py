"""
Tests for the value types and the standard leaf checks.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from fluent_rules.rules import (
    AsyncRuleError,
    CancellationToken,
    Compare,
    ComparisonOperator,
    EachCheck,
    EmailAddress,
    Empty,
    Equal,
    ExactLength,
    Length,
    MaxLength,
    Maximum,
    MemberRef,
    MinLength,
    Minimum,
    MustCheck,
    NotEmpty,
    NotEqual,
    OperationCancelledError,
    Range,
    Regex,
    Required,
    RuleBehavior,
    ValidationContext,
)
from fluent_rules.rules.checks import AsyncMustCheck


@dataclass
class Signup:
    password: Optional[str] = None
    confirm: Optional[str] = None


class TestMemberRef:
    """Tests for member identity."""

    def test_same_member_across_subclasses(self):
        class Base:
            pass

        class Derived(Base):
            pass

        assert MemberRef("name", Base).same_member(MemberRef("name", Derived))
        assert MemberRef("name", Derived).same_member(MemberRef("name", Base))
        assert not MemberRef("name", Base).same_member(MemberRef("other", Base))
        assert not MemberRef("name", Base).same_member(MemberRef("name", Signup))

    def test_value_of_reads_attributes_and_mappings(self):
        ref = MemberRef("password", Signup)
        assert ref.value_of(Signup(password="x")) == "x"
        assert ref.value_of({"password": "y"}) == "y"
        assert ref.value_of(None) is None

    def test_rejects_empty_name(self):
        with pytest.raises(ValueError, match="non-empty string"):
            MemberRef("", Signup)

    def test_of_passes_refs_through(self):
        ref = MemberRef("password", Signup)
        assert MemberRef.of(ref, object) is ref
        assert MemberRef.of("password", Signup) == ref


class TestRuleBehavior:
    def test_parse_is_case_insensitive(self):
        assert RuleBehavior.parse("Preserve") is RuleBehavior.PRESERVE
        assert RuleBehavior.parse(RuleBehavior.REPLACE) is RuleBehavior.REPLACE

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown rule behavior 'merge'"):
            RuleBehavior.parse("merge")


class TestCancellationToken:
    def test_cancel_sets_reason(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.cancel("shutdown")
        assert token.is_cancelled
        assert token.reason == "shutdown"

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(OperationCancelledError, match="cancelled"):
            token.raise_if_cancelled()


class TestStandardChecks:
    """Pass/fail behavior of the standard checks."""

    def test_required(self):
        check = Required()
        assert not check.is_valid(None)
        assert not check.is_valid("   ")
        assert check.is_valid("x")
        assert check.is_valid(0)
        assert Required(allow_empty_strings=True).is_valid("")

    def test_length_bounds_are_inclusive(self):
        check = Length(2, 4)
        assert not check.is_valid("a")
        assert check.is_valid("ab")
        assert check.is_valid("abcd")
        assert not check.is_valid("abcde")
        assert check.is_valid(None)
        assert Length(2).is_valid("a" * 100)

    def test_length_rejects_inverted_bounds(self):
        with pytest.raises(ValueError, match="must be >= minimum_length"):
            Length(5, 2)

    def test_min_max_exact_length(self):
        assert MinLength(3).is_valid([1, 2, 3])
        assert not MinLength(3).is_valid("ab")
        assert MaxLength(2).is_valid("ab")
        assert not MaxLength(2).is_valid("abc")
        assert ExactLength(2).is_valid("ab")
        assert not ExactLength(2).is_valid("abc")

    def test_range(self):
        check = Range(1, 10)
        assert check.is_valid(1)
        assert check.is_valid(10)
        assert not check.is_valid(11)
        assert check.is_valid(None)
        assert not check.is_valid("five")

    def test_minimum(self):
        check = Minimum(18)
        assert check.is_valid(18)
        assert check.is_valid(40.5)
        assert not check.is_valid(17)
        assert check.is_valid(None)
        assert check.is_valid("")
        assert not check.is_valid("eighteen")

    def test_maximum(self):
        check = Maximum(65)
        assert check.is_valid(65)
        assert not check.is_valid(66)
        assert check.is_valid(None)
        assert not check.is_valid([65])

    def test_exclusive_bounds(self):
        assert not Minimum(0, exclusive=True).is_valid(0)
        assert Minimum(0, exclusive=True).is_valid(0.1)
        assert not Maximum(1.0, exclusive=True).is_valid(1.0)
        assert Maximum(1.0, exclusive=True).is_valid(0.99)

    def test_regex_matches_whole_value(self):
        check = Regex(r"\d{3}")
        assert check.is_valid("123")
        assert not check.is_valid("1234")
        assert check.is_valid("")

    def test_email_address(self):
        check = EmailAddress()
        assert check.is_valid("a@b.com")
        assert not check.is_valid("@b.com")
        assert not check.is_valid("a@")
        assert not check.is_valid("a@b@c")
        assert check.is_valid(None)

    def test_compare_reads_other_member(self):
        check = Compare("password")
        context = ValidationContext(Signup("secret", "secret"), "confirm", Signup)
        assert check.is_valid("secret", context)
        assert not check.is_valid("other", context)

    def test_compare_with_operator(self):
        check = Compare("password", ComparisonOperator.NOT_EQUAL)
        context = ValidationContext(Signup("secret"), "confirm", Signup)
        assert check.is_valid("other", context)

    def test_compare_needs_context(self):
        with pytest.raises(ValueError, match="needs a validation context"):
            Compare("password").is_valid("x")

    def test_equal_and_not_equal(self):
        assert Equal(3).is_valid(3)
        assert not Equal(3).is_valid(4)
        assert NotEqual("admin").is_valid("guest")
        assert not NotEqual("admin").is_valid("admin")

    def test_empty_and_not_empty(self):
        assert Empty().is_valid(None)
        assert Empty().is_valid(" ")
        assert Empty().is_valid([])
        assert not Empty().is_valid("x")
        assert NotEmpty().is_valid([1])
        assert not NotEmpty().is_valid("")

    def test_must_check_wraps_predicate(self):
        check = MustCheck(lambda v: v > 0)
        assert check.is_valid(1)
        assert not check.is_valid(0)

    def test_must_check_requires_callable(self):
        with pytest.raises(ValueError, match="callable predicate"):
            MustCheck("not callable")

    def test_async_must_check_refuses_sync_path(self):
        async def predicate(value, token):
            return True

        check = AsyncMustCheck(predicate)
        with pytest.raises(AsyncRuleError):
            check.is_valid("x", ValidationContext(Signup(), "password"))

    def test_each_check_applies_to_every_element(self):
        check = EachCheck(MaxLength(3))
        assert check.is_valid(["a", "abc"])
        assert not check.is_valid(["a", "abcd"])
        assert check.is_valid(None)
        assert check.get_short_name() == "MaxLength"

    def test_each_check_rejects_strings(self):
        with pytest.raises(TypeError, match="collection of elements"):
            EachCheck(Required()).is_valid("abc")


class TestCheckMessagesAndIdentity:
    """Default messages, short names and identity."""

    def test_default_messages_format_arguments(self):
        assert Required().format_error_message("Email") == "The Email field is required."
        assert Range(1, 5).format_error_message("Age") == "The field Age must be between 1 and 5."
        assert Compare("password").format_error_message("confirm") == "'confirm' and 'password' do not match."

    def test_bound_messages(self):
        assert Minimum(18).format_error_message("Age") == "The field Age must be greater than or equal to 18."
        assert Maximum(65).format_error_message("Age") == "The field Age must be less than or equal to 65."
        assert Minimum(0, exclusive=True).format_error_message("Price") == "The field Price must be greater than 0."
        assert Maximum(9, exclusive=True).format_error_message("Qty") == "The field Qty must be less than 9."
        assert Maximum(9, exclusive=True, error_message="{0} <= {1}").format_error_message("Qty") == "Qty <= 9"

    def test_bound_identity_includes_exclusivity(self):
        assert Minimum(1).is_identical(Minimum(1))
        assert not Minimum(1).is_identical(Minimum(1, exclusive=True))
        assert not Minimum(1).is_identical(Maximum(1))

    def test_error_message_overrides_default(self):
        check = MinLength(8, error_message="{0} is too short ({1})")
        assert check.format_error_message("Password") == "Password is too short (8)"

    def test_short_names(self):
        assert Required.get_short_name() == "Required"
        assert MustCheck.get_short_name() == "Must"
        assert AsyncMustCheck.get_short_name() == "MustAsync"

    def test_identity(self):
        assert MinLength(3).is_identical(MinLength(3))
        assert not MinLength(3).is_identical(MinLength(4))
        assert not MinLength(3).is_identical(MaxLength(3))
        predicate = lambda v: True  # noqa: E731
        assert MustCheck(predicate).is_identical(MustCheck(predicate))
