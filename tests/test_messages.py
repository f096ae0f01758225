"""
Tests for message resolution and the YAML catalog localizer.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from fluent_rules.rules import (
    CatalogNotFoundError,
    EachCheck,
    EmailAddress,
    Empty,
    ExactLength,
    Length,
    MaxLength,
    Maximum,
    MemberRef,
    MessageResolver,
    MinLength,
    Minimum,
    MustCheck,
    NotEmpty,
    Range,
    Regex,
    Required,
    RootSettings,
    Rule,
    ValidatorRoot,
    YamlCatalogLocalizer,
    format_message,
    get_format_value,
    normalize_format_args,
    validation_resource,
)


class Messages:
    password_Required = "{0} is mandatory."
    password_MinLength = "{0} needs at least {1} characters."


@dataclass
class Login:
    password: Optional[str] = None
    username: Optional[str] = None


class LoginMessages:
    username_Required = "Pick a user name."


@validation_resource(LoginMessages)
@dataclass
class AnnotatedLogin:
    username: Optional[str] = None


def _rule(member="password", check=None, model_type=Login, **kwargs):
    return Rule(member=MemberRef(member, model_type), check=check, **kwargs)


class TestFormatting:
    def test_normalize_format_args(self):
        assert normalize_format_args(None) == ()
        assert normalize_format_args("x") == ("x",)
        assert normalize_format_args(["Age", [1, 5]]) == ("Age", 1, 5)
        assert normalize_format_args(["Age", 5]) == ("Age", 5)
        assert normalize_format_args((1, 2, 3)) == (1, 2, 3)

    def test_format_message_with_range_pair(self):
        assert format_message("{0} between {1} and {2}", ["Age", [18, 65]]) == "Age between 18 and 65"

    def test_format_values_per_check_kind(self):
        assert get_format_value(ExactLength(4)) == 4
        assert get_format_value(Length(0, 10)) == 10
        assert get_format_value(Length(2, 10)) == [2, 10]
        assert get_format_value(MinLength(3)) == 3
        assert get_format_value(Range(1, 9)) == [1, 9]
        assert get_format_value(Minimum(18)) == 18
        assert get_format_value(Maximum(65, exclusive=True)) == 65
        assert get_format_value(Regex(r"\d+")) == r"\d+"
        assert get_format_value(EmailAddress()) == "email"
        assert get_format_value(Required()) == "required"
        assert get_format_value(NotEmpty()) == "not empty"
        assert get_format_value(Empty()) == "empty"
        assert get_format_value(MustCheck(bool)) is None
        assert get_format_value(EachCheck(MaxLength(7))) == 7
        assert get_format_value(None) is None


class TestResolutionOrder:
    """Each step of the priority chain, highest first."""

    def test_resolver_beats_explicit_message(self):
        rule = _rule(check=Required(), message="explicit", message_resolver=lambda i: "from resolver")
        assert MessageResolver().resolve(Login(), "password", rule.check, rule) == "from resolver"

    def test_empty_resolver_result_falls_through(self):
        rule = _rule(check=Required(), message="explicit", message_resolver=lambda i: "")
        assert MessageResolver().resolve(Login(), "password", rule.check, rule) == "explicit"

    def test_explicit_message_beats_resource(self):
        rule = _rule(check=Required(), message="{0} please")
        resolver = MessageResolver(shared_resource=Messages)
        assert resolver.resolve(Login(), "password", rule.check, rule) == "password please"

    def test_explicit_message_with_format_value(self):
        rule = _rule(check=Range(1, 3), message="{0} must be {1}-{2}")
        assert MessageResolver().resolve(Login(), "password", rule.check, rule) == "password must be 1-3"

    def test_bad_template_falls_back_to_check_message(self):
        rule = _rule(check=MinLength(8), message="{0} {5}")
        message = MessageResolver().resolve(Login(), "password", rule.check, rule)
        assert message == "The field password must be a string or collection with a minimum length of '8'."

    def test_shared_resource_by_conventional_key(self):
        resolver = MessageResolver(shared_resource=Messages)
        rule = _rule(check=MinLength(8))
        assert resolver.resolve(Login(), "password", rule.check, rule) == "password needs at least 8 characters."

    def test_conventional_keys_can_be_disabled(self):
        resolver = MessageResolver(shared_resource=Messages)
        rule = _rule(check=Required(), use_conventional_keys=False)
        assert resolver.resolve(Login(), "password", rule.check, rule) == "The password field is required."

    def test_custom_conventional_key_getter(self):
        resolver = MessageResolver(
            shared_resource={"Login.password.Required": "custom {0}"},
            conventional_key_getter=lambda t, m, c: f"{t.__name__}.{m}.{c.get_short_name()}",
        )
        rule = _rule(check=Required())
        assert resolver.resolve(Login(), "password", rule.check, rule) == "custom password"

    def test_rule_resource_key_and_type(self):
        rule = _rule(check=Required(), resource_key="Mandatory", resource_type={"Mandatory": "{0}!"})
        resolver = MessageResolver(shared_resource=Messages)
        assert resolver.resolve(Login(), "password", rule.check, rule) == "password!"

    def test_check_resource_name(self):
        check = Required(resource_name="NeedIt", resource_type={"NeedIt": "Need {0}"})
        rule = _rule(check=check)
        assert MessageResolver().resolve(Login(), "password", check, rule) == "Need password"

    def test_locale_sections_with_base_fallback(self):
        resource = {
            "fr": {"password_Required": "{0} est obligatoire."},
            "password_Required": "{0} is required (flat).",
        }
        resolver = MessageResolver(shared_resource=resource)

        french = _rule(check=Required(), locale="fr-CA")
        english = _rule(check=Required(), locale="en")
        assert resolver.resolve(Login(), "password", french.check, french) == "password est obligatoire."
        assert resolver.resolve(Login(), "password", english.check, english) == "password is required (flat)."

    def test_type_level_resource(self):
        rule = _rule("username", check=Required(), model_type=AnnotatedLogin)
        message = MessageResolver().resolve(AnnotatedLogin(), "username", rule.check, rule)
        assert message == "Pick a user name."

    def test_model_attributes_are_not_messages(self):
        """A model attribute named like a conventional key is data, not a message."""

        @dataclass
        class Signup:
            password: Optional[str] = None
            password_Required = "leaked class attribute"

        rule = _rule(check=Required(), model_type=Signup)
        message = MessageResolver().resolve(Signup(), "password", rule.check, rule)
        assert message == "The password field is required."

    def test_model_type_still_reaches_the_localizer(self):
        @dataclass
        class Signup:
            password: Optional[str] = None

        seen = []

        def localizer(resource, key, locale):
            seen.append((resource, key))
            return "{0} from catalog"

        rule = _rule(check=Required(), model_type=Signup)
        message = MessageResolver(localizer=localizer).resolve(Signup(), "password", rule.check, rule)
        assert message == "password from catalog"
        assert seen == [(Signup, "password_Required")]

    def test_fallback_message_beats_check_default(self):
        rule = _rule(check=Required(), fallback_message="Something is wrong")
        assert MessageResolver().resolve(Login(), "password", rule.check, rule) == "Something is wrong"

    def test_check_default_beats_raw_key(self):
        """Password + Required + conventional keys, no message: the check's default wins."""
        rule = _rule(check=Required())
        message = MessageResolver().resolve(Login(), "password", rule.check, rule)

        assert message == "The password field is required."
        assert message != "password_Required"

    def test_generic_default(self):
        assert MessageResolver().resolve(Login(), "password", None) == "Invalid value for password"


class TestLocalizer:
    CATALOG = {
        "en": {
            "password_Required": "{0} is required.",
            "Login": {"username_Required": "User name please."},
        },
        "fr": {"password_Required": "{0} est requis."},
    }

    def test_lookup_with_locale_fallback(self):
        localizer = YamlCatalogLocalizer(self.CATALOG)
        assert localizer.lookup("password_Required", "fr-BE") == "{0} est requis."
        assert localizer.lookup("password_Required", "de") == "{0} is required."
        assert localizer.lookup("missing", "en") is None

    def test_resource_sections(self):
        localizer = YamlCatalogLocalizer(self.CATALOG)
        assert localizer("Login", "username_Required", "en") == "User name please."
        assert localizer(Login, "username_Required", "en") == "User name please."
        assert localizer(None, "username_Required", "en") is None

    def test_keys(self):
        localizer = YamlCatalogLocalizer(self.CATALOG)
        assert localizer.keys("en") == ["Login.username_Required", "password_Required"]
        assert localizer.locales == ["en", "fr"]

    def test_from_file(self, tmp_path):
        path = tmp_path / "messages.yaml"
        path.write_text("en:\n  password_Required: \"{0} is required.\"\n", encoding="utf-8")

        localizer = YamlCatalogLocalizer.from_file(path)
        assert localizer.source == path
        assert localizer.lookup("password_Required") == "{0} is required."

    def test_missing_and_empty_files(self, tmp_path):
        with pytest.raises(CatalogNotFoundError, match="Message catalog not found"):
            YamlCatalogLocalizer.from_file(tmp_path / "missing.yaml")

        empty = tmp_path / "empty.yaml"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(ValueError, match="Message catalog is empty"):
            YamlCatalogLocalizer.from_file(empty)

    def test_rejects_non_mapping_sections(self):
        with pytest.raises(ValueError, match="locale 'en' must be a mapping"):
            YamlCatalogLocalizer({"en": ["not", "a", "mapping"]})

    def test_resolver_uses_localizer_with_model_type(self):
        resolver = MessageResolver(localizer=YamlCatalogLocalizer(self.CATALOG), default_locale="fr")
        password = _rule(check=Required())
        username = _rule("username", check=Required())

        assert resolver.resolve(Login(), "password", password.check, password) == "password est requis."
        assert resolver.resolve(Login(), "username", username.check, username) == "User name please."

    def test_localizer_lookup_error_is_a_miss(self):
        def localizer(resource, key, locale):
            raise KeyError(key)

        rule = _rule(check=Required())
        message = MessageResolver(localizer=localizer).resolve(Login(), "password", rule.check, rule)
        assert message == "The password field is required."


class TestRootMessageSettings:
    def test_root_settings_flow_into_validation(self):
        root = ValidatorRoot(settings=RootSettings(shared_resource=Messages))
        root.for_type(Login).rule("password").required()
        root.for_type(Login).build()

        failure = root.validator().validate(Login()).failures[0]
        assert failure.error_message == "password is mandatory."

    def test_validation_resource_on_type_validator(self):
        root = ValidatorRoot(settings=RootSettings())
        logins = root.for_type(Login)
        logins.with_validation_resource({"fr": {"password_Required": "Mot de passe requis"}})
        logins.with_locale("fr")
        logins.rule("password").required()
        logins.build()

        assert root.validator().validate(Login()).failures[0].error_message == "Mot de passe requis"

    def test_use_fallback_message(self):
        root = ValidatorRoot(settings=RootSettings())
        logins = root.for_type(Login)
        logins.use_fallback_message("Check your input")
        logins.rule("password").required()
        logins.build()

        assert root.validator().validate(Login()).failures[0].error_message == "Check your input"
