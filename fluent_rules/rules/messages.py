"""
Message resolution pipeline.

Turns a failed check into exactly one display string. Resolution order
(first success wins, every step may fail softly and fall through):

1. rule.message_resolver(instance)
2. rule.message, formatted with the member name and the check's format value
3. resource lookup (localizer first, then static lookup on the resource)
4. rule.fallback_message
5. check.format_error_message(member_name)
6. "Invalid value for {member}"

Usage:
    resolver = MessageResolver(localizer=catalog, shared_resource=Messages)
    text = resolver.resolve(user, "Password", Required(), rule)
"""

from collections.abc import Mapping
from typing import Any, Callable, Optional, Sequence

from ..utils.logger import get_logger
from .checks import (
    Compare,
    EmailAddress,
    Empty,
    Equal,
    ExactLength,
    LeafCheck,
    Length,
    MaxLength,
    Maximum,
    MinLength,
    Minimum,
    NotEmpty,
    NotEqual,
    Range,
    Regex,
    Required,
)
from .collection import EachCheck
from .rule import Rule

logger = get_logger()

Localizer = Callable[[Any, str, Optional[str]], Optional[str]]
ConventionalKeyGetter = Callable[[Optional[type], str, LeafCheck], Optional[str]]

# Soft failures tolerated while formatting templates
FORMAT_ERRORS = (IndexError, KeyError, ValueError, AttributeError, TypeError)

VALIDATION_RESOURCE_ATTR = "__validation_resource__"


def validation_resource(resource: Any):
    """
    Class decorator declaring the type-level message resource for a model.

    Usage:
        @validation_resource(UserMessages)
        @dataclass
        class User: ...
    """
    def decorate(cls):
        setattr(cls, VALIDATION_RESOURCE_ATTR, resource)
        return cls
    return decorate


def get_type_resource(model_type: Optional[type]) -> Any:
    if model_type is None:
        return None
    return getattr(model_type, VALIDATION_RESOURCE_ATTR, None)


# =============================================================================
# Formatting
# =============================================================================

def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def normalize_format_args(args: Any) -> Sequence[Any]:
    """
    Normalize format arguments into a positional sequence.

    Accepts None, a scalar, a [scalar, list] pair (flattened, used for
    "between {1} and {2}" messages), or any other list/tuple.
    """
    if args is None:
        return ()
    if _is_list(args):
        if len(args) == 2 and not _is_list(args[0]) and _is_list(args[1]):
            return (args[0], *args[1])
        return tuple(args)
    return (args,)


def format_message(template: str, args: Any = None) -> str:
    """Format `template` with normalized positional arguments."""
    return template.format(*normalize_format_args(args))


def get_format_value(check: Optional[LeafCheck]) -> Any:
    """
    Format argument exposed by a check kind (bounds, pattern, other member).

    Returns None for kinds without one.
    """
    if isinstance(check, EachCheck):
        check = check.inner
    if check is None:
        return None
    if isinstance(check, ExactLength):
        return check.length
    if isinstance(check, Length):
        if check.minimum_length > 0:
            return [check.minimum_length, check.maximum_length]
        return check.maximum_length
    if isinstance(check, (MinLength, MaxLength)):
        return check.length
    if isinstance(check, (Minimum, Maximum)):
        return check.value
    if isinstance(check, Range):
        return [check.minimum, check.maximum]
    if isinstance(check, Regex):
        return check.pattern
    if isinstance(check, Compare):
        return check.other_property
    if isinstance(check, EmailAddress):
        return "email"
    if isinstance(check, Required):
        return "required"
    if isinstance(check, Equal):
        return check.expected
    if isinstance(check, NotEqual):
        return check.unexpected
    # NotEmpty derives from Empty
    if isinstance(check, NotEmpty):
        return "not empty"
    if isinstance(check, Empty):
        return "empty"
    format_value = getattr(check, "format_value", None)
    return format_value() if callable(format_value) else None


def conventional_key(member_name: str, check: LeafCheck) -> str:
    """Default conventional resource key, e.g. Password_Required."""
    return f"{member_name}_{check.get_short_name()}"


# =============================================================================
# Static resource lookup
# =============================================================================

def _locale_candidates(locale: Optional[str]) -> list:
    if not locale:
        return []
    candidates = [locale]
    base = locale.replace("_", "-").split("-")[0]
    if base and base != locale:
        candidates.append(base)
    return candidates


def static_lookup(resource: Any, key: str, locale: Optional[str] = None) -> Optional[str]:
    """
    Look a key up directly on a resource.

    Mappings may be flat ({key: text}) or keyed by locale
    ({locale: {key: text}}); "fr-CA" falls back to "fr". Other objects are
    read by attribute.
    """
    if resource is None or not key:
        return None
    if isinstance(resource, Mapping):
        for candidate in _locale_candidates(locale):
            section = resource.get(candidate)
            if isinstance(section, Mapping):
                value = section.get(key)
                if isinstance(value, str) and value.strip():
                    return value
        value = resource.get(key)
    else:
        value = getattr(resource, key, None)
    if isinstance(value, str) and value.strip():
        return value
    return None


# =============================================================================
# Resolver
# =============================================================================

class MessageResolver:
    """
    Resolves display messages for failed checks.

    Args:
        localizer: `(resource_type, key, locale) -> str | None`
        shared_resource: Default resource when a rule declares none
        default_locale: Locale used when a rule sets none
        use_conventional_keys: Default for check-only resolution (no rule)
        conventional_key_getter: Custom `(model_type, member, check) -> key`
    """

    def __init__(
        self,
        localizer: Optional[Localizer] = None,
        shared_resource: Any = None,
        default_locale: Optional[str] = None,
        use_conventional_keys: bool = True,
        conventional_key_getter: Optional[ConventionalKeyGetter] = None,
    ):
        self.localizer = localizer
        self.shared_resource = shared_resource
        self.default_locale = default_locale
        self.use_conventional_keys = use_conventional_keys
        self.conventional_key_getter = conventional_key_getter

    def resolve(
        self,
        instance: Any,
        member_name: str,
        check: Optional[LeafCheck],
        rule: Optional[Rule] = None,
    ) -> str:
        model_type = type(instance) if instance is not None else None
        format_arg = get_format_value(check)
        locale = (rule.locale if rule is not None else None) or self.default_locale
        args = [member_name, format_arg] if format_arg is not None else member_name

        # 1. Programmatic resolver
        if rule is not None and rule.message_resolver is not None:
            message = rule.message_resolver(instance)
            if message:
                return message

        # 2. Explicit message
        if rule is not None and rule.message and rule.message.strip():
            message = self._try_format(rule.message, args)
            if message is None and format_arg is not None:
                message = self._try_format(rule.message, member_name)
            if message is not None:
                return message

        # 3. Resource lookup
        key = self._resource_key(model_type, member_name, check, rule)
        if key:
            resource = self._resource(model_type, check, rule)
            if resource is not None:
                message = self._lookup(resource, key, locale)
            else:
                # the bare model type is only offered to the localizer
                message = self._localize(model_type, key, locale)
            if message is not None:
                formatted = self._try_format(message, args)
                if formatted is not None:
                    return formatted

        # 4. Fallback message
        if rule is not None and rule.fallback_message and rule.fallback_message.strip():
            return rule.fallback_message

        # 5. The check's own message
        if check is not None:
            try:
                message = check.format_error_message(member_name)
            except FORMAT_ERRORS as e:
                logger.debug(f"Default message of {type(check).__name__} failed to format: {e}")
                message = None
            if message and message.strip():
                return message

        # 6. Generic default
        return f"Invalid value for {member_name}"

    def _resource_key(self, model_type, member_name, check, rule) -> Optional[str]:
        if rule is not None and rule.resource_key:
            return rule.resource_key
        if check is not None and check.resource_type is not None and check.resource_name:
            return check.resource_name
        use_conventional = rule.use_conventional_keys if rule is not None else self.use_conventional_keys
        if not use_conventional or check is None:
            return None
        if self.conventional_key_getter is not None:
            key = self.conventional_key_getter(model_type, member_name, check)
            if key:
                return key
        return conventional_key(member_name, check)

    def _resource(self, model_type, check, rule) -> Any:
        if rule is not None and rule.resource_type is not None:
            return rule.resource_type
        if check is not None and check.resource_type is not None:
            return check.resource_type
        if self.shared_resource is not None:
            return self.shared_resource
        return get_type_resource(model_type)

    def _localize(self, resource: Any, key: str, locale: Optional[str]) -> Optional[str]:
        if self.localizer is None:
            return None
        try:
            value = self.localizer(resource, key, locale)
        except LookupError:
            return None
        return value if isinstance(value, str) and value.strip() else None

    def _lookup(self, resource: Any, key: str, locale: Optional[str]) -> Optional[str]:
        value = self._localize(resource, key, locale)
        if value is not None:
            return value
        value = static_lookup(resource, key, locale)
        if value is None:
            logger.debug(f"No message resource for key '{key}' (locale={locale})")
        return value

    @staticmethod
    def _try_format(template: str, args: Any) -> Optional[str]:
        try:
            return format_message(template, args)
        except FORMAT_ERRORS as e:
            logger.debug(f"Message template {template!r} failed to format: {e}")
            return None
