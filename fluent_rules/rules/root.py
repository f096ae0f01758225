"""
ValidatorRoot: the entry point that owns a rule registry and the message
settings shared by every type configured through it.

Usage:
    root = ValidatorRoot()                      # settings from get_config()
    root.for_type(User).rule("email").required().build()
    result = root.validator().validate(user)

    root = ValidatorRoot(settings=RootSettings(shared_resource=Messages, locale="fr"))
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..config.config import Config, get_config
from .localization import YamlCatalogLocalizer
from .messages import ConventionalKeyGetter, Localizer, MessageResolver
from .registry import RuleRegistry
from .type_validator import TypeValidator
from .types import RuleBehavior
from .validator import Validator


@dataclass
class RootSettings:
    """
    Settings shared by all types configured from one root.

    Attributes:
        shared_resource: Resource used when neither rule nor check names one
        locale: Default message locale
        use_conventional_keys: Look up `Member_CheckName` keys by default
        conventional_key_getter: Custom `(model_type, member, check) -> key`
        enforce_configuration: when(...) requires an existing leaf-check rule
        default_behavior: What rule(member) does with existing rules
        localizer: `(resource, key, locale) -> str | None`
    """

    shared_resource: Any = None
    locale: Optional[str] = None
    use_conventional_keys: bool = True
    conventional_key_getter: Optional[ConventionalKeyGetter] = None
    enforce_configuration: bool = True
    default_behavior: Union[str, RuleBehavior] = RuleBehavior.REPLACE
    localizer: Optional[Localizer] = None

    def __post_init__(self):
        self.default_behavior = RuleBehavior.parse(self.default_behavior)

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "RootSettings":
        """Settings from environment configuration; loads the YAML catalog if one is set."""
        config = config or get_config()
        loc = config.localization
        localizer = None
        if loc.catalog_path:
            localizer = YamlCatalogLocalizer.from_file(loc.catalog_path, default_locale=loc.default_locale)
        return cls(
            locale=loc.default_locale,
            use_conventional_keys=loc.use_conventional_keys,
            enforce_configuration=config.enforcement.enforce_configuration,
            default_behavior=config.enforcement.default_behavior,
            localizer=localizer,
        )


class ValidatorRoot:
    """
    Owns a RuleRegistry and hands out one TypeValidator per model type.

    for_type() returns the same TypeValidator for repeated calls, so
    configuration for a type may be spread over several statements before
    build().
    """

    def __init__(self, registry: Optional[RuleRegistry] = None, settings: Optional[RootSettings] = None):
        self.registry = registry if registry is not None else RuleRegistry()
        self.settings = settings if settings is not None else RootSettings.from_config()
        self._validators: Dict[type, TypeValidator] = {}
        self._lock = threading.Lock()

    def for_type(self, model_type: type) -> TypeValidator:
        with self._lock:
            validator = self._validators.get(model_type)
            if validator is None:
                validator = TypeValidator(self, model_type)
                self._validators[model_type] = validator
            return validator

    def message_resolver(self) -> MessageResolver:
        settings = self.settings
        return MessageResolver(
            localizer=settings.localizer,
            shared_resource=settings.shared_resource,
            default_locale=settings.locale,
            use_conventional_keys=settings.use_conventional_keys,
            conventional_key_getter=settings.conventional_key_getter,
        )

    def validator(self) -> Validator:
        return Validator(self)

    def build_all(self) -> int:
        """Build every type configured through this root. Returns the number of rules built."""
        with self._lock:
            validators = list(self._validators.values())
        return sum(len(v.build()) for v in validators)
