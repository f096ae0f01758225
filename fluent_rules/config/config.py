"""
Configuration management for fluent_rules.
Loads settings from environment variables with sensible defaults.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class LocalizationConfig:
    """
    Message localization settings.

    default_locale: Locale used when a rule sets none (FLUENT_RULES_LOCALE)
    use_conventional_keys: Look up `Member_CheckName` resource keys
    catalog_path: Optional YAML message catalog loaded by the root
    """
    default_locale: str = "en"
    use_conventional_keys: bool = True
    catalog_path: Optional[str] = None


@dataclass
class EnforcementConfig:
    """
    Configuration consistency settings.

    enforce_configuration: when(...) on a member with no leaf-check rule
        raises ConfigurationError unless this is False
    default_behavior: What rule(member) does with existing rules
    """
    enforce_configuration: bool = True
    default_behavior: str = "replace"


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "WARNING"
    log_dir: str = "logs"
    log_to_file: bool = False


class Config:
    """
    Central configuration manager.

    Loads configuration from environment variables (and .env files when
    present) and provides typed access to all settings.
    """

    _instance: Optional["Config"] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, env_file: str = ".env"):
        if self._initialized:
            return

        for env_name in [".env", env_file]:
            env_path = Path(env_name)
            if env_path.exists():
                load_dotenv(env_path, override=True)

        self.localization = self._load_localization_config()
        self.enforcement = self._load_enforcement_config()
        self.log = self._load_log_config()

        self._initialized = True

    def _load_localization_config(self) -> LocalizationConfig:
        """Load localization configuration from environment."""
        return LocalizationConfig(
            default_locale=os.getenv("FLUENT_RULES_LOCALE", "en"),
            use_conventional_keys=_env_bool("FLUENT_RULES_CONVENTIONAL_KEYS", "true"),
            catalog_path=os.getenv("FLUENT_RULES_CATALOG") or None,
        )

    def _load_enforcement_config(self) -> EnforcementConfig:
        """
        Load enforcement configuration from environment.

        Environment variables:
        - FLUENT_RULES_ENFORCE_CONFIGURATION: true/false (default: true)
        - FLUENT_RULES_DEFAULT_BEHAVIOR: replace/preserve (default: replace)
        """
        return EnforcementConfig(
            enforce_configuration=_env_bool("FLUENT_RULES_ENFORCE_CONFIGURATION", "true"),
            default_behavior=os.getenv("FLUENT_RULES_DEFAULT_BEHAVIOR", "replace").strip().lower(),
        )

    def _load_log_config(self) -> LogConfig:
        """Load logging configuration from environment."""
        return LogConfig(
            level=os.getenv("LOG_LEVEL", "WARNING"),
            log_dir=os.getenv("LOG_DIR", "logs"),
            log_to_file=_env_bool("FLUENT_RULES_LOG_TO_FILE", "false"),
        )

    def reload(self, env_file: str = ".env") -> "Config":
        """Reload configuration from environment."""
        self._initialized = False
        Config._instance = None
        return Config(env_file)

    def validate(self) -> tuple[bool, List[str]]:
        """
        Validate the loaded configuration.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        catalog = self.localization.catalog_path
        if catalog and not Path(catalog).is_file():
            errors.append(f"FLUENT_RULES_CATALOG points to a missing file: {catalog}")

        if not self.localization.default_locale.strip():
            errors.append("FLUENT_RULES_LOCALE must not be empty")

        if self.enforcement.default_behavior not in ("replace", "preserve"):
            errors.append(
                f"FLUENT_RULES_DEFAULT_BEHAVIOR must be 'replace' or 'preserve', "
                f"got '{self.enforcement.default_behavior}'"
            )

        if not isinstance(getattr(logging, self.log.level.upper(), None), int):
            errors.append(f"LOG_LEVEL '{self.log.level}' is not a logging level")

        return len(errors) == 0, errors


def get_config(env_file: str = ".env") -> Config:
    """Get or create the global config instance."""
    return Config(env_file)
