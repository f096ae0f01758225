"""
Configuration management.
"""

from .config import (
    Config,
    get_config,
    LocalizationConfig,
    EnforcementConfig,
    LogConfig,
)

__all__ = [
    "Config",
    "get_config",
    "LocalizationConfig",
    "EnforcementConfig",
    "LogConfig",
]
