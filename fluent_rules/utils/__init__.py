"""
Utility modules.
"""

from .logger import get_logger, setup_logger, RulesLogger

__all__ = [
    "get_logger",
    "setup_logger",
    "RulesLogger",
]
