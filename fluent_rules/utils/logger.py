"""
Logging for the rule engine.

Console output is colored; file output (one file per day under log_dir) is
enabled with FLUENT_RULES_LOG_TO_FILE=true. Library modules share one
RulesLogger through get_logger().
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional


# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    BOLD = "\033[1m"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name and message for the console."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record):
        # Work on a copy so file handlers sharing the record stay uncolored
        record = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        record.msg = f"{color}{record.msg}{Colors.RESET}"
        return super().format(record)


class RulesLogger:
    """
    Central logger for rule configuration and validation.

    Features:
    - Console output with colors
    - Optional daily log file
    - Structured helpers for rule lifecycle events and validation failures
    """

    _instance: Optional["RulesLogger"] = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, log_dir: str = "logs", log_level: str = "WARNING", log_to_file: bool = False):
        if RulesLogger._initialized:
            return

        self.log_dir = Path(log_dir)
        self.log_to_file = log_to_file
        if log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = self._create_logger("fluent_rules", log_level)
        self.failure_logger = self._create_logger(
            "fluent_rules.failures", log_level, "failures", propagate=False
        )

        RulesLogger._initialized = True

    def _create_logger(
        self,
        name: str,
        level: str,
        file_prefix: str = None,
        propagate: bool = True,
    ) -> logging.Logger:
        """Create a configured logger instance."""
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
        logger.handlers.clear()
        logger.propagate = propagate

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(ColoredFormatter(
            "%(asctime)s | %(levelname)s | %(message)s",
            datefmt="%H:%M:%S"
        ))
        logger.addHandler(console_handler)

        if self.log_to_file:
            prefix = file_prefix or "rules"
            log_file = self.log_dir / f"{prefix}_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            logger.addHandler(file_handler)

        return logger

    def info(self, msg: str, *args, **kwargs):
        """Log info message."""
        self.main_logger.info(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message."""
        self.main_logger.debug(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message."""
        self.main_logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message."""
        self.main_logger.error(msg, *args, **kwargs)

    def rule(self, action: str, type_name: str, member: Optional[str] = None, **kwargs):
        """
        Log a rule lifecycle event.

        Args:
            action: ADDED, REMOVED, BUILT, CLEARED, SKIPPED
            type_name: Declaring type name
            member: Member name (optional)
            **kwargs: Additional fields
        """
        parts = [f"[RULE:{action}]", f"type={type_name}"]
        if member is not None:
            parts.append(f"member={member}")
        for key, value in kwargs.items():
            parts.append(f"{key}={value}")

        msg = " | ".join(parts)
        if action == "SKIPPED":
            self.main_logger.info(msg)
        else:
            self.main_logger.debug(msg)

    def failure(self, type_name: str, path: str, message: str, **kwargs):
        """Log a validation failure (DEBUG; failures are data, not errors)."""
        parts = ["[FAILURE]", f"type={type_name}", f"path={path}", message]
        for key, value in kwargs.items():
            parts.append(f"{key}={value}")
        self.failure_logger.debug(" | ".join(parts))


# Global logger instance
_logger: Optional[RulesLogger] = None


def get_logger() -> RulesLogger:
    """Get or create the global logger, configured from get_config().log."""
    global _logger
    if _logger is None:
        from ..config.config import get_config
        log = get_config().log
        _logger = RulesLogger(log.log_dir, log.level, log.log_to_file)
    return _logger


def setup_logger(log_dir: str = "logs", log_level: str = "INFO", log_to_file: bool = False) -> RulesLogger:
    """Initialize the logger with custom settings."""
    global _logger
    RulesLogger._initialized = False
    RulesLogger._instance = None
    _logger = RulesLogger(log_dir, log_level, log_to_file)
    return _logger
