"""Logging configuration with Rich handler and secret masking."""

import logging
import os
from typing import List, Optional, Set

from rich.logging import RichHandler

MASK = "***"
QUIET_LOGGERS = ("asyncio", "aiohttp", "urllib3")

_secrets: Set[str] = set()


def register_secret(value: Optional[str]) -> None:
    """Mask every occurrence of value in log records from now on."""
    if value:
        _secrets.add(value)


def clear_secrets() -> None:
    _secrets.clear()


def mask_secrets(text: str) -> str:
    # Longest first so a secret containing another one is masked whole
    for secret in sorted(_secrets, key=len, reverse=True):
        text = text.replace(secret, MASK)
    return text


class SecretMaskingFilter(logging.Filter):
    """Replace registered secret values in the final message and traceback."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not _secrets:
            return True
        message = record.getMessage()
        masked = mask_secrets(message)
        if masked != message:
            record.msg = masked
            record.args = None
        self._mask_exception(record)
        return True

    def _mask_exception(self, record: logging.LogRecord) -> None:
        if isinstance(record.exc_info, tuple) and record.exc_info[0] is not None:
            exc_text = record.exc_text or logging.Formatter().formatException(
                record.exc_info
            )
            masked = mask_secrets(exc_text)
            if masked != exc_text:
                # Rich renders exc_info itself, so only the masked text is kept
                record.exc_info = None
                record.exc_text = masked
        elif record.exc_text:
            record.exc_text = mask_secrets(record.exc_text)


def _get_log_level_from_env() -> Optional[int]:
    """Get log level from environment variables.

    Checks for LOG_LEVEL and LOGGING_LEVEL environment variables.
    Supports both numeric values (10, 20, 30, 40, 50) and string values
    (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Returns:
        Log level as integer, or None if not found/invalid
    """
    for env_var in ["LOG_LEVEL", "LOGGING_LEVEL"]:
        level_str = os.getenv(env_var)
        if not level_str:
            continue
        try:
            return int(level_str)
        except ValueError:
            pass

        level = logging.getLevelName(level_str.upper())
        if isinstance(level, int):
            return level

    return None


def _build_handlers(
    level: int, show_path: bool, log_file: Optional[str]
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [
        RichHandler(
            rich_tracebacks=True,
            show_path=show_path,
            markup=True,
            omit_repeated_times=False,
        )
    ]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handlers.append(file_handler)

    # Handler filters also see records propagated from child loggers
    masking_filter = SecretMaskingFilter()
    for handler in handlers:
        handler.addFilter(masking_filter)
    return handlers


def setup_logging(
    level: Optional[int] = None,
    show_path: bool = False,
    third_party_level: int = logging.WARNING,
    log_file: Optional[str] = None,
) -> None:
    """Configure logging with Rich handler for colored CI output.

    Args:
        level: Logging level (e.g., logging.INFO, logging.DEBUG).
               If None, LOG_LEVEL or LOGGING_LEVEL environment variables are
               checked, defaulting to logging.INFO.
        show_path: Whether to show file path and line numbers in logs
        third_party_level: Logging level for asyncio, aiohttp and urllib3
        log_file: Optional file path to also log to a file
    """
    if level is None:
        level = _get_log_level_from_env() or logging.INFO

    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=_build_handlers(level, show_path, log_file),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
