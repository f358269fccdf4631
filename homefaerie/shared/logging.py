"""Logging configuration utilities."""

import logging
from typing import List, Optional

# syslog priorities understood by journald when a line starts with <N>
SYSTEMD_PRIORITIES = {
    logging.CRITICAL: 2,
    logging.ERROR: 3,
    logging.WARNING: 4,
    logging.INFO: 6,
    logging.DEBUG: 7,
}

SYSTEMD_STYLE = "SYSTEMD"


class SystemdFormatter(logging.Formatter):
    """Formats records as '<priority>logger: message' for the systemd journal."""

    def __init__(self):
        super().__init__("%(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        priority = SYSTEMD_PRIORITIES.get(record.levelno, 7)
        return f"<{priority}>{super().format(record)}"


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    quiet_loggers: Optional[List[str]] = None,
    style: Optional[str] = None,
) -> None:
    """Configure logging for homefaerie services.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_string: Custom format string for log messages.
        quiet_loggers: List of logger names to set to WARNING level.
        style: 'SYSTEMD' to emit journald priority prefixes instead of
            timestamps.
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Convert string to logging level
    log_level = getattr(logging, level.upper(), logging.INFO)

    if style and style.upper() == SYSTEMD_STYLE:
        handler = logging.StreamHandler()
        handler.setFormatter(SystemdFormatter())
        logging.basicConfig(level=log_level, handlers=[handler], force=True)
    else:
        logging.basicConfig(level=log_level, format=format_string, force=True)

    # Quiet down verbose third-party loggers
    default_quiet = ["asyncio"]
    quiet_loggers = (quiet_loggers or []) + default_quiet

    for logger_name in quiet_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
