"""
Logging setup for the reconciliation CLI.

Console output is human readable; JSON_LOGGING switches it to structured JSON
lines and a log file path adds a size-rotated file handler. Every record
carries the active run ID.
"""

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from typing import Optional

from logrecon.utils.correlation import setup_run_id_logging

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

CONSOLE_FORMAT = '[%(asctime)s] %(levelname)s - %(message)s'
FILE_FORMAT = '[%(asctime)s.%(msecs)03d] %(levelname)s %(name)s run=%(run_id)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Rotate the log file at 100 MiB
LOG_FILE_MAX_BYTES = 100 * 1024 * 1024
LOG_FILE_BACKUPS = 7

# Record attributes copied into JSON output when set via extra=
WINDOW_FIELDS = (
    'window_start',
    'window_end',
    'verdict',
    'count_chain_1',
    'count_chain_2',
    'digest',
    'first_mismatch',
    'summary',
)


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter with run ID support."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'run_id': getattr(record, 'run_id', None),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for field_name in WINDOW_FIELDS:
            if hasattr(record, field_name):
                log_data[field_name] = getattr(record, field_name)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_log_level(level: str) -> int:
    """Map a level name to a logging level, defaulting to INFO."""
    return LOG_LEVELS.get((level or "").lower(), logging.INFO)


def configure_logging(
    level: str = "info",
    json_logging: bool = False,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the logrecon logger hierarchy.

    Args:
        level: debug, info, warning or error
        json_logging: Replace console text output with JSON lines
        log_file: Optional path of a rotating log file

    Returns:
        The configured "logrecon" logger
    """
    root = logging.getLogger("logrecon")
    root.setLevel(get_log_level(level))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    if json_logging:
        console_handler.setFormatter(StructuredJSONFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    setup_run_id_logging(console_handler)
    root.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        setup_run_id_logging(file_handler)
        root.addHandler(file_handler)

    root.propagate = False
    return root
