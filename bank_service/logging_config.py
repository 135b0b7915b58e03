"""
Logging setup for the bank service.

JSON lines by default so the output can be shipped as-is; ``text`` format
is friendlier when running locally.
"""

import json
import logging
from datetime import datetime, timezone

ROOT_LOGGER = "bank_service"

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record):
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "user_id": getattr(record, "user_id", None),
            "action": getattr(record, "action", None),
        }
        entry = {k: v for k, v in entry.items() if v is not None}

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """
    Configure the ``bank_service`` logger tree.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
        fmt: ``json`` or ``text``

    Returns:
        The package root logger
    """
    logger = logging.getLogger(ROOT_LOGGER)

    # Rebuilding the app (tests, reloads) must not stack handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if fmt.lower() == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JSONFormatter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    return logger
