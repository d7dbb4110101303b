"""
Logging for icepersist.

Everything logs through the module-level `log`. Only the command-line interface picks a
level; as a library inside a key-value store node, icepersist leaves the level and any
extra handlers to the embedding application.
"""

import logging
from typing import Any

LOGGER_NAME = "icepersist"

_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    logger = logging.getLogger(name)

    # Importing twice, e.g. through a reload, must not duplicate output
    if not any(getattr(h, "_icepersist", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        setattr(handler, "_icepersist", True)

        logger.addHandler(handler)

    return logger


def set_verbosity(debug: bool) -> None:
    """Log everything including retries in debug mode, otherwise only problems."""
    log.setLevel(logging.DEBUG if debug else logging.WARNING)


def summarize(obj: Any, max_length: int = 255) -> str:
    """Return a stringified representation of the object up to the given length."""
    text = str(obj)

    if len(text) <= max_length:
        return text

    return text[: max_length - 3] + "..."


# Default logger
log = _get_logger()
