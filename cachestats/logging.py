import logging
from typing import Any

# Library logging; applications attach their own handlers
logger = logging.getLogger("cachestats")
logger.addHandler(logging.NullHandler())

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the ``cachestats`` logger, or its child ``cachestats.<name>``.

    Library modules call this once at import time so every record they emit
    propagates to the package logger.
    """
    return logger if name is None else logger.getChild(name)


def set_log_level(level: int | str) -> None:
    logger.setLevel(level)


def add_stream_handler(
    level: int | str = logging.INFO,
    format_string: str = DEFAULT_FORMAT,
    **handler_kwargs: Any,
) -> logging.StreamHandler | None:
    """Send cachestats log records to a stream (stderr unless ``stream`` is given).

    Args:
        level: Minimum level the handler emits.
        format_string: ``logging.Formatter`` format for each record.
        **handler_kwargs: Passed to ``logging.StreamHandler``.

    Returns:
        The attached handler, or None when one was already attached.
    """
    if any(type(h) is logging.StreamHandler for h in logger.handlers):
        logger.warning("StreamHandler already exists for cachestats logger.")
        return None

    handler = logging.StreamHandler(**handler_kwargs)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)
    return handler


def remove_all_handlers() -> None:
    """Detach and close every handler except the default NullHandler."""
    for handler in [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]:
        logger.removeHandler(handler)
        handler.close()


__all__ = [
    "logger",
    "get_logger",
    "set_log_level",
    "add_stream_handler",
    "remove_all_handlers",
]
