"""Logging sink used by the plugin runtime for batch-operation failures."""

from __future__ import annotations

import sys
from typing import Any, Optional, Protocol

from loguru import logger

DEFAULT_CATEGORY = "PLUG"
LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "

_handler_id: Optional[int] = None


def _format(record: dict) -> str:
    category = "{extra[category]} | " if "category" in record["extra"] else ""
    return LOG_FORMAT + category + "{message}\n{exception}"


def configure_logging(level: str = "INFO", sink: Any = None) -> int:
    """Install the runtime's loguru handler at ``level``.

    Replaces loguru's default stderr handler on first use and the
    previously installed runtime handler on later calls. Returns the
    handler id.
    """
    global _handler_id
    try:
        logger.remove(_handler_id if _handler_id is not None else 0)
    except ValueError:
        pass  # already removed
    _handler_id = logger.add(
        sink if sink is not None else sys.stderr,
        level=level.upper(),
        format=_format,
    )
    return _handler_id


class LogSink(Protocol):
    def write_message(self, level: str, category: str, text: str) -> None:
        ...

    def write_exception(self, exc: BaseException) -> None:
        ...


class LoguruSink:
    """Forwards sink calls to loguru with the category bound as extra."""

    def __init__(self, category: str = DEFAULT_CATEGORY) -> None:
        self.category = category

    def write_message(self, level: str, category: str, text: str) -> None:
        logger.bind(category=category or self.category).log(level.upper(), text)

    def write_exception(self, exc: BaseException) -> None:
        logger.bind(category=self.category).opt(exception=exc).error(
            f"{type(exc).__name__}: {exc}"
        )
