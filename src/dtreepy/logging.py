"""
dtreepy.logging
===============

Opt-in log output for dtreepy.

The package logs through ``loguru`` and disables its own records on import.
:func:`enable_logging` adds a stderr sink that only passes dtreepy records
and returns a :class:`LoggingHandle`; disabling the last active handle
silences the package again::

    with enable_logging(level="DEBUG"):
        result = parse_tree(attset, text)
"""

from __future__ import annotations

import contextlib
import sys
import threading
from typing import TYPE_CHECKING, ClassVar, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import TracebackType

    from loguru import Record

PACKAGE_NAME = __name__.split(".")[0]

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["short", "full"]

_FORMATS = {
    "short": ("<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
              "<level>{level: <8}</level> | "
              "<cyan>{function}</cyan> - <level>{message}</level>"),
    "full": ("<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
             "<level>{level: <8}</level> | "
             "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
             "<level>{message}</level>"),
}


class LoggingHandle:
    """
    Handle owning one loguru sink added by :func:`enable_logging`.

    Use :meth:`disable` or the context manager protocol to remove the sink.
    When the last active handle is disabled, dtreepy records are switched off.
    """

    _active_ids: ClassVar[set[int]] = set()
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, handler_id: int) -> None:
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        """Remove the sink; a second call does nothing."""
        with LoggingHandle._lock:
            if self.handler_id is None:
                return
            LoggingHandle._active_ids.discard(self.handler_id)
            with contextlib.suppress(ValueError):
                logger.remove(self.handler_id)
            self.handler_id = None
            if not LoggingHandle._active_ids:
                logger.disable(PACKAGE_NAME)

    def __enter__(self) -> LoggingHandle:
        return self

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc_val: BaseException | None,
                 exc_tb: TracebackType | None) -> None:
        self.disable()

    @classmethod
    def active_count(cls) -> int:
        """Number of handles that have not been disabled."""
        with cls._lock:
            return len(cls._active_ids)


def _is_package_record(record: Record) -> bool:
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)


def enable_logging(*, level: LogLevel = "INFO", log_format: LogFormat = "short",
                   sink=None) -> LoggingHandle:
    """
    Route dtreepy log records to a sink.

    Parameters
    ----------
    level : {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}, default="INFO"
        Minimum level passed to the sink.  Parse diagnostics are logged at
        WARNING; aggregation, parsing, rule extraction and tree destruction
        at DEBUG.
    log_format : {"short", "full"}, default="short"
        ``"full"`` adds module and line number to every record.
    sink : optional
        Any loguru sink; defaults to ``sys.stderr``.

    Returns
    -------
    LoggingHandle
    """
    if log_format not in _FORMATS:
        raise ValueError(f"log_format must be one of {sorted(_FORMATS)}, got {log_format!r}")
    logger.enable(PACKAGE_NAME)
    handler_id = logger.add(sys.stderr if sink is None else sink, level=level,
                            filter=_is_package_record, format=_FORMATS[log_format])
    return LoggingHandle(handler_id)
