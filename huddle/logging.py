"""femtologging helpers shared by every Huddle component.

Huddle emits pre-formatted, percent-interpolated messages so that log lines
look the same whether they come from a connector, the pipeline, or the
assistant endpoint.

Example:
>>> from huddle.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Fetched %d events from %s", 12, "github")

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger

DEFAULT_LOG_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Log levels understood by femtologging."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Return the canonical spelling of ``level`` and whether it was invalid.

    Parameters
    ----------
    level : str | None
        Raw level, typically read from ``HUDDLE_LOG_LEVEL``.

    Returns
    -------
    tuple[str, bool]
        The normalized level (``INFO`` for unusable input) and a flag that
        is ``True`` when the input had to be replaced.

    """
    if not level or not level.strip():
        return (DEFAULT_LOG_LEVEL, True)

    candidate = level.strip().upper()
    if candidate in LogLevel.__members__:
        return (candidate, False)

    return (DEFAULT_LOG_LEVEL, True)


def configure_logging(level: str | None, *, force: bool = False) -> tuple[str, bool]:
    """Install the femtologging root configuration.

    Parameters
    ----------
    level : str | None
        Raw log level; invalid values fall back to ``INFO``.
    force : bool, optional
        Replace handlers configured by an earlier call.

    Returns
    -------
    tuple[str, bool]
        Same contract as :func:`normalize_log_level`, so callers can warn
        about an ignored level once logging is live.

    """
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into ``template`` using ``%`` formatting."""
    if not args:
        return template
    return template % args


class SupportsLog(typ.Protocol):
    """Structural type for femtologging loggers and test doubles."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: SupportsLog,
    level: LogLevel,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(
        str(level),
        format_log_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_debug(
    logger: SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a DEBUG message with percent-style formatting."""
    _emit(logger, LogLevel.DEBUG, template, args, exc_info)


def log_info(
    logger: SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an INFO message with percent-style formatting.

    Parameters
    ----------
    logger : SupportsLog
        Destination logger.
    template : str
        Message template using ``%`` placeholders.
    *args : object
        Values interpolated into ``template``.
    exc_info : object | None, optional
        Exception information attached to the record.

    """
    _emit(logger, LogLevel.INFO, template, args, exc_info)


def log_warning(
    logger: SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a WARNING message with percent-style formatting.

    Huddle uses warnings for degraded-but-continuing outcomes such as a
    failed optional connector or a structuring-stage fallback.
    """
    _emit(logger, LogLevel.WARNING, template, args, exc_info)


def log_error(
    logger: SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an ERROR message with percent-style formatting."""
    _emit(logger, LogLevel.ERROR, template, args, exc_info)


def log_exception(logger: SupportsLog, message: str, exc: BaseException) -> None:
    """Log ``message`` at ERROR with ``exc`` attached as ``exc_info``.

    Parameters
    ----------
    logger : SupportsLog
        Destination logger.
    message : str
        Pre-formatted description of the failure. It is not interpolated.
    exc : BaseException
        Exception whose traceback accompanies the record.

    """
    logger.log(str(LogLevel.ERROR), message, exc_info=exc, stack_info=False)


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LogLevel",
    "SupportsLog",
    "configure_logging",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
