"""Logging setup for podhoard.

Provides the record factory, filter and formatter used by every podhoard
logger, plus ``setup_logging`` which installs them through ``dictConfig``.
Two output formats are supported: a human-readable line format that renders
``extra=`` fields inline, and JSON via python-json-logger.
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
import json
import logging
from logging.config import dictConfig
import sys
import time
from typing import Any, Literal

_original_log_record_factory = logging.getLogRecordFactory()


def custom_record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    """Build a log record that carries structured exception details.

    Walks the exception chain of ``exc_info`` (both ``__cause__`` and
    ``__context__``), collecting public attributes such as ``feed_id`` or
    ``url`` into ``exc_custom_attrs`` and each message into
    ``semantic_trace``.

    Args:
        *args: Positional arguments for the original factory.
        **kwargs: Keyword arguments for the original factory.

    Returns:
        The log record, possibly with ``exc_custom_attrs`` and
        ``semantic_trace`` set.
    """
    record = _original_log_record_factory(*args, **kwargs)

    if not (record.exc_info and record.exc_info[1]):
        return record

    collected_attrs: dict[str, Any] = {}
    chain_messages: list[str] = []

    current_exc: BaseException | None = record.exc_info[1]
    while current_exc:
        for name, val in vars(current_exc).items():
            if not name.startswith("_") and name not in collected_attrs:
                collected_attrs[name] = val
        chain_messages.append(str(current_exc))
        current_exc = current_exc.__cause__ or current_exc.__context__

    if collected_attrs:
        record.exc_custom_attrs = collected_attrs
    if chain_messages:
        record.semantic_trace = chain_messages

    return record


_context_id_var: ContextVar[str | None] = ContextVar("context_id", default=None)


def set_context_id(context_id: str | None) -> None:
    """Set the correlation id attached to log records in this async context.

    Args:
        context_id: Identifier such as ``"refresh_all-1700000000"``, or None
            to clear it.
    """
    _context_id_var.set(context_id)


@contextmanager
def job_context(job_name: str) -> Iterator[str]:
    """Tag every log record emitted inside the block with a job run id.

    Args:
        job_name: Name of the job being run.

    Yields:
        The generated context id.
    """
    context_id = f"{job_name}-{int(time.time())}"
    token = _context_id_var.set(context_id)
    try:
        yield context_id
    finally:
        _context_id_var.reset(token)


class ContextIdFilter(logging.Filter):
    """Copy the current context id, if any, onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Attach ``context_id`` and let the record through.

        Args:
            record: The record being emitted.

        Returns:
            Always True.
        """
        context_id = _context_id_var.get()
        if context_id is not None:
            record.context_id = context_id
        return True


_should_include_stacktrace: bool = False

_STANDARD_RECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "context_id",
        "taskName",
        "exc_custom_attrs",
        "semantic_trace",
    }
)


class HumanReadableExtrasFormatter(logging.Formatter):
    """Line formatter that appends ``extra`` fields as ``key:value`` pairs.

    Output looks like::

        2024-01-01 12:00:00 INFO [podhoard.job_lock] CtxID:refresh_all-1 job_name:refresh_all - Job lock acquired.

    When stack traces are disabled, exceptions are rendered as their message
    chain ("Error: ... / Caused by: ...") instead of a traceback.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
        validate: bool = True,
        *,
        defaults: Mapping[str, Any] | None = None,
    ):
        super().__init__(fmt, datefmt, style, validate, defaults=defaults)

    @staticmethod
    def _format_extra_value(value: Any) -> str:
        if isinstance(value, dict | list | tuple):
            return json.dumps(value, sort_keys=True, separators=(", ", ":"), default=str)
        return str(value)

    def format(self, record: logging.LogRecord) -> str:
        """Render a record as a single human-readable line.

        Args:
            record: The record to format.

        Returns:
            The formatted line, followed by exception details when present.
        """
        prefix_parts = [
            self.formatTime(record, self.datefmt),
            record.levelname,
            f"[{record.name}]",
        ]
        ctx_id = getattr(record, "context_id", None)
        if ctx_id is not None:
            prefix_parts.append(f"CtxID:{ctx_id}")

        extras: dict[str, Any] = {}
        exc_custom_attrs = getattr(record, "exc_custom_attrs", None)
        if isinstance(exc_custom_attrs, dict):
            extras.update(exc_custom_attrs)  # type: ignore
        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_"):
                extras[key] = value

        parts = [" ".join(prefix_parts)]
        if extras:
            pairs: list[str] = []
            for key, value in extras.items():
                try:
                    pairs.append(f"{key}:{self._format_extra_value(value)}")
                except TypeError:
                    pairs.append(f"{key}=[Unserializable Value: {type(value)}]")
            parts.append(" ".join(pairs))

        message = record.getMessage()
        parts.append(f"- {message}" if message else "-")
        line = " ".join(filter(None, parts))

        if record.exc_info:
            if _should_include_stacktrace:
                if not record.exc_text:
                    record.exc_text = self.formatException(record.exc_info)
                if record.exc_text:
                    line += "\n" + record.exc_text
            else:
                trace: list[str] | None = getattr(record, "semantic_trace", None)
                if trace:
                    line += "\nError: " + trace[0]
                    for msg in trace[1:]:
                        line += f"\n  Caused by: {msg}"

        if record.stack_info:
            line += "\n" + self.formatStack(record.stack_info)

        return line


LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "context_id_filter": {
            "()": ContextIdFilter,
        },
    },
    "formatters": {
        "human_readable_formatter": {
            "()": HumanReadableExtrasFormatter,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "json_formatter": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console_handler": {
            "class": "logging.StreamHandler",
            "formatter": "human_readable_formatter",
            "stream": "ext://sys.stdout",
            "filters": ["context_id_filter"],
        },
    },
    "loggers": {
        "podhoard": {
            "handlers": ["console_handler"],
            "level": "INFO",
            "propagate": False,
        },
        # httpx logs every request at INFO
        "httpx": {"level": "WARNING"},
        "apscheduler": {"level": "WARNING"},
    },
    "root": {
        "handlers": ["console_handler"],
        "level": "WARNING",
    },
}


def setup_logging(
    log_format_type: Literal["human", "json"],
    app_log_level_name: str,
    include_stacktrace: bool,
) -> None:
    """Install podhoard's logging configuration.

    Args:
        log_format_type: ``"human"`` or ``"json"``.
        app_log_level_name: Level name for the ``podhoard`` logger tree
            (case-insensitive). Unknown names fall back to INFO.
        include_stacktrace: Whether to print full tracebacks for errors.
    """
    global _should_include_stacktrace
    _should_include_stacktrace = include_stacktrace

    logging.setLogRecordFactory(custom_record_factory)

    level_name = app_log_level_name.upper()
    if not isinstance(getattr(logging, level_name, None), int):
        print(
            f"Warning: Invalid LOG_LEVEL '{app_log_level_name}'. Defaulting to INFO.",
            file=sys.stderr,
        )
        level_name = "INFO"
    LOGGING_CONFIG["loggers"]["podhoard"]["level"] = level_name

    match log_format_type.lower():
        case "json":
            LOGGING_CONFIG["handlers"]["console_handler"]["formatter"] = (
                "json_formatter"
            )
        case "human":
            LOGGING_CONFIG["handlers"]["console_handler"]["formatter"] = (
                "human_readable_formatter"
            )
        case _:
            pass

    dictConfig(LOGGING_CONFIG)
