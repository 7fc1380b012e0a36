"""Python logging handler adapter for eavlog.

This adapter bridges Python's standard library logging module to an
EventStoragePort, so every log record becomes one stored event.
"""

import logging
import traceback
from typing import Any

from eavlog.adapters.storage.sqlite_events import SQLiteEventStore
from eavlog.core.codec import classify
from eavlog.core.config import SinkConfig
from eavlog.core.errors import MissingDatabaseError
from eavlog.core.models import StorageKind
from eavlog.core.ports import EventStoragePort

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
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
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Caller attributes extracted from LogRecord when with_caller is enabled
CALLER_ATTRS = ("module", "funcName", "lineno", "pathname")

_PACKAGE_LOGGER = "eavlog"


def _is_storable(value: Any) -> bool:
    if classify(value) is not StorageKind.JSON:
        return True
    return value is None or isinstance(value, (bool, list, tuple, dict))


class EventSinkHandler(logging.Handler):
    """Logging handler that writes log records to an EventStoragePort.

    Records emitted by eavlog's own loggers are skipped so the sink never
    logs into itself.

    Example:
        ```python
        from eavlog import EventSinkHandler, SQLiteEventStore

        store = SQLiteEventStore("events.db")
        handler = EventSinkHandler(store, session="worker-1")
        logging.getLogger().addHandler(handler)
        ```
    """

    def __init__(
        self,
        storage: EventStoragePort,
        session: str | None = None,
        include_attrs: tuple[str, ...] | list[str] = (),
        level: int = logging.NOTSET,
    ) -> None:
        """Initialize the handler with an event storage backend.

        Args:
            storage: Storage adapter implementing EventStoragePort.
            session: Session identifier stamped on every event.
            include_attrs: Caller attributes to store, from
                ("module", "funcName", "lineno", "pathname").
            level: Minimum level handled.
        """
        super().__init__(level)
        self._storage = storage
        self._session = session
        self._include_attrs = tuple(include_attrs)

    def to_event(self, record: logging.LogRecord) -> dict[str, Any]:
        """Build the event mapping stored for ``record``."""
        event: dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        if self._session is not None:
            event["session"] = self._session

        attr_mapping: dict[str, Any] = {
            "module": record.module,
            "funcName": record.funcName or "",
            "lineno": record.lineno,
            "pathname": record.pathname,
        }
        for key in self._include_attrs:
            if key in attr_mapping:
                event[key] = attr_mapping[key]

        # Extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key in _STANDARD_LOGRECORD_ATTRS or key in event:
                continue
            if _is_storable(value):
                event[key] = value

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                event["exc_type"] = exc_type.__name__
            if exc_value is not None:
                event["exc_message"] = str(exc_value)
            if exc_tb is not None:
                event["exc_traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )
        return event

    def emit(self, record: logging.LogRecord) -> None:
        """Write a log record to the storage backend.

        Args:
            record: The log record to emit.
        """
        if record.name == _PACKAGE_LOGGER or record.name.startswith(
            _PACKAGE_LOGGER + "."
        ):
            return
        try:
            self._storage.write(self.to_event(record))
        except Exception:
            self.handleError(record)


def configure_logging(
    config: SinkConfig, logger: logging.Logger | None = None
) -> tuple[SQLiteEventStore, EventSinkHandler]:
    """Attach an event sink to ``logger`` (the root logger by default).

    Opens the configured database, promotes ``config.interned_names`` into
    the attribute registry and persists it, then installs the handler and
    sets the logger level. Closing the store is the caller's job.

    Raises:
        MissingDatabaseError: ``config.db_path`` is empty.
        ConfigError: ``config.level`` is not a known level name.
    """
    if not config.db_path:
        raise MissingDatabaseError()
    level = config.level_number()

    store = SQLiteEventStore(config.db_path)
    if config.interned_names:
        store.intern(*config.interned_names)
        store.save_schema()

    handler = EventSinkHandler(
        store,
        session=config.session,
        include_attrs=CALLER_ATTRS if config.with_caller else (),
    )
    target = logger if logger is not None else logging.getLogger()
    target.addHandler(handler)
    target.setLevel(level)
    return store, handler
