import datetime as dt
import json
import logging
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from wide_events.config import EVENT_LOGGER_DEFAULT


@runtime_checkable
class Sink(Protocol):
    """Destination of retained events. Writes are fire-and-forget."""

    def write(self, record: Mapping) -> None: ...


def _to_json(value):
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    return str(value)


def serialize_event(record: Mapping) -> str:
    """JSON line for a wide event snapshot."""
    return json.dumps(dict(record), default=_to_json)


class LoggingSink:
    """Sink writing one JSON line per event to a standard logger."""

    def __init__(self, logger: logging.Logger | str | None = None):
        if logger is None or isinstance(logger, str):
            logger = logging.getLogger(logger or EVENT_LOGGER_DEFAULT)
        self.logger = logger

    def write(self, record: Mapping) -> None:
        self.logger.info(serialize_event(record))


class InMemorySink:
    """Keeps written events in a list."""

    def __init__(self):
        self.records: list[Mapping] = []

    def write(self, record: Mapping) -> None:
        self.records.append(record)

    def clear(self) -> None:
        self.records.clear()
