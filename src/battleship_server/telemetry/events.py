"""Structured event sinks handed to the engine and service components."""

from __future__ import annotations

import logging
from typing import Any, Protocol


class EventSink(Protocol):
    """Receives named events with structured fields."""

    def info(self, event: str, **fields: Any) -> None:
        ...

    def warning(self, event: str, **fields: Any) -> None:
        ...


class LoggingEventSink:
    """Forwards events to a stdlib logger, fields travel in ``extra``."""

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger

    def info(self, event: str, **fields: Any) -> None:
        self.logger.info(event, extra=fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.logger.warning(event, extra=fields)


def get_event_sink(name: str) -> EventSink:
    return LoggingEventSink(logging.getLogger(name))
