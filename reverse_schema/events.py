"""Structured events emitted by the engine while it runs.

The core never decides where these go. It calls ``EventSink.emit``
synchronously and the caller picks the sink: the default forwards to
``logging``, tests and the CLI collect them.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Kinds of events the engine reports."""

    TABLE_INTROSPECTED = "table_introspected"
    TABLE_FAILED = "table_failed"
    TABLE_MISSING = "table_missing"
    TYPE_NORMALIZED = "type_normalized"
    ENUM_EXTRACTED = "enum_extracted"
    RELATIONSHIP_RESOLVED = "relationship_resolved"
    JUNCTION_COLLAPSED = "junction_collapsed"
    NAMING_CONFLICT = "naming_conflict"


@dataclass(frozen=True)
class EngineEvent:
    """A single structured record emitted by the engine."""

    type: EventType
    message: str
    table: Optional[str] = None
    column: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


class EventSink(Protocol):
    """Anything that accepts engine events."""

    def emit(self, event: EngineEvent) -> None:
        ...


class LoggingEventSink:
    """Forwards events to a standard library logger."""

    WARNING_EVENTS = {
        EventType.TABLE_FAILED,
        EventType.TABLE_MISSING,
        EventType.NAMING_CONFLICT,
        EventType.TYPE_NORMALIZED,
    }
    DEBUG_EVENTS = {
        EventType.RELATIONSHIP_RESOLVED,
    }

    def __init__(self, target: Optional[logging.Logger] = None):
        self.logger = target or logger

    def emit(self, event: EngineEvent) -> None:
        if event.type in self.WARNING_EVENTS:
            level = logging.WARNING
        elif event.type in self.DEBUG_EVENTS:
            level = logging.DEBUG
        else:
            level = logging.INFO

        location = event.table or ""
        if event.column:
            location = f"{location}.{event.column}"
        if location:
            self.logger.log(level, "[%s] %s: %s", event.type.value, location, event.message)
        else:
            self.logger.log(level, "[%s] %s", event.type.value, event.message)


class CollectingEventSink:
    """Keeps every event in memory."""

    def __init__(self):
        self.events: List[EngineEvent] = []

    def emit(self, event: EngineEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[EngineEvent]:
        """Get all collected events of one type, in emission order."""
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


class MultiEventSink:
    """Fans events out to several sinks in order."""

    def __init__(self, sinks: Iterable[EventSink]):
        self.sinks = list(sinks)

    def emit(self, event: EngineEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)
