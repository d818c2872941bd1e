"""Tests for event sinks."""

import logging

from reverse_schema.events import (
    CollectingEventSink,
    EngineEvent,
    EventType,
    LoggingEventSink,
    MultiEventSink,
)


class TestLoggingEventSink:
    """Test forwarding events to logging."""

    def test_warning_level(self, caplog):
        sink = LoggingEventSink()

        with caplog.at_level(logging.DEBUG, logger="reverse_schema.events"):
            sink.emit(EngineEvent(EventType.TABLE_MISSING, "not found", table="ghost"))

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "[table_missing] ghost: not found"

    def test_info_level_with_column(self, caplog):
        sink = LoggingEventSink()

        with caplog.at_level(logging.DEBUG, logger="reverse_schema.events"):
            sink.emit(EngineEvent(EventType.ENUM_EXTRACTED, "5 cases", table="film", column="rating"))

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert "film.rating" in record.getMessage()

    def test_debug_level_without_location(self, caplog):
        sink = LoggingEventSink()

        with caplog.at_level(logging.DEBUG, logger="reverse_schema.events"):
            sink.emit(EngineEvent(EventType.RELATIONSHIP_RESOLVED, "film -> language"))

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        assert record.getMessage() == "[relationship_resolved] film -> language"

    def test_custom_logger(self, caplog):
        sink = LoggingEventSink(logging.getLogger("custom.events"))

        with caplog.at_level(logging.INFO, logger="custom.events"):
            sink.emit(EngineEvent(EventType.TABLE_INTROSPECTED, "3 columns", table="users"))

        assert caplog.records[-1].name == "custom.events"


class TestCollectingEventSink:
    """Test in-memory event collection."""

    def test_of_type_keeps_order(self):
        sink = CollectingEventSink()
        sink.emit(EngineEvent(EventType.TABLE_INTROSPECTED, "a", table="a"))
        sink.emit(EngineEvent(EventType.TABLE_FAILED, "b", table="b"))
        sink.emit(EngineEvent(EventType.TABLE_INTROSPECTED, "c", table="c"))

        tables = [e.table for e in sink.of_type(EventType.TABLE_INTROSPECTED)]

        assert tables == ["a", "c"]

    def test_clear(self):
        sink = CollectingEventSink()
        sink.emit(EngineEvent(EventType.TABLE_FAILED, "x"))

        sink.clear()

        assert sink.events == []


class TestMultiEventSink:
    """Test fan-out to several sinks."""

    def test_every_sink_receives_event(self):
        first = CollectingEventSink()
        second = CollectingEventSink()
        sink = MultiEventSink([first, second])
        event = EngineEvent(EventType.NAMING_CONFLICT, "clash")

        sink.emit(event)

        assert first.events == [event]
        assert second.events == [event]
