"""
Diagnostics: load events, listener isolation and the logging listener.
"""

import logging
from typing import Annotated

import pytest

from mortar.faults import NoBuilderFault
from mortar.modules.diagnostics import (
    LoggingDiagnosticListener,
    ModuleDiagnostics,
    ModuleEvent,
    ModuleEventType,
)
from mortar.modules.metadata import Property
from mortar.testing import RecordingListener


class Widget:
    pass


class Broken:
    def __init__(self, required):
        self.required = required


class Bean:
    size: Annotated[int, Property("size", domain="ui", default="2")]


class ExplodingListener:
    def on_event(self, event):
        raise RuntimeError("listener exploded")


# ============================================================================
# Events emitted by loads
# ============================================================================

class TestLoadEvents:

    def test_success(self, manager, listener):
        manager.load(Widget)
        assert listener.modules(ModuleEventType.LOAD_START) == [Widget]
        [success] = listener.of_type(ModuleEventType.LOAD_SUCCESS)
        assert success.module is Widget
        assert success.duration is not None and success.duration >= 0
        assert listener.count(ModuleEventType.LOAD_FAILURE) == 0

    def test_failure(self, manager, listener):
        with pytest.raises(NoBuilderFault):
            manager.load(Broken)
        [failure] = listener.of_type(ModuleEventType.LOAD_FAILURE)
        assert failure.module is Broken
        assert isinstance(failure.error, NoBuilderFault)
        assert listener.count(ModuleEventType.LOAD_SUCCESS) == 0

    def test_injection(self, manager, listener):
        bean = Bean()
        manager.inject(bean)
        assert bean.size == 2
        [event] = listener.of_type(ModuleEventType.INJECTION)
        assert event.module is Bean
        assert event.metadata["fields"] == 1

    def test_summary(self, manager, listener):
        manager.load(Widget)
        manager.load(Widget)
        assert listener.summary() == {"load_start": 2, "load_success": 2}


# ============================================================================
# Emitter
# ============================================================================

class TestModuleDiagnostics:

    def test_disabled_without_listeners(self):
        diagnostics = ModuleDiagnostics()
        assert not diagnostics.enabled
        diagnostics.emit(ModuleEventType.LOAD_START, module=Widget)

    def test_listener_error_is_logged(self, caplog):
        diagnostics = ModuleDiagnostics()
        recorder = RecordingListener()
        diagnostics.add_listener(ExplodingListener())
        diagnostics.add_listener(recorder)

        with caplog.at_level(logging.ERROR, logger="mortar.modules.diagnostics"):
            diagnostics.emit(ModuleEventType.REGISTRATION, property="a:b")

        assert "listener exploded" in caplog.text
        assert recorder.count() == 1

    def test_remove_listener(self):
        diagnostics = ModuleDiagnostics()
        recorder = RecordingListener()
        diagnostics.add_listener(recorder)
        assert diagnostics.enabled
        diagnostics.remove_listener(recorder)
        diagnostics.remove_listener(recorder)
        diagnostics.emit(ModuleEventType.LOAD_START, module=Widget)
        assert recorder.count() == 0
        assert not diagnostics.enabled

    def test_measure_failure(self):
        diagnostics = ModuleDiagnostics()
        recorder = RecordingListener()
        diagnostics.add_listener(recorder)
        with pytest.raises(KeyError):
            with diagnostics.measure(module=Widget):
                raise KeyError("x")
        [event] = recorder.events
        assert event.type is ModuleEventType.LOAD_FAILURE
        assert isinstance(event.error, KeyError)

    def test_event_defaults(self):
        event = ModuleEvent(type=ModuleEventType.LOAD_START)
        assert event.metadata == {}
        assert event.timestamp > 0


# ============================================================================
# Logging listener
# ============================================================================

class TestLoggingListener:

    def test_logs_loads(self, manager, caplog):
        manager.diagnostics.add_listener(LoggingDiagnosticListener(logging.INFO))
        with caplog.at_level(logging.INFO, logger="mortar.modules.diagnostics"):
            manager.load(Widget)
        assert "Loading module=Widget" in caplog.text
        assert "Loaded module=Widget" in caplog.text

    def test_logs_failures_as_errors(self, manager, caplog):
        manager.diagnostics.add_listener(LoggingDiagnosticListener())
        with caplog.at_level(logging.DEBUG, logger="mortar.modules.diagnostics"):
            with pytest.raises(NoBuilderFault):
                manager.load(Broken)
        errors = [record for record in caplog.records if record.levelno == logging.ERROR]
        assert errors and "Failed to load module=Broken" in errors[0].getMessage()
