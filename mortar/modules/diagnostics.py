"""
Module Diagnostics - Observability and event tracking for module loading.
"""

import dataclasses
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger("mortar.modules.diagnostics")


class ModuleEventType(Enum):
    """Types of module events."""
    REGISTRATION = "registration"
    LOAD_START = "load_start"
    LOAD_SUCCESS = "load_success"
    LOAD_FAILURE = "load_failure"
    INJECTION = "injection"
    DOMAIN_LOADED = "domain_loaded"


@dataclasses.dataclass
class ModuleEvent:
    """A diagnostic event emitted by the engine."""
    type: ModuleEventType
    timestamp: float = dataclasses.field(default_factory=time.time)
    module: Optional[Any] = None
    provider: Optional[Any] = None
    property: Optional[str] = None
    duration: Optional[float] = None
    error: Optional[BaseException] = None
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)


class DiagnosticListener(Protocol):
    """Interface for module diagnostic listeners."""
    def on_event(self, event: ModuleEvent) -> None:
        """Called when a module event occurs."""
        ...


def _name(obj: Any) -> str:
    return getattr(obj, "__qualname__", None) or repr(obj)


class LoggingDiagnosticListener:
    """Listener that writes every event to the ``mortar.modules.diagnostics`` logger."""
    def __init__(self, log_level: int = logging.DEBUG):
        self.log_level = log_level

    def on_event(self, event: ModuleEvent) -> None:
        if event.type == ModuleEventType.REGISTRATION:
            logger.log(self.log_level, "Registered %s for module=%s", event.property, _name(event.module))
        elif event.type == ModuleEventType.LOAD_START:
            logger.log(self.log_level, "Loading module=%s (provider=%s)...", _name(event.module), _name(event.provider))
        elif event.type == ModuleEventType.LOAD_SUCCESS:
            logger.log(self.log_level, "Loaded module=%s in %.4fs", _name(event.module), event.duration)
        elif event.type == ModuleEventType.LOAD_FAILURE:
            logger.log(logging.ERROR, "Failed to load module=%s: %s", _name(event.module), event.error)
        elif event.type == ModuleEventType.INJECTION:
            logger.log(self.log_level, "Injected %d properties into %s", event.metadata.get("fields", 0), _name(event.module))
        elif event.type == ModuleEventType.DOMAIN_LOADED:
            logger.log(logging.INFO, "Config domain %s loaded", event.property)


class ModuleDiagnostics:
    """Coordinator for module diagnostic listeners."""
    def __init__(self):
        self._listeners: List[DiagnosticListener] = []

    def add_listener(self, listener: DiagnosticListener) -> None:
        """Add a diagnostic listener."""
        self._listeners.append(listener)

    def remove_listener(self, listener: DiagnosticListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def enabled(self) -> bool:
        return bool(self._listeners)

    def emit(self, event_type: ModuleEventType, **kwargs) -> None:
        """Emit a diagnostic event to all listeners."""
        if not self._listeners:
            return
        event = ModuleEvent(type=event_type, **kwargs)
        for listener in list(self._listeners):
            try:
                listener.on_event(event)
            except Exception as e:
                # A broken listener must not break module loading
                logger.error("Diagnostic listener error: %s", e)

    def measure(self, **kwargs) -> "_LoadMeasure":
        """Context manager emitting LOAD_SUCCESS or LOAD_FAILURE with the duration."""
        return _LoadMeasure(self, **kwargs)


class _LoadMeasure:
    def __init__(self, diagnostics: ModuleDiagnostics, **kwargs):
        self.diagnostics = diagnostics
        self.kwargs = kwargs
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            self.diagnostics.emit(
                ModuleEventType.LOAD_FAILURE,
                duration=duration,
                error=exc_val,
                **self.kwargs
            )
        else:
            self.diagnostics.emit(
                ModuleEventType.LOAD_SUCCESS,
                duration=duration,
                **self.kwargs
            )
