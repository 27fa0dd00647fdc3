"""
Mortar Testing - helpers for swapping configuration and providers in tests.

Provides :func:`override_properties`, :func:`override_provider` and
:class:`RecordingListener`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Type

from .modules.constants import DEFAULT_MODULE_DOMAIN, PROVIDER_PROPERTY, domain_for, qualified_name
from .modules.diagnostics import ModuleEvent, ModuleEventType
from .modules.metadata import provide_module


@contextmanager
def override_properties(target: Any, overrides: Mapping[str, Mapping[str, Any]]) -> Iterator[Any]:
    """
    Temporarily set properties on anything with ``get_property`` /
    ``set_property`` (a ConfigManager, a PropertyHandler, a ModuleContext).

    Previous values are restored on exit, including removal of entries
    that did not exist before.

    Usage::

        with override_properties(manager.config, {"app": {"port": 9090}}):
            assert manager.load(Server).port == 9090
    """
    saved: List[Tuple[str, str, Any]] = []
    for domain, entries in overrides.items():
        for name, value in entries.items():
            saved.append((domain, name, target.get_property(domain, name)))
            target.set_property(domain, name, value)
    try:
        yield target
    finally:
        for domain, name, old in reversed(saved):
            target.set_property(domain, name, old)


class ValueProvider:
    """Provider instance whose builder returns a fixed value."""

    def __init__(self, value: Any):
        self.value = value
        self.calls = 0

    @provide_module
    def provide(self):
        self.calls += 1
        return self.value


@contextmanager
def override_provider(target: Any, module_type: Type, value: Any) -> Iterator[ValueProvider]:
    """
    Make every load of ``module_type`` through ``target`` (a ModuleManager
    or a ModuleContext) return ``value``.

    Usage::

        with override_provider(manager, Database, fake_db) as provider:
            service = manager.load(Service)
            assert provider.calls == 1
    """
    provider = ValueProvider(value)
    if hasattr(target, "register_provider"):
        register = target.register_provider
        store, domain, name = target.config, domain_for(module_type), PROVIDER_PROPERTY
    else:
        register = target.set_provider
        store, domain, name = target.handler, DEFAULT_MODULE_DOMAIN, qualified_name(module_type, PROVIDER_PROPERTY)
    previous = store.get_property(domain, name)

    register(provider, module_type)
    try:
        yield provider
    finally:
        register(previous, module_type)


class RecordingListener:
    """
    Diagnostic listener that keeps every event it receives.

    Usage::

        listener = RecordingListener()
        manager.diagnostics.add_listener(listener)
        manager.load(Widget)
        assert listener.count(ModuleEventType.LOAD_SUCCESS) == 1
    """

    def __init__(self):
        self.events: List[ModuleEvent] = []

    def on_event(self, event: ModuleEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: ModuleEventType) -> List[ModuleEvent]:
        return [event for event in self.events if event.type is event_type]

    def count(self, event_type: Optional[ModuleEventType] = None) -> int:
        if event_type is None:
            return len(self.events)
        return len(self.of_type(event_type))

    def modules(self, event_type: ModuleEventType) -> List[Any]:
        return [event.module for event in self.of_type(event_type)]

    def summary(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for event in self.events:
            counts[event.type.value] = counts.get(event.type.value, 0) + 1
        return counts

    def clear(self) -> None:
        self.events.clear()
