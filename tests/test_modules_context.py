"""
Module contexts: scoped overrides, parent fallback and dynamic contexts.
"""

from typing import Annotated

import pytest

from mortar.modules.context import ModuleContext
from mortar.modules.diagnostics import ModuleEventType
from mortar.modules.injector import DefaultPropertyInjector
from mortar.modules.loader import DefaultModuleLoader
from mortar.modules.locator import DefaultPropertyLocator, FastDynamicPropertyLocator
from mortar.modules.metadata import Property, provide_module
from mortar.modules.parameters import DefaultParameterProvider
from mortar.testing import RecordingListener


class Widget:
    def __init__(self, origin="plain"):
        self.origin = origin


class RealFactory:
    @staticmethod
    @provide_module
    def create() -> Widget:
        return Widget("real")


class MockFactory:
    @staticmethod
    @provide_module
    def create() -> Widget:
        return Widget("mock")


class Server:
    @provide_module
    def __init__(self, port: Annotated[int, Property("port", domain="app", default="80")]):
        self.port = port


class Bean:
    port: Annotated[int, Property("port", domain="app", default="80")]


class TracingLoader(DefaultModuleLoader):
    pass


class RecordingParameterProvider(DefaultParameterProvider):
    pass


# ============================================================================
# Standalone contexts
# ============================================================================

class TestStandaloneContext:

    def test_defaults(self):
        context = ModuleContext()
        assert isinstance(context.locator, DefaultPropertyLocator)
        assert context.parent is None
        assert isinstance(context.get_loader(Widget), DefaultModuleLoader)
        assert isinstance(context.get_parameter_provider(Widget), DefaultParameterProvider)
        assert isinstance(context.get_property_injector(Widget), DefaultPropertyInjector)

    def test_load(self):
        context = ModuleContext()
        context.set_property("app", "port", "8081")
        assert context.load(Server).port == 8081

    def test_provider_class(self):
        context = ModuleContext()
        context.set_provider_class(RealFactory, Widget)
        assert context.get_provider_class(Widget) is RealFactory
        assert context.load(Widget).origin == "real"

    def test_inject(self):
        context = ModuleContext()
        bean = Bean()
        context.inject(bean, {"app": {"port": 1}})
        assert bean.port == 1

    def test_get_parameter(self):
        context = ModuleContext()
        assert context.get_parameter(int, (Property("port", domain="app", default="7"),)) == 7

    def test_provider_requires_type(self):
        with pytest.raises(ValueError):
            ModuleContext().set_provider(RealFactory(), None)

    def test_default_classes(self):
        context = ModuleContext()
        assert context.get_loader_class(Widget) is DefaultModuleLoader
        assert context.get_parameter_provider_class(Widget) is DefaultParameterProvider
        assert context.get_property_injector_class(Widget) is DefaultPropertyInjector

    def test_default_collaborators_are_kept(self):
        context = ModuleContext()
        loader = context.get_loader(Widget)
        assert context.get_loader(Server) is loader
        assert loader.cache is context.cache
        assert loader.diagnostics is context.diagnostics
        assert context.get_parameter_provider(Widget).cache is context.cache
        assert context.get_property_injector(Widget).cache is context.cache

    def test_loads_reach_context_listeners(self):
        context = ModuleContext()
        recorder = RecordingListener()
        context.diagnostics.add_listener(recorder)
        context.load(Widget)
        context.load(Widget)
        assert recorder.modules(ModuleEventType.LOAD_SUCCESS) == [Widget, Widget]

    def test_introspection_cached_across_loads(self):
        context = ModuleContext()
        context.load(Server)
        cached = len(context.cache)
        context.load(Server)
        assert cached > 0
        assert len(context.cache) == cached


# ============================================================================
# Parent and child
# ============================================================================

class TestChildContext:

    def test_child_override_does_not_leak(self, manager):
        manager.register_provider_class(RealFactory, Widget)
        root = manager.new_context()
        child = root.new_child()
        child.set_provider_class(MockFactory, Widget)

        assert child.load(Widget).origin == "mock"
        assert root.load(Widget).origin == "real"
        assert manager.load(Widget).origin == "real"

    def test_child_inherits_provider(self, manager):
        root = manager.new_context()
        root.set_provider_class(RealFactory, Widget)
        child = root.new_child()
        assert child.get_provider_class(Widget) is RealFactory
        assert child.load(Widget).origin == "real"

    def test_child_inherits_properties(self, manager):
        manager.config.set_property("app", "port", 9000)
        child = manager.new_context().new_child()
        assert child.get_property("app", "port") == 9000
        assert child.load(Server).port == 9000

    def test_child_property_override(self, manager):
        manager.config.set_property("app", "port", 9000)
        child = manager.new_context()
        child.set_property("app", "port", 9001)
        assert child.load(Server).port == 9001
        assert manager.load(Server).port == 9000

    def test_child_uses_parent_loader(self, manager):
        child = manager.new_context()
        assert child.get_loader(Widget) is manager.get_loader(Widget)

    def test_child_loader_instance(self, manager):
        child = manager.new_context()
        loader = TracingLoader(manager.config)
        child.set_loader(loader, Widget)
        assert child.get_loader(Widget) is loader
        assert child.get_loader(Server) is manager.get_loader(Server)

    def test_child_loader_class(self, manager):
        child = manager.new_context()
        child.set_loader_class(TracingLoader, Widget)
        assert isinstance(child.get_loader(Widget), TracingLoader)
        assert child.get_loader_class(Widget) is TracingLoader
        assert child.get_loader_class(Server) is DefaultModuleLoader

    def test_child_default_locator_layers_over_parent(self, manager):
        root = manager.new_context()
        child = root.new_child()
        assert isinstance(child.locator, FastDynamicPropertyLocator)
        assert child.locator.overlay is child.handler
        assert child.locator.inner is root.locator

    def test_child_default_class_beats_parent_instance(self, manager):
        child = manager.new_context()
        child.set_parameter_provider(DefaultParameterProvider(manager.config), RecordingParameterProvider)
        child.set_parameter_provider_class(RecordingParameterProvider)
        assert isinstance(child.get_parameter_provider(Widget), RecordingParameterProvider)
        assert type(manager.get_parameter_provider(Widget)) is DefaultParameterProvider

    def test_shared_cache(self, manager):
        child = manager.new_context().new_child()
        assert child.cache is manager.cache


# ============================================================================
# Dynamic contexts
# ============================================================================

class TestDynamicContext:

    def test_seeded_properties(self, manager):
        context = manager.new_dynamic_context({"app": {"port": 7000}})
        assert context.load(Server).port == 7000
        assert manager.load(Server).port == 80

    def test_writes_apply_to_next_load(self, manager):
        context = manager.new_dynamic_context()
        assert context.load(Server).port == 80
        context.set_property("app", "port", 7001)
        assert context.load(Server).port == 7001

    def test_reads_through_to_config(self, manager):
        manager.config.set_property("app", "port", "7002")
        context = manager.new_dynamic_context()
        assert context.load(Server).port == 7002
