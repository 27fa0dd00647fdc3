"""
Property locators: lookup order, class lookups and collaborator resolution.
"""

import pytest

from mortar.config import ConfigManager
from mortar.faults import ClassNotFoundFault, NotSubtypeFault
from mortar.mapping import MapperFactory, StringMapper
from mortar.modules.constants import (
    DEFAULT_MODULE_DOMAIN,
    LOADER_PROPERTY,
    PROVIDER_PROPERTY,
    domain_for,
    mapper_name,
    qualified_name,
)
from mortar.modules.loader import DefaultModuleLoader, ModuleLoader
from mortar.modules.locator import (
    DefaultPropertyLocator,
    DynamicPropertyLocator,
    FastDynamicPropertyLocator,
    RevertedPropertyLocator,
)
from mortar.modules.parameters import DefaultParameterProvider
from mortar.properties import new_handler


class Widget:
    pass


class WidgetFactory:
    pass


class CustomLoader(DefaultModuleLoader):
    pass


class Version:
    def __init__(self, text):
        self.text = text


class VersionMapper:
    def map(self, value, target):
        return Version(value)


WIDGET = domain_for(Widget)


@pytest.fixture
def store():
    return ConfigManager()


# ============================================================================
# Property order
# ============================================================================

class TestPropertyOrder:

    def test_override_map_only(self):
        value = DefaultPropertyLocator().get_property("app", "port", int, None, {"app": {"port": 8080}})
        assert value == 8080
        assert isinstance(value, int)

    def test_default_prefers_config(self, store):
        store.set_property("app", "port", 1)
        value = DefaultPropertyLocator().get_property("app", "port", int, store, {"app": {"port": 2}})
        assert value == 1

    def test_reverted_prefers_map(self, store):
        store.set_property("app", "port", 1)
        value = RevertedPropertyLocator().get_property("app", "port", int, store, {"app": {"port": 2}})
        assert value == 2

    def test_falls_through_to_second_source(self, store):
        assert RevertedPropertyLocator().get_property("app", "port", int, store, {"app": {"port": 2}}) == 2
        store.set_property("app", "port", 1)
        assert RevertedPropertyLocator().get_property("app", "port", int, store, {}) == 1

    def test_config_values_are_coerced(self, store):
        store.set_property("app", "port", "8080")
        assert DefaultPropertyLocator().get_property("app", "port", int, store) == 8080

    def test_map_values_must_match(self):
        props = {"app": {"port": "8080"}}
        assert DefaultPropertyLocator().get_property("app", "port", int, None, props) is None
        assert DefaultPropertyLocator().get_property("app", "port", str, None, props) == "8080"

    def test_absent(self, store):
        assert DefaultPropertyLocator().get_property("app", "port", int, store, None) is None

    def test_dynamic_overrides_everything(self, store):
        store.set_property("app", "port", 1)
        locator = DynamicPropertyLocator({"app": {"port": 3}})
        assert locator.get_property("app", "port", int, store, {"app": {"port": 2}}) == 3
        assert locator.get_property("app", "host", str, store, {"app": {"host": "h"}}) == "h"

    def test_dynamic_keeps_inner_order(self, store):
        store.set_property("app", "port", 1)
        locator = DynamicPropertyLocator({"app": {"other": 0}}, inner=RevertedPropertyLocator())
        assert locator.get_property("app", "port", int, store, {"app": {"port": 2}}) == 2
        assert isinstance(locator.inner, RevertedPropertyLocator)

    def test_dynamic_copies_overrides(self):
        data = {"app": {"port": 3}}
        locator = DynamicPropertyLocator(data)
        data["app"]["port"] = 4
        assert locator.overrides["app"]["port"] == 3

    def test_fast_dynamic(self, store):
        store.set_property("app", "port", 1)
        locator = FastDynamicPropertyLocator({"app": {"port": 3}})
        assert locator.get_property("app", "port", int, store) == 3
        assert locator.get_property("app", "missing", int, store, {"app": {"missing": 5}}) == 5

    def test_fast_dynamic_over_live_handler(self, store):
        handler = new_handler()
        locator = FastDynamicPropertyLocator(handler)
        store.set_property("app", "port", 1)
        assert locator.get_property("app", "port", int, store) == 1
        handler.set_property("app", "port", 9)
        assert locator.get_property("app", "port", int, store) == 9

    def test_fast_dynamic_layers(self, store):
        parent = new_handler()
        child = new_handler()
        locator = FastDynamicPropertyLocator(child, inner=FastDynamicPropertyLocator(parent))
        parent.set_property("app", "port", 1)
        store.set_property("app", "host", "config")
        assert locator.get_property("app", "port", int, store) == 1
        assert locator.get_property("app", "host", str, store) == "config"
        child.set_property("app", "port", 2)
        assert locator.get_property("app", "port", int, store) == 2


# ============================================================================
# Objects and classes
# ============================================================================

class TestObjectAndClassLookups:

    def test_type_domain_first(self, store):
        own, shared = WidgetFactory(), WidgetFactory()
        store.set_property(WIDGET, PROVIDER_PROPERTY, own)
        store.set_property(DEFAULT_MODULE_DOMAIN, qualified_name(Widget, PROVIDER_PROPERTY), shared)
        assert DefaultPropertyLocator().get_provider(Widget, WidgetFactory, store) is own

    def test_qualified_name_in_default_domain(self, store):
        shared = WidgetFactory()
        store.set_property(DEFAULT_MODULE_DOMAIN, qualified_name(Widget, PROVIDER_PROPERTY), shared)
        assert DefaultPropertyLocator().get_provider(Widget, WidgetFactory, store) is shared

    def test_plain_name_only_with_default(self, store):
        loader = DefaultModuleLoader(store)
        store.set_property(DEFAULT_MODULE_DOMAIN, LOADER_PROPERTY, loader)
        locator = DefaultPropertyLocator()
        assert locator.get_config_object(LOADER_PROPERTY, Widget, ModuleLoader, store) is None
        assert locator.get_loader(Widget, store) is loader

    def test_object_lookup_ignores_wrong_kind(self, store):
        store.set_property(WIDGET, LOADER_PROPERTY, "not a loader")
        assert DefaultPropertyLocator().get_loader(Widget, store) is None

    def test_provider_class_from_class_variant(self, store):
        store.set_property(WIDGET, PROVIDER_PROPERTY + ".class", WidgetFactory)
        assert DefaultPropertyLocator().get_provider_class(Widget, store) is WidgetFactory

    def test_provider_class_from_class_name(self, store):
        store.set_property(WIDGET, PROVIDER_PROPERTY + ".class", "test_modules_locator:WidgetFactory")
        assert DefaultPropertyLocator().get_provider_class(Widget, store) is WidgetFactory

    def test_provider_class_from_instance(self, store):
        store.set_property(WIDGET, PROVIDER_PROPERTY, WidgetFactory())
        assert DefaultPropertyLocator().get_provider_class(Widget, store) is WidgetFactory

    def test_provider_class_from_override_map(self):
        props = {WIDGET: {PROVIDER_PROPERTY + ".class": WidgetFactory}}
        assert DefaultPropertyLocator().get_provider_class(Widget, None, props) is WidgetFactory

    def test_no_provider_class(self, store):
        assert DefaultPropertyLocator().get_provider_class(Widget, store) is None

    def test_loader_class_defaults(self, store):
        assert DefaultPropertyLocator().get_loader_class(Widget, store) is DefaultModuleLoader

    def test_loader_class_not_subtype(self, store):
        store.set_property(WIDGET, LOADER_PROPERTY + ".class", WidgetFactory)
        with pytest.raises(NotSubtypeFault, match="WidgetFactory"):
            DefaultPropertyLocator().get_loader_class(Widget, store)

    def test_bad_class_name(self, store):
        store.set_property(WIDGET, LOADER_PROPERTY + ".class", "test_modules_locator:Nothing")
        with pytest.raises(ClassNotFoundFault):
            DefaultPropertyLocator().get_loader_class(Widget, store)

    def test_class_variant_must_be_class(self, store):
        store.set_property(WIDGET, LOADER_PROPERTY + ".class", 42)
        with pytest.raises(ClassNotFoundFault, match="must be a class or a class name"):
            DefaultPropertyLocator().get_loader_class(Widget, store)

    def test_class_for_domain_with_default(self, store):
        locator = DefaultPropertyLocator()
        assert locator.get_default_loader_class(store) is DefaultModuleLoader
        store.set_property(DEFAULT_MODULE_DOMAIN, LOADER_PROPERTY + ".class", CustomLoader)
        assert locator.get_default_loader_class(store) is CustomLoader


# ============================================================================
# Collaborator resolution
# ============================================================================

class TestCollaborators:

    def test_resolve_default_loader(self, store):
        loader = DefaultPropertyLocator().resolve_loader(Widget, store)
        assert type(loader) is DefaultModuleLoader
        assert loader.config is store

    def test_resolve_registered_loader(self, store):
        loader = DefaultModuleLoader(store)
        store.set_property(WIDGET, LOADER_PROPERTY, loader)
        assert DefaultPropertyLocator().resolve_loader(Widget, store) is loader

    def test_resolve_custom_loader_class(self, store):
        store.set_property(WIDGET, LOADER_PROPERTY + ".class", CustomLoader)
        assert type(DefaultPropertyLocator().resolve_loader(Widget, store)) is CustomLoader

    def test_type_class_beats_default_instance(self, store):
        store.set_property(DEFAULT_MODULE_DOMAIN, LOADER_PROPERTY, DefaultModuleLoader(store))
        store.set_property(WIDGET, LOADER_PROPERTY + ".class", CustomLoader)
        instance, cls = DefaultPropertyLocator().find_collaborator(
            LOADER_PROPERTY, Widget, ModuleLoader, DefaultModuleLoader, store
        )
        assert instance is None
        assert cls is CustomLoader

    def test_earlier_source_wins_across_scopes(self, store):
        overlay = new_handler()
        overlay.set_property(DEFAULT_MODULE_DOMAIN, LOADER_PROPERTY + ".class", CustomLoader)
        store.set_property(WIDGET, LOADER_PROPERTY, DefaultModuleLoader(store))
        instance, cls = FastDynamicPropertyLocator(overlay).find_collaborator(
            LOADER_PROPERTY, Widget, ModuleLoader, DefaultModuleLoader, store
        )
        assert instance is None
        assert cls is CustomLoader

    def test_find_collaborator_default(self, store):
        instance, cls = DefaultPropertyLocator().find_collaborator(
            LOADER_PROPERTY, Widget, ModuleLoader, None, store
        )
        assert (instance, cls) == (None, None)

    def test_resolve_parameter_provider(self, store):
        provider = DefaultPropertyLocator().resolve_parameter_provider(Widget, store)
        assert isinstance(provider, DefaultParameterProvider)


# ============================================================================
# Mappers
# ============================================================================

class TestMappers:

    def test_builtin_mapper(self, store):
        mapper = DefaultPropertyLocator().get_mapper(Widget, str, int, store)
        assert isinstance(mapper, StringMapper)

    def test_registered_mapper_instance(self, store):
        mapper = VersionMapper()
        store.set_property(DEFAULT_MODULE_DOMAIN, mapper_name(str, Version), mapper)
        assert DefaultPropertyLocator().get_mapper(Widget, str, Version, store) is mapper

    def test_mapper_for_one_type(self, store):
        mapper = VersionMapper()
        store.set_property(WIDGET, mapper_name(str, Version), mapper)
        locator = DefaultPropertyLocator()
        assert locator.get_mapper(Widget, str, Version, store) is mapper
        assert isinstance(locator.get_mapper(WidgetFactory, str, Version, store), StringMapper)

    def test_registered_mapper_class(self, store):
        store.set_property(DEFAULT_MODULE_DOMAIN, mapper_name(str, Version) + ".class", VersionMapper)
        mapper = DefaultPropertyLocator().get_mapper(Widget, str, Version, store)
        assert isinstance(mapper, VersionMapper)

    def test_registered_mapper_factory(self, store):
        factory = MapperFactory()
        mapper = VersionMapper()
        factory.register(str, Version, mapper)
        store.set_property(DEFAULT_MODULE_DOMAIN, "mapperFactory", factory)
        assert DefaultPropertyLocator().get_mapper(Widget, str, Version, store) is mapper
