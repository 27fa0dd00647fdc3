"""
Property injection into existing instances.
"""

import dataclasses
from typing import Annotated, ClassVar, Optional

import pytest

from mortar.faults import AmbiguousMetadataFault, UnresolvableParameterFault
from mortar.modules.constants import LOAD_VAL
from mortar.modules.diagnostics import ModuleEventType
from mortar.modules.injector import DefaultPropertyInjector, PropertyInjector
from mortar.modules.metadata import Property, module


class Engine:
    pass


class Bean:
    y: Annotated[int, Property("y", domain="x", default="5")]
    name: Annotated[Optional[str], Property("name", domain="x")]
    engine: Annotated[Engine, Property("engine", default=LOAD_VAL)]
    untouched: int = 7
    counter: ClassVar[int] = 0


class ChildBean(Bean):
    extra: Annotated[str, Property("extra", domain="x", default="more")]


@dataclasses.dataclass(frozen=True)
class FrozenBean:
    level: Annotated[int, Property("level", domain="frozen", default="2")] = 0


@module(properties=[Property("y", domain="x", default="11")])
class DeclaredBean:
    y: Annotated[int, Property("y", domain="x", default="5")]


class AmbiguousBean:
    v: Annotated[int, Property("a"), Property("b")]


class HalfBean:
    a: Annotated[int, Property("a", domain="x", default="5")]
    b: Annotated[int, Property("b", domain="x", default="")]


# ============================================================================
# Injection
# ============================================================================

class TestInjection:

    def test_default_literal(self, manager):
        bean = Bean()
        manager.inject(bean)
        assert bean.y == 5
        assert isinstance(bean.y, int)

    def test_null_default_and_load_sentinel(self, manager):
        bean = Bean()
        manager.inject(bean)
        assert bean.name is None
        assert isinstance(bean.engine, Engine)

    def test_untagged_fields_untouched(self, manager):
        bean = Bean()
        manager.inject(bean)
        assert bean.untouched == 7
        assert Bean.counter == 0

    def test_config_value(self, manager):
        manager.config.set_property("x", "y", "42")
        manager.config.set_property("x", "name", "bean")
        bean = Bean()
        manager.inject(bean)
        assert bean.y == 42
        assert bean.name == "bean"

    def test_one_off_properties(self, manager):
        bean = Bean()
        manager.inject(bean, {"x": {"y": 9}})
        assert bean.y == 9
        fresh = Bean()
        manager.inject(fresh)
        assert fresh.y == 5

    def test_declared_defaults(self, manager):
        bean = DeclaredBean()
        manager.inject(bean)
        assert bean.y == 11

    def test_only_own_fields(self, manager):
        bean = ChildBean()
        manager.inject(bean)
        assert bean.extra == "more"
        assert not hasattr(bean, "y")

    def test_frozen_dataclass(self, manager):
        bean = FrozenBean()
        manager.inject(bean)
        assert bean.level == 2

    def test_ambiguous_field(self, manager):
        with pytest.raises(AmbiguousMetadataFault):
            manager.inject(AmbiguousBean())

    def test_none_bean(self, manager):
        with pytest.raises(ValueError):
            manager.inject(None)

    def test_failed_field_leaves_bean_untouched(self, manager):
        bean = HalfBean()
        with pytest.raises(UnresolvableParameterFault):
            manager.inject(bean)
        assert not hasattr(bean, "a")
        assert not hasattr(bean, "b")
        manager.config.set_property("x", "b", "6")
        manager.inject(bean)
        assert (bean.a, bean.b) == (5, 6)


# ============================================================================
# Injector object
# ============================================================================

class TestDefaultPropertyInjector:

    def test_is_a_property_injector(self, config):
        assert isinstance(DefaultPropertyInjector(config), PropertyInjector)

    def test_standalone(self, config):
        config.set_property("x", "y", 3)
        bean = Bean()
        DefaultPropertyInjector(config).inject_properties(bean)
        assert bean.y == 3

    def test_injection_event(self, manager, listener):
        manager.inject(Bean())
        events = listener.of_type(ModuleEventType.INJECTION)
        assert len(events) == 1
        assert events[0].module is Bean
        assert events[0].metadata == {"fields": 3}

    def test_nothing_to_inject_emits_nothing(self, manager, listener):
        manager.inject(Engine())
        assert listener.count(ModuleEventType.INJECTION) == 0
