"""
Property sources: nested-map sources, chains and handlers.
"""

import pytest

from mortar.faults import ConversionFault
from mortar.mapping import MapperFactory
from mortar.properties import (
    ChainPropertySource,
    MapPropertySource,
    PropertyHandler,
    PropertySource,
    PropertyWriter,
    lookup,
    matches_type,
    merge_properties,
    new_handler,
)


# ============================================================================
# Helpers
# ============================================================================

class TestHelpers:

    def test_lookup(self):
        props = {"app": {"port": 8080}}
        assert lookup(props, "app", "port") == 8080
        assert lookup(props, "app", "host") is None
        assert lookup(props, "db", "port") is None
        assert lookup(None, "app", "port") is None

    def test_matches_type(self):
        assert matches_type(5, int)
        assert matches_type("5", None)
        assert matches_type("5", object)
        assert not matches_type("5", int)
        assert matches_type(5, int | None)
        assert not matches_type("5", int | None)
        assert matches_type([1], list[int])

    def test_merge_properties(self):
        target = {"app": {"port": 1, "host": "a"}}
        merge_properties(target, {"app": {"port": 2}, "db": {"url": "x"}})
        assert target == {"app": {"port": 2, "host": "a"}, "db": {"url": "x"}}


# ============================================================================
# MapPropertySource
# ============================================================================

class TestMapPropertySource:

    def test_round_trip(self):
        source = MapPropertySource()
        source.set_property("app", "port", 8080)
        assert source.get_property("app", "port") == 8080

    def test_none_removes(self):
        source = MapPropertySource({"app": {"port": 8080}})
        source.set_property("app", "port", None)
        assert source.get_property("app", "port") is None
        assert source.to_dict() == {}

    def test_input_not_aliased(self):
        data = {"app": {"port": 8080}}
        source = MapPropertySource(data)
        source.set_property("app", "port", 1)
        assert data["app"]["port"] == 8080

    def test_mismatch_without_mappers_is_absent(self):
        source = MapPropertySource({"app": {"port": "8080"}})
        assert source.get_property("app", "port", int) is None

    def test_mismatch_with_mappers_is_coerced(self):
        source = MapPropertySource({"app": {"port": "8080"}}, MapperFactory())
        assert source.get_property("app", "port", int) == 8080

    def test_failed_coercion_raises(self):
        source = MapPropertySource({"app": {"port": "eighty"}}, MapperFactory())
        with pytest.raises(ConversionFault):
            source.get_property("app", "port", int)

    def test_protocols(self):
        source = MapPropertySource()
        assert isinstance(source, PropertySource)
        assert isinstance(source, PropertyWriter)


# ============================================================================
# Chains and handlers
# ============================================================================

class TestChainsAndHandlers:

    def test_chain_first_wins(self):
        first = MapPropertySource({"app": {"port": 1}})
        second = MapPropertySource({"app": {"port": 2, "host": "h"}})
        chain = ChainPropertySource(first, None, second)
        assert chain.get_property("app", "port") == 1
        assert chain.get_property("app", "host") == "h"
        assert len(chain.sources) == 2

    def test_handler_requires_both_sides(self):
        with pytest.raises(ValueError):
            PropertyHandler(MapPropertySource(), None)

    def test_new_handler_writes_locally(self):
        fallback = MapPropertySource({"app": {"port": 1}})
        handler = new_handler(fallbacks=(fallback,))
        assert handler.get_property("app", "port") == 1
        handler.set_property("app", "port", 2)
        assert handler.get_property("app", "port") == 2
        assert fallback.get_property("app", "port") == 1

    def test_set_properties(self):
        handler = new_handler()
        handler.set_properties("app", {"port": 1, "host": "h"})
        assert handler.get_property("app", "host") == "h"

    def test_new_handler_coerces(self):
        handler = new_handler({"app": {"debug": "yes"}})
        assert handler.get_property("app", "debug", bool) is True
