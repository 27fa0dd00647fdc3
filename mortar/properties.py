"""
Property sources - read/write access to (domain, name) -> value triples.

A PropertySource is anything answering ``get_property(domain, name, type_)``.
The ConfigManager is one; MapPropertySource adapts a plain nested dict
(``{domain: {name: value}}``), ChainPropertySource queries several sources
in order, and PropertyHandler pairs a source with a writer so a
ModuleContext can both read and record overrides.
"""

from __future__ import annotations

import threading
import types
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Type, Union, get_args, get_origin, runtime_checkable

from .mapping import MapperFactory


PropertyMap = Dict[str, Dict[str, Any]]


def matches_type(value: Any, type_: Optional[Type]) -> bool:
    """True if ``value`` can be returned as-is for a request of ``type_``."""
    if type_ is None or type_ is object or type_ is Any:
        return True
    origin = get_origin(type_)
    if origin is Union or origin is types.UnionType:
        return any(matches_type(value, arg) for arg in get_args(type_) if arg is not type(None))
    if origin is not None:
        type_ = origin
    if not isinstance(type_, type):
        return False
    try:
        return isinstance(value, type_)
    except TypeError:
        return False


def lookup(properties: Optional[Mapping[str, Mapping[str, Any]]], domain: str, name: str) -> Any:
    """Read ``properties[domain][name]`` from a nested map, None if absent."""
    if not properties:
        return None
    entries = properties.get(domain)
    if not entries:
        return None
    return entries.get(name)


def merge_properties(target: PropertyMap, source: Mapping[str, Mapping[str, Any]]) -> PropertyMap:
    """Merge ``source`` into ``target`` domain by domain; ``source`` wins."""
    for domain, entries in source.items():
        target.setdefault(domain, {}).update(entries)
    return target


@runtime_checkable
class PropertySource(Protocol):
    """Read side of a property store."""

    def get_property(self, domain: str, name: str, type_: Optional[Type] = None) -> Any:
        ...


@runtime_checkable
class PropertyWriter(Protocol):
    """Write side of a property store. A None value removes the entry."""

    def set_property(self, domain: str, name: str, value: Any) -> None:
        ...


class MapPropertySource:
    """
    PropertySource over a nested ``{domain: {name: value}}`` dict.

    Without a mapper factory a value is returned only when it already
    matches the requested type. With one, mismatching values are coerced
    and a failed coercion raises ConversionFault.
    """

    __slots__ = ("_properties", "_mappers", "_lock")

    def __init__(
        self,
        properties: Optional[Mapping[str, Mapping[str, Any]]] = None,
        mapper_factory: Optional[MapperFactory] = None,
    ):
        self._properties: PropertyMap = {}
        if properties:
            merge_properties(self._properties, properties)
        self._mappers = mapper_factory
        self._lock = threading.Lock()

    def get_property(self, domain: str, name: str, type_: Optional[Type] = None) -> Any:
        value = lookup(self._properties, domain, name)
        if value is None or matches_type(value, type_):
            return value
        if self._mappers is None:
            return None
        return self._mappers.convert(value, type_)

    def set_property(self, domain: str, name: str, value: Any) -> None:
        with self._lock:
            if value is None:
                entries = self._properties.get(domain)
                if entries is not None:
                    entries.pop(name, None)
                    if not entries:
                        del self._properties[domain]
                return
            self._properties.setdefault(domain, {})[name] = value

    def to_dict(self) -> PropertyMap:
        return {domain: dict(entries) for domain, entries in self._properties.items()}

    def __repr__(self) -> str:
        return f"MapPropertySource(domains={sorted(self._properties)})"


class ChainPropertySource:
    """Queries sources in order and returns the first non-None value."""

    __slots__ = ("_sources",)

    def __init__(self, *sources: PropertySource):
        self._sources = tuple(source for source in sources if source is not None)

    def get_property(self, domain: str, name: str, type_: Optional[Type] = None) -> Any:
        for source in self._sources:
            value = source.get_property(domain, name, type_)
            if value is not None:
                return value
        return None

    @property
    def sources(self) -> tuple:
        return self._sources


class PropertyHandler:
    """A PropertySource paired with the PropertyWriter that feeds it."""

    __slots__ = ("_source", "_writer")

    def __init__(self, source: PropertySource, writer: PropertyWriter):
        if source is None or writer is None:
            raise ValueError("source and writer must not be None")
        self._source = source
        self._writer = writer

    def get_property(self, domain: str, name: str, type_: Optional[Type] = None) -> Any:
        return self._source.get_property(domain, name, type_)

    def set_property(self, domain: str, name: str, value: Any) -> None:
        self._writer.set_property(domain, name, value)

    def set_properties(self, domain: str, entries: Mapping[str, Any]) -> None:
        for name, value in entries.items():
            self.set_property(domain, name, value)

    def __repr__(self) -> str:
        return f"PropertyHandler(source={self._source!r})"


def new_handler(
    properties: Optional[Mapping[str, Mapping[str, Any]]] = None,
    mapper_factory: Optional[MapperFactory] = None,
    fallbacks: Iterable[PropertySource] = (),
) -> PropertyHandler:
    """
    Create an in-memory PropertyHandler.

    Writes land in a fresh MapPropertySource. Reads check it first, then
    each of ``fallbacks`` in order.
    """
    store = MapPropertySource(properties, mapper_factory or MapperFactory())
    fallbacks = tuple(fallbacks)
    if not fallbacks:
        return PropertyHandler(store, store)
    return PropertyHandler(ChainPropertySource(store, *fallbacks), store)
