"""
Value mapping - coercion between stored property values and requested types.

Property values are untyped at rest. When a caller asks for a value of a
specific type and the stored value is of another type, a Mapper converts
it. The MapperFactory keeps a (source, target) -> Mapper registry and
falls back to StringMapper, which parses strings into primitives and
renders primitives back into strings.
"""

from __future__ import annotations

import json
import threading
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Tuple, Type, runtime_checkable

from .faults import ConversionFault


_TRUE = ("true", "yes", "on", "1")
_FALSE = ("false", "no", "off", "0")

_JSON_TYPES = (list, tuple, dict, set, frozenset)
_SCALARS = (bool, int, float, Decimal, date, datetime, Path, Enum)


@runtime_checkable
class Mapper(Protocol):
    """Converts a value into an instance of ``target``."""

    def map(self, value: Any, target: Type) -> Any:
        ...


class StringMapper:
    """
    Default mapper between strings and primitive types.

    Strings are parsed into bool, int, float, Decimal, date, datetime,
    Path, Enum members and JSON containers. Primitives and containers are
    rendered back into strings. Anything else raises ConversionFault.
    """

    def map(self, value: Any, target: Type) -> Any:
        if value is None:
            return None
        if target is None or target is object:
            return value
        if isinstance(target, type) and isinstance(value, target):
            return value

        if isinstance(value, str):
            return self._parse(value, target)
        if target is str:
            return self._render(value)
        if target is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        if target is Decimal and isinstance(value, (int, float)) and not isinstance(value, bool):
            return Decimal(str(value))

        raise ConversionFault(value, target)

    def _parse(self, value: str, target: Type) -> Any:
        text = value.strip()
        try:
            if target is bool:
                lowered = text.lower()
                if lowered in _TRUE:
                    return True
                if lowered in _FALSE:
                    return False
                raise ConversionFault(value, target, "not a boolean literal")
            if target is int:
                return int(text)
            if target is float:
                return float(text)
            if target is Decimal:
                return Decimal(text)
            if target is datetime:
                return datetime.fromisoformat(text)
            if target is date:
                return date.fromisoformat(text)
            if target is Path:
                return Path(text)
            if isinstance(target, type) and issubclass(target, Enum):
                if text in target.__members__:
                    return target[text]
                return target(text)
            if target in _JSON_TYPES:
                parsed = json.loads(text)
                if target in (tuple, set, frozenset) and isinstance(parsed, list):
                    return target(parsed)
                if not isinstance(parsed, target):
                    raise ConversionFault(value, target, f"JSON value is a {type(parsed).__name__}")
                return parsed
        except (ValueError, InvalidOperation) as exc:
            raise ConversionFault(value, target, str(exc)) from exc

        raise ConversionFault(value, target)

    def _render(self, value: Any) -> str:
        if isinstance(value, Enum):
            return str(value.name)
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, _SCALARS):
            return str(value)
        if isinstance(value, _JSON_TYPES):
            items = list(value) if isinstance(value, (tuple, set, frozenset)) else value
            return json.dumps(items)
        raise ConversionFault(value, str)


class MapperFactory:
    """
    Registry of mappers keyed by (source type, target type).

    Lookups that find no registered mapper return the default mapper.

    Example:
        ```python
        factory = MapperFactory()
        factory.register(str, Version, VersionMapper())
        factory.get_mapper(str, Version).map("1.2", Version)
        ```
    """

    __slots__ = ("_mappers", "_default", "_lock")

    def __init__(self, default: Optional[Mapper] = None):
        self._mappers: Dict[Tuple[Type, Type], Mapper] = {}
        self._default = default or StringMapper()
        self._lock = threading.Lock()

    @property
    def default_mapper(self) -> Mapper:
        return self._default

    def register(self, source: Type, target: Type, mapper: Mapper) -> None:
        if mapper is None:
            raise ValueError("mapper must not be None")
        with self._lock:
            self._mappers[(source, target)] = mapper

    def remove(self, source: Type, target: Type) -> Optional[Mapper]:
        with self._lock:
            return self._mappers.pop((source, target), None)

    def get_mapper(self, source: Type, target: Type) -> Mapper:
        mapper = self._mappers.get((source, target))
        if mapper is None:
            return self._default
        return mapper

    def convert(self, value: Any, target: Type) -> Any:
        """Map ``value`` into ``target`` using the mapper for its type."""
        if value is None:
            return None
        return self.get_mapper(type(value), target).map(value, target)
