"""
Parameter providers - the value for one constructor/method parameter or field.

Resolution for an injection point of type T:

1. No Property metadata: load T as a nested module.
2. More than one Property: AmbiguousMetadataFault.
3. Config value at (domain, name), as found by the locator.
4. Entry at (domain, name) in the module's default-property table; used
   as-is if it is already a T, otherwise its string form becomes the
   default literal.
5. The default literal: NULL_VAL gives None, LOAD_VAL loads T as a
   nested module, any other non-empty string is mapped to T.
6. Otherwise UnresolvableParameterFault.
"""

from __future__ import annotations

from typing import Annotated, Any, Mapping, Optional, Protocol, Sequence, Type, runtime_checkable

from ..faults import UnresolvableParameterFault
from ..properties import PropertySource, lookup, matches_type
from .constants import (
    CONFIG_MANAGER_PROPERTY,
    DEFAULT_MODULE_DOMAIN,
    LOAD_VAL,
    NULL_VAL,
    PARAMETER_PROVIDER_PROPERTY,
)
from .metadata import ModuleMetadataCache, Property, as_property, find_property, provide_module


@runtime_checkable
class ParameterProvider(Protocol):
    """Supplies the value of a single injection point."""

    def get_parameter(
        self,
        param_type: Optional[Type],
        metadata: Sequence[Any] = (),
        properties: Optional[Mapping[str, Mapping[str, Any]]] = None,
        locator: Any = None,
    ) -> Any:
        ...


@as_property(PARAMETER_PROVIDER_PROPERTY)
class DefaultParameterProvider:
    """
    Default ParameterProvider.

    Nested modules are loaded through a loader resolved per type; when
    none is configured a DefaultModuleLoader sharing this provider's
    config is created on first use and kept.
    """

    @provide_module
    def __init__(
        self,
        config: Annotated[Optional[PropertySource], Property(CONFIG_MANAGER_PROPERTY, domain=DEFAULT_MODULE_DOMAIN)] = None,
        loader: Any = None,
        *,
        locator: Any = None,
        cache: Optional[ModuleMetadataCache] = None,
        diagnostics: Any = None,
    ):
        from .locator import DefaultPropertyLocator

        self.config = config
        self.locator = locator or DefaultPropertyLocator()
        self.cache = cache if cache is not None else ModuleMetadataCache()
        self.diagnostics = diagnostics
        self._loader = loader

    def get_parameter(
        self,
        param_type: Optional[Type],
        metadata: Sequence[Any] = (),
        properties: Optional[Mapping[str, Mapping[str, Any]]] = None,
        locator: Any = None,
    ) -> Any:
        locator = locator or self.locator
        prop = find_property(metadata or (), param_type)
        if prop is None:
            return self._load(param_type, locator)
        return self._resolve(param_type or object, prop, properties, locator)

    def _resolve(self, param_type: Type, prop: Property, properties, locator) -> Any:
        value = locator.get_property(prop.domain, prop.name, param_type, self.config, None)
        if value is not None:
            return value

        literal = prop.default
        entry = lookup(properties, prop.domain, prop.name)
        if entry is not None:
            if matches_type(entry, param_type):
                return entry
            literal = str(entry)

        if literal == NULL_VAL:
            return None
        if literal == LOAD_VAL:
            return self._load(param_type, locator)
        if literal:
            if param_type is str or param_type is object:
                return literal
            mapper = locator.get_mapper(param_type, str, param_type, self.config, properties)
            return mapper.map(literal, param_type)

        raise UnresolvableParameterFault(param_type, prop.domain, prop.name)

    def _load(self, param_type: Optional[Type], locator) -> Any:
        if param_type is None or param_type is object:
            raise UnresolvableParameterFault(
                param_type, reason="no type annotation and no Property metadata"
            )
        loader = self.resolve_loader(param_type, locator)
        return loader.load(param_type, locator=locator)

    def resolve_loader(self, module_type: Type, locator: Any = None):
        """Loader for a nested module, bootstrapped through the default loader."""
        locator = locator or self.locator
        return self._default_loader().resolve_loader(
            module_type, self.cache.module_config(module_type), locator
        )

    def _default_loader(self):
        if self._loader is None:
            from .loader import DefaultModuleLoader
            self._loader = DefaultModuleLoader(
                self.config, self, locator=self.locator, cache=self.cache, diagnostics=self.diagnostics
            )
        return self._loader

    def __repr__(self) -> str:
        return f"DefaultParameterProvider(config={self.config!r})"
