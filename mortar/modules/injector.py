"""
Property injectors - populate tagged fields of an already built instance.

Only annotations declared on the instance's exact class are considered;
inherited fields are left alone. ``ClassVar`` and ``Final`` annotations
are never injected.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Mapping, Optional, Protocol, Type, runtime_checkable

from ..properties import PropertySource
from .constants import (
    CONFIG_MANAGER_PROPERTY,
    DEFAULT_MODULE_DOMAIN,
    PARAMETER_PROVIDER_PROPERTY,
    PROPERTY_INJECTOR_PROPERTY,
)
from .diagnostics import ModuleDiagnostics, ModuleEventType
from .locator import DefaultPropertyLocator, DynamicPropertyLocator, PropertyLocator
from .metadata import ModuleMetadataCache, Property, as_property, provide_module
from .parameters import DefaultParameterProvider, ParameterProvider

logger = logging.getLogger("mortar.modules.injector")

Properties = Optional[Mapping[str, Mapping[str, Any]]]


@runtime_checkable
class PropertyInjector(Protocol):
    """Assigns resolved values to an instance's tagged fields."""

    def inject_properties(
        self,
        bean: Any,
        properties: Properties = None,
        locator: Optional[PropertyLocator] = None,
    ) -> None:
        ...


def _assign(bean: Any, name: str, value: Any) -> None:
    # frozen dataclasses reject setattr
    params = getattr(type(bean), "__dataclass_params__", None)
    if params is not None and params.frozen:
        object.__setattr__(bean, name, value)
    else:
        setattr(bean, name, value)


@as_property(PROPERTY_INJECTOR_PROPERTY)
class DefaultPropertyInjector:
    """
    Default PropertyInjector.

    The parameter provider for each bean type is resolved through the
    locator, so per-type parameter providers apply to fields as well.
    """

    @provide_module
    def __init__(
        self,
        config: Annotated[Optional[PropertySource], Property(CONFIG_MANAGER_PROPERTY, domain=DEFAULT_MODULE_DOMAIN)] = None,
        *,
        locator: Optional[PropertyLocator] = None,
        cache: Optional[ModuleMetadataCache] = None,
        diagnostics: Optional[ModuleDiagnostics] = None,
    ):
        self.config = config
        self.locator = locator or DefaultPropertyLocator()
        self.cache = cache if cache is not None else ModuleMetadataCache()
        self.diagnostics = diagnostics if diagnostics is not None else ModuleDiagnostics()
        self._parameter_provider = None

    def inject_properties(
        self,
        bean: Any,
        properties: Properties = None,
        locator: Optional[PropertyLocator] = None,
    ) -> None:
        """
        Resolve and assign every injectable field of ``bean``.

        Args:
            bean: Instance to populate
            properties: One-off overrides checked before any other source
            locator: Locator for the lookups (defaults to the injector's own)
        """
        if bean is None:
            raise ValueError("bean must not be None")
        locator = locator or self.locator
        if properties:
            locator = DynamicPropertyLocator(properties, inner=locator)

        bean_type: Type = type(bean)
        fields = self.cache.injection_fields(bean_type)
        if not fields:
            return

        defaults = self.cache.module_config(bean_type)
        provider = self.resolve_parameter_provider(bean_type, defaults, locator)
        # nothing is assigned unless every field resolves
        values = [
            (field.name, provider.get_parameter(field.type, field.metadata, defaults, locator))
            for field in fields
        ]
        for name, value in values:
            _assign(bean, name, value)

        logger.debug("Injected %d fields into %s", len(fields), bean_type.__qualname__)
        self.diagnostics.emit(ModuleEventType.INJECTION, module=bean_type, metadata={"fields": len(fields)})

    def resolve_parameter_provider(self, bean_type: Type, properties: Properties = None, locator: Optional[PropertyLocator] = None):
        locator = locator or self.locator
        provider, provider_class = locator.find_collaborator(
            PARAMETER_PROVIDER_PROPERTY, bean_type, ParameterProvider, DefaultParameterProvider, self.config, properties
        )
        if provider is not None:
            return provider
        if provider_class is DefaultParameterProvider:
            if self._parameter_provider is None:
                self._parameter_provider = DefaultParameterProvider(
                    self.config, locator=self.locator, cache=self.cache, diagnostics=self.diagnostics
                )
            return self._parameter_provider
        return locator.resolve_parameter_provider(bean_type, self.config, properties)

    def __repr__(self) -> str:
        return f"DefaultPropertyInjector(config={self.config!r})"
