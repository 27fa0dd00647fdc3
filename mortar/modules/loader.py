"""
Module loaders - turn a type into a fully built instance.

``DefaultModuleLoader.load(T)``:

1. Compute T's default-property table (cached).
2. Ask the locator for T's provider class.
3. No provider: call T's designated (@provide_module) constructor, or
   its zero-argument constructor, or raise NoBuilderFault.
4. Provider P:
   a. an instance builder on P returning T (exact match preferred),
      called on a P instance resolved through the engine;
   b. else a static builder on P returning T;
   c. else, if P is a subclass of T, P itself is loaded;
   d. else IncompatibleProviderFault.

Every load and every loader bootstrap runs inside the resolution stack,
so cyclic provider or loader configurations raise ModuleCycleFault.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Mapping, Optional, Protocol, Type, TypeVar, Union, runtime_checkable

from ..faults import IncompatibleProviderFault
from ..properties import PropertySource
from .constants import (
    CONFIG_MANAGER_PROPERTY,
    DEFAULT_MODULE_DOMAIN,
    LOADER_PROPERTY,
    PARAMETER_PROVIDER_PROPERTY,
)
from .diagnostics import ModuleDiagnostics, ModuleEventType
from .executor import MethodConstructorExecutor
from .locator import DynamicPropertyLocator, PropertyLocator, DefaultPropertyLocator
from .metadata import (
    BuilderKind,
    ModuleMetadataCache,
    Property,
    as_property,
    is_subtype,
    load_class,
    provide_module,
    select_builder,
)
from .parameters import DefaultParameterProvider, ParameterProvider
from .resolution import resolve_ctx

logger = logging.getLogger("mortar.modules.loader")

T = TypeVar("T")

Properties = Optional[Mapping[str, Mapping[str, Any]]]


@runtime_checkable
class ModuleLoader(Protocol):
    """Builds instances of module types."""

    def load(
        self,
        module_type: Type[T],
        provider: Optional[Union[Type, str]] = None,
        properties: Properties = None,
        locator: Optional[PropertyLocator] = None,
    ) -> T:
        ...


@as_property(LOADER_PROPERTY)
class DefaultModuleLoader:
    """
    Default ModuleLoader.

    Args:
        config: Property source for every lookup (usually the ConfigManager)
        parameter_provider: Provider used when the default provider class applies
        locator: Locator used when ``load`` is not given one
        cache: Per-type descriptor cache shared with collaborators it creates
        diagnostics: Event emitter for load start/success/failure

    Example:
        ```python
        loader = DefaultModuleLoader(config)
        widget = loader.load(Widget)
        widget = loader.load(Widget, properties={"ui": {"size": 4}})
        ```
    """

    @provide_module
    def __init__(
        self,
        config: Annotated[Optional[PropertySource], Property(CONFIG_MANAGER_PROPERTY, domain=DEFAULT_MODULE_DOMAIN)] = None,
        parameter_provider: Annotated[Optional[ParameterProvider], Property(PARAMETER_PROVIDER_PROPERTY, domain=DEFAULT_MODULE_DOMAIN)] = None,
        *,
        locator: Optional[PropertyLocator] = None,
        cache: Optional[ModuleMetadataCache] = None,
        diagnostics: Optional[ModuleDiagnostics] = None,
    ):
        self.config = config
        self.locator = locator or DefaultPropertyLocator()
        self.cache = cache if cache is not None else ModuleMetadataCache()
        self.diagnostics = diagnostics if diagnostics is not None else ModuleDiagnostics()
        self.executor = MethodConstructorExecutor(self)
        self._parameter_provider = parameter_provider

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(
        self,
        module_type: Type[T],
        provider: Optional[Union[Type, str]] = None,
        properties: Properties = None,
        locator: Optional[PropertyLocator] = None,
    ) -> T:
        """
        Build an instance of ``module_type``.

        Args:
            module_type: Type to build
            provider: Explicit provider class (skips provider lookup)
            properties: One-off overrides ``{domain: {name: value}}`` checked
                before any other source, without touching the config
            locator: Locator for this load (defaults to the loader's own)
        """
        if module_type is None:
            raise ValueError("module_type must not be None")
        locator = locator or self.locator
        if properties:
            locator = DynamicPropertyLocator(properties, inner=locator)
        if isinstance(provider, str):
            provider = load_class(provider)

        with resolve_ctx.resolving("load", module_type):
            defaults = self.cache.module_config(module_type)
            if provider is None:
                provider = locator.get_provider_class(module_type, self.config, defaults)

            logger.debug("Loading %s (provider=%s)", module_type.__qualname__, provider)
            self.diagnostics.emit(ModuleEventType.LOAD_START, module=module_type, provider=provider)
            with self.diagnostics.measure(module=module_type, provider=provider):
                if provider is None:
                    return self._construct(module_type, defaults, locator)
                return self._load_with_provider(module_type, provider, defaults, locator)

    def _construct(self, module_type: Type[T], defaults, locator) -> T:
        builder = self.cache.constructor_for(module_type)
        return self.executor.execute(builder, module_type, defaults, locator)

    def _load_with_provider(self, module_type: Type[T], provider: Type, defaults, locator) -> T:
        builders = self.cache.builder_methods(provider)
        instance = None

        builder = select_builder(builders, module_type, BuilderKind.INSTANCE)
        if builder is not None:
            instance = self.resolve_module_provider(module_type, provider, defaults, locator)
        else:
            builder = select_builder(builders, module_type, BuilderKind.STATIC)

        if builder is None:
            if provider is module_type:
                return self._construct(module_type, defaults, locator)
            if is_subtype(provider, module_type):
                loader = self.resolve_loader(provider, self.cache.module_config(provider), locator)
                return loader.load(provider, locator=locator)
            raise IncompatibleProviderFault(module_type, provider)

        return self.executor.execute(builder, provider, defaults, locator, instance)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def resolve_module_provider(self, module_type: Type, provider: Type, defaults: Properties = None, locator: Optional[PropertyLocator] = None) -> Any:
        """A registered provider instance, else a provider built through the engine."""
        locator = locator or self.locator
        instance = locator.get_provider(module_type, provider, self.config, defaults)
        if instance is not None:
            return instance
        loader = self.resolve_loader(provider, self.cache.module_config(provider), locator)
        return loader.load(provider, locator=locator)

    def resolve_loader(self, module_type: Type, properties: Properties = None, locator: Optional[PropertyLocator] = None) -> ModuleLoader:
        """
        Loader for ``module_type``: a registered instance, this loader when
        the configured class is DefaultModuleLoader, or an instance of the
        configured class built through the engine.
        """
        locator = locator or self.locator
        loader, loader_class = locator.find_collaborator(
            LOADER_PROPERTY, module_type, ModuleLoader, DefaultModuleLoader, self.config, properties
        )
        if loader is not None:
            return loader
        if loader_class is DefaultModuleLoader:
            return self
        return self._bootstrap(loader_class, locator)

    def resolve_parameter_provider(self, module_type: Type, properties: Properties = None, locator: Optional[PropertyLocator] = None) -> ParameterProvider:
        locator = locator or self.locator
        provider, provider_class = locator.find_collaborator(
            PARAMETER_PROVIDER_PROPERTY, module_type, ParameterProvider, DefaultParameterProvider, self.config, properties
        )
        if provider is not None:
            return provider
        if provider_class is DefaultParameterProvider:
            if self._parameter_provider is None:
                self._parameter_provider = DefaultParameterProvider(
                    self.config, self, locator=self.locator, cache=self.cache, diagnostics=self.diagnostics
                )
            return self._parameter_provider
        return self._bootstrap(provider_class, locator)

    def _bootstrap(self, cls: Type, locator: PropertyLocator) -> Any:
        with resolve_ctx.resolving("loader", cls):
            loader = self.resolve_loader(cls, self.cache.module_config(cls), locator)
        return loader.load(cls, locator=locator)

    def __repr__(self) -> str:
        return f"DefaultModuleLoader(config={self.config!r}, locator={self.locator!r})"
