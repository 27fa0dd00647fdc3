"""
Module manager - the engine's entry point.

Owns the ConfigManager, a locator, the per-type metadata cache and the
diagnostics emitter, and installs collaborators into the config:

- at type scope, in the module type's own domain
  (``register_loader(loader, Widget)``)
- at default scope, in the default module domain
  (``register_default_loader(loader)``)

Example:
    ```python
    manager = ModuleManager()
    manager.register_provider_class(WidgetFactory, Widget)
    widget = manager.load(Widget)
    widget = manager.load(Widget, properties={"ui": {"size": 4}})
    ```
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from ..config import ConfigManager
from ..faults import ConfigFault, NotSubtypeFault
from ..properties import PropertyHandler, new_handler
from .constants import (
    CONFIG_MANAGER_PROPERTY,
    DEFAULT_MODULE_DOMAIN,
    LOADER_PROPERTY,
    PARAMETER_PROVIDER_PROPERTY,
    PROPERTY_INJECTOR_PROPERTY,
    PROVIDER_PROPERTY,
    class_property,
    describe,
    domain_for,
)
from .context import ModuleContext
from .diagnostics import ModuleDiagnostics, ModuleEventType
from .injector import DefaultPropertyInjector, PropertyInjector
from .loader import DefaultModuleLoader, ModuleLoader
from .locator import DefaultPropertyLocator, PropertyLocator
from .metadata import ModuleMetadataCache, get_class_property, is_subtype
from .parameters import DefaultParameterProvider, ParameterProvider

logger = logging.getLogger("mortar.modules.manager")

T = TypeVar("T")

ClassRef = Union[Type, str]


class ModuleManager:
    """
    Registration and loading facade over the module engine.

    Args:
        config: Config manager holding all registrations (created and
            bootstrapped from the config folder when omitted)
        locator: Lookup order for every load (DefaultPropertyLocator)
        cache: Per-type metadata cache shared by every collaborator
        diagnostics: Event emitter shared by every collaborator
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        *,
        locator: Optional[PropertyLocator] = None,
        cache: Optional[ModuleMetadataCache] = None,
        diagnostics: Optional[ModuleDiagnostics] = None,
    ):
        if config is None:
            config = ConfigManager().init()
        self.config = config
        self.locator = locator or DefaultPropertyLocator()
        self.cache = cache if cache is not None else ModuleMetadataCache()
        self.diagnostics = diagnostics if diagnostics is not None else ModuleDiagnostics()
        self.context = ModuleContext(config, self.locator, cache=self.cache, diagnostics=self.diagnostics)
        self.init()

    def init(self) -> None:
        """
        Load the default module domain (if a property file exists) and
        install the default collaborators unless other ones are configured.
        """
        try:
            self.config.load_and_merge_domain(DEFAULT_MODULE_DOMAIN)
            self.diagnostics.emit(ModuleEventType.DOMAIN_LOADED, property=DEFAULT_MODULE_DOMAIN)
        except ConfigFault as fault:
            logger.debug("No property file for %s: %s", DEFAULT_MODULE_DOMAIN, fault)

        self.config.set_property(DEFAULT_MODULE_DOMAIN, CONFIG_MANAGER_PROPERTY, self.config)

        loader = None
        if self.locator.get_loader(object, self.config) is None and \
                self.locator.get_default_loader_class(self.config) is DefaultModuleLoader:
            loader = DefaultModuleLoader(
                self.config, locator=self.locator, cache=self.cache, diagnostics=self.diagnostics
            )
            self.register_default_loader(loader)

        if self.locator.get_parameter_provider(object, self.config) is None and \
                self.locator.get_default_parameter_provider_class(self.config) is DefaultParameterProvider:
            self.register_default_parameter_provider(
                DefaultParameterProvider(
                    self.config, loader, locator=self.locator, cache=self.cache, diagnostics=self.diagnostics
                )
            )

        if self.locator.get_property_injector(object, self.config) is None and \
                self.locator.get_default_property_injector_class(self.config) is DefaultPropertyInjector:
            self.register_default_property_injector(
                DefaultPropertyInjector(
                    self.config, locator=self.locator, cache=self.cache, diagnostics=self.diagnostics
                )
            )

    # ------------------------------------------------------------------
    # Registration helpers
    # ------------------------------------------------------------------

    def _register(self, domain: str, name: str, value: Any, module_type: Optional[Type]) -> None:
        self.config.set_property(domain, name, value)
        logger.debug("Registered %s:%s = %r", domain, name, value)
        self.diagnostics.emit(
            ModuleEventType.REGISTRATION,
            module=module_type,
            property=f"{domain}:{name}",
            provider=value,
        )

    @staticmethod
    def _scope(module_type: Optional[Type]) -> str:
        if module_type is None or module_type is object:
            return DEFAULT_MODULE_DOMAIN
        return domain_for(module_type)

    @staticmethod
    def _check_instance(value: Any, kind: Type, location: str) -> None:
        if value is not None and not isinstance(value, kind):
            raise NotSubtypeFault(location, kind, type(value))

    @staticmethod
    def _check_class(value: Optional[ClassRef], kind: Type, location: str) -> None:
        if value is None or isinstance(value, str):
            return
        if kind is not object and not is_subtype(value, kind):
            raise NotSubtypeFault(location, kind, value)

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    def register_loader(self, loader: Optional[ModuleLoader], module_type: Optional[Type] = None) -> None:
        """Install a loader instance for ``module_type`` (default scope when None)."""
        self._check_instance(loader, ModuleLoader, LOADER_PROPERTY)
        self._register(self._scope(module_type), LOADER_PROPERTY, loader, module_type)

    def register_default_loader(self, loader: Optional[ModuleLoader]) -> None:
        self.register_loader(loader, None)

    def register_loader_class(self, loader_class: Optional[ClassRef], module_type: Optional[Type] = None) -> None:
        self._check_class(loader_class, ModuleLoader, LOADER_PROPERTY)
        self._register(self._scope(module_type), class_property(LOADER_PROPERTY), loader_class, module_type)

    def register_default_loader_class(self, loader_class: Optional[ClassRef]) -> None:
        self.register_loader_class(loader_class, None)

    def get_loader(self, module_type: Type = object) -> ModuleLoader:
        return self.locator.resolve_loader(module_type, self.config, self.cache.module_config(module_type))

    def get_loader_class(self, module_type: Type = object) -> Type:
        return self.locator.get_loader_class(module_type, self.config, self.cache.module_config(module_type))

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def register_provider(self, provider: Any, module_type: Type) -> None:
        """Install a provider instance for ``module_type``."""
        if module_type is None:
            raise ValueError("module_type must not be None")
        self._register(domain_for(module_type), PROVIDER_PROPERTY, provider, module_type)

    def register_provider_class(self, provider_class: Optional[ClassRef], module_type: Type) -> None:
        """Install the class (or class name) that builds ``module_type``."""
        if module_type is None:
            raise ValueError("module_type must not be None")
        self._register(domain_for(module_type), class_property(PROVIDER_PROPERTY), provider_class, module_type)

    def get_provider(self, module_type: Type) -> Any:
        return self.locator.get_provider(module_type, object, self.config, self.cache.module_config(module_type))

    def get_provider_class(self, module_type: Type) -> Optional[Type]:
        return self.locator.get_provider_class(module_type, self.config, self.cache.module_config(module_type))

    # ------------------------------------------------------------------
    # Parameter providers
    # ------------------------------------------------------------------

    def register_parameter_provider(self, provider: Optional[ParameterProvider], module_type: Optional[Type] = None) -> None:
        self._check_instance(provider, ParameterProvider, PARAMETER_PROVIDER_PROPERTY)
        self._register(self._scope(module_type), PARAMETER_PROVIDER_PROPERTY, provider, module_type)

    def register_default_parameter_provider(self, provider: Optional[ParameterProvider]) -> None:
        self.register_parameter_provider(provider, None)

    def register_parameter_provider_class(self, provider_class: Optional[ClassRef], module_type: Optional[Type] = None) -> None:
        self._check_class(provider_class, ParameterProvider, PARAMETER_PROVIDER_PROPERTY)
        self._register(
            self._scope(module_type), class_property(PARAMETER_PROVIDER_PROPERTY), provider_class, module_type
        )

    def register_default_parameter_provider_class(self, provider_class: Optional[ClassRef]) -> None:
        self.register_parameter_provider_class(provider_class, None)

    def get_parameter_provider(self, module_type: Type = object) -> ParameterProvider:
        return self.locator.resolve_parameter_provider(
            module_type, self.config, self.cache.module_config(module_type)
        )

    def get_parameter_provider_class(self, module_type: Type = object) -> Type:
        return self.locator.get_parameter_provider_class(
            module_type, self.config, self.cache.module_config(module_type)
        )

    # ------------------------------------------------------------------
    # Property injectors
    # ------------------------------------------------------------------

    def register_property_injector(self, injector: Optional[PropertyInjector], module_type: Optional[Type] = None) -> None:
        self._check_instance(injector, PropertyInjector, PROPERTY_INJECTOR_PROPERTY)
        self._register(self._scope(module_type), PROPERTY_INJECTOR_PROPERTY, injector, module_type)

    def register_default_property_injector(self, injector: Optional[PropertyInjector]) -> None:
        self.register_property_injector(injector, None)

    def register_property_injector_class(self, injector_class: Optional[ClassRef], module_type: Optional[Type] = None) -> None:
        self._check_class(injector_class, PropertyInjector, PROPERTY_INJECTOR_PROPERTY)
        self._register(
            self._scope(module_type), class_property(PROPERTY_INJECTOR_PROPERTY), injector_class, module_type
        )

    def register_default_property_injector_class(self, injector_class: Optional[ClassRef]) -> None:
        self.register_property_injector_class(injector_class, None)

    def get_property_injector(self, module_type: Type = object) -> PropertyInjector:
        return self.locator.resolve_property_injector(
            module_type, self.config, self.cache.module_config(module_type)
        )

    def get_property_injector_class(self, module_type: Type = object) -> Type:
        return self.locator.get_property_injector_class(
            module_type, self.config, self.cache.module_config(module_type)
        )

    # ------------------------------------------------------------------
    # @as_property collaborators and module defaults
    # ------------------------------------------------------------------

    def register_as_property(self, value: Any) -> None:
        """
        Install ``value`` under the property named by its @as_property marker.

        A class is installed under the ``.class`` variant of the name, an
        instance under the name itself.
        """
        cls = value if isinstance(value, type) else type(value)
        marker = get_class_property(cls)
        if marker is None:
            raise ValueError(f"{describe(cls)} has no @as_property marker")
        name = class_property(marker.name) if isinstance(value, type) else marker.name
        self._register(marker.domain, name, value, None)

    def remove_as_property(self, value: Any) -> None:
        cls = value if isinstance(value, type) else type(value)
        marker = get_class_property(cls)
        if marker is None:
            raise ValueError(f"{describe(cls)} has no @as_property marker")
        name = class_property(marker.name) if isinstance(value, type) else marker.name
        self.config.set_property(marker.domain, name, None)

    def register_defaults_for_module(self, module_type: Type) -> None:
        """Copy the module's declared default properties into the config where unset."""
        for domain, entries in self.cache.module_config(module_type).items():
            for name, value in entries.items():
                if self.config.get_property(domain, name) is None:
                    self.config.set_property(domain, name, value)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def load(
        self,
        module_type: Type[T],
        provider: Optional[ClassRef] = None,
        properties: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> T:
        """
        Build an instance of ``module_type``.

        Args:
            module_type: Type to build
            provider: Explicit provider class, skipping provider lookup
            properties: One-off overrides ``{domain: {name: value}}``
        """
        if module_type is None:
            raise ValueError("module_type must not be None")
        return self.get_loader(module_type).load(module_type, provider, properties, locator=self.locator)

    def inject(self, bean: Any, properties: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        """Populate the tagged fields of an existing instance."""
        if bean is None:
            raise ValueError("bean must not be None")
        self.get_property_injector(type(bean)).inject_properties(bean, properties, locator=self.locator)

    def get_property(self, domain: str, name: str, type_: Optional[Type] = None) -> Any:
        return self.locator.get_property(domain, name, type_, self.config, None)

    def new_context(self, handler: Optional[PropertyHandler] = None, locator: Optional[PropertyLocator] = None) -> ModuleContext:
        """A child context of the manager's root context."""
        return self.context.new_child(handler, locator)

    def new_dynamic_context(self, properties: Optional[Mapping[str, Mapping[str, Any]]] = None) -> ModuleContext:
        """
        A child context seeded with ``properties``. Writes to the context
        stay in its own handler and take effect on its next lookup.
        """
        handler = new_handler(properties, self.config.get_mapper_factory())
        return self.context.new_child(handler)

    def __repr__(self) -> str:
        return f"ModuleManager(config={self.config!r}, locator={self.locator!r})"
