"""
Module contexts - scoped overrides with fallback to a wider scope.

A context owns a PropertyHandler and a locator and may have a parent.
Lookups try the context's own handler first, then the parent, then fall
back to the locator's resolving lookups so a usable loader, parameter
provider or property injector is always produced. Setters only ever
write to the context's own handler.

A child's default locator layers its handler over the parent's locator,
so loads through a child see the child's overrides first, then each
ancestor's in turn, then the loader's own config.

Example:
    ```python
    root = manager.new_context()
    child = root.new_child()
    child.set_provider_class(MockWidgetFactory, Widget)
    child.load(Widget)    # built by MockWidgetFactory
    root.load(Widget)     # unaffected
    ```
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Type, TypeVar, Union

from ..properties import ChainPropertySource, PropertyHandler, PropertySource, new_handler
from .constants import (
    DEFAULT_MODULE_DOMAIN,
    LOADER_PROPERTY,
    PARAMETER_PROVIDER_PROPERTY,
    PROPERTY_INJECTOR_PROPERTY,
    PROVIDER_PROPERTY,
    class_property,
    qualified_name,
)
from .diagnostics import ModuleDiagnostics
from .injector import DefaultPropertyInjector, PropertyInjector
from .loader import DefaultModuleLoader, ModuleLoader
from .locator import DefaultPropertyLocator, FastDynamicPropertyLocator, PropertyLocator
from .metadata import ModuleMetadataCache
from .parameters import DefaultParameterProvider, ParameterProvider

T = TypeVar("T")

ClassRef = Union[Type, str]


class ModuleContext:
    """A node in a tree of module configuration scopes."""

    __slots__ = ("handler", "locator", "parent", "cache", "diagnostics", "_built")

    def __init__(
        self,
        handler: Optional[PropertyHandler] = None,
        locator: Optional[PropertyLocator] = None,
        parent: Optional["ModuleContext"] = None,
        cache: Optional[ModuleMetadataCache] = None,
        diagnostics: Optional[ModuleDiagnostics] = None,
    ):
        self.handler = handler if handler is not None else new_handler()
        self.locator = locator or DefaultPropertyLocator()
        self.parent = parent
        if cache is None:
            cache = parent.cache if parent is not None else ModuleMetadataCache()
        if diagnostics is None:
            diagnostics = parent.diagnostics if parent is not None else ModuleDiagnostics()
        self.cache = cache
        self.diagnostics = diagnostics
        # default-class collaborators built by this context, by class
        self._built = {}

    def new_child(
        self,
        handler: Optional[PropertyHandler] = None,
        locator: Optional[PropertyLocator] = None,
    ) -> "ModuleContext":
        """
        A context whose lookups fall back to this one.

        Without a handler the child gets an empty one. Without a locator
        the child's handler is layered over this context's locator, so its
        overrides also reach loaders and providers inherited from here.
        """
        if handler is None:
            handler = new_handler()
        if locator is None:
            locator = FastDynamicPropertyLocator(handler, inner=self.locator)
        return ModuleContext(handler, locator, parent=self, cache=self.cache, diagnostics=self.diagnostics)

    def _defaults(self, module_type: Type):
        return self.cache.module_config(module_type)

    def _set(self, name: str, module_type: Optional[Type], value: Any) -> None:
        self.handler.set_property(DEFAULT_MODULE_DOMAIN, qualified_name(module_type, name), value)

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    def get_loader(self, module_type: Type = object) -> ModuleLoader:
        return self._collaborator(
            LOADER_PROPERTY, module_type, ModuleLoader, DefaultModuleLoader, "get_loader"
        )

    def get_loader_class(self, module_type: Type = object) -> Type:
        return self._class_for(LOADER_PROPERTY, module_type, ModuleLoader, DefaultModuleLoader, "get_loader_class")

    def set_loader(self, loader: Optional[ModuleLoader], module_type: Optional[Type] = None) -> None:
        self._set(LOADER_PROPERTY, module_type, loader)

    def set_loader_class(self, loader_class: Optional[ClassRef], module_type: Optional[Type] = None) -> None:
        self._set(class_property(LOADER_PROPERTY), module_type, loader_class)

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def get_provider(self, module_type: Type) -> Any:
        provider = self.locator.get_provider(module_type, object, self.handler, self._defaults(module_type))
        if provider is None and self.parent is not None:
            provider = self.parent.get_provider(module_type)
        return provider

    def get_provider_class(self, module_type: Type) -> Optional[Type]:
        provider = self.locator.get_provider_class(module_type, self.handler, self._defaults(module_type))
        if provider is None and self.parent is not None:
            provider = self.parent.get_provider_class(module_type)
        return provider

    def set_provider(self, provider: Any, module_type: Type) -> None:
        if module_type is None:
            raise ValueError("module_type must not be None")
        self._set(PROVIDER_PROPERTY, module_type, provider)

    def set_provider_class(self, provider_class: Optional[ClassRef], module_type: Type) -> None:
        if module_type is None:
            raise ValueError("module_type must not be None")
        self._set(class_property(PROVIDER_PROPERTY), module_type, provider_class)

    # ------------------------------------------------------------------
    # Parameter providers
    # ------------------------------------------------------------------

    def get_parameter_provider(self, module_type: Type = object) -> ParameterProvider:
        return self._collaborator(
            PARAMETER_PROVIDER_PROPERTY, module_type, ParameterProvider,
            DefaultParameterProvider, "get_parameter_provider",
        )

    def get_parameter_provider_class(self, module_type: Type = object) -> Type:
        return self._class_for(
            PARAMETER_PROVIDER_PROPERTY, module_type, ParameterProvider,
            DefaultParameterProvider, "get_parameter_provider_class",
        )

    def set_parameter_provider(self, provider: Optional[ParameterProvider], module_type: Optional[Type] = None) -> None:
        self._set(PARAMETER_PROVIDER_PROPERTY, module_type, provider)

    def set_parameter_provider_class(self, provider_class: Optional[ClassRef], module_type: Optional[Type] = None) -> None:
        self._set(class_property(PARAMETER_PROVIDER_PROPERTY), module_type, provider_class)

    # ------------------------------------------------------------------
    # Property injectors
    # ------------------------------------------------------------------

    def get_property_injector(self, module_type: Type = object) -> PropertyInjector:
        return self._collaborator(
            PROPERTY_INJECTOR_PROPERTY, module_type, PropertyInjector,
            DefaultPropertyInjector, "get_property_injector",
        )

    def get_property_injector_class(self, module_type: Type = object) -> Type:
        return self._class_for(
            PROPERTY_INJECTOR_PROPERTY, module_type, PropertyInjector,
            DefaultPropertyInjector, "get_property_injector_class",
        )

    def set_property_injector(self, injector: Optional[PropertyInjector], module_type: Optional[Type] = None) -> None:
        self._set(PROPERTY_INJECTOR_PROPERTY, module_type, injector)

    def set_property_injector_class(self, injector_class: Optional[ClassRef], module_type: Optional[Type] = None) -> None:
        self._set(class_property(PROPERTY_INJECTOR_PROPERTY), module_type, injector_class)

    # ------------------------------------------------------------------
    # Lookups shared by the kinds above
    # ------------------------------------------------------------------

    def _collaborator(self, name: str, module_type: Type, kind: Type, default_type: Type, parent_method: str) -> Any:
        defaults = self._defaults(module_type)
        instance, cls = self.locator.find_collaborator(name, module_type, kind, None, self.handler, defaults)
        if instance is not None:
            return instance
        if cls is None:
            if self.parent is not None:
                return getattr(self.parent, parent_method)(module_type)
            cls = default_type
        if cls is not default_type:
            return self.locator.build_collaborator(cls, default_type, self._source(), defaults)
        built = self._built.get(default_type)
        if built is None:
            built = self._built.setdefault(
                default_type,
                self.locator.build_collaborator(
                    cls, default_type, self._source(), defaults,
                    cache=self.cache, diagnostics=self.diagnostics,
                ),
            )
        return built

    def _source(self) -> PropertySource:
        # own handler, then every ancestor's
        if self.parent is None:
            return self.handler
        return ChainPropertySource(self.handler, self.parent._source())

    def _own_class(self, name: str, module_type: Type, class_type: Type, defaults) -> Optional[Type]:
        return self.locator.get_config_class_with_default(name, module_type, class_type, None, self.handler, defaults)

    def _class_for(self, name: str, module_type: Type, class_type: Type, default_type: Type, parent_method: str) -> Type:
        cls = self._own_class(name, module_type, class_type, self._defaults(module_type))
        if cls is None and self.parent is not None:
            cls = getattr(self.parent, parent_method)(module_type)
        return cls or default_type

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def get_property(self, domain: str, name: str, type_: Optional[Type] = None) -> Any:
        value = self.locator.get_property(domain, name, type_, self.handler, None)
        if value is None and self.parent is not None:
            value = self.parent.get_property(domain, name, type_)
        return value

    def set_property(self, domain: str, name: str, value: Any) -> None:
        self.handler.set_property(domain, name, value)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def load(
        self,
        module_type: Type[T],
        provider: Optional[ClassRef] = None,
        properties: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> T:
        """Build ``module_type`` with the loader this context resolves for it."""
        return self.get_loader(module_type).load(module_type, provider, properties, locator=self.locator)

    def inject(self, bean: Any, properties: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        """Populate the tagged fields of ``bean``."""
        if bean is None:
            raise ValueError("bean must not be None")
        self.get_property_injector(type(bean)).inject_properties(bean, properties, locator=self.locator)

    def get_parameter(
        self,
        param_type: Type[T],
        metadata: Sequence[Any] = (),
        properties: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> T:
        """Resolve a single value the way a parameter of ``param_type`` would be."""
        return self.get_parameter_provider(param_type).get_parameter(param_type, metadata, properties, self.locator)

    def __repr__(self) -> str:
        return f"ModuleContext(locator={self.locator!r}, parent={'yes' if self.parent else 'no'})"
