"""
Property locators - where, and in what order, collaborators are looked up.

For a module type T and a kind of collaborator (loader, provider,
parameter provider, property injector, value mapper) a locator searches:

1. T's own domain under the kind's property name (``moduleLoader``)
2. the default module domain under the type-qualified name
   (``pkg.mod.T.moduleLoader``)
3. for the ``*_with_default`` lookups, the default module domain under
   the plain name

Class lookups additionally accept the ``.class`` variant of each name,
holding a class or an importable class name.

Every step runs against two sources: a config (any PropertySource, for
example a ConfigManager) and an override map ``{domain: {name: value}}``.
The variants differ only in the order of those sources:

- DefaultPropertyLocator: config, then override map
- RevertedPropertyLocator: override map, then config
- DynamicPropertyLocator: its own fixed map, then the inner locator's order
- FastDynamicPropertyLocator: a fixed map or live source first, then the
  inner locator's order (the default order when there is none)
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple, Type, Union

from ..faults import ClassNotFoundFault, NotSubtypeFault
from ..mapping import Mapper, MapperFactory
from ..properties import MapPropertySource, PropertySource, lookup, matches_type
from .constants import (
    DEFAULT_MODULE_DOMAIN,
    LOADER_PROPERTY,
    MAPPER_FACTORY_PROPERTY,
    PARAMETER_PROVIDER_PROPERTY,
    PROPERTY_INJECTOR_PROPERTY,
    PROVIDER_PROPERTY,
    class_property,
    domain_for,
    mapper_name,
    qualified_name,
)
from .metadata import is_subtype, load_class
from .resolution import resolve_ctx

Properties = Optional[Mapping[str, Mapping[str, Any]]]
Source = Tuple[Optional[PropertySource], Properties]


class PropertyLocator:
    """
    Base locator. Subclasses define ``_sources``, the ordered list of
    (config, override map) pairs each lookup walks through; every pair
    has exactly one side set.
    """

    def _sources(self, config: Optional[PropertySource], properties: Properties) -> List[Source]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Single-source primitives
    # ------------------------------------------------------------------

    @staticmethod
    def _read(domain: str, name: str, type_: Optional[Type], config: Optional[PropertySource], properties: Properties) -> Any:
        if config is not None:
            value = config.get_property(domain, name, type_)
            if value is not None:
                return value
        if properties:
            value = lookup(properties, domain, name)
            if value is not None and matches_type(value, type_):
                return value
        return None

    @staticmethod
    def _raw(domain: str, name: str, config: Optional[PropertySource], properties: Properties) -> Any:
        # collaborator entries are never coerced
        if config is not None:
            value = config.get_property(domain, name, None)
            if value is not None:
                return value
        return lookup(properties, domain, name)

    def _object_in(self, domain: str, name: str, object_type: Type, config, properties) -> Any:
        value = self._raw(domain, name, config, properties)
        if value is None or isinstance(value, (type, str)) or not matches_type(value, object_type):
            return None
        return value

    def _object(self, name: str, module_type: Type, object_type: Type, config, properties, with_default: bool) -> Any:
        value = self._object_in(domain_for(module_type), name, object_type, config, properties)
        if value is None:
            value = self._object_in(DEFAULT_MODULE_DOMAIN, qualified_name(module_type, name), object_type, config, properties)
        if value is None and with_default:
            value = self._object_in(DEFAULT_MODULE_DOMAIN, name, object_type, config, properties)
        return value

    def _class_in(self, domain: str, name: str, class_type: Type, config, properties) -> Optional[Type]:
        found = self._raw(domain, name, config, properties)
        if isinstance(found, type):
            cls = found
        elif found is not None and not isinstance(found, str) and matches_type(found, class_type):
            cls = type(found)
        else:
            ref = self._raw(domain, class_property(name), config, properties)
            if ref is None:
                return None
            if isinstance(ref, str):
                cls = load_class(ref)
            elif isinstance(ref, type):
                cls = ref
            else:
                raise ClassNotFoundFault(
                    repr(ref),
                    f"property {domain}:{class_property(name)} must be a class or a class name",
                )
        if class_type is not object and not is_subtype(cls, class_type):
            raise NotSubtypeFault(f"{domain}:{name}", class_type, cls)
        return cls

    def _class(self, name: str, module_type: Type, class_type: Type, config, properties, with_default: bool) -> Optional[Type]:
        cls = self._class_in(domain_for(module_type), name, class_type, config, properties)
        if cls is None:
            cls = self._class_in(DEFAULT_MODULE_DOMAIN, qualified_name(module_type, name), class_type, config, properties)
        if cls is None and with_default:
            cls = self._class_in(DEFAULT_MODULE_DOMAIN, name, class_type, config, properties)
        return cls

    # ------------------------------------------------------------------
    # Generic lookups
    # ------------------------------------------------------------------

    def get_property(
        self,
        domain: str,
        name: str,
        type_: Optional[Type] = None,
        config: Optional[PropertySource] = None,
        properties: Properties = None,
    ) -> Any:
        """Value of (domain, name) from the first source that has one."""
        for source, props in self._sources(config, properties):
            value = self._read(domain, name, type_, source, props)
            if value is not None:
                return value
        return None

    def get_config_object(self, name: str, module_type: Type, object_type: Type, config=None, properties: Properties = None) -> Any:
        for source, props in self._sources(config, properties):
            value = self._object(name, module_type, object_type, source, props, with_default=False)
            if value is not None:
                return value
        return None

    def get_config_object_with_default(self, name: str, module_type: Type, object_type: Type, config=None, properties: Properties = None) -> Any:
        for source, props in self._sources(config, properties):
            value = self._object(name, module_type, object_type, source, props, with_default=True)
            if value is not None:
                return value
        return None

    def get_config_class_for_domain(self, domain: str, name: str, class_type: Type, config=None, properties: Properties = None) -> Optional[Type]:
        for source, props in self._sources(config, properties):
            cls = self._class_in(domain, name, class_type, source, props)
            if cls is not None:
                return cls
        return None

    def get_config_class_with_default_for_domain(
        self,
        domain: str,
        name: str,
        class_type: Type,
        default_type: Optional[Type],
        config=None,
        properties: Properties = None,
    ) -> Optional[Type]:
        cls = self.get_config_class_for_domain(domain, name, class_type, config, properties)
        return default_type if cls is None else cls

    def get_config_class(self, name: str, module_type: Type, class_type: Type, config=None, properties: Properties = None) -> Optional[Type]:
        for source, props in self._sources(config, properties):
            cls = self._class(name, module_type, class_type, source, props, with_default=False)
            if cls is not None:
                return cls
        return None

    def get_config_class_with_default(
        self,
        name: str,
        module_type: Type,
        class_type: Type,
        default_type: Optional[Type],
        config=None,
        properties: Properties = None,
    ) -> Optional[Type]:
        for source, props in self._sources(config, properties):
            cls = self._class(name, module_type, class_type, source, props, with_default=True)
            if cls is not None:
                return cls
        return default_type

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def get_provider(self, module_type: Type, provider_type: Type = object, config=None, properties: Properties = None) -> Any:
        """A registered provider instance for ``module_type``."""
        return self.get_config_object(PROVIDER_PROPERTY, module_type, provider_type, config, properties)

    def get_provider_class(self, module_type: Type, config=None, properties: Properties = None) -> Optional[Type]:
        """The provider class for ``module_type``; there is no default."""
        return self.get_config_class(PROVIDER_PROPERTY, module_type, object, config, properties)

    # ------------------------------------------------------------------
    # Collaborator resolution
    # ------------------------------------------------------------------

    def find_collaborator(
        self,
        name: str,
        module_type: Type,
        kind: Type,
        default_type: Optional[Type],
        config=None,
        properties: Properties = None,
    ) -> Tuple[Any, Optional[Type]]:
        """
        Registered collaborator for ``module_type`` as ``(instance, class)``.

        Each source is searched in full before the next: type scope
        (instance, then class), then default scope (instance, then class).
        A class registered for one type is therefore not shadowed by a
        default instance in the same source. Exactly one side is set unless
        nothing is registered and ``default_type`` is None.
        """
        for source, props in self._sources(config, properties):
            instance = self._object(name, module_type, kind, source, props, with_default=False)
            if instance is not None:
                return instance, None
            cls = self._class(name, module_type, kind, source, props, with_default=False)
            if cls is not None:
                return None, cls
            instance = self._object_in(DEFAULT_MODULE_DOMAIN, name, kind, source, props)
            if instance is not None:
                return instance, None
            cls = self._class_in(DEFAULT_MODULE_DOMAIN, name, kind, source, props)
            if cls is not None:
                return None, cls
        return None, default_type

    def build_collaborator(
        self,
        cls: Type,
        default_type: Type,
        config=None,
        properties: Properties = None,
        *,
        cache=None,
        diagnostics=None,
    ) -> Any:
        """
        Instantiate a collaborator class: the default class directly, any
        other class through a loader resolved for it.

        ``cache`` and ``diagnostics`` are handed to a default-class
        instance so it shares the caller's metadata cache and listeners.
        """
        if cls is default_type:
            return default_type(config, locator=self, cache=cache, diagnostics=diagnostics)
        return self._load_collaborator(cls, config, properties)

    def _resolve(self, name: str, module_type: Type, kind: Type, default_type: Type, config, properties: Properties) -> Any:
        instance, cls = self.find_collaborator(name, module_type, kind, default_type, config, properties)
        if instance is not None:
            return instance
        return self.build_collaborator(cls, default_type, config, properties)

    def _load_collaborator(self, cls: Type, config, properties: Properties) -> Any:
        with resolve_ctx.resolving("loader", cls):
            loader = self.resolve_loader(cls, config, properties)
        return loader.load(cls, locator=self)

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    def get_loader(self, module_type: Type, config=None, properties: Properties = None):
        from .loader import ModuleLoader
        return self.get_config_object_with_default(LOADER_PROPERTY, module_type, ModuleLoader, config, properties)

    def get_loader_class(self, module_type: Type, config=None, properties: Properties = None) -> Type:
        from .loader import DefaultModuleLoader, ModuleLoader
        return self.get_config_class_with_default(
            LOADER_PROPERTY, module_type, ModuleLoader, DefaultModuleLoader, config, properties
        )

    def get_default_loader_class(self, config=None, properties: Properties = None) -> Type:
        from .loader import DefaultModuleLoader, ModuleLoader
        return self.get_config_class_with_default_for_domain(
            DEFAULT_MODULE_DOMAIN, LOADER_PROPERTY, ModuleLoader, DefaultModuleLoader, config, properties
        )

    def resolve_loader(self, module_type: Type, config=None, properties: Properties = None):
        """
        A usable loader for ``module_type``: a registered instance, a new
        DefaultModuleLoader, or an instance of the configured loader class
        loaded through the engine itself.
        """
        from .loader import DefaultModuleLoader, ModuleLoader
        return self._resolve(LOADER_PROPERTY, module_type, ModuleLoader, DefaultModuleLoader, config, properties)

    # ------------------------------------------------------------------
    # Parameter providers
    # ------------------------------------------------------------------

    def get_parameter_provider(self, module_type: Type, config=None, properties: Properties = None):
        from .parameters import ParameterProvider
        return self.get_config_object_with_default(
            PARAMETER_PROVIDER_PROPERTY, module_type, ParameterProvider, config, properties
        )

    def get_parameter_provider_class(self, module_type: Type, config=None, properties: Properties = None) -> Type:
        from .parameters import DefaultParameterProvider, ParameterProvider
        return self.get_config_class_with_default(
            PARAMETER_PROVIDER_PROPERTY, module_type, ParameterProvider, DefaultParameterProvider, config, properties
        )

    def get_default_parameter_provider_class(self, config=None, properties: Properties = None) -> Type:
        from .parameters import DefaultParameterProvider, ParameterProvider
        return self.get_config_class_with_default_for_domain(
            DEFAULT_MODULE_DOMAIN, PARAMETER_PROVIDER_PROPERTY, ParameterProvider,
            DefaultParameterProvider, config, properties,
        )

    def resolve_parameter_provider(self, module_type: Type, config=None, properties: Properties = None):
        from .parameters import DefaultParameterProvider, ParameterProvider
        return self._resolve(
            PARAMETER_PROVIDER_PROPERTY, module_type, ParameterProvider, DefaultParameterProvider, config, properties
        )

    # ------------------------------------------------------------------
    # Property injectors
    # ------------------------------------------------------------------

    def get_property_injector(self, module_type: Type, config=None, properties: Properties = None):
        from .injector import PropertyInjector
        return self.get_config_object_with_default(
            PROPERTY_INJECTOR_PROPERTY, module_type, PropertyInjector, config, properties
        )

    def get_property_injector_class(self, module_type: Type, config=None, properties: Properties = None) -> Type:
        from .injector import DefaultPropertyInjector, PropertyInjector
        return self.get_config_class_with_default(
            PROPERTY_INJECTOR_PROPERTY, module_type, PropertyInjector, DefaultPropertyInjector, config, properties
        )

    def get_default_property_injector_class(self, config=None, properties: Properties = None) -> Type:
        from .injector import DefaultPropertyInjector, PropertyInjector
        return self.get_config_class_with_default_for_domain(
            DEFAULT_MODULE_DOMAIN, PROPERTY_INJECTOR_PROPERTY, PropertyInjector,
            DefaultPropertyInjector, config, properties,
        )

    def resolve_property_injector(self, module_type: Type, config=None, properties: Properties = None):
        from .injector import DefaultPropertyInjector, PropertyInjector
        return self._resolve(
            PROPERTY_INJECTOR_PROPERTY, module_type, PropertyInjector, DefaultPropertyInjector, config, properties
        )

    # ------------------------------------------------------------------
    # Value mappers
    # ------------------------------------------------------------------

    def get_mapper(self, module_type: Type, source: Type, target: Type, config=None, properties: Properties = None) -> Mapper:
        """
        Mapper converting ``source`` values into ``target`` for ``module_type``.

        Looks for a mapper instance, then a mapper class, then a mapper
        factory (instance or class), then the built-in MapperFactory.
        """
        name = mapper_name(source, target)
        mapper = self.get_config_object_with_default(name, module_type, Mapper, config, properties)
        if mapper is not None:
            return mapper
        mapper_class = self.get_config_class_with_default(name, module_type, Mapper, None, config, properties)
        if mapper_class is not None:
            return self._load_collaborator(mapper_class, config, properties)
        return self._mapper_factory(module_type, config, properties).get_mapper(source, target)

    def _mapper_factory(self, module_type: Type, config, properties: Properties) -> MapperFactory:
        factory = self.get_config_object_with_default(
            MAPPER_FACTORY_PROPERTY, module_type, MapperFactory, config, properties
        )
        if factory is not None:
            return factory
        factory_class = self.get_config_class_with_default(
            MAPPER_FACTORY_PROPERTY, module_type, MapperFactory, None, config, properties
        )
        if factory_class is not None:
            return self._load_collaborator(factory_class, config, properties)
        return MapperFactory()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class DefaultPropertyLocator(PropertyLocator):
    """Config first, override map second."""

    def _sources(self, config, properties) -> List[Source]:
        return [(config, None), (None, properties)]


class RevertedPropertyLocator(PropertyLocator):
    """Override map first, config second."""

    def _sources(self, config, properties) -> List[Source]:
        return [(None, properties), (config, None)]


class DynamicPropertyLocator(PropertyLocator):
    """
    Overlay of a fixed override map on top of another locator.

    The map is consulted before anything else; after that the inner
    locator's own source order applies. Used for one-off per-call
    overrides that must not touch shared configuration.

    Example:
        ```python
        locator = DynamicPropertyLocator({"app": {"port": 9090}})
        locator.get_property("app", "port", int, config)   # 9090
        ```
    """

    __slots__ = ("_overrides", "_inner")

    def __init__(
        self,
        properties: Optional[Mapping[str, Mapping[str, Any]]] = None,
        inner: Optional[PropertyLocator] = None,
    ):
        self._overrides = {domain: dict(entries) for domain, entries in (properties or {}).items()}
        self._inner = inner or DefaultPropertyLocator()

    @property
    def inner(self) -> PropertyLocator:
        return self._inner

    @property
    def overrides(self) -> Mapping[str, Mapping[str, Any]]:
        return self._overrides

    def _sources(self, config, properties) -> List[Source]:
        return [(None, self._overrides)] + self._inner._sources(config, properties)

    def __repr__(self) -> str:
        return f"DynamicPropertyLocator(domains={sorted(self._overrides)}, inner={self._inner!r})"


class FastDynamicPropertyLocator(DefaultPropertyLocator):
    """
    Fixed overrides checked first, then the inner locator's order (config,
    then override map, by default). Accepts either a nested dict or a live
    PropertySource (for example a PropertyHandler whose writes should take
    effect). Stacking these gives layered scopes where each layer is
    searched in full before the next.
    """

    __slots__ = ("_overlay", "_inner")

    def __init__(
        self,
        properties: Union[PropertySource, Mapping[str, Mapping[str, Any]], None] = None,
        inner: Optional[PropertyLocator] = None,
    ):
        if properties is None or isinstance(properties, Mapping):
            properties = MapPropertySource(properties)
        self._overlay = properties
        self._inner = inner

    @property
    def overlay(self) -> PropertySource:
        return self._overlay

    @property
    def inner(self) -> Optional[PropertyLocator]:
        return self._inner

    def _sources(self, config, properties) -> List[Source]:
        if self._inner is None:
            return [(self._overlay, None), (config, None), (None, properties)]
        return [(self._overlay, None)] + self._inner._sources(config, properties)

    def __repr__(self) -> str:
        return f"FastDynamicPropertyLocator(overlay={self._overlay!r}, inner={self._inner!r})"
