"""
Mortar Modules - construction of configured object graphs.

A module is any class the engine builds: it finds the class's provider,
picks a builder (tagged provider method, designated constructor or
zero-argument constructor), resolves every parameter from configuration,
declared defaults or nested loads, and calls it.
"""

from .constants import (
    DEFAULT_MODULE_DOMAIN,
    LOADER_PROPERTY,
    PROVIDER_PROPERTY,
    PARAMETER_PROVIDER_PROPERTY,
    PROPERTY_INJECTOR_PROPERTY,
    CONFIG_MANAGER_PROPERTY,
    MAPPER_FACTORY_PROPERTY,
    NULL_VAL,
    LOAD_VAL,
    domain_for,
    qualified_name,
    class_property,
    mapper_name,
)

from .metadata import (
    Property,
    ModuleSpec,
    module,
    provide_module,
    as_property,
    load_class,
    BuilderKind,
    BuilderSpec,
    InjectionPoint,
    ModuleMetadataCache,
)

from .resolution import ResolveCtx, resolve_ctx

from .locator import (
    PropertyLocator,
    DefaultPropertyLocator,
    RevertedPropertyLocator,
    DynamicPropertyLocator,
    FastDynamicPropertyLocator,
)

from .parameters import ParameterProvider, DefaultParameterProvider
from .executor import MethodConstructorExecutor
from .loader import ModuleLoader, DefaultModuleLoader
from .injector import PropertyInjector, DefaultPropertyInjector
from .context import ModuleContext
from .manager import ModuleManager

from .diagnostics import (
    ModuleEventType,
    ModuleEvent,
    DiagnosticListener,
    LoggingDiagnosticListener,
    ModuleDiagnostics,
)

__all__ = [
    # Naming
    "DEFAULT_MODULE_DOMAIN",
    "LOADER_PROPERTY",
    "PROVIDER_PROPERTY",
    "PARAMETER_PROVIDER_PROPERTY",
    "PROPERTY_INJECTOR_PROPERTY",
    "CONFIG_MANAGER_PROPERTY",
    "MAPPER_FACTORY_PROPERTY",
    "NULL_VAL",
    "LOAD_VAL",
    "domain_for",
    "qualified_name",
    "class_property",
    "mapper_name",

    # Metadata
    "Property",
    "ModuleSpec",
    "module",
    "provide_module",
    "as_property",
    "load_class",
    "BuilderKind",
    "BuilderSpec",
    "InjectionPoint",
    "ModuleMetadataCache",

    # Resolution
    "ResolveCtx",
    "resolve_ctx",

    # Locators
    "PropertyLocator",
    "DefaultPropertyLocator",
    "RevertedPropertyLocator",
    "DynamicPropertyLocator",
    "FastDynamicPropertyLocator",

    # Collaborators
    "ParameterProvider",
    "DefaultParameterProvider",
    "MethodConstructorExecutor",
    "ModuleLoader",
    "DefaultModuleLoader",
    "PropertyInjector",
    "DefaultPropertyInjector",
    "ModuleContext",
    "ModuleManager",

    # Diagnostics
    "ModuleEventType",
    "ModuleEvent",
    "DiagnosticListener",
    "LoggingDiagnosticListener",
    "ModuleDiagnostics",
]
