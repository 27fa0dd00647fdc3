"""
Mortar - configuration-driven object construction

Complete integration of:
- Config: Named property domains with typed, coerced access and property files
- Properties: Property sources, override maps and handlers
- Mapping: Pluggable value mappers between stored and requested types
- Modules: Loaders, providers, parameter providers and property injectors
- Faults: Structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Config
# ============================================================================

from .config import ConfigDomain, ConfigManager, DEFAULT_CONFIG_DOMAIN
from .mapping import Mapper, MapperFactory, StringMapper
from .properties import (
    PropertySource,
    PropertyWriter,
    MapPropertySource,
    ChainPropertySource,
    PropertyHandler,
    new_handler,
)

# ============================================================================
# Modules
# ============================================================================

from .modules import (
    Property,
    module,
    provide_module,
    as_property,
    NULL_VAL,
    LOAD_VAL,
    DEFAULT_MODULE_DOMAIN,
    PropertyLocator,
    DefaultPropertyLocator,
    RevertedPropertyLocator,
    DynamicPropertyLocator,
    FastDynamicPropertyLocator,
    ParameterProvider,
    DefaultParameterProvider,
    ModuleLoader,
    DefaultModuleLoader,
    PropertyInjector,
    DefaultPropertyInjector,
    ModuleContext,
    ModuleManager,
    ModuleMetadataCache,
    ModuleDiagnostics,
    ModuleEventType,
)

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ConfigFault,
    DuplicateDomainFault,
    PropertyFileFault,
    ResolutionFault,
    NoBuilderFault,
    IncompatibleProviderFault,
    AmbiguousMetadataFault,
    UnresolvableParameterFault,
    ConversionFault,
    NotSubtypeFault,
    ClassNotFoundFault,
    ModuleCycleFault,
    InvocationFault,
    ConstructionFault,
)

__all__ = [
    "__version__",

    # Config
    "ConfigDomain",
    "ConfigManager",
    "DEFAULT_CONFIG_DOMAIN",
    "Mapper",
    "MapperFactory",
    "StringMapper",
    "PropertySource",
    "PropertyWriter",
    "MapPropertySource",
    "ChainPropertySource",
    "PropertyHandler",
    "new_handler",

    # Modules
    "Property",
    "module",
    "provide_module",
    "as_property",
    "NULL_VAL",
    "LOAD_VAL",
    "DEFAULT_MODULE_DOMAIN",
    "PropertyLocator",
    "DefaultPropertyLocator",
    "RevertedPropertyLocator",
    "DynamicPropertyLocator",
    "FastDynamicPropertyLocator",
    "ParameterProvider",
    "DefaultParameterProvider",
    "ModuleLoader",
    "DefaultModuleLoader",
    "PropertyInjector",
    "DefaultPropertyInjector",
    "ModuleContext",
    "ModuleManager",
    "ModuleMetadataCache",
    "ModuleDiagnostics",
    "ModuleEventType",

    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "DuplicateDomainFault",
    "PropertyFileFault",
    "ResolutionFault",
    "NoBuilderFault",
    "IncompatibleProviderFault",
    "AmbiguousMetadataFault",
    "UnresolvableParameterFault",
    "ConversionFault",
    "NotSubtypeFault",
    "ClassNotFoundFault",
    "ModuleCycleFault",
    "InvocationFault",
    "ConstructionFault",
]
