"""
Mortar Faults - structured errors for configuration and module resolution.

Every error raised by the engine is a Fault carrying a stable code,
a domain and a severity, so callers can branch on ``fault.code`` or
``fault.domain`` instead of parsing messages.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    # Config
    ConfigFault,
    DuplicateDomainFault,
    PropertyFileFault,

    # Resolution
    ResolutionFault,
    NoBuilderFault,
    IncompatibleProviderFault,
    AmbiguousMetadataFault,
    UnresolvableParameterFault,
    ConversionFault,
    NotSubtypeFault,
    ClassNotFoundFault,
    ModuleCycleFault,

    # Invocation
    InvocationFault,
    ConstructionFault,
)

__all__ = [
    # Core
    "Fault",
    "FaultDomain",
    "Severity",

    # Config
    "ConfigFault",
    "DuplicateDomainFault",
    "PropertyFileFault",

    # Resolution
    "ResolutionFault",
    "NoBuilderFault",
    "IncompatibleProviderFault",
    "AmbiguousMetadataFault",
    "UnresolvableParameterFault",
    "ConversionFault",
    "NotSubtypeFault",
    "ClassNotFoundFault",
    "ModuleCycleFault",

    # Invocation
    "InvocationFault",
    "ConstructionFault",
]
