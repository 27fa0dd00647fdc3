"""
Mortar Faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults (domains and property files)
- RESOLUTION faults (builders, metadata, parameters, conversions, cycles)
- INVOCATION faults (the construction call itself failed)
"""

from typing import Any, Optional, Sequence

from .core import Fault, FaultDomain, Severity


def _type_name(obj: Any) -> str:
    if obj is None:
        return "None"
    if isinstance(obj, str):
        return obj
    return getattr(obj, "__qualname__", None) or repr(obj)


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            metadata=metadata,
        )


class DuplicateDomainFault(ConfigFault):
    """A config domain was explicitly created twice."""

    def __init__(self, domain: str, **kwargs):
        super().__init__(
            code="DUPLICATE_DOMAIN",
            message=f"Config domain '{domain}' already exists",
            severity=Severity.ERROR,
            metadata={"domain": domain, **kwargs.get("metadata", {})},
        )


class PropertyFileFault(ConfigFault):
    """Property file (or its folder) is missing or unreadable."""

    def __init__(self, domain: str, path: str, reason: str, **kwargs):
        super().__init__(
            code="PROPERTY_FILE_UNAVAILABLE",
            message=f"Cannot load domain '{domain}' from '{path}': {reason}",
            metadata={"domain": domain, "path": path, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# RESOLUTION Faults
# ============================================================================

class ResolutionFault(Fault):
    """Base class for module resolution faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.RESOLUTION,
            severity=severity,
            metadata=metadata,
        )


class NoBuilderFault(ResolutionFault):
    """Module has no designated builder constructor and no zero-argument one."""

    def __init__(self, module_type: Any, **kwargs):
        name = _type_name(module_type)
        super().__init__(
            code="NO_BUILDABLE_CONSTRUCTOR",
            message=(
                f"{name} has no buildable constructor\n\n"
                f"Suggested fixes:\n"
                f"  1. Tag {name}.__init__ with @provide_module\n"
                f"  2. Give every __init__ parameter a default value\n"
                f"  3. Declare a provider with @module(provider=...)"
            ),
            metadata={"module": name, **kwargs.get("metadata", {})},
        )


class IncompatibleProviderFault(ResolutionFault):
    """Provider exposes no builder returning the module type and is not a subtype of it."""

    def __init__(self, module_type: Any, provider: Any, **kwargs):
        name = _type_name(module_type)
        provider_name = _type_name(provider)
        super().__init__(
            code="INCOMPATIBLE_PROVIDER",
            message=(
                f"Provider {provider_name} does not expose a compatible builder for {name}\n\n"
                f"Suggested fixes:\n"
                f"  1. Add a @provide_module method returning {name} to {provider_name}\n"
                f"  2. Make {provider_name} a subclass of {name}"
            ),
            metadata={"module": name, "provider": provider_name, **kwargs.get("metadata", {})},
        )


class AmbiguousMetadataFault(ResolutionFault):
    """An injection point carries more than one Property block."""

    def __init__(self, target: Any, count: int, **kwargs):
        name = _type_name(target)
        super().__init__(
            code="AMBIGUOUS_METADATA",
            message=f"Injection point of type {name} carries {count} Property blocks, expected at most one",
            metadata={"target": name, "count": count, **kwargs.get("metadata", {})},
        )


class UnresolvableParameterFault(ResolutionFault):
    """No config value, default entry or usable default literal for a parameter."""

    def __init__(
        self,
        target: Any,
        domain: Optional[str] = None,
        name: Optional[str] = None,
        reason: str = "no value and no default literal",
        **kwargs,
    ):
        type_name = _type_name(target)
        where = f" ({domain}:{name})" if name is not None else ""
        super().__init__(
            code="UNRESOLVABLE_PARAMETER",
            message=f"Cannot resolve parameter of type {type_name}{where}: {reason}",
            metadata={
                "target": type_name,
                "domain": domain,
                "name": name,
                **kwargs.get("metadata", {}),
            },
        )


class ConversionFault(ResolutionFault):
    """A value could not be coerced into the requested type."""

    def __init__(self, value: Any, target: Any, reason: str = "no mapper can convert it", **kwargs):
        type_name = _type_name(target)
        super().__init__(
            code="CONVERSION_FAILED",
            message=f"Cannot convert {value!r} to {type_name}: {reason}",
            metadata={"value": repr(value), "target": type_name, **kwargs.get("metadata", {})},
        )


class NotSubtypeFault(ResolutionFault):
    """A registered or configured class is not a subtype of the expected kind."""

    def __init__(self, location: str, expected: Any, actual: Any, **kwargs):
        super().__init__(
            code="NOT_SUBTYPE",
            message=(
                f"{_type_name(actual)} found at {location} is not a subtype of "
                f"{_type_name(expected)}"
            ),
            metadata={
                "location": location,
                "expected": _type_name(expected),
                "actual": _type_name(actual),
                **kwargs.get("metadata", {}),
            },
        )


class ClassNotFoundFault(ResolutionFault):
    """A class name could not be imported."""

    def __init__(self, class_name: str, reason: str, **kwargs):
        super().__init__(
            code="CLASS_NOT_FOUND",
            message=(
                f"Cannot load class '{class_name}': {reason}\n\n"
                f"Suggested fixes:\n"
                f"  1. Use the 'package.module:ClassName' form\n"
                f"  2. Check that the module is importable"
            ),
            metadata={"class_name": class_name, "reason": reason, **kwargs.get("metadata", {})},
        )


class ModuleCycleFault(ResolutionFault):
    """A module or loader resolution re-entered itself."""

    def __init__(self, cycle: Sequence[str], **kwargs):
        cycle = list(cycle)
        cycle_str = " -> ".join(cycle)
        super().__init__(
            code="MODULE_CYCLE",
            message=(
                f"Circular module resolution detected: {cycle_str}\n\n"
                f"Suggested fixes:\n"
                f"  1. Register a provider instance so the provider need not be loaded\n"
                f"  2. Use a static builder method on one side of the cycle\n"
                f"  3. Check moduleProvider / moduleLoader registrations for self-references"
            ),
            metadata={"cycle": cycle, **kwargs.get("metadata", {})},
        )
        self.cycle = cycle


# ============================================================================
# INVOCATION Faults
# ============================================================================

class InvocationFault(Fault):
    """Base class for faults raised by builder invocation."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.INVOCATION,
            severity=severity,
            metadata=metadata,
        )


class ConstructionFault(InvocationFault):
    """The builder (constructor or provider method) raised."""

    def __init__(self, target: Any, cause: BaseException, **kwargs):
        name = getattr(target, "__qualname__", None) or repr(target)
        super().__init__(
            code="CONSTRUCTION_FAILED",
            message=f"Construction via {name} failed: {type(cause).__name__}: {cause}",
            metadata={"target": name, "cause": repr(cause), **kwargs.get("metadata", {})},
        )
        self.cause = cause
