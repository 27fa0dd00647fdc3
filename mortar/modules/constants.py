"""
Reserved property names and naming rules for module resolution.

Every module type owns a config domain named after it
(``module.qualname``). Collaborators for a type are looked up in that
domain first and then in the shared default module domain under a
type-qualified name, so all modules can share one fallback domain
without colliding.
"""

from typing import Any, Optional, Type

DEFAULT_MODULE_DOMAIN = "mortar.modules"

LOADER_PROPERTY = "moduleLoader"
PROVIDER_PROPERTY = "moduleProvider"
PARAMETER_PROVIDER_PROPERTY = "parameterProvider"
PROPERTY_INJECTOR_PROPERTY = "propertyInjector"
CONFIG_MANAGER_PROPERTY = "configManager"
MAPPER_FACTORY_PROPERTY = "mapperFactory"

CLASS_SUFFIX = ".class"
MAPPER_INFIX = ".mapper."

# Sentinel default literals
NULL_VAL = "$NULL$"
LOAD_VAL = "$LOAD$"


def domain_for(type_: Type) -> str:
    """Canonical domain of a type: ``module.qualname``."""
    if type_ is None:
        raise ValueError("type must not be None")
    return f"{type_.__module__}.{type_.__qualname__}"


def class_property(name: str) -> str:
    """The class variant of a property name."""
    return name + CLASS_SUFFIX


def qualified_name(type_: Optional[Type], name: str) -> str:
    """Type-qualified property name, or ``name`` itself for no type / object."""
    if type_ is None or type_ is object:
        return name
    return f"{domain_for(type_)}.{name}"


def mapper_name(source: Type, target: Type) -> str:
    """Property name of the mapper converting ``source`` values into ``target``."""
    return f"{domain_for(source)}{MAPPER_INFIX}{domain_for(target)}"


def describe(obj: Any) -> str:
    """Short printable name for a type, a class-name string or an instance."""
    if isinstance(obj, str):
        return obj
    if isinstance(obj, type):
        return obj.__qualname__
    return type(obj).__qualname__
