"""
Declarative module metadata and the per-type descriptor cache.

Metadata surface:

    @module(provider=WidgetFactory, properties=[Property("size", domain="ui", default="3")])
    class Widget:
        color: Annotated[str, Property("color", domain="ui", default="red")]

    class WidgetFactory:
        @staticmethod
        @provide_module
        def create(size: Annotated[int, Property("size", domain="ui")]) -> Widget:
            ...

Descriptors (InjectionPoint, BuilderSpec) are computed once per type by
a ModuleMetadataCache owned by the engine, so nothing is introspected
again on later loads.
"""

from __future__ import annotations

import importlib
import inspect
import threading
import types
from dataclasses import dataclass
from enum import Enum
from typing import (
    Annotated,
    Any,
    Callable,
    ClassVar,
    Dict,
    Final,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from ..config import DEFAULT_CONFIG_DOMAIN
from ..faults import AmbiguousMetadataFault, ClassNotFoundFault, NoBuilderFault
from .constants import (
    DEFAULT_MODULE_DOMAIN,
    LOAD_VAL,
    NULL_VAL,
    PROVIDER_PROPERTY,
    class_property,
    domain_for,
)

T = TypeVar("T")

MODULE_ATTR = "__mortar_module__"
PROVIDES_ATTR = "__mortar_provides__"
PROPERTY_ATTR = "__mortar_property__"

__all__ = [
    "NULL_VAL",
    "LOAD_VAL",
    "Property",
    "ModuleSpec",
    "module",
    "provide_module",
    "as_property",
    "get_module_spec",
    "get_class_property",
    "find_property",
    "load_class",
    "runtime_type",
    "is_subtype",
    "BuilderKind",
    "InjectionPoint",
    "BuilderSpec",
    "select_builder",
    "ModuleMetadataCache",
]


# ============================================================================
# Markers
# ============================================================================

@dataclass(frozen=True, slots=True)
class Property:
    """
    Injection point metadata: where to look up a value and what to use
    when nothing is configured.

    ``default`` is a string literal converted to the target type, or one
    of the sentinels NULL_VAL (None) and LOAD_VAL (load the target type
    as a nested module).
    """

    name: str
    domain: str = DEFAULT_CONFIG_DOMAIN
    default: str = NULL_VAL


@dataclass(frozen=True, slots=True)
class ModuleSpec:
    """Class-level module metadata attached by @module."""

    provider: Optional[Union[Type, str]] = None
    properties: Tuple[Property, ...] = ()


def module(
    *,
    provider: Optional[Union[Type, str]] = None,
    properties: Sequence[Property] = (),
) -> Callable[[Type[T]], Type[T]]:
    """
    Decorator declaring how a class is built.

    Args:
        provider: Class (or "package.module:Name" string) that builds this module
        properties: Default property entries used when no live config exists

    The metadata is inherited by subclasses.
    """
    spec = ModuleSpec(provider=provider, properties=tuple(properties))

    def decorator(cls: Type[T]) -> Type[T]:
        setattr(cls, MODULE_ATTR, spec)
        return cls

    return decorator


def provide_module(func: Any) -> Any:
    """
    Mark a builder: an instance method, a static/class method, or
    ``__init__`` as the designated constructor.
    """
    target = func.__func__ if isinstance(func, (staticmethod, classmethod)) else func
    setattr(target, PROVIDES_ATTR, True)
    return func


def as_property(name: str, domain: str = DEFAULT_MODULE_DOMAIN) -> Callable[[Type[T]], Type[T]]:
    """
    Decorator naming the property a collaborator class registers itself
    under (see ModuleManager.register_as_property).
    """
    marker = Property(name=name, domain=domain)

    def decorator(cls: Type[T]) -> Type[T]:
        setattr(cls, PROPERTY_ATTR, marker)
        return cls

    return decorator


def get_module_spec(cls: Type) -> Optional[ModuleSpec]:
    spec = getattr(cls, MODULE_ATTR, None)
    return spec if isinstance(spec, ModuleSpec) else None


def get_class_property(cls: Type) -> Optional[Property]:
    marker = getattr(cls, PROPERTY_ATTR, None)
    return marker if isinstance(marker, Property) else None


def find_property(metadata: Sequence[Any], target: Any = None) -> Optional[Property]:
    """
    The single Property among ``metadata``, None if there is none.

    Raises:
        AmbiguousMetadataFault: more than one Property is present
    """
    found = [item for item in metadata if isinstance(item, Property)]
    if len(found) > 1:
        raise AmbiguousMetadataFault(target, len(found))
    return found[0] if found else None


# ============================================================================
# Type helpers
# ============================================================================

def load_class(name: Union[str, Type]) -> Type:
    """
    Import a class from ``"package.module:Qual.Name"`` or ``"package.module.Name"``.

    Raises:
        ClassNotFoundFault: the module or attribute cannot be imported
    """
    if isinstance(name, type):
        return name

    module_path, sep, attr_path = name.partition(":")
    if not sep:
        module_path, _, attr_path = name.rpartition(".")
    if not module_path or not attr_path:
        raise ClassNotFoundFault(name, "expected 'package.module:ClassName'")

    try:
        obj: Any = importlib.import_module(module_path)
    except ImportError as exc:
        raise ClassNotFoundFault(name, str(exc)) from exc

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ClassNotFoundFault(name, str(exc)) from exc

    if not isinstance(obj, type):
        raise ClassNotFoundFault(name, f"{type(obj).__name__} is not a class")
    return obj


def _split_annotated(annotation: Any) -> Tuple[Any, Tuple[Any, ...]]:
    if get_origin(annotation) is Annotated:
        args = get_args(annotation)
        return args[0], tuple(args[1:])
    return annotation, ()


def runtime_type(annotation: Any) -> Optional[Type]:
    """
    The class a value for ``annotation`` must be an instance of.

    ``Optional[X]`` becomes X, ``list[int]`` becomes list, ``Any`` becomes
    object. Unresolved forward references give None.
    """
    annotation, _ = _split_annotated(annotation)
    if annotation is None or annotation is inspect.Parameter.empty:
        return None
    if annotation is Any:
        return object
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            return runtime_type(members[0])
        return object
    if origin is not None:
        return origin if isinstance(origin, type) else None
    if isinstance(annotation, type):
        return annotation
    return None


def is_subtype(candidate: Any, base: Any) -> bool:
    """issubclass that answers False instead of raising for non-classes."""
    if not isinstance(candidate, type) or not isinstance(base, type):
        return False
    try:
        return issubclass(candidate, base)
    except TypeError:
        return False


def _type_hints(obj: Any) -> Dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except (NameError, TypeError, AttributeError):
        return dict(getattr(obj, "__annotations__", None) or {})


# ============================================================================
# Descriptors
# ============================================================================

class BuilderKind(str, Enum):
    CONSTRUCTOR = "constructor"
    INSTANCE = "instance"
    STATIC = "static"


@dataclass(frozen=True, slots=True)
class InjectionPoint:
    """A constructor/method parameter or a field that receives a resolved value."""

    name: str
    annotation: Any
    type: Optional[Type]
    metadata: Tuple[Any, ...] = ()
    positional_only: bool = False
    has_default: bool = False

    @property
    def marker(self) -> Optional[Property]:
        return find_property(self.metadata, self.type)


@dataclass(frozen=True, slots=True)
class BuilderSpec:
    """
    A way to build a module: the callable plus its injection points.

    For INSTANCE builders ``target`` is the unbound function and must be
    looked up on a provider instance by ``name``.
    """

    target: Callable[..., Any]
    name: str
    kind: BuilderKind
    points: Tuple[InjectionPoint, ...] = ()
    return_type: Optional[Type] = None


def _injection_points(func: Callable[..., Any], skip_first: bool) -> Tuple[InjectionPoint, ...]:
    signature = inspect.signature(func)
    hints = _type_hints(func)
    params = list(signature.parameters.values())
    if skip_first and params:
        params = params[1:]

    points = []
    for param in params:
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = hints.get(param.name, param.annotation)
        if annotation is inspect.Parameter.empty:
            annotation = None
        base, extras = _split_annotated(annotation)
        points.append(InjectionPoint(
            name=param.name,
            annotation=annotation,
            type=runtime_type(base),
            metadata=extras,
            positional_only=param.kind is inspect.Parameter.POSITIONAL_ONLY,
            has_default=param.default is not inspect.Parameter.empty,
        ))
    return tuple(points)


def _constructor_spec(cls: Type) -> BuilderSpec:
    init = cls.__init__
    if getattr(init, PROVIDES_ATTR, False):
        return BuilderSpec(
            target=cls,
            name="__init__",
            kind=BuilderKind.CONSTRUCTOR,
            points=_injection_points(init, skip_first=True),
            return_type=cls,
        )

    if init is not object.__init__:
        try:
            signature = inspect.signature(cls)
        except (TypeError, ValueError):
            signature = None
        if signature is not None:
            for param in signature.parameters.values():
                if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                    continue
                if param.default is inspect.Parameter.empty:
                    raise NoBuilderFault(cls)

    return BuilderSpec(target=cls, name="__init__", kind=BuilderKind.CONSTRUCTOR, return_type=cls)


def _tagged_builder(attr: Any) -> Tuple[Optional[BuilderKind], Any, bool]:
    if isinstance(attr, (staticmethod, classmethod)):
        func = attr.__func__
        kind = BuilderKind.STATIC
        skip_first = isinstance(attr, classmethod)
    elif inspect.isfunction(attr):
        func = attr
        kind = BuilderKind.INSTANCE
        skip_first = True
    else:
        return None, None, False
    if not getattr(func, PROVIDES_ATTR, False):
        return None, None, False
    return kind, func, skip_first


def _builder_methods(provider: Type) -> Tuple[BuilderSpec, ...]:
    seen = set()
    builders = []
    for klass in provider.__mro__:
        for name, attr in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if name == "__init__":
                continue
            kind, func, skip_first = _tagged_builder(attr)
            if kind is None:
                continue
            builders.append(BuilderSpec(
                target=func,
                name=name,
                kind=kind,
                points=_injection_points(func, skip_first),
                return_type=runtime_type(_type_hints(func).get("return")),
            ))
    return tuple(builders)


def select_builder(
    builders: Sequence[BuilderSpec],
    module_type: Type,
    kind: BuilderKind,
) -> Optional[BuilderSpec]:
    """
    First builder of ``kind`` whose return type is exactly ``module_type``,
    else the first one whose return type is a subtype of it (or unknown).
    """
    fallback = None
    for builder in builders:
        if builder.kind is not kind:
            continue
        if builder.return_type is module_type:
            return builder
        if fallback is None and (
            builder.return_type is None or is_subtype(builder.return_type, module_type)
        ):
            fallback = builder
    return fallback


def _field_points(cls: Type) -> Tuple[InjectionPoint, ...]:
    own = inspect.get_annotations(cls)
    if not own:
        return ()
    hints = _type_hints(cls)

    points = []
    for name in own:
        annotation = hints.get(name, own[name])
        base, extras = _split_annotated(annotation)
        if not any(isinstance(item, Property) for item in extras):
            continue
        origin = get_origin(base)
        if base is ClassVar or base is Final or origin is ClassVar or origin is Final:
            continue
        points.append(InjectionPoint(
            name=name,
            annotation=annotation,
            type=runtime_type(base),
            metadata=extras,
        ))
    return tuple(points)


def _module_config(cls: Type) -> Dict[str, Dict[str, Any]]:
    spec = get_module_spec(cls)
    table: Dict[str, Dict[str, Any]] = {}
    if spec is None:
        return table
    for prop in spec.properties:
        table.setdefault(prop.domain, {})[prop.name] = prop.default
    if spec.provider is not None:
        table.setdefault(domain_for(cls), {})[class_property(PROVIDER_PROPERTY)] = spec.provider
    return table


# ============================================================================
# Cache
# ============================================================================

class ModuleMetadataCache:
    """
    Per-type descriptors computed on first use.

    Concurrent first lookups may compute the same entry twice; the
    results are equal and the first stored one wins. Returned tables are
    shared and must not be mutated.
    """

    __slots__ = ("_configs", "_constructors", "_builders", "_fields", "_lock")

    def __init__(self):
        self._configs: Dict[Type, Dict[str, Dict[str, Any]]] = {}
        self._constructors: Dict[Type, BuilderSpec] = {}
        self._builders: Dict[Type, Tuple[BuilderSpec, ...]] = {}
        self._fields: Dict[Type, Tuple[InjectionPoint, ...]] = {}
        self._lock = threading.Lock()

    def module_config(self, cls: Type) -> Dict[str, Dict[str, Any]]:
        """Default-property table ``{domain: {name: default}}`` of ``cls``."""
        table = self._configs.get(cls)
        if table is None:
            table = self._configs.setdefault(cls, _module_config(cls))
        return table

    def constructor_for(self, cls: Type) -> BuilderSpec:
        """
        Raises:
            NoBuilderFault: no designated and no zero-argument constructor
        """
        spec = self._constructors.get(cls)
        if spec is None:
            spec = self._constructors.setdefault(cls, _constructor_spec(cls))
        return spec

    def builder_methods(self, provider: Type) -> Tuple[BuilderSpec, ...]:
        builders = self._builders.get(provider)
        if builders is None:
            builders = self._builders.setdefault(provider, _builder_methods(provider))
        return builders

    def injection_fields(self, cls: Type) -> Tuple[InjectionPoint, ...]:
        points = self._fields.get(cls)
        if points is None:
            points = self._fields.setdefault(cls, _field_points(cls))
        return points

    def register_builder(self, cls: Type, spec: BuilderSpec) -> None:
        """Install an explicit constructor recipe for ``cls``."""
        with self._lock:
            self._constructors[cls] = spec

    def clear(self) -> None:
        with self._lock:
            self._configs.clear()
            self._constructors.clear()
            self._builders.clear()
            self._fields.clear()

    def __len__(self) -> int:
        return len(self._configs) + len(self._constructors) + len(self._builders) + len(self._fields)
