"""
Builder invocation: resolve every injection point, then call.

Parameters without Property metadata that declare a Python default keep
that default. Positional-only parameters are passed positionally, all
others by keyword. Only the call itself is wrapped into
ConstructionFault; faults raised while resolving parameters propagate
unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Type

from ..faults import ConstructionFault
from .metadata import BuilderKind, BuilderSpec

logger = logging.getLogger("mortar.modules.executor")


class MethodConstructorExecutor:
    """Runs a BuilderSpec on behalf of a module loader."""

    __slots__ = ("_loader",)

    def __init__(self, loader: Any):
        self._loader = loader

    def execute(
        self,
        builder: BuilderSpec,
        on_behalf: Type,
        properties: Optional[Mapping[str, Mapping[str, Any]]],
        locator: Any,
        instance: Any = None,
    ) -> Any:
        """
        Build by calling ``builder``.

        Args:
            builder: Constructor or provider method descriptor
            on_behalf: Type whose parameter provider resolves the arguments
            properties: Default-property table of the module being built
            locator: Locator used for every lookup of this load
            instance: Provider instance, for INSTANCE builders
        """
        args, kwargs = self._arguments(builder, on_behalf, properties, locator)

        if builder.kind is BuilderKind.INSTANCE:
            target = getattr(instance, builder.name)
        elif builder.kind is BuilderKind.STATIC:
            target = getattr(on_behalf, builder.name)
        else:
            target = builder.target

        try:
            return target(*args, **kwargs)
        except Exception as exc:
            logger.debug("Builder %s raised %r", getattr(target, "__qualname__", target), exc)
            raise ConstructionFault(target, exc) from exc

    def _arguments(self, builder: BuilderSpec, on_behalf: Type, properties, locator):
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        if not builder.points:
            return args, kwargs

        provider = self._loader.resolve_parameter_provider(on_behalf, properties, locator)
        for point in builder.points:
            if point.has_default and point.marker is None:
                continue
            value = provider.get_parameter(point.type, point.metadata, properties, locator)
            if point.positional_only:
                args.append(value)
            else:
                kwargs[point.name] = value
        return args, kwargs
