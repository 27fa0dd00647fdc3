"""
In-progress resolution tracking for cycle detection.

Every module load and every loader bootstrap pushes a key onto a
per-context stack. Re-entering a key that is already on the stack means
the configuration is cyclic (M's provider is P and P's provider is M, or
a loader class is configured as its own loader), and ModuleCycleFault is
raised instead of recursing until the interpreter gives up.

The stack lives in a ContextVar so concurrent threads and asyncio tasks
each see their own.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Hashable, Iterator, List, Tuple

from ..faults import ModuleCycleFault
from .constants import describe

_resolution_stack: ContextVar[Tuple[Tuple[Hashable, str], ...]] = ContextVar(
    "mortar_resolution_stack",
    default=(),
)


class ResolveCtx:
    """
    View over the current resolution stack.

    ``push`` / ``pop`` are used through the ``resolving`` context manager,
    which always restores the stack on exit.
    """

    __slots__ = ()

    def in_cycle(self, key: Hashable) -> bool:
        """Check if ``key`` is currently being resolved."""
        return any(entry == key for entry, _ in _resolution_stack.get())

    def get_trace(self) -> List[str]:
        """Labels of the entries being resolved, outermost first."""
        return [label for _, label in _resolution_stack.get()]

    def depth(self) -> int:
        return len(_resolution_stack.get())

    @contextmanager
    def resolving(self, kind: str, type_: object) -> Iterator[None]:
        """
        Mark ``type_`` as being resolved for ``kind`` ("load", "loader").

        Raises:
            ModuleCycleFault: the same (kind, type) is already in progress
        """
        key = (kind, type_)
        label = f"{kind}:{describe(type_)}"
        stack = _resolution_stack.get()
        if any(entry == key for entry, _ in stack):
            trace = [entry_label for _, entry_label in stack]
            start = next(i for i, (entry, _) in enumerate(stack) if entry == key)
            raise ModuleCycleFault(trace[start:] + [label])
        token = _resolution_stack.set(stack + ((key, label),))
        try:
            yield
        finally:
            _resolution_stack.reset(token)


resolve_ctx = ResolveCtx()
