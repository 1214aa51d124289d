from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from dilayer.exceptions import DILayerCircularDependencyError

# Ordered chain of stateful types whose dependencies are being resolved.
# A ContextVar keeps unrelated threads and tasks from seeing each other's path.
_resolution_path: ContextVar[tuple[type[Any], ...]] = ContextVar(
    "dilayer_resolution_path",
    default=(),
)


@contextmanager
def resolving(service_type: type[Any]) -> Iterator[None]:
    """Mark ``service_type`` as active for the duration of the block.

    Raises:
        DILayerCircularDependencyError: ``service_type`` is already active in
            the current resolution path.

    """
    path = _resolution_path.get()
    if service_type in path:
        raise DILayerCircularDependencyError(service_type, path)
    token = _resolution_path.set((*path, service_type))
    try:
        yield
    finally:
        _resolution_path.reset(token)


def current_resolution_path() -> tuple[type[Any], ...]:
    return _resolution_path.get()


__all__ = ["current_resolution_path", "resolving"]
