from __future__ import annotations

import inspect
import types
from typing import Any, TypeGuard

from typing_extensions import is_protocol


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_abstract_class(candidate: type[Any]) -> bool:
    """Return true when candidate cannot be instantiated as-is.

    Covers abstract base classes with unimplemented abstract methods and
    ``typing.Protocol`` classes.

    Args:
        candidate: Class resolved for construction.

    """
    return inspect.isabstract(candidate) or is_protocol(candidate)


__all__ = ["is_abstract_class", "is_runtime_class"]
