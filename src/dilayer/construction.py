from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from dilayer._internal.type_checks import is_abstract_class
from dilayer.exceptions import DILayerUnresolvedAbstractTypeError

if TYPE_CHECKING:
    from dilayer.context import Context

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger(__name__)
_DEFAULT_CONSTRUCT_ATTR = "__dilayer_default_construct__"


def default_construct(fn: F) -> F:
    """Tag a construct function as generic instantiation.

    Tagged functions are subject to the same abstract-class check as plain
    instantiation. Untagged custom construct functions are trusted to build
    abstract types themselves.
    """
    setattr(fn, _DEFAULT_CONSTRUCT_ATTR, True)
    return fn


def construct(context: Context, service_type: type[Any], args: Sequence[Any]) -> Any:
    """Build a fresh instance of ``service_type`` and decorate it for ``context``."""
    instance = build(context, service_type, args)
    return context.hooks.create_proxy(context, service_type, instance)


def build(context: Context, service_type: type[Any], args: Sequence[Any]) -> Any:
    """Build a fresh, undecorated instance of ``service_type`` in ``context``.

    The class is mapped through the context hooks first. A class defining
    ``__construct__`` builds the instance itself; other classes are called
    with ``args``.

    Args:
        context: Context the instance is built for.
        service_type: Requested, possibly abstract, type.
        args: Positional constructor arguments.

    Raises:
        DILayerUnresolvedAbstractTypeError: The mapped class is abstract and
            has no custom construct function.

    """
    concrete = context.map(service_type)
    custom = getattr(concrete, "__construct__", None)
    if custom is None or getattr(custom, _DEFAULT_CONSTRUCT_ATTR, False):
        ensure_constructible(concrete, service_type)
    if custom is not None:
        instance = custom(context, tuple(args))
    else:
        instance = concrete(*args)
    logger.debug("Constructed %s for %s", type(instance).__qualname__, _name(service_type))
    return instance


def ensure_constructible(concrete: type[Any], service_type: type[Any] | None = None) -> None:
    if is_abstract_class(concrete):
        raise DILayerUnresolvedAbstractTypeError(
            service_type if service_type is not None else concrete,
            concrete,
        )


def allocate(cls: type[Any], args: Sequence[Any]) -> Any:
    """Create an instance of ``cls`` without running ``__init__``."""
    if cls.__new__ is object.__new__:
        return object.__new__(cls)
    return cls.__new__(cls, *args)


def _name(value: Any) -> str:
    return getattr(value, "__qualname__", repr(value))


__all__ = ["allocate", "build", "construct", "default_construct", "ensure_constructible"]
