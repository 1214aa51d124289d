from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from dilayer._internal.type_checks import is_runtime_class
from dilayer.exceptions import DILayerConfigurationError
from dilayer.hooks import HookChain

if TYPE_CHECKING:
    from dilayer.context import Context

Middleware: TypeAlias = Callable[[HookChain], HookChain | Mapping[str, Any]]
"""Receive the previous hook chain and return replacement hooks."""


@dataclass(frozen=True, slots=True)
class SubclassProvider:
    """Map every base class of ``cls`` (and ``cls`` itself) to ``cls``.

    Affects both ``invoke`` and ``new``.
    """

    cls: type[Any]

    def apply(self, chain: HookChain) -> HookChain:
        provided = self.cls
        previous = chain.map_class

        def map_class(service_type: type[Any]) -> type[Any]:
            if provided is service_type or _is_subclass(provided, service_type):
                return provided
            return previous(service_type)

        return chain.override({"map_class": map_class})


@dataclass(frozen=True, slots=True)
class InstanceProvider:
    """Answer ``invoke`` of any type ``obj`` is an instance of with ``obj``.

    Never affects ``new``, which always constructs.
    """

    obj: Any

    def apply(self, chain: HookChain) -> HookChain:
        provided = self.obj
        previous = chain.get_instance

        def get_instance(context: Context, service_type: type[Any]) -> Any:
            if _is_instance(provided, service_type):
                return provided
            return previous(context, service_type)

        return chain.override({"get_instance": get_instance})


@dataclass(frozen=True, slots=True)
class MiddlewareProvider:
    """Replace any subset of hooks, optionally delegating to the previous chain."""

    fn: Middleware

    def apply(self, chain: HookChain) -> HookChain:
        return chain.override(self.fn(chain))


Provider: TypeAlias = SubclassProvider | InstanceProvider | MiddlewareProvider


def subclass(cls: type[Any]) -> SubclassProvider:
    """Build a provider mapping ``cls`` and all of its base classes to ``cls``."""
    if not is_runtime_class(cls):
        msg = f"subclass() expects a class, got {cls!r}"
        raise DILayerConfigurationError(msg)
    return SubclassProvider(cls)


def instance(obj: Any) -> InstanceProvider:
    """Build a provider handing out ``obj`` for every type it is an instance of."""
    if obj is None:
        msg = "instance() expects an object, got None"
        raise DILayerConfigurationError(msg)
    return InstanceProvider(obj)


def middleware(fn: Middleware) -> MiddlewareProvider:
    """Build a provider from a function receiving and returning hooks.

    Examples:
        .. code-block:: python

            def tracing(previous: HookChain) -> dict[str, Any]:
                def create_proxy(context, service_type, instance):
                    return Traced(previous.create_proxy(context, service_type, instance))

                return {"create_proxy": create_proxy}


            context = provide(middleware(tracing))

    """
    if not callable(fn) or is_runtime_class(fn):
        msg = f"middleware() expects a function, got {fn!r}"
        raise DILayerConfigurationError(msg)
    return MiddlewareProvider(fn)


def as_provider(value: Any) -> Provider:
    """Normalize a value passed to ``provide`` into an explicit provider.

    Classes become subclass providers and plain objects become instance
    providers. Functions are rejected: hook-replacing functions must be
    wrapped with ``middleware`` so intent never depends on the shape of the
    callable.
    """
    if isinstance(value, SubclassProvider | InstanceProvider | MiddlewareProvider):
        return value
    if is_runtime_class(value):
        return SubclassProvider(value)
    if value is None:
        msg = "provider must not be None"
        raise DILayerConfigurationError(msg)
    if inspect.isroutine(value) or isinstance(value, functools.partial):
        msg = (
            f"provider {value!r} is a function; wrap it with middleware() to replace hooks "
            "or with instance() to provide the function object itself"
        )
        raise DILayerConfigurationError(msg)
    return InstanceProvider(value)


def _is_subclass(candidate: type[Any], service_type: Any) -> bool:
    try:
        return issubclass(candidate, service_type)
    except TypeError:
        return False


def _is_instance(candidate: Any, service_type: Any) -> bool:
    try:
        return isinstance(candidate, service_type)
    except TypeError:
        # Non-runtime-checkable protocols and parametrized generics.
        return False


__all__ = [
    "InstanceProvider",
    "Middleware",
    "MiddlewareProvider",
    "Provider",
    "SubclassProvider",
    "as_provider",
    "instance",
    "middleware",
    "subclass",
]
