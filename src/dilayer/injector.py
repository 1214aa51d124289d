from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar, overload

if TYPE_CHECKING:
    from dilayer.context import Context

T = TypeVar("T")
R = TypeVar("R")


class Injector:
    """Callable handle resolving services from one context.

    ``injector(Storage)`` is ``context.invoke(Storage)``. Services receive an
    injector when they are constructed and ``Context.run`` passes one to the
    function it runs.
    """

    __slots__ = ("_context",)

    def __init__(self, context: Context) -> None:
        self._context = context

    @property
    def context(self) -> Context:
        return self._context

    @overload
    def __call__(self, service_type: type[T]) -> T: ...

    @overload
    def __call__(self, service_type: Any) -> Any: ...

    def __call__(self, service_type: Any) -> Any:
        return self._context.invoke(service_type)

    def new(self, service_type: type[T], *args: Any) -> T:
        """Construct a non-shared instance, see ``Context.new``."""
        return self._context.new(service_type, *args)

    def provide(self, *providers: Any) -> Context:
        """Derive a context from the bound one, see ``Context.provide``."""
        return self._context.provide(*providers)

    def run(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        return self._context.run(fn, *args, **kwargs)

    def __repr__(self) -> str:
        return f"Injector({self._context!r})"


__all__ = ["Injector"]
