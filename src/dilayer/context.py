from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar, overload

from dilayer._internal.identity import get_backing_instance
from dilayer._internal.resolution_stack import resolving
from dilayer._internal.singletons import dependent_singletons
from dilayer.construction import build, construct
from dilayer.exceptions import DILayerConfigurationError
from dilayer.hooks import HookChain
from dilayer.injector import Injector
from dilayer.providers import as_provider
from dilayer.service import injected_type, service_deps

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.VAR_POSITIONAL,
)


class Context:
    """Immutable resolution configuration.

    A context owns a hook chain and two caches: the instances it handed out
    through ``invoke`` and the classes its ``map_class`` hook chose. Layering
    providers with ``provide`` never changes a context, it derives a new one
    with empty caches. Stateful services are additionally shared between
    contexts through the process-wide dependent-singleton cache.

    The ``Context`` type is itself injectable: ``context.invoke(Context)``
    returns ``context``.
    """

    __slots__ = ("__weakref__", "_hooks", "_instances", "_mapped")

    def __init__(self, hooks: HookChain | None = None) -> None:
        self._hooks = hooks if hooks is not None else HookChain()
        self._instances: dict[Any, Any] = {Context: self}
        self._mapped: dict[Any, type[Any]] = {}

    @property
    def hooks(self) -> HookChain:
        return self._hooks

    def provide(self, *providers: Any) -> Context:
        """Derive a context with ``providers`` layered on top of this one.

        Providers are folded left to right, so later providers take precedence
        over earlier ones for the types they cover.

        Args:
            *providers: Subclasses, instances, or explicit ``subclass``,
                ``instance`` and ``middleware`` providers.

        Raises:
            DILayerConfigurationError: A provider is a bare function, ``None``,
                or middleware returning invalid hooks.

        """
        hooks = self._hooks
        for value in providers:
            provider = as_provider(value)
            hooks = provider.apply(hooks)
            logger.debug("Layered %r", provider)
        return Context(hooks)

    @overload
    def invoke(self, service_type: type[T]) -> T: ...

    @overload
    def invoke(self, service_type: Any) -> Any: ...

    def invoke(self, service_type: Any) -> Any:
        """Return the instance of ``service_type`` shared within this context.

        Provided instances win over construction. Stateless services are built
        once per context. Services declaring ``deps`` are shared across every
        context resolving those dependencies to the same backing instances.

        Raises:
            DILayerCircularDependencyError: The ``deps`` of a service lead back
                to the service itself.
            DILayerUnresolvedAbstractTypeError: No concrete class is provided
                for an abstract service.

        """
        service_type = injected_type(service_type)
        try:
            return self._instances[service_type]
        except KeyError:
            pass
        instance = self._resolve(service_type)
        self._instances[service_type] = instance
        return instance

    @overload
    def new(self, service_type: type[T], *args: Any) -> T: ...

    @overload
    def new(self, service_type: Any, *args: Any) -> Any: ...

    def new(self, service_type: Any, *args: Any) -> Any:
        """Construct a non-shared instance of ``service_type`` with ``args``.

        Subclass providers and middleware apply. Instance providers do not:
        an explicit construction always builds.
        """
        return construct(self, service_type, args)

    construct = new

    def map(self, service_type: type[T]) -> type[T]:
        """Return the class built for ``service_type`` in this context."""
        try:
            return self._mapped[service_type]
        except KeyError:
            pass
        mapped = self._hooks.map_class(service_type)
        self._mapped[service_type] = mapped
        return mapped

    def run(self, fn: Callable[..., R], /, *args: Any, **kwargs: Any) -> R:
        """Call ``fn(injector, *args, **kwargs)`` with this context as current.

        Raises:
            DILayerConfigurationError: ``fn`` is not callable or cannot accept
                the injector as its first positional argument.

        """
        _validate_runnable(fn)
        with self.use():
            return fn(Injector(self), *args, **kwargs)

    @contextmanager
    def use(self) -> Iterator[Context]:
        """Install this context as the current one for the block."""
        token = _current_context.set(self)
        try:
            yield self
        finally:
            _current_context.reset(token)

    def _resolve(self, service_type: Any) -> Any:
        hooks = self._hooks
        provided = hooks.get_instance(self, service_type)
        if provided is not None:
            return hooks.create_proxy(self, service_type, provided)

        deps = service_deps(service_type)
        if deps is None:
            instance = build(self, service_type, ())
        else:
            with resolving(service_type):
                backing = tuple(get_backing_instance(self.invoke(dep)) for dep in deps)
                instance = dependent_singletons.get_or_create(
                    service_type,
                    backing,
                    lambda: build(self, service_type, ()),
                )
        return hooks.create_proxy(self, service_type, instance)

    def __repr__(self) -> str:
        return f"<Context at {id(self):#x}>"


def _validate_runnable(fn: Any) -> None:
    if not callable(fn) or inspect.isclass(fn):
        msg = f"Argument to run() must be a function, got {fn!r}"
        raise DILayerConfigurationError(msg)
    try:
        parameters = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        # Builtins without signature metadata.
        return
    if not any(parameter.kind in _POSITIONAL_KINDS for parameter in parameters):
        msg = f"Function passed to run() must accept the injector as its first positional parameter: {fn!r}"
        raise DILayerConfigurationError(msg)


_root_context = Context()
_current_context: ContextVar[Context | None] = ContextVar("dilayer_current_context", default=None)


def root_context() -> Context:
    """Return the process-wide context without providers."""
    return _root_context


def current_context() -> Context:
    """Return the context of the innermost ``run``/``use`` block, or the root context."""
    context = _current_context.get()
    return _root_context if context is None else context


def provide(*providers: Any) -> Context:
    """Derive a context from the current one, see ``Context.provide``."""
    return current_context().provide(*providers)


def run(fn: Callable[..., R], /, *args: Any, **kwargs: Any) -> R:
    """Run ``fn`` in the current context, see ``Context.run``."""
    return current_context().run(fn, *args, **kwargs)


__all__ = ["Context", "current_context", "provide", "root_context", "run"]
