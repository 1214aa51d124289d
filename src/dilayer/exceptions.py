from __future__ import annotations

from typing import Any


class DILayerError(Exception):
    """Represent a base class for all dilayer-specific failures.

    Catch this type when you want to handle any dilayer error path without
    matching each concrete exception class individually.
    """


class DILayerConfigurationError(DILayerError):
    """Signal invalid context configuration.

    Raised by ``Context.provide`` when a provider is neither a class, an
    instance, nor an explicit ``middleware(...)`` wrapper, and by
    ``Context.run`` when its argument cannot receive an injector.

    Typical fixes include wrapping hook-replacing functions in ``middleware``
    and passing a function that accepts the injector as its first positional
    parameter to ``run``.
    """


class DILayerCircularDependencyError(DILayerError):
    """Signal that a stateful service depends on itself.

    Raised by ``Context.invoke`` when resolving the declared ``deps`` of a
    service re-enters a service that is still being resolved.

    Typical fix is breaking the cycle by removing one of the types from the
    ``deps`` declaration and resolving it lazily inside a method instead.
    """

    def __init__(self, service_type: type[Any], path: tuple[type[Any], ...]) -> None:
        self.service_type = service_type
        self.path = path
        chain = " -> ".join(_type_name(item) for item in (*path, service_type))
        super().__init__(f"Circular dependency in {_type_name(service_type)}: {chain}")


class DILayerUnresolvedAbstractTypeError(DILayerError):
    """Signal construction of an abstract type without a concrete mapping.

    Raised by ``Context.invoke`` and ``Context.new`` when the mapped class is an
    abstract base class or a protocol and it defines no custom construct
    function.

    Typical fix is providing a concrete subclass with
    ``context.provide(ConcreteImpl)`` or an instance with
    ``context.provide(ConcreteImpl())``.
    """

    def __init__(self, service_type: type[Any], concrete_type: type[Any]) -> None:
        self.service_type = service_type
        self.concrete_type = concrete_type
        if service_type is concrete_type:
            msg = f"{_type_name(service_type)} is abstract and no concrete class is provided for it"
        else:
            msg = (
                f"{_type_name(service_type)} is mapped to abstract "
                f"{_type_name(concrete_type)} which cannot be constructed"
            )
        super().__init__(msg)


class DILayerInternalConsistencyError(DILayerError):
    """Signal a corrupted dependent-singleton cache.

    Raised when the nesting depth of the cache disagrees with the number of
    declared ``deps`` for a service type, for example after ``__deps__`` was
    reassigned on a class that was already resolved. Never recovered.
    """


def _type_name(value: Any) -> str:
    return getattr(value, "__name__", None) or repr(value)
