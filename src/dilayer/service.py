from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar, overload

from dilayer._internal.type_checks import is_runtime_class
from dilayer.construction import allocate, default_construct
from dilayer.exceptions import DILayerConfigurationError
from dilayer.injector import Injector

if TYPE_CHECKING:
    from dilayer.context import Context

T = TypeVar("T")

_INJECTOR_ATTR = "_dilayer_injector"

ConstructFunction = Callable[..., Any]
"""``construct(cls, context, args) -> instance``, bound as a classmethod."""


class Service:
    """Base class for services that inject other services from within.

    Instances are callable: ``self(Storage)`` resolves ``Storage`` from the
    context that constructed the instance, and ``self.new(Item, name)``
    constructs a non-shared ``Item`` there. The injector is bound before
    ``__init__`` runs, so both work inside the constructor too.

    Options are declared as class keyword arguments:

    - ``deps``: ordered service types whose resolved identity decides which
      shared instance of this service a context receives.
    - ``stateful``: the service keeps state between calls. Implied by ``deps``.
    - ``construct``: ``construct(cls, context, args)`` replacing the default
      construction.

    Examples:
        .. code-block:: python

            class FriendStorage(Service, deps=[Storage]):
                def __init__(self) -> None:
                    self.cache: dict[str, Friend] = {}

                def load(self, name: str) -> Friend | None:
                    if name not in self.cache:
                        self.cache[name] = parse(self(Storage).get_item(name))
                    return self.cache[name]

    """

    __deps__: ClassVar[tuple[type[Any], ...] | None] = None
    __stateful__: ClassVar[bool] = False
    __injected_type__: ClassVar[type[Any] | None] = None

    def __init_subclass__(
        cls,
        *,
        deps: Iterable[type[Any]] | None = None,
        stateful: bool | None = None,
        construct: ConstructFunction | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)
        if deps is not None:
            cls.__deps__ = _validate_deps(cls, deps)
        if stateful is not None:
            cls.__stateful__ = stateful
        elif deps is not None:
            cls.__stateful__ = True
        if construct is not None:
            if not callable(construct):
                msg = f"construct option of {cls.__qualname__} must be callable"
                raise DILayerConfigurationError(msg)
            cls.__construct__ = classmethod(construct)  # type: ignore[assignment]

    @classmethod
    @default_construct
    def __construct__(cls, context: Context, args: Sequence[Any]) -> Any:
        obj = allocate(cls, args)
        if isinstance(obj, cls):
            # Pooled instances returned again by __new__ keep their first binding.
            if _INJECTOR_ATTR not in obj.__dict__:
                bind_injector(obj, Injector(context))
            obj.__init__(*args)
        return obj

    @property
    def injector(self) -> Injector:
        """Injector bound at construction, or one for the current context."""
        injector = self.__dict__.get(_INJECTOR_ATTR)
        if injector is None:
            from dilayer.context import current_context

            injector = Injector(current_context())
            bind_injector(self, injector)
        return injector

    @overload
    def __call__(self, service_type: type[T]) -> T: ...

    @overload
    def __call__(self, service_type: Any) -> Any: ...

    def __call__(self, service_type: Any) -> Any:
        return self.injector(service_type)

    def new(self, service_type: type[T], *args: Any) -> T:
        return self.injector.new(service_type, *args)


def bind_injector(obj: object, injector: Injector) -> None:
    object.__setattr__(obj, _INJECTOR_ATTR, injector)


def service_deps(service_type: Any) -> tuple[type[Any], ...] | None:
    """Return the declared ``deps`` of any class, ``None`` for stateless types."""
    deps = getattr(service_type, "__deps__", None)
    if deps is None:
        return None
    return tuple(deps)


def injected_type(service_type: Any) -> Any:
    """Return the type ``service_type`` is resolved as."""
    target = getattr(service_type, "__injected_type__", None)
    return service_type if target is None else target


def _validate_deps(cls: type[Any], deps: Iterable[type[Any]]) -> tuple[type[Any], ...]:
    validated = tuple(deps)
    for dep in validated:
        if not is_runtime_class(dep):
            msg = f"deps of {cls.__qualname__} must be classes, got {dep!r}"
            raise DILayerConfigurationError(msg)
    return validated


__all__ = ["ConstructFunction", "Service", "bind_injector", "injected_type", "service_deps"]
