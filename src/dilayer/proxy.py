from __future__ import annotations

from typing import Any

from dilayer._internal.identity import set_backing_instance

_TARGET_ATTR = "_ForwardingProxy__target"


class ForwardingProxy:
    """Decorate an object by forwarding attribute access and calls to it.

    The proxy records its target as backing instance, so services depending on
    a decorated object still share singletons with undecorated contexts.
    ``isinstance`` checks see the target's class through ``__class__``.

    Subclasses override the methods they want to intercept and reach the
    decorated object through ``self.__wrapped__``.
    """

    def __init__(self, target: Any) -> None:
        object.__setattr__(self, _TARGET_ATTR, target)
        set_backing_instance(self, target)

    @property
    def __wrapped__(self) -> Any:
        return object.__getattribute__(self, _TARGET_ATTR)

    @property  # type: ignore[misc]
    def __class__(self) -> type[Any]:  # type: ignore[override]
        return type(self.__wrapped__)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.__wrapped__, name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self.__wrapped__, name, value)

    def __delattr__(self, name: str) -> None:
        delattr(self.__wrapped__, name)

    def __dir__(self) -> list[str]:
        return dir(self.__wrapped__)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.__wrapped__(*args, **kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.__wrapped__!r})"


__all__ = ["ForwardingProxy"]
