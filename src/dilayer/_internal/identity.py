from __future__ import annotations

from typing import Any

BACKING_ATTR = "__dilayer_backing__"


def set_backing_instance(wrapper: object, backing: object) -> None:
    """Record that ``wrapper`` decorates ``backing``.

    ``object.__setattr__`` is used so attribute-forwarding wrappers keep the
    link on themselves instead of forwarding it to the decorated object.

    Args:
        wrapper: Decorating object handed out instead of ``backing``.
        backing: Object being decorated.

    """
    object.__setattr__(wrapper, BACKING_ATTR, backing)


def get_backing_instance(instance: Any) -> Any:
    """Return the innermost undecorated object behind ``instance``.

    Args:
        instance: Possibly decorated instance.

    """
    seen: set[int] = set()
    current = instance
    while True:
        backing = _own_backing(current)
        if backing is None or id(current) in seen:
            return current
        seen.add(id(current))
        current = backing


def _own_backing(instance: Any) -> Any:
    # Only look at the instance's own namespace: a forwarding proxy would
    # otherwise report the backing link of the object it wraps.
    try:
        namespace = object.__getattribute__(instance, "__dict__")
    except (AttributeError, TypeError):
        return None
    return namespace.get(BACKING_ATTR)


__all__ = ["BACKING_ATTR", "get_backing_instance", "set_backing_instance"]
