from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any, TypeAlias

from dilayer.exceptions import DILayerConfigurationError

if TYPE_CHECKING:
    from dilayer.context import Context

MapClassHook: TypeAlias = Callable[[type[Any]], type[Any]]
"""Return the concrete class to build when the given service type is requested."""

GetInstanceHook: TypeAlias = "Callable[[Context, type[Any]], Any]"
"""Return a provided instance for the service type, or ``None`` to fall through."""

CreateProxyHook: TypeAlias = "Callable[[Context, type[Any], Any], Any]"
"""Return the object handed out in place of a freshly resolved instance."""


def default_map_class(service_type: type[Any]) -> type[Any]:
    return service_type


def default_get_instance(context: Context, service_type: type[Any]) -> Any:  # noqa: ARG001
    return None


def default_create_proxy(context: Context, service_type: type[Any], instance: Any) -> Any:  # noqa: ARG001
    return instance


@dataclass(frozen=True, slots=True)
class HookChain:
    """The three resolution hooks a context exposes.

    Each provider layered onto a context produces a new chain whose hooks
    either answer a request or delegate to the chain they were built on.
    """

    map_class: MapClassHook = default_map_class
    """Map an abstract or base service type to the class that gets constructed."""
    get_instance: GetInstanceHook = default_get_instance
    """Look up a provided singleton that bypasses construction for ``invoke``."""
    create_proxy: CreateProxyHook = default_create_proxy
    """Decorate every instance before it is handed out."""

    def override(self, overrides: HookChain | Mapping[str, Any]) -> HookChain:
        """Return a chain with ``overrides`` applied on top of this one.

        A ``HookChain`` replaces every hook it carries. A mapping replaces only
        the hooks it names; any other key is a configuration error.

        Args:
            overrides: Replacement chain or partial mapping of hook names to
                callables.

        """
        if isinstance(overrides, HookChain):
            return overrides
        if not isinstance(overrides, Mapping):
            msg = (
                "Middleware must return a HookChain or a mapping of hook names, "
                f"got {type(overrides).__name__}"
            )
            raise DILayerConfigurationError(msg)
        unknown = set(overrides) - HOOK_NAMES
        if unknown:
            msg = f"Unknown hook names returned by middleware: {', '.join(sorted(unknown))}"
            raise DILayerConfigurationError(msg)
        for name, hook in overrides.items():
            if not callable(hook):
                msg = f"Hook {name!r} returned by middleware is not callable"
                raise DILayerConfigurationError(msg)
        return replace(self, **dict(overrides))


HOOK_NAMES = frozenset(field.name for field in fields(HookChain))

__all__ = [
    "HOOK_NAMES",
    "CreateProxyHook",
    "GetInstanceHook",
    "HookChain",
    "MapClassHook",
    "default_create_proxy",
    "default_get_instance",
    "default_map_class",
]
