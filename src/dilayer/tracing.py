from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dilayer.hooks import HookChain
from dilayer.providers import MiddlewareProvider, middleware

if TYPE_CHECKING:
    from dilayer.context import Context

_default_logger = logging.getLogger("dilayer.resolutions")


def log_resolutions(
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
) -> MiddlewareProvider:
    """Build middleware logging every hook decision of the chain below it.

    The middleware changes no behaviour: each hook logs and then delegates to
    the previous chain. Providers layered after it are not observed.

    Args:
        logger: Logger receiving the records. Defaults to ``dilayer.resolutions``.
        level: Level of every record.

    """
    target = logger if logger is not None else _default_logger

    def layer(previous: HookChain) -> HookChain:
        def map_class(service_type: type[Any]) -> type[Any]:
            mapped = previous.map_class(service_type)
            if mapped is not service_type:
                target.log(level, "Mapped %s to %s", _name(service_type), _name(mapped))
            return mapped

        def get_instance(context: Context, service_type: type[Any]) -> Any:
            provided = previous.get_instance(context, service_type)
            if provided is not None:
                target.log(level, "Provided instance %r for %s", provided, _name(service_type))
            return provided

        def create_proxy(context: Context, service_type: type[Any], instance: Any) -> Any:
            target.log(level, "Handing out %s for %s", type(instance).__qualname__, _name(service_type))
            return previous.create_proxy(context, service_type, instance)

        return HookChain(
            map_class=map_class,
            get_instance=get_instance,
            create_proxy=create_proxy,
        )

    return middleware(layer)


def _name(value: Any) -> str:
    return getattr(value, "__qualname__", repr(value))


__all__ = ["log_resolutions"]
