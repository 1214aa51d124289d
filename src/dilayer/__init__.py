from dilayer._internal.identity import get_backing_instance, set_backing_instance
from dilayer.context import Context, current_context, provide, root_context, run
from dilayer.exceptions import (
    DILayerCircularDependencyError,
    DILayerConfigurationError,
    DILayerError,
    DILayerInternalConsistencyError,
    DILayerUnresolvedAbstractTypeError,
)
from dilayer.hooks import HookChain
from dilayer.injector import Injector
from dilayer.tracing import log_resolutions
from dilayer.providers import (
    InstanceProvider,
    MiddlewareProvider,
    SubclassProvider,
    instance,
    middleware,
    subclass,
)
from dilayer.proxy import ForwardingProxy
from dilayer.service import Service

__all__ = [
    "Context",
    "DILayerCircularDependencyError",
    "DILayerConfigurationError",
    "DILayerError",
    "DILayerInternalConsistencyError",
    "DILayerUnresolvedAbstractTypeError",
    "ForwardingProxy",
    "HookChain",
    "Injector",
    "InstanceProvider",
    "MiddlewareProvider",
    "Service",
    "SubclassProvider",
    "current_context",
    "get_backing_instance",
    "instance",
    "log_resolutions",
    "middleware",
    "provide",
    "root_context",
    "run",
    "set_backing_instance",
    "subclass",
]
