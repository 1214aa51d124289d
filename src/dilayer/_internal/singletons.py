from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from dilayer.exceptions import DILayerInternalConsistencyError

T = TypeVar("T")

logger = logging.getLogger(__name__)
_MISSING: Any = object()
HOSTED_ATTR = "__dilayer_singletons__"


class IdentityWeakMap(Generic[T]):
    """Mapping keyed by object identity that forgets entries of collected keys.

    Keys are compared with ``is`` rather than ``==`` so objects with custom
    equality (dataclasses, unhashable models) are usable. Keys that do not
    support weak references are held strongly.
    """

    def __init__(self) -> None:
        self._entries: dict[int, tuple[Callable[[], object | None], T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: object, default: Any = None) -> T | Any:
        entry = self._entries.get(id(key))
        if entry is None:
            return default
        key_ref, value = entry
        if key_ref() is not key:
            return default
        return value

    def set(self, key: object, value: T) -> None:
        key_id = id(key)
        entries = self._entries
        try:

            def _forget(ref: weakref.ref[object]) -> None:
                current = entries.get(key_id)
                if current is not None and current[0] is ref:
                    del entries[key_id]

            key_ref: Callable[[], object | None] = weakref.ref(key, _forget)
        except TypeError:
            key_ref = _StrongRef(key)
        entries[key_id] = (key_ref, value)

    def clear(self) -> None:
        self._entries.clear()


class _StrongRef:
    __slots__ = ("_obj",)

    def __init__(self, obj: object) -> None:
        self._obj = obj

    def __call__(self) -> object:
        return self._obj


class _Singleton:
    """Leaf of the cache holding the shared instance."""

    __slots__ = ("instance",)

    def __init__(self, instance: object) -> None:
        self.instance = instance


class _Generation:
    """Weakly referenced token keying one cache's entries on dependency objects."""

    __slots__ = ("__weakref__",)


class _PathLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class DependentSingletonCache:
    """Process-wide cache of stateful service instances.

    An instance is stored under the path ``(service type, backing dependency 1,
    ..., backing dependency n)``. Two contexts that resolve the dependencies of
    a service to the same backing objects observe the same instance, no matter
    how the contexts were composed.

    The last level of a path lives in the namespace of the last dependency
    (``__dilayer_singletons__``), weakly keyed by the service type and the
    earlier dependencies. A cached instance is then reachable only through
    its last dependency, so the instance, the dependency and any context the
    instance holds on to are collected together once nothing else refers to
    the dependency. Paths without dependencies, and paths whose last
    dependency has no instance ``__dict__`` or no weak reference support,
    are kept in a cache-owned map instead.
    """

    def __init__(self) -> None:
        self._root: IdentityWeakMap[Any] = IdentityWeakMap()
        self._depths: IdentityWeakMap[int] = IdentityWeakMap()
        self._generation = _Generation()
        self._building: dict[tuple[int, ...], _PathLock] = {}
        self._lock = threading.RLock()

    def lookup(self, service_type: type[Any], dependencies: Sequence[object]) -> Any:
        """Return the cached instance, or ``None`` when the path is not stored.

        Args:
            service_type: Stateful service type.
            dependencies: Backing instances of the declared ``deps``, in
                declaration order.

        Raises:
            DILayerInternalConsistencyError: The path depth stored for
                ``service_type`` does not match ``len(dependencies)``.

        """
        depth = self._depths.get(service_type)
        if depth is None:
            return None
        if depth != len(dependencies):
            self._raise_inconsistent(service_type, dependencies)
        level, path = self._locate(dependencies, create=False)
        if level is None:
            return None
        node = level.get(service_type, _MISSING)
        for dependency in path:
            if not isinstance(node, IdentityWeakMap):
                break
            node = node.get(dependency, _MISSING)
        if node is _MISSING:
            return None
        if not isinstance(node, _Singleton):
            self._raise_inconsistent(service_type, dependencies)
        return node.instance

    def store(
        self,
        service_type: type[Any],
        dependencies: Sequence[object],
        instance: object,
    ) -> None:
        """Store ``instance`` under the path of ``service_type`` and its dependencies."""
        depth = self._depths.get(service_type)
        if depth is not None and depth != len(dependencies):
            self._raise_inconsistent(service_type, dependencies)
        self._depths.set(service_type, len(dependencies))
        level, path = self._locate(dependencies, create=True)
        key: object = service_type
        for dependency in path:
            nested = level.get(key, _MISSING)
            if not isinstance(nested, IdentityWeakMap):
                nested = IdentityWeakMap()
                level.set(key, nested)
            level = nested
            key = dependency
        level.set(key, _Singleton(instance))

    def get_or_create(
        self,
        service_type: type[Any],
        dependencies: Sequence[object],
        factory: Callable[[], T],
    ) -> T:
        """Return the cached instance or build and store it with ``factory``.

        Construction holds a lock owned by this one path only, so concurrent
        first access constructs at most one instance per path while services
        on other paths keep building in parallel.
        """
        with self._lock:
            instance = self.lookup(service_type, dependencies)
            if instance is not None:
                logger.debug("Reusing %s for dependency path of length %d", service_type, len(dependencies))
                return instance
            key = (id(service_type), *(id(dependency) for dependency in dependencies))
            path_lock = self._building.get(key)
            if path_lock is None:
                path_lock = self._building[key] = _PathLock()
            path_lock.users += 1
        try:
            with path_lock.lock:
                with self._lock:
                    instance = self.lookup(service_type, dependencies)
                if instance is not None:
                    return instance
                instance = factory()
                with self._lock:
                    self.store(service_type, dependencies, instance)
                return instance
        finally:
            with self._lock:
                path_lock.users -= 1
                if not path_lock.users:
                    del self._building[key]

    def clear(self) -> None:
        """Forget every stored instance, including those kept on dependencies."""
        with self._lock:
            self._root.clear()
            self._depths.clear()
            self._generation = _Generation()

    def _locate(
        self,
        dependencies: Sequence[object],
        *,
        create: bool,
    ) -> tuple[IdentityWeakMap[Any] | None, Sequence[object]]:
        # Returns the map holding the service type level and the dependencies
        # still to walk below it.
        if not dependencies:
            return self._root, dependencies
        namespace = _hosting_namespace(dependencies[-1])
        if namespace is None:
            return self._root, dependencies
        hosted = namespace.get(HOSTED_ATTR)
        if not isinstance(hosted, IdentityWeakMap):
            if not create:
                return None, ()
            hosted = IdentityWeakMap()
            namespace[HOSTED_ATTR] = hosted
        level = hosted.get(self._generation)
        if level is None:
            if not create:
                return None, ()
            level = IdentityWeakMap()
            hosted.set(self._generation, level)
        return level, dependencies[:-1]

    def _raise_inconsistent(self, service_type: type[Any], dependencies: Sequence[object]) -> None:
        msg = (
            f"Dependent singleton cache for {service_type!r} does not match its "
            f"{len(dependencies)} declared dependencies"
        )
        raise DILayerInternalConsistencyError(msg)


def _hosting_namespace(dependency: object) -> dict[str, Any] | None:
    try:
        weakref.ref(dependency)
        namespace = object.__getattribute__(dependency, "__dict__")
    except (AttributeError, TypeError):
        return None
    # Classes expose a read-only mappingproxy.
    return namespace if isinstance(namespace, dict) else None


dependent_singletons = DependentSingletonCache()
"""The process-wide cache shared by every context."""


__all__ = ["HOSTED_ATTR", "DependentSingletonCache", "IdentityWeakMap", "dependent_singletons"]
