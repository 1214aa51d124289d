"""Tests for thread safety of shared resolution state."""

import threading
import time

from dilayer import Context, DILayerCircularDependencyError, Service, provide


class _Storage:
    pass


class _SlowIndex(Service, deps=[_Storage]):
    built = 0

    def __init__(self) -> None:
        type(self).built += 1
        time.sleep(0.01)


class TestConcurrentResolution:
    def test_concurrent_first_access_builds_one_shared_instance(self) -> None:
        """Contexts resolving the same dependency from many threads share one instance."""
        storage = _Storage()
        results: list[_SlowIndex] = []
        errors: list[Exception] = []
        barrier = threading.Barrier(8)

        def resolve_service() -> None:
            try:
                context = provide(storage)
                barrier.wait()
                results.append(context.invoke(_SlowIndex))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=resolve_service) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(results) == 8
        assert all(r is results[0] for r in results)
        assert _SlowIndex.built == 1

    def test_resolution_path_is_not_shared_between_threads(self) -> None:
        """A type resolving in one thread is not reported as circular in another."""
        started = threading.Event()
        release = threading.Event()
        errors: list[Exception] = []

        class _Blocking(Service, deps=[_Storage]):
            def __init__(self) -> None:
                started.set()
                release.wait(timeout=5)

        def resolve_in(context: Context) -> None:
            try:
                context.invoke(_Blocking)
            except DILayerCircularDependencyError as e:
                errors.append(e)

        blocked = threading.Thread(target=resolve_in, args=(provide(_Storage()),))
        blocked.start()
        started.wait(timeout=5)

        second = threading.Thread(target=resolve_in, args=(provide(_Storage()),))
        second.start()
        release.set()
        blocked.join()
        second.join()

        assert not errors

    def test_constructor_may_wait_on_another_thread_building_a_service(self) -> None:
        """Building one stateful service does not block other paths from building."""
        resolved: list[object] = []

        class _Inner(Service, deps=[_Storage]):
            pass

        class _Outer(Service, deps=[_Storage]):
            def __init__(self) -> None:
                context = provide(_Storage())
                worker = threading.Thread(target=lambda: resolved.append(context.invoke(_Inner)))
                worker.start()
                worker.join(timeout=5)

        provide(_Storage()).invoke(_Outer)

        assert len(resolved) == 1
        assert isinstance(resolved[0], _Inner)
