"""Shared pytest fixtures for dilayer tests."""

from collections.abc import Iterator

import pytest

from dilayer import Context, root_context
from dilayer._internal.singletons import DependentSingletonCache


@pytest.fixture()
def context() -> Context:
    """Fresh context without providers."""
    return root_context().provide()


@pytest.fixture()
def singleton_cache() -> Iterator[DependentSingletonCache]:
    """Standalone dependent-singleton cache."""
    cache = DependentSingletonCache()
    yield cache
    cache.clear()
