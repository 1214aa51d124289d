from __future__ import annotations

from collections.abc import Iterator

import pytest

from dilayer.context import Context, root_context
from dilayer.injector import Injector


@pytest.fixture()
def dilayer_context() -> Context:
    """Create the per-test context used by the plugin.

    Override this fixture to layer the providers your tests need:

    .. code-block:: python

        @pytest.fixture()
        def dilayer_context() -> Context:
            return provide(MemStorage(), FakeClock)

    Returns:
        A context derived from the root context without providers.

    """
    return root_context().provide()


@pytest.fixture()
def dilayer_injector(dilayer_context: Context) -> Iterator[Injector]:
    """Install ``dilayer_context`` as the current context and yield its injector.

    Services constructed outside of any context, and module-level ``provide``
    and ``run`` calls, resolve from ``dilayer_context`` while the test runs.
    """
    with dilayer_context.use():
        yield Injector(dilayer_context)
