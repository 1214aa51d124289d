from __future__ import annotations

from abc import ABC, abstractmethod

import pytest

from dilayer import (
    Context,
    DILayerConfigurationError,
    DILayerUnresolvedAbstractTypeError,
    Injector,
    Service,
    current_context,
    instance,
    middleware,
    provide,
    run,
    subclass,
)


class _AbstractStorage(ABC):
    @abstractmethod
    def load(self, key: str) -> str: ...


class _DummyStorage(_AbstractStorage):
    def load(self, key: str) -> str:
        return key


class _UpperStorage(_DummyStorage):
    def load(self, key: str) -> str:
        return key.upper()


class _Clock:
    pass


class _FixedClock(_Clock):
    pass


class _Exclamation:
    def exclaim(self) -> str:
        return "!"


class _QuestionMark(_Exclamation):
    def exclaim(self) -> str:
        return "?"


class _Item(Service, stateful=True):
    def __init__(self, name: str) -> None:
        self.name = name

    @property
    def with_exclamations(self) -> str:
        return self.name + self(_Exclamation).exclaim()


class _Greeter(Service):
    def greet(self, names: list[str]) -> list[str]:
        return [self.new(_Item, name).with_exclamations for name in names]


def test_invoke_concrete_class(context: Context) -> None:
    assert context.invoke(_DummyStorage).load("key123") == "key123"


def test_invoke_mapped_abstract_class() -> None:
    assert provide(_DummyStorage).invoke(_AbstractStorage).load("key123") == "key123"


def test_invoke_unmapped_abstract_class_fails() -> None:
    with pytest.raises(DILayerUnresolvedAbstractTypeError) as exc_info:
        provide().invoke(_AbstractStorage)

    assert exc_info.value.service_type is _AbstractStorage


def test_invoke_memoizes_within_context(context: Context) -> None:
    assert context.invoke(_Clock) is context.invoke(_Clock)


def test_new_returns_distinct_instances(context: Context) -> None:
    first = context.new(_Clock)
    second = context.new(_Clock)

    assert first is not second
    assert first is not context.invoke(_Clock)


def test_derived_context_starts_with_empty_memo_cache(context: Context) -> None:
    clock = context.invoke(_Clock)
    child = context.provide()

    assert child is not context
    assert child.invoke(_Clock) is not clock


def test_provide_does_not_mutate_parent() -> None:
    parent = provide()
    parent.provide(_FixedClock)

    assert type(parent.invoke(_Clock)) is _Clock


def test_most_recent_subclass_provider_wins() -> None:
    context = provide(_DummyStorage, _UpperStorage)

    assert context.invoke(_AbstractStorage).load("abc") == "ABC"


def test_earlier_subclass_provider_still_reached_for_unrelated_types() -> None:
    context = provide(_FixedClock, _DummyStorage, _UpperStorage)

    assert type(context.invoke(_Clock)) is _FixedClock
    assert type(context.invoke(_AbstractStorage)) is _UpperStorage


def test_broader_later_mapping_does_not_hide_specific_one() -> None:
    context = provide(_UpperStorage, subclass(_DummyStorage))

    # _DummyStorage is not a descendant of _UpperStorage, so it falls through.
    assert context.map(_UpperStorage) is _UpperStorage
    assert context.map(_AbstractStorage) is _DummyStorage


def test_map_is_cached_per_context() -> None:
    calls: list[type] = []
    context = provide(_DummyStorage)
    original = context.hooks.map_class

    def counting(service_type: type) -> type:
        calls.append(service_type)
        return original(service_type)

    counted = context.provide(middleware(lambda previous: {"map_class": counting}))
    counted.map(_AbstractStorage)
    counted.new(_AbstractStorage)
    counted.new(_AbstractStorage)

    assert calls == [_AbstractStorage]


def test_instance_provider_answers_invoke() -> None:
    storage = _DummyStorage()
    context = provide(storage)

    assert context.invoke(_AbstractStorage) is storage
    assert context.invoke(_DummyStorage) is storage


def test_instance_provider_does_not_affect_new() -> None:
    storage = _DummyStorage()
    context = provide(instance(storage))

    built = context.new(_DummyStorage)
    assert built is not storage
    assert isinstance(built, _DummyStorage)


def test_instance_provider_does_not_satisfy_new_of_abstract_type() -> None:
    context = provide(_DummyStorage())

    with pytest.raises(DILayerUnresolvedAbstractTypeError):
        context.new(_AbstractStorage)


def test_subclass_provider_affects_new() -> None:
    assert type(provide(_UpperStorage).new(_AbstractStorage)) is _UpperStorage


def test_new_passes_constructor_arguments(context: Context) -> None:
    item = context.new(_Item, "David")

    assert item.name == "David"


def test_invoke_context_returns_itself(context: Context) -> None:
    assert context.invoke(Context) is context


@pytest.mark.parametrize("provider", [None, len, lambda previous: {}])
def test_provide_rejects_invalid_providers(provider: object) -> None:
    with pytest.raises(DILayerConfigurationError):
        provide(provider)


def test_run_passes_injector_and_returns_result() -> None:
    context = provide(_DummyStorage)

    def body(inject: Injector, key: str) -> str:
        return inject(_AbstractStorage).load(key)

    assert context.run(body, "foo abc") == "foo abc"


def test_run_installs_current_context() -> None:
    context = provide(_FixedClock)

    before = current_context()

    assert context.run(lambda inject: current_context()) is context
    assert current_context() is before


def test_module_level_provide_derives_from_current_context() -> None:
    outer = provide(_FixedClock)

    def body(inject: Injector) -> _Clock:
        return provide(_DummyStorage).invoke(_Clock)

    assert type(outer.run(body)) is _FixedClock


def test_module_level_run_uses_current_context() -> None:
    outer = provide(_DummyStorage)

    with outer.use():
        assert run(lambda inject: inject(Context)) is outer


@pytest.mark.parametrize("fn", [object(), _Clock, lambda: None])
def test_run_rejects_functions_without_injector_parameter(fn: object) -> None:
    with pytest.raises(DILayerConfigurationError):
        provide().run(fn)  # type: ignore[arg-type]


def test_nested_context_overrides_only_nested_scope() -> None:
    def outer(inject: Injector) -> tuple[list[str], list[str], list[str]]:
        before = inject(_Greeter).greet(["David", "Ylva"])
        nested = inject(Context).provide(_Exclamation).run(
            lambda nested_inject: nested_inject(_Greeter).greet(["David", "Ylva"]),
        )
        after = inject(_Greeter).greet(["David", "Ylva"])
        return before, nested, after

    before, nested, after = provide(_QuestionMark).run(outer)

    assert before == ["David?", "Ylva?"]
    assert nested == ["David!", "Ylva!"]
    assert after == ["David?", "Ylva?"]


def test_redirection_marker_resolves_target_type(context: Context) -> None:
    class _Target:
        pass

    class _Alias:
        __injected_type__ = _Target

    assert type(context.invoke(_Alias)) is _Target
    assert context.invoke(_Alias) is context.invoke(_Target)
