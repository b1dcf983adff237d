from __future__ import annotations

import pytest

from src.bulkybook.services.registry import SCOPED, SINGLETON, ServiceRegistry


class Disposable:
    def __init__(self, log: list[str], name: str, fail: bool = False) -> None:
        self.log = log
        self.name = name
        self.fail = fail

    def close(self) -> None:
        self.log.append(self.name)
        if self.fail:
            raise RuntimeError(f"{self.name} failed to close")


@pytest.mark.unit
def test_singleton_instance_is_shared_across_scopes() -> None:
    registry = ServiceRegistry()
    marker = object()
    registry.register_singleton("marker", marker)

    with registry.scope() as first, registry.scope() as second:
        assert first.resolve("marker") is marker
        assert second.resolve("marker") is marker
    assert registry.resolve("marker") is marker
    assert registry.lifetime("marker") == SINGLETON


@pytest.mark.unit
def test_singleton_factory_runs_once() -> None:
    registry = ServiceRegistry()
    calls: list[int] = []
    registry.register_singleton("value", factory=lambda provider: calls.append(1) or object())

    assert registry.resolve("value") is registry.resolve("value")
    assert calls == [1]


@pytest.mark.unit
def test_scoped_instances_are_per_scope() -> None:
    registry = ServiceRegistry()
    log: list[str] = []
    registry.register_scoped("resource", lambda provider: Disposable(log, "resource"))

    with registry.scope() as scope:
        first = scope.resolve("resource")
        assert scope.resolve("resource") is first
    with registry.scope() as other:
        assert other.resolve("resource") is not first

    assert registry.lifetime("resource") == SCOPED
    assert log == ["resource", "resource"]


@pytest.mark.unit
def test_scoped_service_cannot_be_resolved_from_root() -> None:
    registry = ServiceRegistry()
    registry.register_scoped("resource", lambda provider: object())

    with pytest.raises(LookupError):
        registry.resolve("resource")


@pytest.mark.unit
def test_scoped_factory_resolves_dependencies_from_scope() -> None:
    registry = ServiceRegistry()
    log: list[str] = []
    registry.register_scoped("inner", lambda provider: Disposable(log, "inner"))
    registry.register_scoped("outer", lambda provider: (provider.resolve("inner"), Disposable(log, "outer"))[1])

    with registry.scope() as scope:
        scope.resolve("outer")
        scope.resolve("inner")

    # Disposed in reverse creation order.
    assert log == ["outer", "inner"]


@pytest.mark.unit
def test_scope_is_disposed_when_block_raises() -> None:
    registry = ServiceRegistry()
    log: list[str] = []
    registry.register_scoped("resource", lambda provider: Disposable(log, "resource"))

    with pytest.raises(ValueError):
        with registry.scope() as scope:
            scope.resolve("resource")
            raise ValueError("boom")

    assert log == ["resource"]
    assert scope.closed


@pytest.mark.unit
def test_scope_close_disposes_everything_and_reraises_first_error() -> None:
    registry = ServiceRegistry()
    log: list[str] = []
    registry.register_scoped("a", lambda provider: Disposable(log, "a", fail=True))
    registry.register_scoped("b", lambda provider: Disposable(log, "b"))

    scope = registry.create_scope()
    scope.resolve("a")
    scope.resolve("b")
    with pytest.raises(RuntimeError, match="a failed"):
        scope.close()

    assert log == ["b", "a"]
    with pytest.raises(RuntimeError):
        scope.resolve("a")


@pytest.mark.unit
def test_frozen_registry_rejects_registration() -> None:
    registry = ServiceRegistry()
    registry.register_singleton("x", 1)
    registry.freeze()

    with pytest.raises(RuntimeError):
        registry.register_singleton("y", 2)
    assert registry.frozen
    assert registry.snapshot() == {"x": SINGLETON}


@pytest.mark.unit
def test_get_returns_none_for_unknown_key() -> None:
    registry = ServiceRegistry()

    assert registry.get("missing") is None
    assert not registry.is_registered("missing")
