"""
Tests for webcase.kernel: ServiceContainer and Kernel boot/shutdown.
"""

from __future__ import annotations

import pytest

from webcase.client import TestClient
from webcase.config import HarnessConfig
from webcase.kernel import Kernel, ServiceContainer, ServiceNotFoundError
from webcase.routing import AppRouter
from webcase.sessions import MemorySessionStore


class _Closable:
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def close(self):
        self.log.append(self.name)


async def _noop_app(scope, receive, send):
    pass


# ============================================================================
# 1. ServiceContainer
# ============================================================================


class TestServiceContainer:

    def test_get_builds_once(self):
        calls = []
        container = ServiceContainer()
        container.register("thing", lambda c: calls.append(1) or object())
        assert container.get("thing") is container.get("thing")
        assert calls == [1]

    def test_factory_receives_container(self):
        container = ServiceContainer()
        container.register_value("greeting", "hi")
        container.register("loud", lambda c: c.get("greeting").upper())
        assert container.get("loud") == "HI"

    def test_unknown_service_raises(self):
        container = ServiceContainer()
        with pytest.raises(ServiceNotFoundError):
            container.get("missing")

    def test_unknown_service_is_a_key_error(self):
        with pytest.raises(KeyError):
            ServiceContainer().get("missing")

    def test_has_and_contains(self):
        container = ServiceContainer()
        container.register_value("a", 1)
        assert container.has("a")
        assert "a" in container
        assert "b" not in container

    def test_register_replaces_built_instance(self):
        container = ServiceContainer()
        container.register_value("x", 1)
        assert container.get("x") == 1
        container.register_value("x", 2)
        assert container.get("x") == 2

    def test_register_closes_replaced_instance(self):
        log = []
        container = ServiceContainer()
        container.register("db", lambda c: _Closable("old", log))
        container.get("db")
        container.register("db", lambda c: _Closable("new", log))
        assert log == ["old"]

        container.get("db")
        container.shutdown()
        assert log == ["old", "new"]

    def test_register_unbuilt_service_closes_nothing(self):
        log = []
        container = ServiceContainer()
        container.register("db", lambda c: _Closable("old", log))
        container.register("db", lambda c: _Closable("new", log))
        container.shutdown()
        assert log == []

    def test_shutdown_closes_in_reverse_build_order(self):
        log = []
        container = ServiceContainer()
        container.register("first", lambda c: _Closable("first", log))
        container.register("second", lambda c: _Closable("second", log))
        container.register("never", lambda c: _Closable("never", log))
        container.get("first")
        container.get("second")

        container.shutdown()

        assert log == ["second", "first"]

    def test_shutdown_is_idempotent(self):
        log = []
        container = ServiceContainer()
        container.register("svc", lambda c: _Closable("svc", log))
        container.get("svc")
        container.shutdown()
        container.shutdown()
        assert log == ["svc"]

    def test_services_rebuild_after_shutdown(self):
        container = ServiceContainer()
        container.register("obj", lambda c: object())
        before = container.get("obj")
        container.shutdown()
        assert container.get("obj") is not before


# ============================================================================
# 2. Kernel
# ============================================================================


class TestKernel:

    def test_boot_is_idempotent(self):
        kernel = Kernel(_noop_app)
        assert not kernel.booted
        assert kernel.boot() is kernel.boot()
        assert kernel.booted

    def test_default_services(self):
        container = Kernel(_noop_app).boot()
        assert container.get("kernel").app is _noop_app
        assert isinstance(container.get("config"), HarnessConfig)
        assert isinstance(container.get("router"), AppRouter)
        assert isinstance(container.get("session"), MemorySessionStore)
        assert isinstance(container.get("test.client"), TestClient)

    def test_config_flows_into_defaults(self):
        config = HarnessConfig(
            client={"base_url": "https://example.test", "follow_redirects": True},
            session={"cookie_name": "BLOGSESS"},
        )
        container = Kernel(_noop_app, config=config).boot()
        assert container.get("router").base_url == "https://example.test"
        assert container.get("test.client").follow_redirects is True
        assert container.get("session").cookie_name == "BLOGSESS"

    def test_user_services_override_defaults(self):
        store = MemorySessionStore(cookie_name="custom")
        kernel = Kernel(_noop_app, services={"session": lambda c: store})
        assert kernel.container.get("session") is store

    def test_orm_is_not_registered_by_default(self):
        with pytest.raises(ServiceNotFoundError):
            Kernel(_noop_app).container.get("orm")

    def test_shutdown_closes_services_and_forgets_container(self):
        log = []
        kernel = Kernel(_noop_app, services={"svc": lambda c: _Closable("svc", log)})
        first = kernel.boot()
        first.get("svc")

        kernel.shutdown()

        assert log == ["svc"]
        assert not kernel.booted
        assert kernel.boot() is not first

    def test_shutdown_before_boot_is_safe(self):
        Kernel(_noop_app).shutdown()
