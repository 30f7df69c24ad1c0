"""
webcase - Application Kernel & Service Container.

The :class:`Kernel` is the application handle a harness is given: an
ASGI app plus the service factories the tests need to reach (ORM
managers, session store, ...).  Booting it produces a
:class:`ServiceContainer` from which services are looked up by name.

Services registered by default (user factories with the same name win):

==================  ==============================================
``kernel``          the kernel itself
``config``          :class:`~webcase.config.HarnessConfig`
``router``          :class:`~webcase.routing.AppRouter`
``session``         :class:`~webcase.sessions.MemorySessionStore`
``test.client``     :class:`~webcase.client.TestClient`
==================  ==============================================
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from .client import TestClient
from .config import HarnessConfig
from .routing import AppRouter
from .sessions import MemorySessionStore

logger = logging.getLogger("webcase.kernel")

ServiceFactory = Callable[["ServiceContainer"], Any]


class ServiceNotFoundError(KeyError):
    """No service is registered under the requested name."""


class ServiceContainer:
    """
    Name -> service registry with lazily built singletons.

    Usage::

        container = ServiceContainer()
        container.register("mailer", lambda c: FakeMailer())
        container.register_value("clock", fixed_clock)
        assert container.get("mailer") is container.get("mailer")
    """

    def __init__(self):
        self._factories: Dict[str, ServiceFactory] = {}
        self._instances: Dict[str, Any] = {}
        self._build_order: List[str] = []

    def register(self, name: str, factory: ServiceFactory) -> None:
        """Register (or replace) a factory; closes and drops any built instance."""
        self._factories[name] = factory
        if name in self._instances:
            self._close(name)
            del self._instances[name]
            self._build_order.remove(name)

    def register_value(self, name: str, value: Any) -> None:
        self.register(name, lambda _c: value)

    def has(self, name: str) -> bool:
        return name in self._factories

    def get(self, name: str) -> Any:
        if name in self._instances:
            return self._instances[name]
        try:
            factory = self._factories[name]
        except KeyError:
            raise ServiceNotFoundError(name) from None
        instance = factory(self)
        self._instances[name] = instance
        self._build_order.append(name)
        return instance

    @property
    def service_names(self) -> List[str]:
        return list(self._factories)

    def shutdown(self) -> None:
        """Call ``close()`` on built services, most recently built first."""
        for name in reversed(self._build_order):
            self._close(name)
        self._instances.clear()
        self._build_order.clear()

    def _close(self, name: str) -> None:
        close = getattr(self._instances[name], "close", None)
        if callable(close):
            close()
            logger.debug("Closed service %s", name)

    def __contains__(self, name: str) -> bool:
        return self.has(name)


class Kernel:
    """
    Application handle: ASGI app, services and config.

    Usage::

        def create_kernel():
            engine = create_engine("sqlite://")
            return Kernel(
                create_app(),
                services={"orm": lambda c: ManagerRegistry.from_engine(engine)},
            )

        harness = Harness(create_kernel)
    """

    def __init__(
        self,
        app: Any,
        services: Optional[Mapping[str, ServiceFactory]] = None,
        config: Optional[HarnessConfig] = None,
    ):
        self.app = app
        self.config = config if config is not None else HarnessConfig()
        self._services = dict(services or {})
        self._container: Optional[ServiceContainer] = None

    @property
    def booted(self) -> bool:
        return self._container is not None

    @property
    def container(self) -> ServiceContainer:
        return self.boot()

    def boot(self) -> ServiceContainer:
        """Build the container (idempotent)."""
        if self._container is not None:
            return self._container

        container = ServiceContainer()
        config = self.config
        container.register_value("kernel", self)
        container.register_value("config", config)
        container.register(
            "router", lambda c: AppRouter(self.app, base_url=config.get("client.base_url")),
        )
        container.register(
            "session", lambda c: MemorySessionStore(cookie_name=config.get("session.cookie_name")),
        )
        container.register(
            "test.client",
            lambda c: TestClient(
                self.app,
                base_url=config.get("client.base_url"),
                follow_redirects=config.get("client.follow_redirects"),
            ),
        )
        for name, factory in self._services.items():
            container.register(name, factory)

        self._container = container
        logger.info("Kernel booted with services: %s", ", ".join(container.service_names))
        return container

    def shutdown(self) -> None:
        """Close built services and forget the container (idempotent)."""
        if self._container is None:
            return
        self._container.shutdown()
        self._container = None
        logger.info("Kernel shut down")
