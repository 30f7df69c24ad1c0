"""
webcase - Integration Test Harness.

:class:`Harness` is the object a test talks to.  It is given a kernel
factory, boots the kernel on first use, and offers accessors over the
kernel's services: the HTTP test client, the router, the session store,
the ORM managers and the console.

Usage::

    harness = Harness(create_kernel, fixtures=FIXTURES)
    harness.install()
    client = harness.authenticate(harness.get_fixture("alice"), "main")
    resp = await client.get(harness.url("profile"))
    harness.close()
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

import click

from .client import TestClient
from .console import Arguments, ConsoleApplication
from .kernel import Kernel, ServiceContainer
from .loader import (
    FixtureInstaller,
    FixtureRecord,
    FixtureSpec,
    ReferenceRepository,
    load_fixture_directory,
    parse_fixtures,
)
from .security import SecurityToken, UserInterface, basic_auth_header, security_key

logger = logging.getLogger("webcase.harness")


class Harness:
    """
    Per-test access to a booted application.

    Args:
        kernel_factory: Zero-argument callable returning a fresh
            :class:`Kernel`.  Called at most once per harness.
        fixtures: Default fixture specification used by :meth:`install`.
    """

    def __init__(
        self,
        kernel_factory: Callable[[], Kernel],
        fixtures: Optional[FixtureSpec] = None,
    ):
        self._kernel_factory = kernel_factory
        self._fixtures = fixtures
        self._kernel: Optional[Kernel] = None
        self._references: Dict[str, ReferenceRepository] = {}

    # ------------------------------------------------------------------
    # Kernel & services
    # ------------------------------------------------------------------

    @property
    def kernel(self) -> Kernel:
        if self._kernel is None:
            kernel = self._kernel_factory()
            kernel.boot()
            self._kernel = kernel
        return self._kernel

    def container(self) -> ServiceContainer:
        return self.kernel.container

    def get(self, service: str) -> Any:
        return self.container().get(service)

    @property
    def config(self):
        return self.get("config")

    def client(self, server: Optional[Mapping[str, str]] = None) -> TestClient:
        """Return the test client with its server parameters replaced."""
        client = self.get("test.client")
        client.set_server_parameters(server)
        return client

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, user: UserInterface, firewall: str) -> TestClient:
        """
        Log *user* in on *firewall* through a session.

        The token is written to a new session in the ``"session"`` store
        and the session cookie is placed in the client's jar.
        """
        client = self.client()
        client.follow_redirects = False

        session = self.get("session").start()
        token = SecurityToken.for_user(user, firewall)
        session.set(security_key(firewall), token.dumps())
        session.save()
        client.set_cookie(session.name, session.id)

        logger.debug("Authenticated %s on firewall %s", user.username, firewall)
        return client

    def authenticate_stateless(self, user: UserInterface) -> TestClient:
        """Return a client sending HTTP basic credentials for *user*."""
        return self.client({
            "authorization": basic_auth_header(user.username, user.password),
        })

    # ------------------------------------------------------------------
    # Routing & console
    # ------------------------------------------------------------------

    def url(
        self,
        route: str,
        params: Optional[Mapping[str, Any]] = None,
        absolute: bool = False,
    ) -> str:
        return self.get("router").generate(route, params, absolute)

    def run_command(self, command: click.Command, arguments: Arguments = None) -> str:
        """Run *command* against this kernel and return its output."""
        console = ConsoleApplication(self.kernel)
        console.add(command)
        return console.run(command.name, arguments).output

    def now(self) -> datetime:
        return datetime.now()

    # ------------------------------------------------------------------
    # Fixtures
    # ------------------------------------------------------------------

    def install(
        self,
        manager_name: Optional[str] = None,
        append: bool = False,
        fixtures: Optional[FixtureSpec] = None,
    ) -> ReferenceRepository:
        """
        Purge and load fixtures into *manager_name*.

        Uses the harness's declared fixtures unless *fixtures* is given.
        With ``append=True`` nothing is purged and the manager's existing
        references are kept.
        """
        spec = fixtures if fixtures is not None else self._fixtures
        return self._install(parse_fixtures(spec), manager_name, append)

    def install_data_fixtures(
        self,
        directory: Union[str, Path],
        manager_name: Optional[str] = None,
        append: bool = False,
    ) -> ReferenceRepository:
        """Like :meth:`install`, reading fixtures from YAML files in *directory*."""
        return self._install(load_fixture_directory(directory), manager_name, append)

    def _install(
        self,
        records: list[FixtureRecord],
        manager_name: Optional[str],
        append: bool,
    ) -> ReferenceRepository:
        name = self._manager_name(manager_name)
        orm = self.get("orm")
        installer = FixtureInstaller(
            orm.get_manager(name),
            orm.entities,
            strict_references=bool(self.config.get("fixtures.strict_references")),
        )
        repository = self._references.get(name) if append else None
        self._references[name] = installer.install(records, append=append, repository=repository)
        return self._references[name]

    def get_fixture(self, key: str, manager_name: Optional[str] = None) -> Any:
        """Entity loaded under *key*, or ``None``."""
        if self.has_fixture(key, manager_name):
            return self._references[self._manager_name(manager_name)].get_reference(key)
        return None

    def has_fixture(self, key: str, manager_name: Optional[str] = None) -> bool:
        if not self._references:
            return False
        repository = self._references.get(self._manager_name(manager_name))
        return repository is not None and repository.has_reference(key)

    def _manager_name(self, manager_name: Optional[str]) -> str:
        return (
            manager_name
            or self.config.get("fixtures.default_manager")
            or self.get("orm").default_manager
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Shut the kernel down and forget every fixture (idempotent)."""
        self._references.clear()
        if self._kernel is not None:
            self._kernel.shutdown()
            self._kernel = None
