"""
webcase - Test Case Base Class.

Provides :class:`WebTestCase`, a unittest base class that owns one
:class:`~webcase.harness.Harness` per test and releases it in teardown.
"""

from __future__ import annotations

import unittest
from typing import Any, Dict, Mapping, Optional

from .harness import Harness
from .kernel import Kernel


class WebTestCase(unittest.IsolatedAsyncioTestCase):
    """
    Async integration test case backed by a :class:`Harness`.

    Subclasses implement :meth:`create_kernel` and may declare
    :attr:`fixtures`; requests are awaited on the test's event loop.

    Usage::

        class TestProfile(WebTestCase):
            fixtures = {
                "alice": ("User", {"username": "alice", "password": "secret"}),
            }

            def create_kernel(self):
                return make_kernel()

            async def test_profile_requires_login(self):
                self.install()
                client = self.authenticate(self.get_fixture("alice"), "main")
                resp = await client.get(self.url("profile"))
                self.assertEqual(resp.status_code, 200)
    """

    fixtures: Dict[str, Any] = {}

    harness: Harness

    def create_kernel(self) -> Kernel:
        """Return a fresh kernel for the current test."""
        raise NotImplementedError(
            f"{type(self).__name__} must implement create_kernel()"
        )

    def setUp(self) -> None:
        super().setUp()
        self.harness = Harness(self.create_kernel, fixtures=self.fixtures)

    def tearDown(self) -> None:
        self.harness.close()
        super().tearDown()

    # ── Delegates ──────────────────────────────────────────────────

    def container(self):
        return self.harness.container()

    def get(self, service: str) -> Any:
        return self.harness.get(service)

    def client(self, server: Optional[Mapping[str, str]] = None):
        return self.harness.client(server)

    def authenticate(self, user, firewall: str):
        return self.harness.authenticate(user, firewall)

    def authenticate_stateless(self, user):
        return self.harness.authenticate_stateless(user)

    def url(self, route: str, params: Optional[Mapping[str, Any]] = None, absolute: bool = False) -> str:
        return self.harness.url(route, params, absolute)

    def run_command(self, command, arguments=None) -> str:
        return self.harness.run_command(command, arguments)

    def install(self, manager_name: Optional[str] = None, append: bool = False):
        return self.harness.install(manager_name, append)

    def install_data_fixtures(self, directory, manager_name: Optional[str] = None, append: bool = False):
        return self.harness.install_data_fixtures(directory, manager_name, append)

    def get_fixture(self, key: str, manager_name: Optional[str] = None) -> Any:
        return self.harness.get_fixture(key, manager_name)

    def has_fixture(self, key: str, manager_name: Optional[str] = None) -> bool:
        return self.harness.has_fixture(key, manager_name)

    def now(self):
        return self.harness.now()
