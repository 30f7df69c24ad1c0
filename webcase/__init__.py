"""
webcase - Integration test harness for ASGI applications.

Boots an application kernel per test, exposes an in-process HTTP test
client, authenticates simulated users (session or HTTP basic), runs click
commands, and installs SQLAlchemy fixture data whose entries can
reference each other with ``~key``.

Usage:
    from webcase import WebTestCase, Kernel

    class TestBlog(WebTestCase):
        fixtures = {
            "alice": ("User", {"username": "alice", "password": "secret"}),
            "hello": ("Post", {"title": "Hello", "author": "~alice"}),
        }

        def create_kernel(self):
            return make_kernel()

        async def test_post_page(self):
            self.install()
            post = self.get_fixture("hello")
            resp = await self.client().get(self.url("post_show", {"post_id": post.id}))
            self.assertEqual(resp.status_code, 200)

Components:
    - Harness:             Kernel/container access, auth, URLs, commands, fixtures
    - WebTestCase:         unittest base class owning one Harness per test
    - Kernel:              ASGI app + named service factories
    - ServiceContainer:    Name -> lazily built singleton services
    - TestClient:          In-process ASGI HTTP client with cookie jar
    - FixtureInstaller:    Purge-and-load executor with ~reference resolution
    - ManagerRegistry:     Named SQLAlchemy sessions
    - EntityRegistry:      Entity name -> declarative field mapping
    - HarnessConfig:       Dot-notation settings with .env loading
"""

__version__ = "0.3.0"

from .cases import WebTestCase
from .client import TestClient, TestResponse
from .config import HarnessConfig
from .console import ConsoleApplication
from .harness import Harness
from .kernel import Kernel, ServiceContainer, ServiceNotFoundError
from .loader import (
    REFERENCE_SIGIL,
    FixtureInstaller,
    FixtureRecord,
    ReferenceRepository,
    UnresolvedReferenceError,
    load_fixture_directory,
    parse_fixtures,
)
from .orm import EntityMapping, EntityRegistry, ManagerRegistry
from .routing import AppRouter
from .security import SecurityToken, UserInterface, basic_auth_header, parse_basic_auth, security_key
from .sessions import MemorySessionStore, Session

__all__ = [
    # Harness
    "Harness",
    "WebTestCase",
    # Kernel
    "Kernel",
    "ServiceContainer",
    "ServiceNotFoundError",
    # HTTP
    "TestClient",
    "TestResponse",
    "AppRouter",
    # Security & sessions
    "SecurityToken",
    "UserInterface",
    "basic_auth_header",
    "parse_basic_auth",
    "security_key",
    "MemorySessionStore",
    "Session",
    # Fixtures
    "REFERENCE_SIGIL",
    "FixtureInstaller",
    "FixtureRecord",
    "ReferenceRepository",
    "UnresolvedReferenceError",
    "load_fixture_directory",
    "parse_fixtures",
    # ORM
    "EntityMapping",
    "EntityRegistry",
    "ManagerRegistry",
    # Console & config
    "ConsoleApplication",
    "HarnessConfig",
]
