"""
webcase - Pytest Fixtures.

Import the fixtures in your ``conftest.py`` and provide a
``kernel_factory`` fixture returning a zero-argument kernel factory::

    # conftest.py
    from webcase.fixtures import webcase_harness, webcase_fixtures  # noqa: F401

    @pytest.fixture
    def kernel_factory():
        return create_kernel

    # test_profile.py
    def test_alice_is_loaded(webcase_harness):
        webcase_harness.install()
        assert webcase_harness.has_fixture("alice")

Override ``webcase_fixtures`` to declare the fixture set installed by
``webcase_harness.install()``.
"""

from __future__ import annotations

import pytest

from .config import HarnessConfig
from .harness import Harness
from .sessions import MemorySessionStore


@pytest.fixture
def webcase_config():
    """A :class:`HarnessConfig` with default settings."""
    return HarnessConfig()


@pytest.fixture
def session_store():
    """An empty :class:`MemorySessionStore`."""
    store = MemorySessionStore()
    yield store
    store.clear()


@pytest.fixture
def webcase_fixtures():
    """Fixture specification for ``webcase_harness``; override per module."""
    return None


@pytest.fixture
def webcase_harness(kernel_factory, webcase_fixtures):
    """
    A :class:`Harness` over ``kernel_factory``, closed after the test.
    """
    harness = Harness(kernel_factory, fixtures=webcase_fixtures)
    yield harness
    harness.close()
