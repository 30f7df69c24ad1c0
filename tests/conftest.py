"""
Shared fixtures for the webcase test-suite.
"""

import pytest

from blog_app import FIXTURES, create_kernel

# Register webcase pytest fixtures
from webcase.fixtures import (  # noqa: F401
    session_store,
    webcase_config,
    webcase_harness,
)


@pytest.fixture
def kernel_factory():
    return create_kernel


@pytest.fixture
def webcase_fixtures():
    return FIXTURES


@pytest.fixture
def harness(webcase_harness):
    """Shorter alias used throughout the suite."""
    return webcase_harness
