"""
Pytest configuration and shared fixtures for all bugsgraph tests.

The compiler driver is stateless between compilations (every compile builds
its own CompilerState), so one instance is shared across the session.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from bugsgraph.compiler.driver import CompilerDriver
from bugsgraph.symbolic.state import CompilerState


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def session_compiler():
    """Session-scoped compiler instance shared across ALL tests."""
    return CompilerDriver()


@pytest.fixture(scope="class")
def compiler(session_compiler):
    """Class-scoped compiler - returns session compiler (stateless, safe to share)."""
    return session_compiler


# =============================================================================
# Function-scoped fixtures
# =============================================================================

@pytest.fixture
def state():
    """Fresh compiler state per test."""
    return CompilerState()


@pytest.fixture
def seeded_state():
    """Factory: a fresh compiler state seeded with the given data."""
    def _seeded(data):
        s = CompilerState()
        s.seed_data(data)
        return s
    return _seeded


def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
