"""
Global pytest Configuration and Fixtures

Flask application fixtures for the form validation service. Every application
built here runs against the in-process fallback cache and a stub domain
reputation oracle, so no test touches Redis or the network.

Key Components:
- ``flask_app`` / ``client``: application factory fixture with the testing configuration
- ``fallback_store`` / ``cache``: RedisCache without a Redis URL, backed by InMemoryStore
- ``domain_oracle``: recording stub for the email domain reputation oracle
- ``auth_headers``: bearer token accepted by ``TestingConfig``
- Automatic ``unit`` / ``integration`` markers based on test location

Dependencies:
- pytest 7.4+ with pytest-mock
- Flask test client
"""

from typing import Dict, List, Optional

import pytest

from config import TestingConfig
from form_validator.app import create_app
from form_validator.cache import InMemoryStore, RedisCache

TEST_AUTH_TOKEN = 'test-auth-token'


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests with isolated component testing")
    config.addinivalue_line("markers", "integration: Integration tests over the HTTP surface")


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on file location."""
    for item in items:
        test_file_path = str(item.fspath)
        if "/unit/" in test_file_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_file_path:
            item.add_marker(pytest.mark.integration)


class StubDomainOracle:
    """
    Domain reputation oracle returning canned verdicts.

    Args:
        verdicts: Mapping of domain to reject reason; unknown domains are accepted
    """

    def __init__(self, verdicts: Optional[Dict[str, str]] = None):
        self.verdicts = dict(verdicts or {})
        self.calls: List[str] = []
        self.closed = False

    def evaluate(self, domain: str) -> Optional[str]:
        self.calls.append(domain)
        return self.verdicts.get(domain)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def app_config():
    """Testing configuration instance; tests may adjust attributes before the app is built."""
    return TestingConfig()


@pytest.fixture
def fallback_store():
    """Fresh in-memory store for each test."""
    return InMemoryStore()


@pytest.fixture
def cache(fallback_store):
    """Cache without a Redis URL, so every command is served by the fallback store."""
    cache = RedisCache(fallback=fallback_store)
    cache.initialize()
    return cache


@pytest.fixture
def domain_oracle():
    """Stub oracle accepting every domain unless a verdict is configured."""
    return StubDomainOracle()


@pytest.fixture
def flask_app(app_config, cache, domain_oracle):
    """Flask application built by the factory with injected test components."""
    return create_app(config=app_config, cache=cache, domain_oracle=domain_oracle)


@pytest.fixture
def client(flask_app):
    """Flask test client."""
    return flask_app.test_client()


@pytest.fixture
def auth_headers():
    """Authorization header carrying the testing bearer token."""
    return {'Authorization': f'Bearer {TEST_AUTH_TOKEN}'}
