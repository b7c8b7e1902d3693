"""
Shared test fixtures for the SmartForm test suite.
"""

import pytest

from smartform.agent.config import AssistantConfig
from smartform.core.credentials import API_KEY_ENV_VAR, API_KEY_STORAGE_KEY, CredentialStore
from smartform.core.schema import load_form_schema
from smartform.tests.helpers import FIXED_NOW


@pytest.fixture(autouse=True)
def no_env_api_key(monkeypatch):
    """Keep a developer's real key out of the tests."""
    monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)


@pytest.fixture(scope="session")
def schema():
    return load_form_schema()


@pytest.fixture
def config(tmp_path) -> AssistantConfig:
    return AssistantConfig(
        credentials_path=str(tmp_path / "credentials.json"),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def credentials(config) -> CredentialStore:
    """A credential store that already holds a key."""
    store = CredentialStore(config.credentials_path)
    store.set(API_KEY_STORAGE_KEY, "sk-test-key")
    return store


@pytest.fixture
def empty_credentials(config) -> CredentialStore:
    return CredentialStore(config.credentials_path)
