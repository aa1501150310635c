"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from signingdemo.config.schema import SigningDemoConfig
from signingdemo.keystore import SoftwareKeyStore
from signingdemo.workflow import SigningWorkflow, WorkflowSession


@pytest.fixture
def default_config() -> SigningDemoConfig:
    """Provide a default configuration for tests."""
    return SigningDemoConfig()


@pytest.fixture
def memory_config() -> SigningDemoConfig:
    """Provide a configuration using the in-memory key store."""
    config = SigningDemoConfig()
    config.keystore.backend = "memory"
    return config


@pytest.fixture
def key_store() -> SoftwareKeyStore:
    """Provide an empty in-memory key store."""
    return SoftwareKeyStore()


@pytest.fixture
def strongbox_store() -> SoftwareKeyStore:
    """Provide an in-memory key store emulating StrongBox."""
    return SoftwareKeyStore(strongbox_available=True)


@pytest.fixture
def workflow(key_store: SoftwareKeyStore) -> SigningWorkflow:
    """Provide a workflow over the in-memory key store."""
    return SigningWorkflow(key_store)


@pytest.fixture
def session(workflow: SigningWorkflow) -> WorkflowSession:
    """Provide a fresh workflow session."""
    return WorkflowSession(workflow)


@pytest.fixture
def keystore_dir(tmp_path: Path) -> Path:
    """Provide a directory for a file key store."""
    return tmp_path / "keystore"
