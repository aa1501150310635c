"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest
import yaml


@pytest.fixture
def tmp_config_path(tmp_path: Path) -> Path:
    """Provide a config file pointing the file key store at a temp directory."""
    config_path = tmp_path / "signingdemo.yaml"
    config_path.write_text(
        yaml.safe_dump({"keystore": {"backend": "file", "path": str(tmp_path / "keystore")}})
    )
    return config_path


@pytest.fixture
def strongbox_config_path(tmp_path: Path) -> Path:
    """Provide a config with an emulated StrongBox and in-memory store."""
    config_path = tmp_path / "strongbox.yaml"
    config_path.write_text(
        yaml.safe_dump({"keystore": {"backend": "memory", "strongbox_available": True}})
    )
    return config_path
