"""Tests for configuration loading and validation."""

import stat
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from pydantic import ValidationError

from signingdemo.config.loader import load_config, save_config
from signingdemo.config.schema import KeyGenerationConfig, SigningDemoConfig
from signingdemo.errors import ConfigError, SigningDemoError


def test_default_config():
    """Test that default config has expected values."""
    config = SigningDemoConfig()

    assert config.keystore.backend == "file"
    assert config.keystore.path == Path.home() / ".signingdemo" / "keystore"
    assert config.keystore.passphrase is None
    assert config.keystore.strongbox_available is False

    assert config.keygen.alias == "my_ecdsa_key"
    assert config.keygen.use_strongbox is True
    assert config.keygen.strongbox_policy == "fallback"
    assert config.keygen.challenge_length == 20
    assert config.keygen.unlocked_device_required is True
    assert config.keygen.user_authentication_required is False

    assert config.signing.message == "Hello, ECDSA! This message will be signed."
    assert config.signing.algorithm == "SHA256withECDSA"

    assert config.logging.level == "WARNING"


def test_load_config_nonexistent_returns_defaults():
    """Test that loading a nonexistent config returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config = load_config(Path(tmpdir) / "nonexistent.yaml")
        assert config.keygen.alias == "my_ecdsa_key"


def test_load_config_empty_file_returns_defaults():
    """Test that an empty config file returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "empty.yaml"
        config_path.write_text("")

        config = load_config(config_path)
        assert config.keystore.backend == "file"


def test_load_config_partial_override():
    """Test that partial config overrides only specified values."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "partial.yaml"

        with open(config_path, "w") as f:
            yaml.safe_dump({"keygen": {"alias": "k1", "strongbox_policy": "require"}}, f)

        config = load_config(config_path)

        assert config.keygen.alias == "k1"
        assert config.keygen.strongbox_policy == "require"
        assert config.keygen.challenge_length == 20
        assert config.keystore.backend == "file"


def test_load_config_invalid_yaml():
    """Test that invalid YAML raises ConfigError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "invalid.yaml"
        config_path.write_text("keygen: [unclosed")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(config_path)


def test_load_config_validation_error():
    """Test that schema violations raise ConfigError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "bad.yaml"
        config_path.write_text("keystore:\n  backend: pkcs11\n")

        with pytest.raises(ConfigError, match="validation failed"):
            load_config(config_path)


@pytest.mark.parametrize("length", [8, 65])
def test_challenge_length_bounds(length):
    """Test the attestation challenge length is bounded."""
    with pytest.raises(ValidationError):
        KeyGenerationConfig(challenge_length=length)


def test_alias_pattern():
    """Test aliases must be safe file names."""
    with pytest.raises(ValidationError):
        KeyGenerationConfig(alias="../escape")


def test_save_and_load_roundtrip():
    """Test that a saved config loads back unchanged."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "nested" / "signingdemo.yaml"

        config = SigningDemoConfig()
        config.keystore.backend = "memory"
        config.keystore.path = Path(tmpdir) / "keys"
        config.keygen.alias = "k1"

        save_config(config, config_path)
        loaded = load_config(config_path)

        assert loaded.keystore.backend == "memory"
        assert loaded.keystore.path == Path(tmpdir) / "keys"
        assert loaded.keygen.alias == "k1"
        assert stat.S_IMODE(config_path.stat().st_mode) == 0o600


def test_config_error_is_signing_demo_error():
    """Test config failures share the workflow error base class."""
    assert issubclass(ConfigError, SigningDemoError)


def test_load_config_non_mapping_raises():
    """Test a YAML document that is not a mapping raises ConfigError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "list.yaml"
        config_path.write_text("- keystore\n- keygen\n")

        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(config_path)


def test_load_config_unreadable_raises():
    """Test a config path that cannot be read raises ConfigError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "signingdemo.yaml"
        config_path.mkdir()

        with pytest.raises(ConfigError, match="Cannot read config"):
            load_config(config_path)


def test_relative_keystore_path_resolves_against_config_dir():
    """Test a relative key store path is taken from the config file's directory."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "signingdemo.yaml"
        config_path.write_text("keystore:\n  path: keys\n")

        config = load_config(config_path)

        assert config.keystore.path == Path(tmpdir) / "keys"


def test_home_keystore_path_is_expanded():
    """Test a ~ key store path is expanded at load time."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "signingdemo.yaml"
        config_path.write_text("keystore:\n  path: ~/signingdemo-keys\n")

        config = load_config(config_path)

        assert config.keystore.path == Path.home() / "signingdemo-keys"
