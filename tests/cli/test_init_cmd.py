"""Tests for the init CLI command."""

import stat

import yaml
from typer.testing import CliRunner

from signingdemo.cli.app import app
from signingdemo.config.loader import load_config

runner = CliRunner()


def test_init_writes_config(tmp_path):
    """Test 'init' writes a loadable config with the chosen settings."""
    config_path = tmp_path / "signingdemo.yaml"
    result = runner.invoke(
        app,
        [
            "init",
            "--config",
            str(config_path),
            "--keystore",
            str(tmp_path / "keys"),
            "--passphrase",
            "s3cret",
            "--strongbox",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Configuration saved" in result.output

    config = load_config(config_path)
    assert config.keystore.backend == "file"
    assert config.keystore.path == tmp_path / "keys"
    assert config.keystore.passphrase == "s3cret"
    assert config.keystore.strongbox_available is True
    assert stat.S_IMODE(config_path.stat().st_mode) == 0o600


def test_init_refuses_to_overwrite(tmp_path):
    """Test 'init' leaves an existing config alone without --force."""
    config_path = tmp_path / "signingdemo.yaml"
    config_path.write_text(yaml.safe_dump({"keygen": {"alias": "k1"}}))

    result = runner.invoke(app, ["init", "--config", str(config_path), "--backend", "memory"])
    assert result.exit_code == 0
    assert "already exists" in result.output
    assert load_config(config_path).keygen.alias == "k1"


def test_init_force_overwrites(tmp_path):
    """Test 'init --force' replaces an existing config."""
    config_path = tmp_path / "signingdemo.yaml"
    config_path.write_text(yaml.safe_dump({"keygen": {"alias": "k1"}}))

    result = runner.invoke(
        app, ["init", "--config", str(config_path), "--backend", "memory", "--force"]
    )
    assert result.exit_code == 0, result.output

    config = load_config(config_path)
    assert config.keystore.backend == "memory"
    assert config.keygen.alias == "my_ecdsa_key"


def test_init_rejects_unknown_backend(tmp_path):
    """Test 'init' with an unknown backend is a usage error."""
    config_path = tmp_path / "signingdemo.yaml"
    result = runner.invoke(app, ["init", "--config", str(config_path), "--backend", "pkcs11"])
    assert result.exit_code == 2
    assert not config_path.exists()


def test_initialized_config_runs_demo(tmp_path):
    """Test a config written by 'init' drives the demo end to end."""
    config_path = tmp_path / "signingdemo.yaml"
    init = runner.invoke(
        app, ["init", "--config", str(config_path), "--keystore", str(tmp_path / "keys")]
    )
    assert init.exit_code == 0, init.output

    result = runner.invoke(app, ["demo", "--config", str(config_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "keys" / "my_ecdsa_key.json").exists()
