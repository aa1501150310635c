"""Tests for CLI app entry point."""

from unittest.mock import patch

from typer.testing import CliRunner

from signingdemo.cli.app import app, main

runner = CliRunner()


def test_version_command():
    """Test 'version' prints signingdemo version string."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "signingdemo version" in result.output


def test_no_args_shows_help():
    """Test invoking with no arguments shows help (no_args_is_help)."""
    result = runner.invoke(app, [])
    assert result.exit_code in (0, 2)
    assert "Usage" in result.output or "signingdemo" in result.output


def test_generate_delegates():
    """Test 'generate' delegates to generate_command."""
    with patch("signingdemo.cli.workflow_cmd.generate_command") as mock_cmd:
        result = runner.invoke(app, ["generate", "--alias", "k1", "--no-strongbox"])
        mock_cmd.assert_called_once_with(config_path=None, alias="k1", no_strongbox=True)
        assert result.exit_code == 0


def test_init_delegates():
    """Test 'init' delegates to init_command."""
    with patch("signingdemo.cli.init_cmd.init_command") as mock_cmd:
        result = runner.invoke(app, ["init", "--backend", "memory", "--force"])
        mock_cmd.assert_called_once_with(
            config_path=None,
            force=True,
            backend="memory",
            keystore_path=None,
            passphrase=None,
            strongbox=False,
        )
        assert result.exit_code == 0


def test_verify_requires_signature():
    """Test 'verify' without --signature is a usage error."""
    result = runner.invoke(app, ["verify"])
    assert result.exit_code == 2


def test_info_delegates():
    """Test 'info' delegates to info_command."""
    with patch("signingdemo.cli.info_cmd.info_command") as mock_cmd:
        result = runner.invoke(app, ["info"])
        mock_cmd.assert_called_once()
        assert result.exit_code == 0


def test_main_keyboard_interrupt():
    """Test main() handles KeyboardInterrupt with exit code 130."""
    with (
        patch("signingdemo.cli.app.app", side_effect=KeyboardInterrupt),
        patch("signingdemo.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(130)


def test_main_exception():
    """Test main() handles unexpected exceptions with exit code 1."""
    with (
        patch("signingdemo.cli.app.app", side_effect=RuntimeError("test error")),
        patch("signingdemo.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(1)
