"""Read and write signingdemo.yaml.

Relative key store paths are taken relative to the directory of the config
file that names them, so a config file and its key store can be moved
together. A missing file means defaults.
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from signingdemo.config.schema import SigningDemoConfig
from signingdemo.errors import ConfigError
from signingdemo.utils import write_private_file

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".signingdemo" / "signingdemo.yaml"


def _resolve_keystore_path(config: SigningDemoConfig, base_dir: Path) -> SigningDemoConfig:
    path = config.keystore.path.expanduser()
    if not path.is_absolute():
        path = base_dir / path
    config.keystore.path = path
    return config


def load_config(path: Path | None = None) -> SigningDemoConfig:
    """Load and validate configuration from a YAML file.

    Args:
        path: Config file; defaults to ``~/.signingdemo/signingdemo.yaml``.
              A missing file yields the default configuration.

    Returns:
        Validated configuration with an absolute ``keystore.path``

    Raises:
        ConfigError: If the file cannot be read, is not a YAML mapping, or
            fails validation
    """
    path = (path or DEFAULT_CONFIG_PATH).expanduser()

    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return _resolve_keystore_path(SigningDemoConfig(), path.parent)

    try:
        config_data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if config_data is None:
        config_data = {}
    if not isinstance(config_data, dict):
        raise ConfigError(
            f"Config {path} must be a mapping of sections, got {type(config_data).__name__}"
        )

    try:
        config = SigningDemoConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {path}: {e}") from e

    return _resolve_keystore_path(config, path.parent)


def save_config(config: SigningDemoConfig, path: Path | None = None) -> Path:
    """Write ``config`` as YAML, owner-readable only since it may hold a passphrase.

    Returns:
        The path written

    Raises:
        ConfigError: If the file cannot be written
    """
    path = (path or DEFAULT_CONFIG_PATH).expanduser()
    text = yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        write_private_file(path, text.encode())
    except OSError as e:
        raise ConfigError(f"Cannot write config {path}: {e}") from e

    logger.info(f"Wrote config to {path}")
    return path
