"""Init command - write a starting signingdemo.yaml."""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from signingdemo.config.loader import DEFAULT_CONFIG_PATH, save_config
from signingdemo.config.schema import SigningDemoConfig
from signingdemo.errors import ConfigError

console = Console()


def init_command(
    config_path: str | None = None,
    force: bool = False,
    backend: str = "file",
    keystore_path: str | None = None,
    passphrase: str | None = None,
    strongbox: bool = False,
) -> None:
    """Write a configuration file with the chosen key store settings.

    Args:
        config_path: Where to write the config (default ~/.signingdemo/signingdemo.yaml)
        force: Overwrite an existing config
        backend: Key store backend, ``memory`` or ``file``
        keystore_path: Directory for the file key store
        passphrase: Passphrase encrypting stored private keys
        strongbox: Emulate an available StrongBox
    """
    path = Path(config_path).expanduser() if config_path else DEFAULT_CONFIG_PATH

    console.print(
        Panel.fit(
            "[bold blue]signingdemo initialization[/bold blue]\n"
            "Writing key store and key generation settings...",
            border_style="blue",
        )
    )

    if path.exists() and not force:
        console.print(f"\n[yellow]Config already exists at {path}[/yellow]")
        console.print("Use [bold]--force[/bold] to overwrite.")
        raise typer.Exit(0)

    config = SigningDemoConfig()
    config.keystore.backend = backend
    config.keystore.passphrase = passphrase
    config.keystore.strongbox_available = strongbox
    if keystore_path:
        config.keystore.path = Path(keystore_path).expanduser().absolute()

    try:
        written = save_config(config, path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from e

    console.print(f"\n[green]✓ Configuration saved to {written}[/green]")
    if backend == "file":
        console.print(f"  Key store: {config.keystore.path}")
        if passphrase is None:
            console.print("  [yellow]⚠[/yellow] No passphrase: private keys are stored unencrypted")

    console.print("\nNext steps:")
    console.print("  1. Generate a key: [bold]signingdemo generate[/bold]")
    console.print("  2. Or run the whole workflow: [bold]signingdemo demo[/bold]")
