"""Main CLI application using Typer."""

import sys

import typer
from rich.console import Console

from signingdemo import __version__

app = typer.Typer(
    name="signingdemo",
    help="signingdemo - EC P-256 key generation, signing, verification and attestation",
    no_args_is_help=True,
)

console = Console()

CONFIG_HELP = "Path to config file (default: ~/.signingdemo/signingdemo.yaml)"


@app.command()
def version():
    """Show signingdemo version."""
    console.print(f"signingdemo version {__version__}")


@app.command()
def init(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config"),
    backend: str = typer.Option(
        "file", "--backend", "-b", help="Key store backend: 'file' or 'memory'"
    ),
    keystore_path: str = typer.Option(None, "--keystore", help="Directory for the file key store"),
    passphrase: str = typer.Option(
        None, "--passphrase", help="Passphrase encrypting stored private keys"
    ),
    strongbox: bool = typer.Option(False, "--strongbox", help="Emulate an available StrongBox"),
):
    """Write a configuration file."""
    if backend not in ("file", "memory"):
        console.print(f"[red]Unknown backend: {backend}[/red]")
        raise typer.Exit(2)

    from signingdemo.cli.init_cmd import init_command

    init_command(
        config_path=config_path,
        force=force,
        backend=backend,
        keystore_path=keystore_path,
        passphrase=passphrase,
        strongbox=strongbox,
    )


@app.command()
def info(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Show key store backend, StrongBox support and stored keys."""
    from signingdemo.cli.info_cmd import info_command

    info_command(config_path=config_path)


@app.command()
def generate(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    alias: str = typer.Option(None, "--alias", "-a", help="Key alias (default from config)"),
    no_strongbox: bool = typer.Option(
        False, "--no-strongbox", help="Do not request StrongBox backing"
    ),
):
    """1. Generate an EC P-256 key pair."""
    from signingdemo.cli.workflow_cmd import generate_command

    generate_command(config_path=config_path, alias=alias, no_strongbox=no_strongbox)


@app.command()
def sign(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    alias: str = typer.Option(None, "--alias", "-a", help="Key alias (default from config)"),
    message: str = typer.Option(None, "--message", "-m", help="Message to sign"),
):
    """2. Sign the message with the stored key."""
    from signingdemo.cli.workflow_cmd import sign_command

    sign_command(config_path=config_path, alias=alias, message=message)


@app.command()
def verify(
    signature: str = typer.Option(..., "--signature", "-s", help="Signature as hex"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    alias: str = typer.Option(None, "--alias", "-a", help="Key alias (default from config)"),
    message: str = typer.Option(None, "--message", "-m", help="Message that was signed"),
):
    """3. Verify a signature against the stored public key."""
    from signingdemo.cli.workflow_cmd import verify_command

    verify_command(config_path=config_path, signature=signature, alias=alias, message=message)


@app.command()
def attest(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    alias: str = typer.Option(None, "--alias", "-a", help="Key alias (default from config)"),
    chain: bool = typer.Option(False, "--chain", help="Show every certificate in the chain"),
):
    """4. Show the attestation certificate chain for the stored key."""
    from signingdemo.cli.workflow_cmd import attest_command

    attest_command(config_path=config_path, alias=alias, show_chain=chain)


@app.command()
def demo(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Run generate, sign, verify, tamper check and attest in one session."""
    from signingdemo.cli.workflow_cmd import demo_command

    demo_command(config_path=config_path)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
