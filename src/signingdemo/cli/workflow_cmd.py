"""Workflow commands - generate, sign, verify, attest and demo."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from signingdemo.config.loader import load_config
from signingdemo.config.schema import SigningDemoConfig
from signingdemo.errors import SigningDemoError
from signingdemo.workflow import VERIFIED_FALSE, SigningWorkflow, WorkflowSession, WorkflowStatus

console = Console()


def configure_logging(level: str) -> None:
    """Route log records through Rich at ``level``."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_workflow(config_path: str | None) -> tuple[SigningDemoConfig, SigningWorkflow]:
    """Load configuration and build the workflow it describes.

    Exits with status 1 if the configuration or key store cannot be loaded.
    """
    try:
        config = load_config(Path(config_path) if config_path else None)
        configure_logging(config.logging.level)
        workflow = SigningWorkflow.from_config(config)
    except SigningDemoError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from e

    return config, workflow


def print_status(status: WorkflowStatus) -> None:
    if status.success:
        console.print(f"[green]✓[/green] {status.message}")
    else:
        console.print(f"[red]✗[/red] {status.message}")


def _finish(status: WorkflowStatus) -> None:
    print_status(status)
    if not status.success:
        raise typer.Exit(1)


def _session(
    config: SigningDemoConfig,
    workflow: SigningWorkflow,
    alias: str | None,
    message: str | None,
) -> WorkflowSession:
    return WorkflowSession(
        workflow,
        alias=alias or config.keygen.alias,
        message=(message if message is not None else config.signing.message).encode(),
    )


def generate_command(
    config_path: str | None = None,
    alias: str | None = None,
    no_strongbox: bool = False,
) -> None:
    """Generate (or regenerate) the key pair."""
    config, workflow = load_workflow(config_path)
    session = _session(config, workflow, alias, None)

    use_strongbox = config.keygen.use_strongbox and not no_strongbox
    status = session.generate(use_strongbox_if_available=use_strongbox)
    if status.success and session.key_pair is not None:
        key_info = workflow.key_info(session.alias)
        console.print(f"[bold]Alias:[/bold] {session.alias}")
        console.print(f"[bold]Security level:[/bold] {key_info.security_level.value}")
        console.print(f"[bold]Origin:[/bold] {key_info.origin.value}")
        console.print(f"[bold]Public Key:[/bold] {session.public_key_hex}", soft_wrap=True)
    _finish(status)


def sign_command(
    config_path: str | None = None,
    alias: str | None = None,
    message: str | None = None,
) -> None:
    """Sign a message with the stored key and print the signature."""
    config, workflow = load_workflow(config_path)
    session = _session(config, workflow, alias, message)

    status = session.sign()
    if status.success:
        console.print(f"[bold]Signature (Hex):[/bold] {session.signature_hex}", soft_wrap=True)
    _finish(status)


def verify_command(
    signature: str,
    config_path: str | None = None,
    alias: str | None = None,
    message: str | None = None,
) -> None:
    """Verify a hex signature against the stored public key."""
    config, workflow = load_workflow(config_path)
    session = _session(config, workflow, alias, message)

    try:
        session.key_pair = workflow.load_key_pair(session.alias)
    except SigningDemoError as e:
        _finish(WorkflowStatus(success=False, message=f"Error verifying signature: {e}"))
        return

    try:
        session.signature = bytes.fromhex(signature)
    except ValueError:
        _finish(WorkflowStatus(success=False, message="Error verifying signature: not hex"))
        return

    _finish(session.verify())


def attest_command(
    config_path: str | None = None,
    alias: str | None = None,
    show_chain: bool = False,
) -> None:
    """Print the leaf attestation certificate, or the whole chain."""
    config, workflow = load_workflow(config_path)
    session = _session(config, workflow, alias, None)

    status = session.attest()
    chain = session.attestation
    if status.success and chain is not None:
        console.print(f"[bold]Certificates:[/bold] {len(chain.certificates)}")
        description = chain.key_description()
        if description is not None:
            console.print(f"[bold]Challenge:[/bold] {description.challenge}", soft_wrap=True)
            console.print(f"[bold]Security level:[/bold] {description.security_level.value}")
        console.print(f"[bold]Attestation (Hex):[/bold] {session.attestation_hex}", soft_wrap=True)

        if show_chain:
            table = Table(title="Attestation chain", show_header=True, header_style="bold cyan")
            table.add_column("#", width=3)
            table.add_column("Subject")
            table.add_column("Issuer")
            table.add_column("Not after", style="dim")
            for index, cert in enumerate(chain.describe()):
                table.add_row(str(index), cert["subject"], cert["issuer"], cert["not_after"])
            console.print(table)
            verified = chain.verify_chain()
            mark = "[green]✓[/green]" if verified else "[red]✗[/red]"
            console.print(f"{mark} Chain signatures verified: {verified}")
    _finish(status)


def demo_command(config_path: str | None = None) -> None:
    """Run the whole workflow in one session and show a summary."""
    config, workflow = load_workflow(config_path)
    session = _session(config, workflow, None, None)

    console.print(
        Panel.fit(
            "[bold blue]ECDSA P256 Demo[/bold blue]\n"
            f"Message: {session.message.decode()}",
            border_style="blue",
        )
    )

    steps: list[tuple[str, WorkflowStatus]] = []
    steps.append(("1. Generate key pair", session.generate(config.keygen.use_strongbox)))
    if session.can_sign:
        steps.append(("2. Sign message", session.sign()))
    if session.can_verify:
        steps.append(("3. Verify signature", session.verify()))

        # Flip the last signature byte; only a clean FALSE passes, a decode error does not
        original = session.signature
        session.signature = original[:-1] + bytes([original[-1] ^ 0x01])
        tampered = session.verify()
        steps.append(
            (
                "3b. Verify tampered signature",
                WorkflowStatus(
                    success=tampered.message == VERIFIED_FALSE, message=tampered.message
                ),
            )
        )
        session.signature = original
    if session.can_attest:
        steps.append(("4. Attest key", session.attest()))

    table = Table(title="Workflow", show_header=True, header_style="bold cyan")
    table.add_column("Step", style="white", width=30)
    table.add_column("Status", width=8)
    table.add_column("Details", style="dim")
    for name, status in steps:
        mark = "[green]✓[/green]" if status.success else "[red]✗[/red]"
        table.add_row(name, mark, status.message)
    console.print(table)

    console.print(f"[bold]Public Key:[/bold] {session.public_key_hex}", soft_wrap=True)
    console.print(f"[bold]Signature (Hex):[/bold] {session.signature_hex}", soft_wrap=True)
    console.print(f"[bold]Attestation (Hex):[/bold] {session.attestation_hex}", soft_wrap=True)

    if workflow.key_store.supports_strongbox:
        console.print("[green]✓[/green] StrongBox supported!")
    else:
        console.print("[yellow]⚠[/yellow] StrongBox not supported")

    if not all(status.success for _, status in steps):
        raise typer.Exit(1)
