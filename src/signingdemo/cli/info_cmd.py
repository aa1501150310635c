"""Info command - key store and hardware support overview."""

from rich.console import Console
from rich.table import Table

from signingdemo.cli.workflow_cmd import load_workflow
from signingdemo.keystore import FileKeyStore

console = Console()


def info_command(config_path: str | None = None) -> None:
    """Show the key store backend, StrongBox support and stored keys."""
    config, workflow = load_workflow(config_path)
    store = workflow.key_store

    table = Table(title="Key store", show_header=True, header_style="bold cyan")
    table.add_column("Check", style="white", width=20)
    table.add_column("Status", width=8)
    table.add_column("Details", style="dim")

    details = config.keystore.backend
    if isinstance(store, FileKeyStore):
        details = f"{details} ({store.directory})"
    table.add_row("Backend", "[green]✓[/green]", details)

    if store.supports_strongbox:
        table.add_row("StrongBox", "[green]✓[/green]", "Supported")
    else:
        table.add_row("StrongBox", "[yellow]⚠[/yellow]", "Not supported")

    table.add_row("Algorithm", "[green]✓[/green]", f"EC P-256, {config.signing.algorithm}")
    console.print(table)

    aliases = store.aliases()
    if not aliases:
        console.print("[yellow]No keys stored. Run 'signingdemo generate' to create one.[/yellow]")
        return

    keys = Table(title="Stored keys", show_header=True, header_style="bold cyan")
    keys.add_column("Alias")
    keys.add_column("Security level")
    keys.add_column("Origin")
    keys.add_column("Purposes", style="dim")
    for alias in aliases:
        key_info = workflow.key_info(alias)
        keys.add_row(
            alias,
            key_info.security_level.value,
            key_info.origin.value,
            ", ".join(p.value for p in key_info.purposes),
        )
    console.print(keys)
