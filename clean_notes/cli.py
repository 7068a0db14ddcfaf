from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .cleaner import CleanReport, build_cleaner
from .dates import extract_date, is_eligible
from .settings import CleanupOptions, load_settings
from .transforms import apply_transforms
from .vault import Document, VaultStore

app = typer.Typer(
    add_completion=False,
    help="clean_notes: tidy up old Obsidian daily notes",
    rich_markup_mode="rich",
)
console = Console()


# ═══════════════════════════════════════════════════════════════════════════════
# BANNER & HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

BANNER = """
[bold cyan]╔═══════════════════════════════════════════════════════════════╗
║         [white]clean_notes[/white] - Daily note cleanup for Obsidian         ║
╚═══════════════════════════════════════════════════════════════╝[/bold cyan]
"""

MENU_OPTIONS = """
[bold]Main Menu[/bold]

  [cyan][S][/cyan]tatus     Show configuration and eligible notes
  [cyan][C][/cyan]lean      Clean old daily notes now
  [cyan][D][/cyan]ry run    Preview which notes would change
  [cyan][R][/cyan]un        Start the API server (with daily schedule)

  [dim]────────────────────────────────────────[/dim]

  [red][X][/red] Exit
"""


def _notify(message: str) -> None:
    console.print(f"[bold]›[/bold] {message}")


def _print_report(report: CleanReport) -> None:
    title = "Dry run" if report.dry_run else "Results"
    modified_label = "Would change" if report.dry_run else "Modified"
    lines = [
        f"  Scanned:  [dim]{report.scanned:,}[/dim]",
        f"  Eligible: [cyan]{report.eligible:,}[/cyan]",
        f"  {modified_label + ':':<9} [cyan]{report.modified:,}[/cyan]",
    ]
    if report.failed:
        lines.append(f"  Failed:   [red]{len(report.failed):,}[/red] ({', '.join(report.failed)})")
    console.print(Panel.fit("\n".join(lines), title=title))


def _options_table(opts: CleanupOptions, resolved_folder: str | None) -> Table:
    t = Table(show_header=True, header_style="bold")
    t.add_column("Option", style="cyan")
    t.add_column("Value")
    t.add_row("folder", opts.folder or f"[dim](default: {resolved_folder or 'not set'})[/dim]")
    t.add_row("days_after", str(opts.days_after))
    t.add_row("remove_buttons", str(opts.remove_buttons))
    t.add_row("remove_task_queries", str(opts.remove_task_queries))
    t.add_row("remove_empty_sections", str(opts.remove_empty_sections))
    return t


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN CALLBACK
# ═══════════════════════════════════════════════════════════════════════════════

@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context):
    """
    [bold]clean_notes[/bold]: strip button blocks, task queries and empty
    headings from daily notes once they are old enough.

    [dim]Run without arguments to launch the interactive menu.[/dim]

    [bold]Examples:[/bold]
      python -m clean_notes clean --dry-run     # Preview changes
      python -m clean_notes config --days-after 14
      python -m clean_notes run                 # API + daily schedule
    """
    if ctx.invoked_subcommand is None:
        _interactive_menu()
        raise typer.Exit(code=0)


# ═══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════

@app.command("status", help="[bold cyan]S[/bold cyan]how configuration and eligible notes")
def status():
    """Show settings, options and how many notes are currently old enough."""
    s = load_settings()
    cleaner, options_store = build_cleaner(s)
    opts = options_store.load()
    folder_path = cleaner.resolve_folder_path(opts)

    console.print(Panel.fit(
        "\n".join([
            f"[bold]Vault:[/bold]        {s.CLEAN_VAULT_PATH}",
            f"[bold]Options file:[/bold] {s.CLEAN_OPTIONS_PATH}",
            f"[bold]API Server:[/bold]   http://{s.CLEAN_API_HOST}:{s.CLEAN_API_PORT}",
            f"[bold]Schedule:[/bold]     every {s.CLEAN_INTERVAL_HOURS:g}h "
            f"({'enabled' if s.CLEAN_SCHEDULE_ENABLED else 'disabled'})",
        ]),
        title="[bold]Configuration[/bold]",
    ))
    console.print(_options_table(opts, folder_path))

    if not folder_path:
        console.print("[yellow]Daily notes folder not set.[/yellow]")
        return
    folder = cleaner.store.resolve_folder(folder_path)
    if folder is None:
        console.print(f"[red]Folder not found:[/red] {folder_path}")
        return

    docs = cleaner.store.list_documents(folder)
    now = datetime.now()
    dated = sum(1 for d in docs if extract_date(d.identifier) is not None)
    eligible = sum(1 for d in docs if is_eligible(d.identifier, opts.days_after, now))
    console.print(f"[dim]{folder}[/dim]")
    console.print(
        f"{len(docs):,} notes, {dated:,} dated, "
        f"[cyan]{eligible:,}[/cyan] older than {opts.days_after} days"
    )


@app.command("clean", help="[bold cyan]C[/bold cyan]lean old daily notes now")
def clean(
    dry_run: bool = typer.Option(False, "--dry-run", help="Report changes without writing"),
):
    """Run the cleanup once against the configured folder."""
    s = load_settings()
    cleaner, _ = build_cleaner(s, notify=_notify)

    report = cleaner.run(dry_run=dry_run)
    if report is None:
        console.print("[yellow]A cleanup is already running.[/yellow]")
        raise typer.Exit(code=1)
    if report.aborted:
        console.print("[dim]Set a folder with 'clean_notes config --folder <path>'[/dim]")
        raise typer.Exit(code=1)
    _print_report(report)


@app.command("config", help="Show or change cleanup options")
def config(
    folder: Optional[str] = typer.Option(None, "--folder", "-f", help="Daily notes folder (vault-relative)"),
    days_after: Optional[int] = typer.Option(None, "--days-after", "-d", help="Clean notes older than N days"),
    buttons: Optional[bool] = typer.Option(None, "--buttons/--no-buttons", help="Remove ```button blocks"),
    task_queries: Optional[bool] = typer.Option(
        None, "--task-queries/--no-task-queries", help="Remove ```tasks query blocks"
    ),
    empty_sections: Optional[bool] = typer.Option(
        None, "--empty-sections/--no-empty-sections", help="Remove headings with no content"
    ),
):
    """Options are saved immediately; with no flags, just print them."""
    s = load_settings()
    cleaner, options_store = build_cleaner(s)

    changes = {
        "folder": folder.strip() if folder is not None else None,
        "days_after": days_after,
        "remove_buttons": buttons,
        "remove_task_queries": task_queries,
        "remove_empty_sections": empty_sections,
    }
    changes = {k: v for k, v in changes.items() if v is not None}

    try:
        opts = options_store.update(**changes) if changes else options_store.load()
    except ValidationError as e:
        for err in e.errors():
            loc = ".".join(str(x) for x in err["loc"])
            console.print(f"[red]Invalid {loc}:[/red] {err['msg']}")
        raise typer.Exit(code=1)

    if changes:
        console.print(f"[green]✓[/green] Saved to [cyan]{options_store.path}[/cyan]")
    console.print(_options_table(opts, cleaner.resolve_folder_path(opts)))


@app.command("preview", help="Print the cleaned text of one note without writing")
def preview(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Markdown file"),
    days_after: Optional[int] = typer.Option(
        None, "--days-after", "-d", min=0, help="Age threshold for this preview (default: saved option)"
    ),
    force: bool = typer.Option(False, "--force", help="Ignore the age threshold"),
):
    """Show what `clean` would write for PATH, using the saved options."""
    s = load_settings()
    _, options_store = build_cleaner(s)
    opts = options_store.load()
    if days_after is not None:
        opts = CleanupOptions.model_validate({**opts.model_dump(), "days_after": days_after})

    if not force and not is_eligible(path.stem, opts.days_after, datetime.now()):
        console.print(
            f"[yellow]{path.name} is not older than {opts.days_after} days "
            f"(or has no date); use --force to preview anyway.[/yellow]"
        )
        raise typer.Exit(code=1)

    note = Document(identifier=path.stem, path=path, extension=path.suffix.lstrip("."))
    original = VaultStore(path.parent).read(note)
    cleaned = apply_transforms(original, opts.to_config())
    if cleaned == original:
        console.print("[dim]No changes.[/dim]")
        return
    typer.echo(cleaned, nl=False)


@app.command("watch", help="Clean now, then again on the configured interval")
def watch():
    """Foreground scheduler without the API server."""
    from .logging import setup_logging
    from .scheduler import CleanupScheduler

    s = load_settings()
    log_file = setup_logging(s)
    cleaner, _ = build_cleaner(s, notify=_notify)

    console.print(Panel.fit(
        f"[bold]Scheduler running[/bold] (every {s.CLEAN_INTERVAL_HOURS:g}h)\n\n"
        f"  Logs: [cyan]{log_file}[/cyan]\n\n"
        f"[dim]Press CTRL+C to stop[/dim]",
        title="[bold green]clean_notes[/bold green]",
    ))
    CleanupScheduler(cleaner, interval_hours=s.CLEAN_INTERVAL_HOURS).run_forever()


@app.command("run", help="[bold cyan]R[/bold cyan]un the API server")
@app.command("serve", hidden=True)  # Alias
def run(
    host: Annotated[
        Optional[str],
        typer.Option(help="Host to bind"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option(help="Port to bind"),
    ] = None,
):
    """Start the FastAPI server; the daily schedule starts with it."""
    import uvicorn

    s = load_settings()
    host = host or s.CLEAN_API_HOST
    port = port or s.CLEAN_API_PORT

    console.print(Panel.fit(
        f"[bold]API Server starting...[/bold]\n\n"
        f"  URL:  [cyan]http://{host}:{port}[/cyan]\n"
        f"  Docs: [cyan]http://{host}:{port}/docs[/cyan]\n\n"
        f"[dim]Press CTRL+C to stop[/dim]",
        title="[bold green]clean_notes API[/bold green]",
    ))

    uvicorn.run(
        "clean_notes.app:app",
        host=host,
        port=port,
        reload=False,
        log_config=None,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# INTERACTIVE MENU
# ═══════════════════════════════════════════════════════════════════════════════

def _interactive_menu() -> None:
    console.print(BANNER)

    while True:
        console.print(MENU_OPTIONS)

        choice = Prompt.ask(
            "[bold]Choose an option[/bold]",
            default="s",
            show_default=False,
        ).strip().lower()

        if choice in ("x", "exit", "quit"):
            return

        try:
            if choice == "s":
                status()
            elif choice == "c":
                if Confirm.ask("Rewrite old notes now?", default=True):
                    clean(dry_run=False)
            elif choice == "d":
                clean(dry_run=True)
            elif choice == "r":
                console.print("[dim]Starting API server... Press CTRL+C to return to menu.[/dim]")
                try:
                    run()
                except KeyboardInterrupt:
                    console.print("\n[dim]Server stopped.[/dim]")
            else:
                console.print(f"[yellow]Unknown option: {choice}[/yellow]")
        except typer.Exit:
            pass

        console.print()  # Spacing


def main():
    app()
