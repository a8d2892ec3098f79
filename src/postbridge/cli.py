"""CLI interface for postbridge import sessions."""

import contextlib
import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from postbridge.config import PostbridgeConfig, load_config, merge_cli_overrides
from postbridge.errors import CommitPreconditionError, PostbridgeError
from postbridge.imports import ImportService, StatusSummary

app = typer.Typer(
    name="postbridge",
    help="Import interlinked markdown notes and publish them as posts.",
    no_args_is_help=True,
)

console = Console()

SessionOption = Annotated[
    str,
    typer.Option("--session", "-s", help="Import session id."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from postbridge import __version__

        console.print(f"postbridge {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log progress to stderr."),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .postbridge.toml file."),
    ] = None,
    posts_dir: Annotated[
        Optional[Path],
        typer.Option("--posts-dir", help="Permanent post store."),
    ] = None,
    sessions_dir: Annotated[
        Optional[Path],
        typer.Option("--sessions-dir", help="Working storage for import sessions."),
    ] = None,
) -> None:
    """postbridge - stage notes and their archives, then publish them together."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )
    config = merge_cli_overrides(
        load_config(config_path),
        posts_dir=posts_dir,
        sessions_dir=sessions_dir,
    )
    ctx.obj = config


def _service(ctx: typer.Context) -> ImportService:
    config = ctx.obj if isinstance(ctx.obj, PostbridgeConfig) else load_config()
    return ImportService(config)


@contextlib.contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except CommitPreconditionError as exc:
        console.print("[red]Error:[/red] session is not ready to commit")
        for reason in exc.reasons:
            console.print(f"  - {reason}")
        raise typer.Exit(1) from exc
    except PostbridgeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc
    except OSError as exc:
        console.print(f"[red]Storage error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _print_summary(summary: StatusSummary, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(summary.to_wire(), indent=2))
        return

    console.print(f"Session [bold]{summary.session_id}[/bold]")
    console.print(f"  Main note: {summary.main_slug or '[yellow]not set[/yellow]'}")

    if summary.notes:
        table = Table(title="Notes")
        table.add_column("Slug")
        table.add_column("Title")
        table.add_column("Main")
        table.add_column("Missing notes")
        table.add_column("Missing archives")
        for note in summary.notes:
            table.add_row(
                note.slug,
                note.title,
                "yes" if note.is_main else "",
                ", ".join(m.slug for m in note.missing_notes),
                ", ".join(m.text for m in note.missing_archives),
            )
        console.print(table)

    for pending in summary.pending_notes:
        console.print(
            f"  [yellow]waiting for note[/yellow] {pending.slug} "
            f"({pending.target_title}) <- {', '.join(pending.referenced_by)}"
        )
    for archive in summary.pending_archives:
        console.print(
            f"  [yellow]waiting for archive[/yellow] {archive.id} {archive.url} "
            f"<- {', '.join(archive.referenced_by)}"
        )

    if summary.ready:
        console.print("[bold green]Ready to commit.[/bold green]")
    else:
        console.print("[yellow]Not ready.[/yellow]")


@app.command()
def create(ctx: typer.Context) -> None:
    """Start a new import session and print its id."""
    with _handle_errors():
        session_id = _service(ctx).create_session()
    typer.echo(session_id)


@app.command("add-note")
def add_note(
    ctx: typer.Context,
    file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Markdown note."),
    ],
    session: SessionOption,
    main_note: Annotated[
        bool,
        typer.Option("--main", help="Mark this note as the session's entry point."),
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print status as JSON.")] = False,
) -> None:
    """Upload a markdown note into a session."""
    with _handle_errors():
        content = file.read_text(encoding="utf-8")
        summary = _service(ctx).add_note(session, file.name, content, is_main=main_note)
    _print_summary(summary, as_json)


@app.command("add-archive")
def add_archive(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="URL the archived page was captured from.")],
    file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Archived page."),
    ],
    session: SessionOption,
    as_json: Annotated[bool, typer.Option("--json", help="Print status as JSON.")] = False,
) -> None:
    """Upload the offline copy of an external page."""
    with _handle_errors():
        summary = _service(ctx).add_archive(session, url, file.name, file.read_bytes())
    _print_summary(summary, as_json)


@app.command()
def status(
    ctx: typer.Context,
    session: SessionOption,
    as_json: Annotated[bool, typer.Option("--json", help="Print status as JSON.")] = False,
) -> None:
    """Show what a session is still waiting for."""
    with _handle_errors():
        summary = _service(ctx).get_session(session)
    _print_summary(summary, as_json)


@app.command()
def commit(ctx: typer.Context, session: SessionOption) -> None:
    """Publish every note of a ready session."""
    with _handle_errors():
        result = _service(ctx).commit(session)
    console.print(f"[bold green]Published {len(result.folders)} post(s):[/bold green]")
    for folder in result.folders:
        console.print(f"  - {folder}")


@app.command("list")
def list_sessions(ctx: typer.Context) -> None:
    """List sessions in working storage."""
    with _handle_errors():
        summaries = _service(ctx).list_sessions()
    if not summaries:
        console.print("[yellow]No import sessions.[/yellow]")
        raise typer.Exit(0)
    for summary in summaries:
        state = "[green]ready[/green]" if summary.ready else "[yellow]pending[/yellow]"
        console.print(f"{summary.session_id}  {len(summary.notes)} note(s)  {state}")


@app.command()
def delete(ctx: typer.Context, session: SessionOption) -> None:
    """Abandon a session and remove its working storage."""
    with _handle_errors():
        _service(ctx).delete_session(session)
    console.print(f"Deleted session {session}")
