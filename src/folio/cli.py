"""CLI interface for folio."""

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from folio.config import FolioConfig, load_config, merge_cli_overrides
from folio.content.services import ContentService
from folio.errors import ConflictError, FolioError, NotFoundError, RecordValidationError

app = typer.Typer(
    name="folio",
    help="Manage file-backed content records.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")

EXIT_NOT_FOUND = 1
EXIT_CONFLICT = 2
EXIT_INVALID = 3
EXIT_ERROR = 4


class _State:
    config: FolioConfig | None = None


state = _State()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from folio import __version__

        console.print(f"folio {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .folio.toml config file."),
    ] = None,
    content_dir: Annotated[
        Optional[Path],
        typer.Option("--content-dir", help="Directory holding content records."),
    ] = None,
    schema_file: Annotated[
        Optional[Path],
        typer.Option("--schema", help="Path to the JSON schema file."),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Folio - a headless content store on plain JSON files."""
    try:
        config = merge_cli_overrides(
            load_config(config_path),
            content_dir=content_dir,
            schema_file=schema_file,
            log_level=log_level,
        )
    except FolioError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(EXIT_ERROR) from exc
    logging.basicConfig(
        level=config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    state.config = config


# ── Helpers ──────────────────────────────────────────────────────


def _service() -> ContentService:
    return ContentService.from_config(state.config or load_config())


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a service call, mapping failures to exit codes."""
    try:
        return asyncio.run(coro)
    except NotFoundError as exc:
        err_console.print(f"[yellow]{exc}[/yellow]")
        raise typer.Exit(EXIT_NOT_FOUND) from exc
    except ConflictError as exc:
        err_console.print(f"[red]Conflict:[/red] {exc}")
        for violation in exc.violations:
            err_console.print(f"  - {violation.message}")
        raise typer.Exit(EXIT_CONFLICT) from exc
    except RecordValidationError as exc:
        err_console.print(f"[red]{exc}[/red]")
        for error in exc.errors:
            err_console.print(f"  - {error.get('path') or '/'}: {error.get('message')}")
        raise typer.Exit(EXIT_INVALID) from exc
    except FolioError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(EXIT_ERROR) from exc


def _print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, ensure_ascii=False))


def _read_payload(source: str) -> dict[str, Any]:
    """Read a JSON object from a file path, or stdin when ``source`` is ``-``."""
    try:
        raw = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
        payload = json.loads(raw)
    except (OSError, json.JSONDecodeError) as exc:
        err_console.print(f"[red]Could not read JSON from {source}: {exc}[/red]")
        raise typer.Exit(EXIT_INVALID) from exc
    if not isinstance(payload, dict):
        err_console.print("[red]Expected a JSON object[/red]")
        raise typer.Exit(EXIT_INVALID)
    return payload


def _parse_pairs(pairs: list[str]) -> list[tuple[str, str]]:
    parsed: list[tuple[str, str]] = []
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            err_console.print(f"[red]Query parameters must look like key=value, got {pair!r}[/red]")
            raise typer.Exit(EXIT_INVALID)
        parsed.append((key, value))
    return parsed


# ── Commands ─────────────────────────────────────────────────────


@app.command("types")
def types_cmd() -> None:
    """List content types defined in the schema."""
    service = _service()
    try:
        summaries = service.content_types()
    except FolioError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(EXIT_ERROR) from exc

    table = Table(title="Content types")
    table.add_column("Name", style="cyan")
    table.add_column("Title")
    table.add_column("Required")
    table.add_column("Unique")
    for summary in summaries:
        table.add_row(
            summary.name,
            summary.title,
            ", ".join(summary.required),
            ", ".join(summary.unique_fields),
        )
    console.print(table)


@app.command("list")
def list_cmd(
    content_type: Annotated[str, typer.Argument(help="Content type to list.")],
    query: Annotated[
        Optional[list[str]],
        typer.Option("--query", "-q", help="Query parameter as key=value (repeatable)."),
    ] = None,
) -> None:
    """List records, e.g. ``folio list posts -q status=published -q sort=-createdAt``."""
    page = _run(_service().list(content_type, _parse_pairs(query or [])))
    _print_json(page.to_payload())


@app.command("get")
def get_cmd(
    content_type: Annotated[str, typer.Argument(help="Content type.")],
    item_id: Annotated[str, typer.Argument(help="Record id.")],
) -> None:
    """Show one record."""
    item = _run(_service().get(content_type, item_id))
    if item is None:
        err_console.print(f"[yellow]Content item not found: {content_type}/{item_id}[/yellow]")
        raise typer.Exit(EXIT_NOT_FOUND)
    _print_json(item.to_record())


@app.command("create")
def create_cmd(
    content_type: Annotated[str, typer.Argument(help="Content type.")],
    source: Annotated[str, typer.Argument(help="JSON file with the record, or - for stdin.")],
) -> None:
    """Create a record from a JSON object."""
    item = _run(_service().create(content_type, _read_payload(source)))
    _print_json(item.to_record())


@app.command("update")
def update_cmd(
    content_type: Annotated[str, typer.Argument(help="Content type.")],
    item_id: Annotated[str, typer.Argument(help="Record id.")],
    source: Annotated[str, typer.Argument(help="JSON file with changed fields, or - for stdin.")],
) -> None:
    """Merge fields from a JSON object into a record."""
    item = _run(_service().update(content_type, item_id, _read_payload(source)))
    _print_json(item.to_record())


@app.command("delete")
def delete_cmd(
    content_type: Annotated[str, typer.Argument(help="Content type.")],
    item_id: Annotated[str, typer.Argument(help="Record id.")],
) -> None:
    """Delete a record and its version history."""
    deleted = _run(_service().delete(content_type, item_id))
    if not deleted:
        err_console.print(f"[yellow]Content item not found: {content_type}/{item_id}[/yellow]")
        raise typer.Exit(EXIT_NOT_FOUND)
    console.print(f"Content item {content_type}/{item_id} deleted successfully")


@app.command("versions")
def versions_cmd(
    content_type: Annotated[str, typer.Argument(help="Content type.")],
    item_id: Annotated[str, typer.Argument(help="Record id.")],
) -> None:
    """List stored versions of a record, newest first."""
    versions = _run(_service().list_versions(content_type, item_id))
    table = Table(title=f"Versions of {content_type}/{item_id}")
    table.add_column("Version", style="cyan")
    table.add_column("Versioned at")
    table.add_column("Status")
    for version in versions:
        table.add_row(version.version_id, version.versioned_at, version.status.value)
    console.print(table)


@app.command("restore")
def restore_cmd(
    content_type: Annotated[str, typer.Argument(help="Content type.")],
    item_id: Annotated[str, typer.Argument(help="Record id.")],
    version_id: Annotated[str, typer.Argument(help="Version id to restore.")],
) -> None:
    """Restore a record to a stored version."""
    item = _run(_service().restore(content_type, item_id, version_id))
    _print_json(item.to_record())


@app.command("related")
def related_cmd(
    content_type: Annotated[str, typer.Argument(help="Content type.")],
    item_id: Annotated[str, typer.Argument(help="Record id.")],
    limit: Annotated[Optional[int], typer.Option("--limit", min=1, help="Page size.")] = None,
    offset: Annotated[int, typer.Option("--offset", min=0, help="Items to skip.")] = 0,
) -> None:
    """Show records related by tags, category, or references."""
    page = _run(_service().related(content_type, item_id, limit=limit, offset=offset))
    _print_json(page.to_payload(lambda relation: relation.to_payload()))


if __name__ == "__main__":
    app()
