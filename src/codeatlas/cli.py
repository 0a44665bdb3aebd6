"""Codeatlas CLI entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from codeatlas import __version__
from codeatlas.errors import ConfigError, ScanError

if TYPE_CHECKING:
    from codeatlas.store import AnalysisStore

_PROJECT_OPTION = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
_JSON_OPTION = click.option("--json", "output_json", is_flag=True, help="Output as JSON.")


@click.group()
@click.version_option(version=__version__, prog_name="codeatlas")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Codeatlas - structural map of a web-application source tree."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _open_store(project: Path | None) -> AnalysisStore:
    from codeatlas.config import load_config
    from codeatlas.storage import JsonSnapshotStorage
    from codeatlas.store import AnalysisStore

    project_root = project or Path.cwd()
    try:
        config = load_config(project_root)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    return AnalysisStore(JsonSnapshotStorage(project_root / config.cache_path), config=config)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


def _no_scan() -> None:
    click.echo("No scan data. Run `codeatlas scan` first.", err=True)


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------


@main.command()
@_PROJECT_OPTION
@click.option("--subdir", default=None, help="Scan only this subdirectory of the project.")
@click.option("--timeout", type=float, default=None, help="Abort the scan after this many seconds.")
@_JSON_OPTION
def scan(
    *, project: Path | None, subdir: str | None, timeout: float | None, output_json: bool
) -> None:
    """Scan the project and store a fresh snapshot."""
    store = _open_store(project)
    try:
        snapshot = store.scan(project or Path.cwd(), subdir, timeout=timeout)
    except ScanError as exc:
        raise click.ClickException(str(exc)) from exc

    if output_json:
        _echo_json(
            {
                "stats": snapshot.stats.to_dict(),
                "scanned_at": snapshot.scanned_at,
                "duration_ms": snapshot.duration_ms,
                "warnings": snapshot.warnings.to_dict(),
            }
        )
        return

    stats = snapshot.stats
    click.echo(
        f"Scanned {stats.total_files} files ({stats.total_lines:,} lines) "
        f"in {snapshot.duration_ms}ms: {stats.total_api_routes} routes, "
        f"{stats.total_pages} pages, {len(snapshot.modules)} modules, "
        f"{stats.total_external_services} external services."
    )
    warnings = snapshot.warnings
    if warnings.unreadable_files or warnings.skipped_entries:
        click.echo(
            f"Warnings: {warnings.unreadable_files} unreadable files, "
            f"{warnings.skipped_entries} skipped entries.",
            err=True,
        )


# ---------------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------------


@main.command()
@_PROJECT_OPTION
@_JSON_OPTION
def stats(*, project: Path | None, output_json: bool) -> None:
    """Show headline numbers of the last scan."""
    data = _open_store(project).get_stats()
    if output_json:
        _echo_json(data or None)
        return
    if not data:
        _no_scan()
        return

    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(
        title=f"Scanned {data['scanned_at']}", show_header=False, box=None, padding=(0, 1)
    )
    table.add_column("metric", style="cyan")
    table.add_column("value", justify="right")
    for key, value in data["stats"].items():
        if key == "file_types":
            continue
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)

    types = Table(title="File types", show_header=False, box=None, padding=(0, 1))
    types.add_column("type", style="cyan")
    types.add_column("count", justify="right")
    for file_type, count in sorted(data["stats"]["file_types"].items(), key=lambda kv: -kv[1]):
        types.add_row(file_type, str(count))
    console.print(types)


@main.command()
@_PROJECT_OPTION
@click.option("--type", "file_type", default=None, help="Only files of this type.")
@click.option("--search", default=None, help="Substring of the path or an export name.")
@_JSON_OPTION
def files(
    *, project: Path | None, file_type: str | None, search: str | None, output_json: bool
) -> None:
    """List scanned files."""
    records = _open_store(project).list_files(file_type, search)
    if output_json:
        _echo_json(
            {
                "files": [
                    {
                        "path": f.path,
                        "name": f.name,
                        "type": f.type,
                        "lines": f.lines,
                        "exports_count": len(f.exports),
                        "external_calls": len(f.external_calls),
                        "db_operations": list(f.db_operations),
                    }
                    for f in records
                ],
                "total": len(records),
            }
        )
        return

    from rich.console import Console
    from rich.table import Table

    table = Table(title=f"Files ({len(records)})")
    table.add_column("Path", style="cyan")
    table.add_column("Type")
    table.add_column("Lines", justify="right")
    table.add_column("Exports", justify="right")
    for f in records:
        table.add_row(f.path, f.type, str(f.lines), str(len(f.exports)))
    Console().print(table)


@main.command("file")
@click.argument("path")
@_PROJECT_OPTION
@_JSON_OPTION
def file_detail(*, path: str, project: Path | None, output_json: bool) -> None:
    """Show one file with its exports and dependencies."""
    detail = _open_store(project).get_file(path)
    if detail is None:
        if output_json:
            _echo_json(None)
            return
        raise click.ClickException(f"File not found in scan: {path}")
    if output_json:
        _echo_json(detail.to_dict())
        return

    f = detail.file
    click.echo(f"{f.path} ({f.type}, {f.lines} lines)")
    for export in f.exports:
        default = " [default]" if export.is_default else ""
        params = export.params or ""
        click.echo(f"  export {export.kind} {export.name}{params}{default}  :{export.line}")
    for call in f.external_calls:
        click.echo(f"  service {call.service}: {call.detail}  :{call.line}")
    if f.db_operations:
        click.echo(f"  db: {', '.join(f.db_operations)}")
    for dep in detail.depends_on:
        click.echo(f"  -> {dep['file']} ({', '.join(dep['imports'])})")
    for dep in detail.imported_by:
        click.echo(f"  <- {dep['file']} ({', '.join(dep['imports'])})")


@main.command()
@_PROJECT_OPTION
@_JSON_OPTION
def routes(*, project: Path | None, output_json: bool) -> None:
    """List API routes."""
    records = _open_store(project).list_routes()
    if output_json:
        _echo_json({"routes": [r.to_dict() for r in records]})
        return
    for r in records:
        click.echo(f"{', '.join(r.methods):<12} {r.path}  ({r.file})")


@main.command()
@_PROJECT_OPTION
@_JSON_OPTION
def pages(*, project: Path | None, output_json: bool) -> None:
    """List pages."""
    records = _open_store(project).list_pages()
    if output_json:
        _echo_json({"pages": [p.to_dict() for p in records]})
        return
    for p in records:
        components = f"  [{', '.join(p.components)}]" if p.components else ""
        click.echo(f"{p.path}  ({p.file}){components}")


@main.command()
@_PROJECT_OPTION
@_JSON_OPTION
def modules(*, project: Path | None, output_json: bool) -> None:
    """List architectural modules."""
    records = _open_store(project).list_modules()
    if output_json:
        _echo_json({"modules": [m.to_dict() for m in records]})
        return

    from rich.console import Console
    from rich.table import Table

    from codeatlas.analyzer.modules import infer_module_kind

    table = Table(title=f"Modules ({len(records)})")
    table.add_column("Module", style="cyan")
    table.add_column("Kind")
    table.add_column("Files", justify="right")
    table.add_column("Summary")
    for m in records:
        table.add_row(m.name, infer_module_kind(m), str(len(m.files)), m.short_description)
    Console().print(table)


@main.command()
@_PROJECT_OPTION
@_JSON_OPTION
def services(*, project: Path | None, output_json: bool) -> None:
    """List external services and the files that use them."""
    records = _open_store(project).list_services()
    if output_json:
        _echo_json({"services": [s.to_dict() for s in records]})
        return
    for s in records:
        click.echo(f"{s.name} ({s.usage_count}): {', '.join(s.files)}")


@main.command()
@_PROJECT_OPTION
@click.option("--file", "file_path", default=None, help="Only edges touching this file.")
@_JSON_OPTION
def deps(*, project: Path | None, file_path: str | None, output_json: bool) -> None:
    """List file-level dependency edges."""
    edges = _open_store(project).list_dependency_edges(file_path)
    if output_json:
        _echo_json({"edges": [e.to_dict() for e in edges], "total": len(edges)})
        return
    for e in edges:
        click.echo(f"{e.source} -> {e.target} ({', '.join(e.imports)})")


@main.command()
@_PROJECT_OPTION
@click.option(
    "--view",
    default="modules",
    help="Graph view: modules, files or routes.",
)
@click.option(
    "--module", "module_filter", default=None, help="Restrict the files view to one module."
)
def graph(*, project: Path | None, view: str, module_filter: str | None) -> None:
    """Print one graph view as JSON."""
    data = _open_store(project).compose_graph(view, module_filter).to_dict()
    data["view"] = view
    _echo_json(data)


@main.command()
@click.argument("query")
@_PROJECT_OPTION
@_JSON_OPTION
def search(*, query: str, project: Path | None, output_json: bool) -> None:
    """Search file paths, exports, routes and pages."""
    found = _open_store(project).search(query)
    if output_json:
        _echo_json(found.to_dict())
        return
    for hit in found.results:
        line = f":{hit.line}" if hit.line is not None else ""
        click.echo(f"[{hit.type}] {hit.name}  {hit.detail}{line}")
    if found.total > len(found.results):
        click.echo(f"... {found.total - len(found.results)} more", err=True)
