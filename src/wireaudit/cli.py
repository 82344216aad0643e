from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from wireaudit.config import AuditConfig, load_config
from wireaudit.errors import WireAuditError
from wireaudit.extractors.client.scanner import scan_client_calls
from wireaudit.extractors.server.scanner import scan_server_routes
from wireaudit.orchestrator.pipeline import run_audit
from wireaudit.report.console import print_audit_summary, print_wiring_report
from wireaudit.wiring.trace import run_wiring_trace

app = typer.Typer(no_args_is_help=True, add_completion=False)

routes_app = typer.Typer(no_args_is_help=True)
app.add_typer(routes_app, name="routes")

calls_app = typer.Typer(no_args_is_help=True)
app.add_typer(calls_app, name="calls")

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

USAGE = (
    "Usage: wireaudit wiring --route \"/admin/salespeople\"\n"
    "       wireaudit wiring --file \"frontend/app/admin/salespeople/page.tsx\""
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _repo_and_config(repo: str) -> tuple[Path, AuditConfig]:
    repo_path = Path(repo).expanduser().resolve()
    if not repo_path.is_dir():
        err_console.print(f"[red]Repo path is not a directory:[/red] {escape(str(repo_path))}")
        raise typer.Exit(code=1)
    try:
        return repo_path, load_config(repo_path)
    except WireAuditError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)


@app.command()
def audit(
    repo: str = typer.Option(".", help="Repository root holding the client and server trees"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Audit every client call against the server routes and write the report."""
    _setup_logging(verbose)
    repo_path, config = _repo_and_config(repo)

    try:
        run = run_audit(repo_path, config=config)
    except OSError as e:
        err_console.print(f"[red]Filesystem error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    print_audit_summary(run, console)
    raise typer.Exit(code=run.exit_code)


@app.command()
def wiring(
    route: Optional[str] = typer.Option(None, help="Client page URL path, e.g. /admin/salespeople"),
    file: Optional[str] = typer.Option(None, help="Page file, repo-relative or absolute"),
    repo: str = typer.Option(".", help="Repository root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Trace one page through its proxy routes to the backend routes."""
    _setup_logging(verbose)
    if route is None and file is None:
        err_console.print(USAGE, markup=False, highlight=False)
        raise typer.Exit(code=1)

    repo_path, config = _repo_and_config(repo)
    try:
        report = run_wiring_trace(repo_path, route=route, file=file, config=config)
    except OSError as e:
        err_console.print(f"[red]Filesystem error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    print_wiring_report(report, console)
    raise typer.Exit(code=0 if report.verdict == "GO" else 1)


def _print_json(rows: list[dict]) -> None:
    console.print(json.dumps(rows, indent=2), markup=False, highlight=False, soft_wrap=True)


@routes_app.command("list")
def routes_list(
    repo: str = typer.Option(".", help="Repository root"),
    method: Optional[str] = typer.Option(None, help="Filter by HTTP method (GET/POST/...)"),
    path_contains: Optional[str] = typer.Option(None, help="Substring match on full route path"),
    limit: int = typer.Option(200, help="Max rows to print"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    """List the server routes the audit sees."""
    repo_path, config = _repo_and_config(repo)
    scan = scan_server_routes(repo_path / config.server_root, config)

    rows = [
        r
        for r in scan.routes
        if (method is None or r.method == method.upper())
        and (path_contains is None or path_contains in r.full_path)
    ][:limit]

    if format.lower() == "json":
        _print_json([r.model_dump() for r in rows])
        return

    console.print(f"[bold]Routes:[/bold] {len(rows)} (showing up to {limit})")
    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("FILE:LINE", no_wrap=True)
    table.add_column("SRC", no_wrap=True)
    for r in rows:
        table.add_row(r.method, escape(r.full_path), escape(r.location), r.dialect)
    console.print(table)


@calls_app.command("list")
def calls_list(
    repo: str = typer.Option(".", help="Repository root"),
    method: Optional[str] = typer.Option(None, help="Filter by HTTP method (GET/POST/...)"),
    path_contains: Optional[str] = typer.Option(None, help="Substring match on normalized path"),
    limit: int = typer.Option(200, help="Max rows to print"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    """List the client call sites the audit sees."""
    repo_path, config = _repo_and_config(repo)
    scan = scan_client_calls(repo_path / config.client_root, config)

    rows = [
        c
        for c in scan.calls
        if (method is None or c.method == method.upper())
        and (path_contains is None or path_contains in c.normalized_path)
    ][:limit]

    if format.lower() == "json":
        _print_json([c.model_dump() for c in rows])
        return

    console.print(f"[bold]Calls:[/bold] {len(rows)} (showing up to {limit})")
    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("RAW")
    table.add_column("FILE:LINE", no_wrap=True)
    table.add_column("DIALECT", no_wrap=True)
    for c in rows:
        table.add_row(c.method, escape(c.normalized_path), escape(c.path), escape(c.location), c.dialect)
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
