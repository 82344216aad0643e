from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.markup import escape

from wireaudit.domain.models import WiringReport
from wireaudit.orchestrator.pipeline import AuditRun


def print_audit_summary(run: AuditRun, console: Console) -> None:
    result = run.result
    console.print("[bold]API CONTRACT AUDIT[/bold]")
    console.print("-------------------")
    console.print(f"Server framework: [bold]{run.framework}[/bold] (confidence={run.confidence:.2f})")
    console.print(f"Files scanned: client={run.client_files_scanned}, server={run.server_files_scanned}")
    if run.skipped:
        console.print(f"[yellow]Files skipped: {len(run.skipped)}[/yellow]")
    console.print("")
    console.print(f"Client calls discovered: {len(result.client_calls)}")
    console.print(f"Server routes discovered: {len(result.server_routes)}")
    console.print(f"Matched: {result.matched_count}")
    console.print(f"Method mismatches: {len(result.method_mismatches)}")
    console.print(f"Missing: {len(result.missing_backend)}")

    style = "green" if not result.missing_backend else "red"
    console.print(f"Coverage: [bold {style}]{result.coverage_percent}%[/bold {style}]")

    if run.reports is not None:
        console.print("")
        console.print("Report generated:")
        console.print(f"  {escape(str(run.reports.markdown))}")
        console.print(f"  {escape(str(run.reports.json))}")


def _section(console: Console, title: str, rows: Iterable[str]) -> None:
    rows = list(rows)
    console.print("")
    console.print(f"{title}:")
    if not rows:
        console.print("  (none)")
    for row in rows:
        console.print(f"  - {escape(row)}")


def print_wiring_report(report: WiringReport, console: Console) -> None:
    console.print("")
    console.print("[bold]WIRING ASSISTANT - REPORT[/bold]")
    console.print("-------------------------")
    console.print(f"Input: {escape(report.input)}")
    page = escape(report.page_file) if report.page_file else "[red]NOT FOUND[/red]"
    console.print(f"Frontend page: {page}")

    _section(
        console,
        "Discovered API references",
        (f"{b.call.method} {b.endpoint}  ({b.call.location})" for b in report.backend),
    )
    _section(
        console,
        "Proxy routes present",
        (f"{p.endpoint}  => {p.expected_route_file}" for p in report.proxies if p.exists),
    )
    _section(
        console,
        "Proxy routes missing",
        (f"{p.endpoint}  (expected: {p.expected_route_file})" for p in report.proxies if not p.exists),
    )
    _section(
        console,
        "Backend routes matched",
        (
            f"{b.endpoint} => {b.route.method} {b.route.full_path}  ({b.route.location})"
            for b in report.backend
            if b.route is not None
        ),
    )
    _section(
        console,
        "Backend routes missing",
        (
            f"{b.endpoint} => expected backend {b.call.method} {b.call.normalized_path}  ({b.call.location})"
            for b in report.backend
            if b.route is None
        ),
    )
    _section(
        console,
        "Method mismatches (warning)",
        (
            f"{b.endpoint}: client {b.call.method}, backend {b.route.method} {b.route.full_path}"
            for b in report.backend
            if b.route is not None and not b.method_match
        ),
    )
    if report.skipped:
        _section(console, "Files skipped", (f"{s.path}: {s.reason}" for s in report.skipped))

    style = "green" if report.verdict == "GO" else "red"
    console.print("")
    console.print(f"VERDICT: [bold {style}]{report.verdict}[/bold {style}]")
    console.print("")
