from __future__ import annotations

from typing import Sequence

from wireaudit.domain.models import AuditResult, ClientCall, ScanIssue


def module_of(call: ClientCall) -> str:
    """First path segment of the call's source file, relative to the client root."""
    parts = [p for p in call.source_file.split("/") if p]
    return parts[0] if parts else call.source_file


def group_by_module(calls: Sequence[ClientCall]) -> dict[str, list[ClientCall]]:
    # dicts keep insertion order: groups appear in discovery order
    groups: dict[str, list[ClientCall]] = {}
    for call in calls:
        groups.setdefault(module_of(call), []).append(call)
    return groups


def _code(text: str) -> str:
    return "`" + text.replace("|", "\\|").replace("`", "'") + "`"


def _table(header: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    out = ["| " + " | ".join(header) + " |", "|" + "|".join("---" for _ in header) + "|"]
    out.extend("| " + " | ".join(row) + " |" for row in rows)
    return out


def render_markdown(result: AuditResult, skipped: Sequence[ScanIssue] = ()) -> str:
    """
    Render the audit as Markdown. Output depends only on the result, so an
    unchanged source tree yields byte-identical reports.
    """
    lines: list[str] = ["# API Contract Audit Report", ""]

    lines += ["## Summary", ""]
    lines += _table(
        ["Metric", "Count"],
        [
            ["Client calls discovered", str(len(result.client_calls))],
            ["Server routes discovered", str(len(result.server_routes))],
            ["Matched (path + method)", str(result.matched_count)],
            ["Missing backend", str(len(result.missing_backend))],
            ["Method mismatches", str(len(result.method_mismatches))],
            ["Files skipped", str(len(skipped))],
            ["**Coverage**", f"**{result.coverage_percent}%**"],
        ],
    )
    lines += [""]

    lines += ["## Missing Backend Endpoints", ""]
    if result.missing_backend:
        lines += ["Client calls with no matching server route:", ""]
        lines += _table(
            ["Path", "Method", "Source"],
            [[_code(c.normalized_path), c.method, _code(c.location)] for c in result.missing_backend],
        )
    else:
        lines += ["*None.*"]
    lines += [""]

    lines += ["## Method Mismatches", ""]
    if result.method_mismatches:
        lines += ["Paths match but HTTP methods differ:", ""]
        lines += _table(
            ["Client Path", "Server Route", "Client Method", "Server Method", "Client Source", "Server Source"],
            [
                [
                    _code(m.client_call.normalized_path),
                    _code(m.server_route.full_path),
                    m.client_call.method,
                    m.server_route.method,
                    _code(m.client_call.location),
                    _code(m.server_route.location),
                ]
                for m in result.method_mismatches
            ],
        )
    else:
        lines += ["*None.*"]
    lines += [""]

    lines += ["## Wiring Backlog (by module)", ""]
    groups = group_by_module(result.missing_backend)
    if not groups:
        lines += ["*No missing endpoints: every client call has a server route.*", ""]
    for module, calls in groups.items():
        lines += [f"### {module}", ""]
        lines += [f"- **{_code(c.normalized_path)}** ({c.method}) at {_code(c.location)}" for c in calls]
        lines += [""]

    lines += ["## Matched Endpoints", ""]
    if result.matched:
        lines += _table(
            ["Client Path", "Server Route", "Method", "Client Source", "Server Source"],
            [
                [
                    _code(m.client_call.normalized_path),
                    _code(m.server_route.full_path),
                    m.server_route.method if m.method_match else f"{m.client_call.method} != {m.server_route.method}",
                    _code(m.client_call.location),
                    _code(m.server_route.location),
                ]
                for m in result.matched
            ],
        )
    else:
        lines += ["*None.*"]
    lines += [""]

    if skipped:
        lines += ["## Skipped Files", ""]
        lines += [f"- {_code(s.path)}: {s.reason}" for s in skipped]
        lines += [""]

    return "\n".join(lines)
