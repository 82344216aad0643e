from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from wireaudit.domain.models import AuditResult, ScanIssue
from wireaudit.report.markdown import group_by_module, render_markdown


@dataclass(frozen=True)
class ReportPaths:
    markdown: Path
    json: Path


def audit_payload(result: AuditResult, skipped: Sequence[ScanIssue] = ()) -> dict[str, Any]:
    return {
        "summary": {
            "client_calls": len(result.client_calls),
            "server_routes": len(result.server_routes),
            "matched": result.matched_count,
            "missing_backend": len(result.missing_backend),
            "method_mismatches": len(result.method_mismatches),
            "files_skipped": len(skipped),
            "coverage_percent": result.coverage_percent,
        },
        "missing_backend": [c.model_dump() for c in result.missing_backend],
        "method_mismatches": [m.model_dump() for m in result.method_mismatches],
        "backlog": {
            module: [f"{c.method} {c.normalized_path} ({c.location})" for c in calls]
            for module, calls in group_by_module(result.missing_backend).items()
        },
        "matched": [m.model_dump() for m in result.matched],
        "skipped": [s.model_dump() for s in skipped],
    }


def render_json(result: AuditResult, skipped: Sequence[ScanIssue] = ()) -> str:
    return json.dumps(audit_payload(result, skipped), indent=2) + "\n"


def write_reports(
    result: AuditResult,
    reports_dir: Path,
    report_name: str = "api-contract-report",
    skipped: Sequence[ScanIssue] = (),
) -> ReportPaths:
    """
    Write the Markdown and JSON reports, replacing any previous run's files.
    """
    reports_dir.mkdir(parents=True, exist_ok=True)
    md_path = reports_dir / f"{report_name}.md"
    json_path = reports_dir / f"{report_name}.json"

    md_path.write_text(render_markdown(result, skipped), encoding="utf-8", newline="\n")
    json_path.write_text(render_json(result, skipped), encoding="utf-8", newline="\n")
    return ReportPaths(markdown=md_path, json=json_path)
