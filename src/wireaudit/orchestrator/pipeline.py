from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from wireaudit.compare.matcher import compare_contracts
from wireaudit.config import AuditConfig, load_config
from wireaudit.domain.models import AuditResult, ScanIssue, issues_under
from wireaudit.extractors.client.scanner import scan_client_calls
from wireaudit.extractors.server.scanner import scan_server_routes
from wireaudit.paths.normalize import make_identifier_predicate
from wireaudit.report.json_report import ReportPaths, write_reports
from wireaudit.repo.framework_detector import detect_server_framework

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditRun:
    result: AuditResult
    framework: str
    confidence: float
    client_files_scanned: int
    server_files_scanned: int
    skipped: list[ScanIssue]
    reports: Optional[ReportPaths]

    @property
    def exit_code(self) -> int:
        return 1 if self.result.missing_backend else 0


def run_audit(
    repo_path: Path,
    config: AuditConfig | None = None,
    write: bool = True,
) -> AuditRun:
    """
    Full audit: scan client tree, scan server tree, compare, write reports.
    """
    repo_path = repo_path.resolve()
    config = config or load_config(repo_path)

    client_root = repo_path / config.client_root
    server_root = repo_path / config.server_root

    client = scan_client_calls(client_root, config)
    server = scan_server_routes(server_root, config)

    framework, confidence = detect_server_framework(server.files)

    result = compare_contracts(
        client.calls,
        server.routes,
        is_identifier=make_identifier_predicate(config.identifier),
    )
    skipped = issues_under(config.client_root, client.skipped) + issues_under(
        config.server_root, server.skipped
    )
    logger.debug(
        "Audit: %d calls, %d routes, %d missing, coverage %d%%",
        len(result.client_calls),
        len(result.server_routes),
        len(result.missing_backend),
        result.coverage_percent,
    )

    reports = None
    if write:
        reports = write_reports(
            result,
            repo_path / config.reports_dir,
            report_name=config.report_name,
            skipped=skipped,
        )

    return AuditRun(
        result=result,
        framework=framework,
        confidence=confidence,
        client_files_scanned=client.files_scanned,
        server_files_scanned=server.files_scanned,
        skipped=skipped,
        reports=reports,
    )
