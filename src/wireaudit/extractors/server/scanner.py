from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from wireaudit.config import AuditConfig
from wireaudit.domain.models import ScanIssue, ServerRoute
from wireaudit.extractors.server import fastapi, nestjs
from wireaudit.repo.scanner import read_source_lines, rel_posix, scan_source_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerScan:
    routes: list[ServerRoute]
    files_scanned: int
    skipped: list[ScanIssue] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)


def extract_routes_from_file(path: Path, root: Path, config: AuditConfig) -> list[ServerRoute]:
    """
    Extract routes from one server source file, dialect chosen by extension.
    Raises OSError, UnicodeDecodeError or SyntaxError when the file cannot
    be used.
    """
    rel_path = rel_posix(path, root)
    lines = read_source_lines(path)
    if path.suffix == ".py":
        return fastapi.extract_routes_from_source(
            "\n".join(lines), rel_path, api_prefix=config.api_prefix
        )
    return nestjs.extract_routes_from_source(lines, rel_path, api_prefix=config.api_prefix)


def scan_server_routes(root: Path, config: AuditConfig) -> ServerScan:
    """
    Walk the server tree (lexicographic order) and collect every declared
    route. Route order is the discovery order the comparator relies on.
    """
    skipped: list[ScanIssue] = []
    files = scan_source_files(
        root, config.server_extensions, ignores=config.ignore_dirs, issues=skipped
    )
    routes: list[ServerRoute] = []
    scanned = 0

    for path in files:
        try:
            routes.extend(extract_routes_from_file(path, root, config))
            scanned += 1
        except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as e:
            rel_path = rel_posix(path, root)
            logger.warning("Skipping unreadable server file %s: %s", rel_path, e)
            skipped.append(ScanIssue(path=rel_path, reason=f"{type(e).__name__}: {e}"))

    logger.debug(
        "Server scan of %s: %d files, %d routes, %d skipped",
        root,
        scanned,
        len(routes),
        len(skipped),
    )
    return ServerScan(
        routes=routes,
        files_scanned=scanned,
        skipped=skipped,
        files=files,
    )
