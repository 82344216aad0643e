from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from wireaudit.compare.matcher import find_route
from wireaudit.config import AuditConfig, load_config
from wireaudit.domain.models import BackendCheck, WiringReport, issues_under
from wireaudit.extractors.client.scanner import scan_client_files
from wireaudit.extractors.server.scanner import scan_server_routes
from wireaudit.paths.normalize import make_identifier_predicate, server_pattern
from wireaudit.repo.scanner import rel_posix
from wireaudit.wiring.imports import resolve_file_set
from wireaudit.wiring.pages import resolve_page_from_file, resolve_page_from_route
from wireaudit.wiring.proxy import effective_endpoint, resolve_proxies

logger = logging.getLogger(__name__)


def run_wiring_trace(
    repo_path: Path,
    route: Optional[str] = None,
    file: Optional[str] = None,
    config: AuditConfig | None = None,
) -> WiringReport:
    """
    Trace one page's call chain: page -> API references -> proxy route ->
    backend route. One of `route` / `file` must be given; `route` wins when
    both are.
    """
    if route is None and file is None:
        raise ValueError("route or file is required")

    repo_path = repo_path.resolve()
    config = config or load_config(repo_path)
    client_root = repo_path / config.client_root
    server_root = repo_path / config.server_root

    if route is not None:
        input_echo = f"--route {route}"
        page = resolve_page_from_route(route, client_root, config)
    else:
        input_echo = f"--file {file}"
        page = resolve_page_from_file(file, repo_path)

    if page is None:
        logger.warning("No page found for %s", input_echo)
        return WiringReport(input=input_echo)

    files = resolve_file_set(page, client_root, config)
    logger.debug("Tracing %d files from %s", len(files), page)

    client = scan_client_files(files, repo_path, config)
    proxies = resolve_proxies(client.calls, client_root, config, display_root=repo_path)

    server = scan_server_routes(server_root, config)
    is_identifier = make_identifier_predicate(config.identifier)
    patterns = [server_pattern(r.full_path) for r in server.routes]

    backend: list[BackendCheck] = []
    for call in client.calls:
        found = find_route(call, server.routes, is_identifier, patterns)
        backend.append(
            BackendCheck(
                call=call,
                endpoint=effective_endpoint(call, config),
                route=found,
                method_match=found is not None and found.method == call.method,
            )
        )

    return WiringReport(
        input=input_echo,
        page_file=rel_posix(page.resolve(), repo_path),
        traced_files=[rel_posix(p.resolve(), repo_path) for p in files],
        calls=client.calls,
        proxies=proxies,
        backend=backend,
        skipped=client.skipped + issues_under(config.server_root, server.skipped),
    )
