from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from wireaudit.config import AuditConfig
from wireaudit.domain.models import ClientCall, ProxyStatus
from wireaudit.paths.normalize import (
    PLACEHOLDER,
    endpoint_path,
    is_absolute_url,
    replace_interpolations,
    strip_leading_base,
    strip_trailing_query,
    to_segments,
)
from wireaudit.repo.scanner import rel_posix
from wireaudit.wiring.pages import find_in_tree

DYNAMIC_DIR = "[param]"


def _prefix(config: AuditConfig) -> str:
    stripped = config.api_prefix.strip("/")
    return f"/{stripped}" if stripped else ""


def has_api_prefix(endpoint: str, config: AuditConfig) -> bool:
    prefix = _prefix(config)
    return bool(prefix) and (endpoint == prefix or endpoint.startswith(prefix + "/"))


def effective_endpoint(call: ClientCall, config: AuditConfig) -> str:
    """
    The same-origin path the browser actually requests. Wrapper calls take a
    path relative to the API base, so the prefix is added to them. A call to
    an absolute URL bypasses the proxy and is returned without its query.
    """
    raw = call.path
    if call.dialect == "fetch_template":
        raw = strip_leading_base(raw)
    raw = replace_interpolations(strip_trailing_query(raw))
    if is_absolute_url(raw):
        return raw.split("#", 1)[0].split("?", 1)[0]
    endpoint = endpoint_path(raw)
    if call.dialect == "wrapper" and not has_api_prefix(endpoint, config):
        endpoint = _prefix(config) + endpoint
    return endpoint


def resolve_proxy(
    endpoint: str,
    client_root: Path,
    config: AuditConfig,
    display_root: Optional[Path] = None,
) -> Optional[ProxyStatus]:
    """
    Locate the proxy handler for an `/api/...` endpoint:

      /api/customers/:param  ->  app/api/customers/[param]/route.ts

    Existence is checked against the real tree, so `[param]` also matches
    `[id]` and literal id segments fall back to dynamic directories. Returns
    None for endpoints outside the API prefix.
    """
    if not has_api_prefix(endpoint, config):
        return None

    prefix = _prefix(config)
    segments = to_segments(endpoint[len(prefix):])
    api_root = client_root / config.pages_dir / prefix.strip("/")

    found = find_in_tree(api_root, segments, config.proxy_route_file)
    if found is None:
        dirs = [DYNAMIC_DIR if PLACEHOLDER in s else s for s in segments]
        route_file = api_root.joinpath(*dirs, config.proxy_route_file)
    else:
        route_file = found

    shown = rel_posix(route_file, display_root) if display_root else route_file.as_posix()
    return ProxyStatus(endpoint=endpoint, expected_route_file=shown, exists=found is not None)


def resolve_proxies(
    calls: Iterable[ClientCall],
    client_root: Path,
    config: AuditConfig,
    display_root: Optional[Path] = None,
) -> list[ProxyStatus]:
    """One status per distinct API endpoint, in discovery order."""
    checked: dict[str, ProxyStatus] = {}
    for call in calls:
        endpoint = effective_endpoint(call, config)
        if endpoint in checked:
            continue
        status = resolve_proxy(endpoint, client_root, config, display_root)
        if status is not None:
            checked[endpoint] = status
    return list(checked.values())
