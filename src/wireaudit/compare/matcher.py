from __future__ import annotations

from typing import Optional, Sequence

from wireaudit.domain.models import AuditResult, ClientCall, MatchResult, ServerRoute
from wireaudit.paths.normalize import (
    IdentifierPredicate,
    PathPattern,
    client_pattern,
    is_identifier_shaped,
    patterns_equal,
    server_pattern,
)


def coverage_percent(matched_count: int, total_calls: int) -> int:
    """round(100 * matched / total), half up; 100 when there is nothing to cover."""
    if total_calls <= 0:
        return 100
    return (200 * matched_count + total_calls) // (2 * total_calls)


def find_route(
    call: ClientCall,
    routes: Sequence[ServerRoute],
    is_identifier: IdentifierPredicate = is_identifier_shaped,
    route_patterns: Optional[Sequence[PathPattern]] = None,
) -> Optional[ServerRoute]:
    """First route, in discovery order, whose pattern equals the call's."""
    patterns = route_patterns or [server_pattern(r.full_path) for r in routes]
    wanted = client_pattern(call.normalized_path, is_identifier)
    for route, pattern in zip(routes, patterns):
        if patterns_equal(wanted, pattern):
            return route
    return None


def compare_contracts(
    calls: Sequence[ClientCall],
    routes: Sequence[ServerRoute],
    is_identifier: Optional[IdentifierPredicate] = None,
) -> AuditResult:
    """
    Classify every client call exactly once: matched (path pattern found) or
    missing backend. Matched calls whose method differs are also listed in
    method_mismatches and do not count toward coverage.
    """
    is_identifier = is_identifier or is_identifier_shaped
    route_patterns = [server_pattern(r.full_path) for r in routes]

    matched: list[MatchResult] = []
    missing: list[ClientCall] = []
    mismatches: list[MatchResult] = []

    for call in calls:
        route = find_route(call, routes, is_identifier, route_patterns)
        if route is None:
            missing.append(call)
            continue

        result = MatchResult(
            client_call=call,
            server_route=route,
            method_match=call.method == route.method,
        )
        matched.append(result)
        if not result.method_match:
            mismatches.append(result)

    agreeing = sum(1 for m in matched if m.method_match)
    return AuditResult(
        client_calls=list(calls),
        server_routes=list(routes),
        matched=matched,
        missing_backend=missing,
        method_mismatches=mismatches,
        coverage_percent=coverage_percent(agreeing, len(calls)),
    )
