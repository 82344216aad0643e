from __future__ import annotations

import re
from typing import Callable, Sequence

from wireaudit.config import IdentifierRule

ROOT = "/"
WILDCARD = "*"
# what a `${...}` interpolation span turns into before normalization
PLACEHOLDER = ":param"

IdentifierPredicate = Callable[[str], bool]
PathPattern = tuple[str, ...]

_SCHEME_HOST = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://[^/]*")
_MULTI_SLASH = re.compile(r"/{2,}")
_INTERPOLATION = re.compile(r"\$\{[^}]*\}")
_LEADING_BASE = re.compile(r"^(?:\$\{[^}]*\})+(?=/|$)")
# `${qs}` glued onto the last literal: `/orders${qs}`
_TRAILING_QUERY = re.compile(r"(?<=[A-Za-z0-9])(?:\$\{[^}]*\})+$")

_PARAM_COLON = re.compile(r"^:[A-Za-z_][A-Za-z0-9_]*\??$")
_PARAM_BRACE = re.compile(r"^\{[A-Za-z_][A-Za-z0-9_]*(?::[^}]*)?\}$")
_PARAM_ANGLE = re.compile(r"^<(?:[A-Za-z_]+:)?[A-Za-z_][A-Za-z0-9_]*>$")


def _prefix_form(api_prefix: str) -> str:
    stripped = (api_prefix or "").strip().strip("/")
    return f"/{stripped}" if stripped else ""


def normalize(path: str, api_prefix: str = "/api") -> str:
    """
    Canonical form used for matching: no scheme/host, no query, no API prefix,
    no leading or trailing slash, single separators. Root becomes "/".

        http://localhost:3001/api/orders/?x=1  ->  orders
    """
    p = (path or "").strip()
    p = _SCHEME_HOST.sub("", p)
    p = p.split("#", 1)[0].split("?", 1)[0]
    p = _MULTI_SLASH.sub("/", p)
    if not p.startswith("/"):
        p = "/" + p

    prefix = _prefix_form(api_prefix)
    if prefix and (p == prefix or p.startswith(prefix + "/")):
        p = p[len(prefix):]

    p = p.strip("/")
    return p or ROOT


def to_segments(path: str) -> list[str]:
    return [seg for seg in (path or "").split("/") if seg]


def join_paths(base: str, local: str, api_prefix: str = "/api") -> str:
    b = "/".join(to_segments(base))
    r = "/".join(to_segments(local))
    return normalize(f"{b}/{r}", api_prefix=api_prefix)


def replace_interpolations(raw: str, placeholder: str = PLACEHOLDER) -> str:
    return _INTERPOLATION.sub(placeholder, raw)


def has_interpolation(raw: str) -> bool:
    return _INTERPOLATION.search(raw) is not None


def make_identifier_predicate(rule: IdentifierRule) -> IdentifierPredicate:
    """
    Build the client-side guess for "this literal segment is really an id".

    Matches long hex/uuid tokens, purely numeric tokens, and fixed-length
    tokens starting with one of the configured prefix letters (cuids).
    """
    hex_token = re.compile(rf"^[A-Fa-f0-9-]{{{rule.min_hex_length},}}$")
    numeric = re.compile(r"^[0-9]+$")
    prefixed = None
    letters = "".join(re.escape(p[0]) for p in rule.id_prefixes if p)
    if letters and rule.prefixed_id_length > 1:
        prefixed = re.compile(
            rf"^[{letters}][A-Za-z0-9]{{{rule.prefixed_id_length - 1}}}$",
            re.IGNORECASE,
        )

    def is_identifier(segment: str) -> bool:
        if hex_token.match(segment) or numeric.match(segment):
            return True
        return bool(prefixed and prefixed.match(segment))

    return is_identifier


is_identifier_shaped = make_identifier_predicate(IdentifierRule())


def is_param_segment(segment: str) -> bool:
    """Server-side declared parameter: `:id`, `{id}` or `<int:id>`."""
    return bool(
        _PARAM_COLON.match(segment)
        or _PARAM_BRACE.match(segment)
        or _PARAM_ANGLE.match(segment)
    )


def client_pattern(
    path: str, is_identifier: IdentifierPredicate = is_identifier_shaped
) -> PathPattern:
    """
    Wildcard the segments that are runtime values: a bare placeholder or an
    identifier-shaped literal. A segment mixing literal text and a
    placeholder (`export-:param`) is kept and matched by its literal parts.
    """
    return tuple(
        WILDCARD if seg == PLACEHOLDER or is_identifier(seg) else seg
        for seg in to_segments(path)
    )


def server_pattern(path: str) -> PathPattern:
    return tuple(WILDCARD if is_param_segment(seg) else seg for seg in to_segments(path))


def _template_matches(template: str, segment: str) -> bool:
    literal_parts = (re.escape(part) for part in template.split(PLACEHOLDER))
    return re.fullmatch("[^/]+".join(literal_parts), segment) is not None


def segments_equal(a: str, b: str) -> bool:
    if a == b or a == WILDCARD or b == WILDCARD:
        return True
    if PLACEHOLDER in a:
        return _template_matches(a, b)
    if PLACEHOLDER in b:
        return _template_matches(b, a)
    return False


def patterns_equal(a: Sequence[str], b: Sequence[str]) -> bool:
    if len(a) != len(b):
        return False
    return all(segments_equal(x, y) for x, y in zip(a, b))


def strip_leading_base(raw: str) -> str:
    """Drop interpolations before the first "/": `${API_BASE}/orders` -> `/orders`."""
    return _LEADING_BASE.sub("", raw)


def strip_trailing_query(raw: str) -> str:
    """Drop a query-string interpolation glued to the path: `/orders${qs}` -> `/orders`."""
    return _TRAILING_QUERY.sub("", raw)


def endpoint_path(raw: str) -> str:
    """
    Same-origin form of a raw path, API prefix kept: no scheme/host, no
    query, single separators, leading "/" and no trailing "/".
    """
    p = _SCHEME_HOST.sub("", (raw or "").strip())
    p = p.split("#", 1)[0].split("?", 1)[0]
    p = _MULTI_SLASH.sub("/", "/" + p)
    return p.rstrip("/") or ROOT


def is_absolute_url(raw: str) -> bool:
    return _SCHEME_HOST.match((raw or "").strip()) is not None
