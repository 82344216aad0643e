from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from wireaudit.config import AuditConfig
from wireaudit.domain.models import ClientCall, ClientDialect, ScanIssue
from wireaudit.paths.normalize import (
    PLACEHOLDER,
    ROOT,
    has_interpolation,
    normalize,
    replace_interpolations,
    strip_leading_base,
    strip_trailing_query,
    to_segments,
)
from wireaudit.repo.scanner import read_source_lines, rel_posix, scan_source_files

logger = logging.getLogger(__name__)

# first argument: '...', "..." or `...`
_STRING_ARG = r"""(?:'(?P<sq>[^'\n]*)'|"(?P<dq>[^"\n]*)"|`(?P<bt>[^`\n]*)`)"""
_GENERIC = r"(?:<[^>()\n]*>)?"
_VERBS = r"(?P<verb>(?i:get|post|put|patch|delete))"

_METHOD_FIELD = re.compile(
    r"""\bmethod\s*:\s*['"`](?P<m>GET|POST|PUT|PATCH|DELETE)['"`]""", re.IGNORECASE
)
_ABSOLUTE = re.compile(r"^(?:/|https?://)", re.IGNORECASE)
_COMMENT_PREFIXES = ("//", "/*", "*")
_LITERAL = re.compile(r"[A-Za-z0-9]")


@dataclass(frozen=True)
class ClientScan:
    calls: list[ClientCall]
    files_scanned: int
    skipped: list[ScanIssue] = field(default_factory=list)


@dataclass(frozen=True)
class _Dialects:
    network: re.Pattern[str]
    wrapper: re.Pattern[str]
    library: Optional[re.Pattern[str]]

    @property
    def openers(self) -> list[re.Pattern[str]]:
        return [p for p in (self.network, self.wrapper, self.library) if p is not None]


@dataclass(frozen=True)
class _Hit:
    raw: str
    dialect: ClientDialect
    column: int
    verb: Optional[str] = None


def _compile_dialects(config: AuditConfig) -> _Dialects:
    network = re.compile(rf"(?<![\w$]){re.escape(config.network_call)}\s*\(\s*{_STRING_ARG}")
    wrapper = re.compile(
        rf"(?<![\w$]){re.escape(config.wrapper_name)}\s*{_GENERIC}\s*\(\s*{_STRING_ARG}"
    )
    library = None
    if config.client_libraries:
        names = "|".join(re.escape(n) for n in config.client_libraries)
        library = re.compile(
            rf"(?<![\w$])(?:{names})\.{_VERBS}\s*{_GENERIC}\s*\(\s*{_STRING_ARG}"
        )
    return _Dialects(network=network, wrapper=wrapper, library=library)


def _arg(m: re.Match[str]) -> tuple[str, bool]:
    """Return (text, is_backtick) for the matched string argument."""
    if m.group("bt") is not None:
        return m.group("bt"), True
    if m.group("sq") is not None:
        return m.group("sq"), False
    return m.group("dq"), False


def _is_wrapper_impl(rel_path: str, config: AuditConfig) -> bool:
    impl = config.wrapper_impl_file.strip("/")
    return bool(impl) and (rel_path == impl or rel_path.endswith("/" + impl))


def _match_line(line: str, dialects: _Dialects, in_wrapper_impl: bool) -> Optional[_Hit]:
    """Apply the call-site dialects in priority order; first usable one wins."""
    m = dialects.network.search(line)
    if m:
        text, backtick = _arg(m)
        if backtick and has_interpolation(text):
            if not in_wrapper_impl:
                # drop a leading base-url interpolation: `${API_BASE}/orders`
                rest = strip_leading_base(text)
                if _ABSOLUTE.match(rest):
                    return _Hit(raw=text, dialect="fetch_template", column=m.start())
        elif _ABSOLUTE.match(text):
            return _Hit(raw=text, dialect="fetch", column=m.start())

    m = dialects.wrapper.search(line)
    if m:
        text, _ = _arg(m)
        if text.strip():
            return _Hit(raw=text, dialect="wrapper", column=m.start())

    if dialects.library is not None:
        m = dialects.library.search(line)
        if m:
            text, _ = _arg(m)
            if text.strip():
                return _Hit(
                    raw=text,
                    dialect="client_library",
                    column=m.start(),
                    verb=m.group("verb").upper(),
                )
    return None


def _method_from_context(
    lines: list[str], idx: int, column: int, dialects: _Dialects, lookahead: int
) -> str:
    """
    Look for an explicit `method: "VERB"` field belonging to the call that
    starts at lines[idx][column]. The window is `lookahead` lines and ends
    early at the next line that opens another call site.
    """
    m = _METHOD_FIELD.search(lines[idx], column)
    if m:
        return m.group("m").upper()

    for j in range(idx + 1, min(idx + lookahead, len(lines))):
        line = lines[j]
        m = _METHOD_FIELD.search(line)
        starts = [o.search(line) for o in dialects.openers]
        first_opener = min((s.start() for s in starts if s), default=None)
        if m and (first_opener is None or m.start() < first_opener):
            return m.group("m").upper()
        if first_opener is not None:
            break
    return "GET"


def _usable(normalized: str) -> bool:
    if not normalized or normalized == ROOT:
        return False
    # usable once any segment carries literal text beside its placeholders
    return any(_LITERAL.search(seg.replace(PLACEHOLDER, "")) for seg in to_segments(normalized))


def extract_calls_from_source(
    lines: list[str],
    rel_path: str,
    config: AuditConfig,
    dialects: Optional[_Dialects] = None,
) -> list[ClientCall]:
    """
    Extract client call sites from one file's lines. Pure; no IO.

    At most one call per line is produced: the first dialect (network call
    literal, network call template, wrapper, client library) that yields a
    usable path wins.
    """
    dialects = dialects or _compile_dialects(config)
    in_wrapper_impl = _is_wrapper_impl(rel_path, config)

    calls: list[ClientCall] = []
    seen: set[tuple[str, str, int]] = set()

    for idx, line in enumerate(lines):
        if line.lstrip().startswith(_COMMENT_PREFIXES):
            continue

        hit = _match_line(line, dialects, in_wrapper_impl)
        if hit is None:
            continue

        text = hit.raw
        if hit.dialect == "fetch_template":
            text = strip_leading_base(text)
        text = replace_interpolations(strip_trailing_query(text))

        normalized = normalize(text, api_prefix=config.api_prefix)
        if not _usable(normalized):
            continue

        if hit.verb is not None:
            method = hit.verb
        else:
            method = _method_from_context(
                lines, idx, hit.column, dialects, config.method_lookahead
            )

        key = (normalized, rel_path, idx + 1)
        if key in seen:
            continue
        seen.add(key)

        calls.append(
            ClientCall(
                path=hit.raw,
                normalized_path=normalized,
                method=method,
                source_file=rel_path,
                source_line=idx + 1,
                dialect=hit.dialect,
            )
        )
    return calls


def scan_client_files(files: list[Path], root: Path, config: AuditConfig) -> ClientScan:
    """Scan an explicit file list; `source_file` is reported relative to root."""
    dialects = _compile_dialects(config)
    calls: list[ClientCall] = []
    skipped: list[ScanIssue] = []

    for path in files:
        rel_path = rel_posix(path, root)
        try:
            lines = read_source_lines(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable client file %s: %s", rel_path, e)
            skipped.append(ScanIssue(path=rel_path, reason=str(e)))
            continue
        calls.extend(extract_calls_from_source(lines, rel_path, config, dialects))

    return ClientScan(calls=calls, files_scanned=len(files) - len(skipped), skipped=skipped)


def scan_client_calls(root: Path, config: AuditConfig) -> ClientScan:
    unlisted: list[ScanIssue] = []
    files = scan_source_files(
        root, config.client_extensions, ignores=config.ignore_dirs, issues=unlisted
    )
    scan = scan_client_files(files, root, config)
    if unlisted:
        scan = replace(scan, skipped=unlisted + scan.skipped)
    logger.debug(
        "Client scan of %s: %d files, %d calls, %d skipped",
        root,
        scan.files_scanned,
        len(scan.calls),
        len(scan.skipped),
    )
    return scan
