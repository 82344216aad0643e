from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE")

ClientDialect = Literal["fetch", "fetch_template", "wrapper", "client_library"]
ServerDialect = Literal["nestjs", "fastapi"]
Verdict = Literal["GO", "NO_GO"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ClientCall(_Frozen):
    path: str  # raw text as written, templates kept
    normalized_path: str
    method: HttpMethod
    source_file: str  # relative to the client root, forward slashes
    source_line: int
    dialect: ClientDialect = "fetch"

    @property
    def location(self) -> str:
        return f"{self.source_file}:{self.source_line}"


class ServerRoute(_Frozen):
    local_path: str
    method: HttpMethod
    full_path: str
    source_file: str  # relative to the server root, forward slashes
    source_line: int
    dialect: ServerDialect = "nestjs"

    @property
    def location(self) -> str:
        return f"{self.source_file}:{self.source_line}"


class MatchResult(_Frozen):
    client_call: ClientCall
    server_route: ServerRoute
    method_match: bool


class AuditResult(_Frozen):
    client_calls: list[ClientCall] = Field(default_factory=list)
    server_routes: list[ServerRoute] = Field(default_factory=list)
    matched: list[MatchResult] = Field(default_factory=list)
    missing_backend: list[ClientCall] = Field(default_factory=list)
    method_mismatches: list[MatchResult] = Field(default_factory=list)
    coverage_percent: int = 100

    @property
    def matched_count(self) -> int:
        """Matches whose HTTP method agrees."""
        return sum(1 for m in self.matched if m.method_match)


class ScanIssue(_Frozen):
    """A file a scanner had to skip."""

    path: str
    reason: str


class ProxyStatus(_Frozen):
    endpoint: str
    expected_route_file: str
    exists: bool


class BackendCheck(_Frozen):
    call: ClientCall
    endpoint: str
    route: Optional[ServerRoute] = None
    method_match: bool = False

    @property
    def matched(self) -> bool:
        return self.route is not None


class WiringReport(_Frozen):
    input: str
    page_file: Optional[str] = None
    traced_files: list[str] = Field(default_factory=list)
    calls: list[ClientCall] = Field(default_factory=list)
    proxies: list[ProxyStatus] = Field(default_factory=list)
    backend: list[BackendCheck] = Field(default_factory=list)
    skipped: list[ScanIssue] = Field(default_factory=list)

    @property
    def verdict(self) -> Verdict:
        if self.page_file is None:
            return "NO_GO"
        if any(not p.exists for p in self.proxies):
            return "NO_GO"
        if any(not b.matched for b in self.backend):
            return "NO_GO"
        return "GO"


def issues_under(root_name: str, issues: list[ScanIssue]) -> list[ScanIssue]:
    """Re-anchor scanner-relative issue paths under their root directory."""
    prefix = root_name.strip("/")
    if not prefix:
        return list(issues)
    return [ScanIssue(path=f"{prefix}/{s.path}", reason=s.reason) for s in issues]
