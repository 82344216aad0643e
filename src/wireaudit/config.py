from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wireaudit.errors import ConfigError
from wireaudit.repo.ignore import DEFAULT_IGNORES

CONFIG_FILE = "wireaudit.toml"
PYPROJECT_TABLE = ("tool", "wireaudit")


class IdentifierRule(BaseModel):
    """
    Knobs for guessing which literal client path segments are runtime ids.

    The rule is a heuristic: it only has to recognise the id schemes the
    client actually uses (uuids, numeric keys, cuids by default).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    min_hex_length: int = 20
    id_prefixes: list[str] = Field(default_factory=lambda: ["c"])
    prefixed_id_length: int = 25


class AuditConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # layout (relative to the repo root)
    client_root: str = "frontend"
    server_root: str = "backend"
    reports_dir: str = "reports"
    report_name: str = "api-contract-report"

    api_prefix: str = "/api"

    client_extensions: list[str] = Field(default_factory=lambda: [".ts", ".tsx", ".js", ".jsx"])
    server_extensions: list[str] = Field(default_factory=lambda: [".ts", ".py"])
    ignore_dirs: list[str] = Field(default_factory=lambda: sorted(DEFAULT_IGNORES))

    # client call-site dialects
    method_lookahead: int = Field(6, ge=1)
    network_call: str = "fetch"
    wrapper_name: str = "apiFetch"
    wrapper_impl_file: str = "lib/api.ts"
    client_libraries: list[str] = Field(default_factory=lambda: ["axios"])
    identifier: IdentifierRule = Field(default_factory=IdentifierRule)

    # client app conventions used by the wiring trace
    pages_dir: str = "app"
    page_file: str = "page.tsx"
    proxy_route_file: str = "route.ts"
    import_alias: str = "@/"
    import_suffixes: list[str] = Field(
        default_factory=lambda: ["", ".ts", ".tsx", "/index.ts", "/index.tsx"]
    )


def _read_toml(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e


def load_config(repo_root: Path) -> AuditConfig:
    """
    Load settings for a repo.

    `wireaudit.toml` wins over a `[tool.wireaudit]` table in pyproject.toml;
    with neither present every default applies.
    """
    data: dict = {}
    standalone = repo_root / CONFIG_FILE
    pyproject = repo_root / "pyproject.toml"

    if standalone.is_file():
        data = _read_toml(standalone)
    elif pyproject.is_file():
        table = _read_toml(pyproject)
        for key in PYPROJECT_TABLE:
            table = table.get(key, {})
        data = table

    try:
        return AuditConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid wireaudit configuration in {repo_root}:\n{e}") from e
