from pathlib import Path
import shutil
import textwrap

import pytest
from typer.testing import CliRunner

from wireaudit.cli import app
from wireaudit.config import AuditConfig
from wireaudit.wiring.imports import import_specifiers, resolve_specifier
from wireaudit.wiring.trace import run_wiring_trace

runner = CliRunner()

PAGE = "frontend/app/admin/salespeople/page.tsx"


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s).lstrip("\n"), encoding="utf-8")


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    fe = root / "frontend"
    write(
        fe / "app" / "admin" / "salespeople" / "page.tsx",
        """
        import { listSalespeople } from "@/lib/salespeople";
        import {
          SalespeopleTable,
        } from "./Table";
        import React from "react";

        export default async function Page() {
          const customers = await fetch("/api/customers");
          return null;
        }
        """,
    )
    write(
        fe / "app" / "admin" / "salespeople" / "Table.tsx",
        """
        export async function save(id: string, body: unknown) {
          return apiFetch(`/salespeople/${id}`, {
            method: "PATCH",
            body: JSON.stringify(body),
          });
        }
        """,
    )
    write(
        fe / "lib" / "salespeople.ts",
        """
        import { helper } from "./deep";

        export function listSalespeople() {
          return apiFetch("/salespeople");
        }
        """,
    )
    write(fe / "lib" / "deep.ts", 'export const helper = () => fetch("/api/deep");\n')
    write(
        fe / "app" / "customers" / "[id]" / "page.tsx",
        """
        export default async function Customer() {
          return fetch("/api/customers");
        }
        """,
    )
    write(fe / "app" / "api" / "customers" / "route.ts", "export async function GET() {}\n")
    write(fe / "app" / "api" / "salespeople" / "route.ts", "export async function GET() {}\n")
    write(fe / "app" / "api" / "salespeople" / "[id]" / "route.ts", "export async function PATCH() {}\n")

    write(
        root / "backend" / "src" / "customers" / "customers.controller.ts",
        """
        @Controller('customers')
        export class CustomersController {
          @Get()
          list() {}
        }
        """,
    )
    write(
        root / "backend" / "src" / "salespeople" / "salespeople.controller.ts",
        """
        @Controller('salespeople')
        export class SalespeopleController {
          @Get()
          list() {}

          @Patch(':id')
          update() {}
        }
        """,
    )
    return root


def test_trace_by_route_is_go(repo: Path):
    report = run_wiring_trace(repo, route="/admin/salespeople")

    assert report.page_file == PAGE
    assert report.traced_files == [
        PAGE,
        "frontend/app/admin/salespeople/Table.tsx",
        "frontend/lib/salespeople.ts",
    ]
    assert [(c.method, c.normalized_path) for c in report.calls] == [
        ("GET", "customers"),
        ("PATCH", "salespeople/:param"),
        ("GET", "salespeople"),
    ]
    assert [p.endpoint for p in report.proxies] == [
        "/api/customers",
        "/api/salespeople/:param",
        "/api/salespeople",
    ]
    assert all(p.exists for p in report.proxies)
    assert all(b.matched and b.method_match for b in report.backend)
    assert report.verdict == "GO"


def test_one_hop_only(repo: Path):
    report = run_wiring_trace(repo, route="/admin/salespeople")
    assert "frontend/lib/deep.ts" not in report.traced_files
    assert all(c.normalized_path != "deep" for c in report.calls)


def test_missing_proxy_is_no_go(repo: Path):
    shutil.rmtree(repo / "frontend" / "app" / "api" / "salespeople" / "[id]")
    report = run_wiring_trace(repo, route="/admin/salespeople")

    missing = [p for p in report.proxies if not p.exists]
    assert [p.expected_route_file for p in missing] == [
        "frontend/app/api/salespeople/[param]/route.ts"
    ]
    assert report.verdict == "NO_GO"


def test_missing_backend_is_no_go(repo: Path):
    (repo / "backend" / "src" / "salespeople" / "salespeople.controller.ts").unlink()
    report = run_wiring_trace(repo, route="/admin/salespeople")

    assert [b.endpoint for b in report.backend if not b.matched] == [
        "/api/salespeople/:param",
        "/api/salespeople",
    ]
    assert report.verdict == "NO_GO"


def test_method_mismatch_is_only_a_warning(repo: Path):
    controller = repo / "backend" / "src" / "salespeople" / "salespeople.controller.ts"
    controller.write_text(
        controller.read_text(encoding="utf-8").replace("@Patch(':id')", "@Put(':id')"),
        encoding="utf-8",
    )
    report = run_wiring_trace(repo, route="/admin/salespeople")

    mismatched = [b for b in report.backend if b.matched and not b.method_match]
    assert [b.route.method for b in mismatched] == ["PUT"]
    assert report.verdict == "GO"


def test_dynamic_page_route(repo: Path):
    report = run_wiring_trace(repo, route="/customers/42")
    assert report.page_file == "frontend/app/customers/[id]/page.tsx"
    assert report.verdict == "GO"


def test_unknown_page_is_no_go(repo: Path):
    report = run_wiring_trace(repo, route="/nope")
    assert report.page_file is None
    assert report.calls == []
    assert report.verdict == "NO_GO"


def test_absolute_url_call_needs_no_proxy(repo: Path):
    (repo / "frontend" / "app" / "api" / "customers" / "route.ts").unlink()
    write(
        repo / "frontend" / "app" / "direct" / "page.tsx",
        """
        export default async function Direct() {
          return fetch("http://localhost:3001/api/customers?page=2");
        }
        """,
    )
    report = run_wiring_trace(repo, route="/direct")

    assert report.proxies == []
    assert [(b.endpoint, b.matched) for b in report.backend] == [
        ("http://localhost:3001/api/customers", True)
    ]
    assert report.verdict == "GO"


def test_requires_route_or_file(repo: Path):
    with pytest.raises(ValueError):
        run_wiring_trace(repo)


def test_route_wins_over_file(repo: Path):
    report = run_wiring_trace(repo, route="/customers/42", file=PAGE)
    assert report.input == "--route /customers/42"
    assert report.page_file == "frontend/app/customers/[id]/page.tsx"


def test_import_specifiers_in_source_order():
    source = textwrap.dedent(
        """
        import "./styles.css";
        import {
          a,
          b,
        } from "@/lib/api";
        import x from '../x';
        """
    )
    assert import_specifiers(source) == ["./styles.css", "@/lib/api", "../x"]


def test_resolve_specifier(repo: Path):
    config = AuditConfig()
    client_root = repo / "frontend"
    importer = client_root / "app" / "admin" / "salespeople" / "page.tsx"

    assert resolve_specifier("@/lib/salespeople", importer, client_root, config) == (
        client_root / "lib" / "salespeople.ts"
    )
    assert resolve_specifier("./Table", importer, client_root, config) == (
        importer.parent / "Table.tsx"
    )
    assert resolve_specifier("react", importer, client_root, config) is None
    assert resolve_specifier("./Missing", importer, client_root, config) is None


def test_cli_usage_error_without_route_or_file(repo: Path):
    result = runner.invoke(app, ["wiring", "--repo", str(repo)])
    assert result.exit_code == 1
    assert "Usage" in result.output


def test_cli_route_and_file_together_uses_route(repo: Path):
    result = runner.invoke(app, ["wiring", "--repo", str(repo), "--route", "/admin/salespeople", "--file", "nope.tsx"])
    assert result.exit_code == 0
    assert "Usage" not in result.output
    assert f"Frontend page: {PAGE}" in result.output


def test_cli_trace_by_file(repo: Path):
    result = runner.invoke(app, ["wiring", "--repo", str(repo), "--file", PAGE])
    assert result.exit_code == 0
    assert f"Frontend page: {PAGE}" in result.output
    assert "VERDICT: GO" in result.output


def test_cli_trace_no_go_exit_code(repo: Path):
    result = runner.invoke(app, ["wiring", "--repo", str(repo), "--route", "/nope"])
    assert result.exit_code == 1
    assert "NOT FOUND" in result.output
    assert "VERDICT: NO_GO" in result.output
