from pathlib import Path
import textwrap

from wireaudit.config import AuditConfig
from wireaudit.extractors.server import fastapi, nestjs
from wireaudit.extractors.server.scanner import scan_server_routes


def lines(src: str) -> list[str]:
    return textwrap.dedent(src).strip("\n").splitlines()


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s).lstrip("\n"), encoding="utf-8")


def summary(routes):
    return [(r.method, r.full_path, r.local_path, r.source_line) for r in routes]


def test_nestjs_controller_and_method_decorators():
    src = """
    @Controller('customers')
    export class CustomersController {
      @Get()
      list() {}

      @Get(':id')
      one() {}

      @Post()
      create() {}

      @Patch(':id/status')
      status() {}

      @Delete(":id")
      remove() {}
    }
    """
    routes = nestjs.extract_routes_from_source(lines(src), "src/customers/customers.controller.ts")
    assert summary(routes) == [
        ("GET", "customers", "", 3),
        ("GET", "customers/:id", ":id", 6),
        ("POST", "customers", "", 9),
        ("PATCH", "customers/:id/status", ":id/status", 12),
        ("DELETE", "customers/:id", ":id", 15),
    ]
    assert all(r.dialect == "nestjs" for r in routes)


def test_nestjs_empty_controller_is_root_base():
    src = """
    @Controller()
    export class HealthController {
      @Get('/health/')
      health() {}

      @Get()
      root() {}
    }
    """
    routes = nestjs.extract_routes_from_source(lines(src), "src/health.controller.ts")
    assert summary(routes) == [("GET", "health", "/health/", 3), ("GET", "/", "", 6)]


def test_nestjs_file_without_controller_declares_nothing():
    src = """
    export class Helper {
      @Get(':id')
      notARoute() {}
    }
    """
    assert nestjs.extract_routes_from_source(lines(src), "src/helper.ts") == []


def test_nestjs_object_form_and_second_controller():
    src = """
    @Controller({ path: 'invoices' })
    export class InvoicesController {
      @Post(':id/send')
      send() {}
    }

    @Controller('credit-notes')
    export class CreditNotesController {
      @Get()
      list() {}
    }
    """
    routes = nestjs.extract_routes_from_source(lines(src), "src/invoices.controller.ts")
    assert summary(routes) == [
        ("POST", "invoices/:id/send", ":id/send", 3),
        ("GET", "credit-notes", "", 9),
    ]


def test_fastapi_router_prefix_and_add_api_route():
    src = """
    from fastapi import APIRouter

    router = APIRouter(prefix="/invoices")

    @router.get("")
    def list_invoices(): ...

    @router.post("/{invoice_id}/send")
    async def send(invoice_id: str): ...

    def helper(): ...

    router.add_api_route("/bulk", handler, methods=["PUT", "DELETE"])
    """
    routes = fastapi.extract_routes_from_source(textwrap.dedent(src).strip("\n"), "app/invoices.py")
    assert summary(routes) == [
        ("GET", "invoices", "", 5),
        ("POST", "invoices/{invoice_id}/send", "/{invoice_id}/send", 8),
        ("DELETE", "invoices/bulk", "/bulk", 13),
        ("PUT", "invoices/bulk", "/bulk", 13),
    ]
    assert all(r.dialect == "fastapi" for r in routes)


def test_fastapi_include_router_prefix_in_same_file():
    src = """
    app = FastAPI()
    router = APIRouter(prefix="/users")

    @router.get("/{id}")
    def get_user(id: int): ...

    @app.get("/health")
    def health(): ...

    app.include_router(router, prefix="/v1")
    """
    routes = fastapi.extract_routes_from_source(textwrap.dedent(src).strip("\n"), "main.py")
    assert summary(routes) == [
        ("GET", "v1/users/{id}", "/{id}", 4),
        ("GET", "health", "/health", 7),
    ]


def test_fastapi_without_grouping_object_declares_nothing():
    src = """
    from somewhere import router

    @router.get("/x")
    def x(): ...
    """
    assert fastapi.extract_routes_from_source(textwrap.dedent(src), "x.py") == []


def test_scan_server_routes_is_ordered_and_tolerant(tmp_path: Path):
    root = tmp_path / "backend"
    write(
        root / "src" / "b" / "b.controller.ts",
        """
        @Controller('b')
        export class B {
          @Get()
          list() {}
        }
        """,
    )
    write(
        root / "src" / "a" / "a.controller.ts",
        """
        @Controller('a')
        export class A {
          @Get()
          list() {}
        }
        """,
    )
    write(root / "src" / "broken.py", "def oops(:\n")
    write(
        root / "node_modules" / "x" / "x.controller.ts",
        """
        @Controller('vendored')
        export class X {
          @Get()
          list() {}
        }
        """,
    )

    scan = scan_server_routes(root, AuditConfig())
    assert [(r.full_path, r.source_file) for r in scan.routes] == [
        ("a", "src/a/a.controller.ts"),
        ("b", "src/b/b.controller.ts"),
    ]
    assert [s.path for s in scan.skipped] == ["src/broken.py"]
    assert scan.files_scanned == 2


def test_scan_server_routes_missing_root(tmp_path: Path):
    scan = scan_server_routes(tmp_path / "backend", AuditConfig())
    assert scan.routes == []
