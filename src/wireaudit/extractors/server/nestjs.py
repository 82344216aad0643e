from __future__ import annotations

import re

from wireaudit.domain.models import ServerRoute
from wireaudit.paths.normalize import join_paths

_CONTROLLER_PATH = re.compile(r"""@Controller\s*\(\s*(['"`])([^'"`]*)\1\s*\)""")
_CONTROLLER_OBJECT = re.compile(
    r"""@Controller\s*\(\s*\{[^}]*\bpath\s*:\s*(['"`])([^'"`]*)\1"""
)
_CONTROLLER_EMPTY = re.compile(r"@Controller\s*\(\s*\)")
_ROUTE = re.compile(
    r"""@(?P<verb>Get|Post|Put|Patch|Delete)\s*\(\s*(?:(?P<q>['"`])(?P<path>[^'"`]*)(?P=q))?\s*\)"""
)


def _controller_base(line: str) -> str | None:
    m = _CONTROLLER_PATH.search(line) or _CONTROLLER_OBJECT.search(line)
    if m:
        return m.group(2).strip()
    if _CONTROLLER_EMPTY.search(line):
        return ""
    return None


def extract_routes_from_source(
    lines: list[str], rel_path: str, api_prefix: str = "/api"
) -> list[ServerRoute]:
    """
    Extract NestJS routes from one file's lines:

      @Controller('customers')      -> base "customers"
      @Get(':id')                   -> GET customers/:id
      @Post()                       -> POST customers

    A file without any @Controller(...) declares no routes. Routes above
    the first controller use the first controller's base; a later
    @Controller switches the base for the routes after it.
    """
    bases = [b for b in map(_controller_base, lines) if b is not None]
    if not bases:
        return []

    routes: list[ServerRoute] = []
    base = bases[0]
    for idx, line in enumerate(lines):
        found = _controller_base(line)
        if found is not None:
            base = found

        for m in _ROUTE.finditer(line):
            local = (m.group("path") or "").strip()
            routes.append(
                ServerRoute(
                    local_path=local,
                    method=m.group("verb").upper(),
                    full_path=join_paths(base, local, api_prefix=api_prefix),
                    source_file=rel_path,
                    source_line=idx + 1,
                    dialect="nestjs",
                )
            )
    return routes
