from __future__ import annotations

import ast
from typing import Iterable, Optional

from wireaudit.domain.models import HTTP_METHODS, ServerRoute
from wireaudit.paths.normalize import join_paths

_HTTP_METHOD_ATTRS = {m.lower(): m for m in HTTP_METHODS}
_GROUPING_CALLS = ("APIRouter", "FastAPI")


def extract_routes_from_source(
    source: str, rel_path: str, api_prefix: str = "/api"
) -> list[ServerRoute]:
    """
    Parse Python source and extract FastAPI routes declared via:
      router = APIRouter(prefix="/customers")
      @router.get("/{id}")
      router.add_api_route("/x", handler, methods=["POST"])

    The router's prefix is the base path; an in-file
    `app.include_router(router, prefix=...)` is prepended to it. Uses ast
    only; does not import/execute code. Raises SyntaxError on bad source.
    """
    tree = ast.parse(source)

    groupings = _collect_groupings(tree)
    if not groupings:
        return []
    _apply_include_prefixes(tree, groupings)

    found: list[tuple[int, str, str, str]] = []

    for node in _iter_function_defs(tree):
        for dec in node.decorator_list:
            maybe = _parse_route_decorator(dec, groupings)
            if maybe is not None:
                found.append(maybe)

    # Also extract programmatic routes: router.add_api_route(...)
    for node in ast.walk(tree):
        found.extend(_parse_add_api_route_call(node, groupings))

    # stable ordering: by declaration line, then method
    found.sort(key=lambda r: (r[0], r[1]))
    return [
        ServerRoute(
            local_path=local,
            method=method,
            full_path=join_paths(groupings[owner], local, api_prefix=api_prefix),
            source_file=rel_path,
            source_line=line,
            dialect="fastapi",
        )
        for (line, method, owner, local) in found
    ]


def _iter_function_defs(tree: ast.AST) -> Iterable[ast.AST]:
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            yield node


def _call_name(node: ast.AST) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return ""


def _collect_groupings(tree: ast.AST) -> dict[str, str]:
    """Map variable name -> prefix for `x = APIRouter(prefix=...)` / `x = FastAPI()`."""
    out: dict[str, str] = {}
    for node in ast.walk(tree):
        if not isinstance(node, (ast.Assign, ast.AnnAssign)):
            continue
        value = node.value
        if not isinstance(value, ast.Call) or _call_name(value.func) not in _GROUPING_CALLS:
            continue

        prefix = ""
        for kw in value.keywords or []:
            if kw.arg == "prefix":
                prefix = _const_str(kw.value) or ""

        targets = node.targets if isinstance(node, ast.Assign) else [node.target]
        for t in targets:
            if isinstance(t, ast.Name):
                out[t.id] = prefix
    return out


def _apply_include_prefixes(tree: ast.AST, groupings: dict[str, str]) -> None:
    # app.include_router(router, prefix="/v1") where both live in this file
    for node in ast.walk(tree):
        if not (isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute)):
            continue
        if node.func.attr != "include_router" or not node.args:
            continue
        included = node.args[0]
        if not isinstance(included, ast.Name) or included.id not in groupings:
            continue
        for kw in node.keywords or []:
            if kw.arg == "prefix":
                outer = _const_str(kw.value) or ""
                groupings[included.id] = f"{outer.rstrip('/')}/{groupings[included.id].lstrip('/')}"


def _owner(func: ast.AST, groupings: dict[str, str]) -> Optional[str]:
    if isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name):
        if func.value.id in groupings:
            return func.value.id
    return None


def _parse_route_decorator(
    dec: ast.AST, groupings: dict[str, str]
) -> Optional[tuple[int, str, str, str]]:
    """
    Recognize decorators of form:
      @<router>.<method>(<path>, ...)
    where <router> is a grouping object of this file. The path is the first
    positional arg or keyword 'path'; absent means the router's own path.

    Returns (decorator_line, METHOD, router, path) or None.
    """
    if not isinstance(dec, ast.Call):
        return None

    owner = _owner(dec.func, groupings)
    if owner is None:
        return None

    method = _HTTP_METHOD_ATTRS.get(dec.func.attr)
    if method is None:
        return None

    path_node = dec.args[0] if dec.args else None
    if path_node is None:
        for kw in dec.keywords or []:
            if kw.arg == "path":
                path_node = kw.value
                break

    if path_node is None:
        path_value = ""
    else:
        path_value = _const_str(path_node)
        if path_value is None:
            # we do NOT evaluate f-strings / concatenations
            return None

    return (getattr(dec, "lineno", 1) or 1, method, owner, path_value)


def _const_str(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value.strip()
    return None


def _const_str_list(node: ast.AST) -> Optional[list[str]]:
    # methods=["GET","POST"] or ("GET",)
    if isinstance(node, (ast.List, ast.Tuple, ast.Set)):
        out = []
        for elt in node.elts:
            s = _const_str(elt)
            if s is None:
                return None
            out.append(s.upper())
        return out

    s = _const_str(node)
    if s is not None:
        return [s.upper()]

    return None


def _parse_add_api_route_call(
    node: ast.AST, groupings: dict[str, str]
) -> list[tuple[int, str, str, str]]:
    if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Attribute):
        return []
    if node.func.attr != "add_api_route":
        return []

    owner = _owner(node.func, groupings)
    if owner is None or len(node.args) < 2:
        return []

    path = _const_str(node.args[0])
    if path is None:
        return []

    methods_node = None
    for kw in node.keywords or []:
        if kw.arg == "methods":
            methods_node = kw.value
            break

    if methods_node is None:
        return []  # don't guess defaults

    methods = _const_str_list(methods_node)
    if not methods:
        return []

    line = getattr(node, "lineno", 1) or 1
    return [(line, m, owner, path) for m in methods if m in HTTP_METHODS]
