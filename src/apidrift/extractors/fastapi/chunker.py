from __future__ import annotations

import ast
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Optional

_HTTP_METHOD_ATTRS = {
    "get": "GET",
    "post": "POST",
    "put": "PUT",
    "patch": "PATCH",
    "delete": "DELETE",
}

_SNIPPET_MAX_CHARS = 2_000


@dataclass(frozen=True)
class RouteDecl:
    method: str
    path: str
    handler_name: str
    decorator_line: int
    snippet: str = ""
    file_path: str = ""


def extract_routes_from_source(source: str) -> list[RouteDecl]:
    """
    Parse Python source and extract routes declared via decorators like:
      @app.get("/path")                      (FastAPI / Flask 2)
      @router.post(path="/path")
      @app.route("/path", methods=["POST"])  (Flask; defaults to GET)
    plus programmatic app.add_api_route("/path", handler, methods=[...]).

    Each route carries the handler's source as a snippet. Uses ast only;
    does not import/execute code.
    """
    try:
        tree = ast.parse(source)
    except SyntaxError:
        return []

    routes: list[RouteDecl] = []

    for node in _iter_function_defs(tree):
        snippet = (ast.get_source_segment(source, node) or "")[:_SNIPPET_MAX_CHARS]
        for dec in node.decorator_list:
            for method, path in _parse_route_decorator(dec):
                routes.append(
                    RouteDecl(
                        method=method,
                        path=path,
                        handler_name=node.name,
                        decorator_line=getattr(dec, "lineno", 1) or 1,
                        snippet=snippet,
                    )
                )

    for node in ast.walk(tree):
        for method, path, handler_name, line in _parse_add_api_route_call(node):
            routes.append(
                RouteDecl(
                    method=method,
                    path=path,
                    handler_name=handler_name,
                    decorator_line=line,
                )
            )

    # stable ordering: by decorator line, then handler name
    routes.sort(key=lambda r: (r.decorator_line, r.handler_name, r.method))
    return routes


def extract_routes_from_file(path: Path, max_bytes: int = 500_000) -> list[RouteDecl]:
    try:
        source = path.read_bytes()[:max_bytes].decode("utf-8", errors="ignore")
    except OSError:
        return []
    abs_path = str(path.resolve())
    return [replace(r, file_path=abs_path) for r in extract_routes_from_source(source)]


def _iter_function_defs(tree: ast.AST) -> Iterable[ast.AST]:
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            yield node


def _parse_route_decorator(dec: ast.AST) -> list[tuple[str, str]]:
    """Returns [(METHOD, path), ...] for a route decorator, [] otherwise."""
    # decorator must be a call on an attribute: @router.get("/x")
    if not isinstance(dec, ast.Call) or not isinstance(dec.func, ast.Attribute):
        return []

    attr = dec.func.attr
    if attr not in _HTTP_METHOD_ATTRS and attr != "route":
        return []

    path = _const_str(dec.args[0]) if dec.args else None
    if path is None:
        path = _keyword_str(dec, "path") or _keyword_str(dec, "rule")
    if path is None:
        return []

    if attr != "route":
        return [(_HTTP_METHOD_ATTRS[attr], path)]

    methods_node = _keyword(dec, "methods")
    if methods_node is None:
        return [("GET", path)]
    methods = _const_str_list(methods_node) or []
    return [(m, path) for m in methods]


def _keyword(call: ast.Call, name: str) -> Optional[ast.AST]:
    for kw in call.keywords or []:
        if kw.arg == name:
            return kw.value
    return None


def _keyword_str(call: ast.Call, name: str) -> Optional[str]:
    node = _keyword(call, name)
    return _const_str(node) if node is not None else None


def _const_str(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value.strip()
    # f-strings / concatenations are not evaluated
    return None


def _const_str_list(node: ast.AST) -> Optional[list[str]]:
    # methods=["GET","POST"] or ("GET",) or "GET"
    if isinstance(node, (ast.List, ast.Tuple, ast.Set)):
        out = []
        for elt in node.elts:
            s = _const_str(elt)
            if s is None:
                return None
            out.append(s.upper())
        return out

    s = _const_str(node)
    return [s.upper()] if s is not None else None


def _handler_to_name(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return ast.unparse(node)
    return None


def _parse_add_api_route_call(node: ast.AST) -> list[tuple[str, str, str, int]]:
    """Return list of (METHOD, path, handler_name, call_line)."""
    if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Attribute):
        return []
    if node.func.attr != "add_api_route" or len(node.args) < 2:
        return []

    path = _const_str(node.args[0])
    handler_name = _handler_to_name(node.args[1])
    methods_node = _keyword(node, "methods")
    if path is None or handler_name is None or methods_node is None:
        return []

    line = getattr(node, "lineno", 1) or 1
    return [(m, path, handler_name, line) for m in (_const_str_list(methods_node) or [])]
