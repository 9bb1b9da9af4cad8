from __future__ import annotations

import re
from dataclasses import replace
from pathlib import Path

from apidrift.extractors.fastapi.chunker import RouteDecl

# app.get('/x', ...), router.post("/x", ...), api.delete(`/x`, ...)
_ROUTE_CALL = re.compile(
    r"""\b([A-Za-z_$][\w$]*)\s*\.\s*(get|post|put|patch|delete)\s*\(\s*(['"`])([^'"`]+)\3""",
    re.IGNORECASE,
)
# router.route('/x').get(...).post(...)
_ROUTE_CHAIN = re.compile(r"""\.route\s*\(\s*(['"`])([^'"`]+)\1\s*\)""")
_CHAIN_METHOD = re.compile(r"""\.\s*(get|post|put|patch|delete)\s*\(""", re.IGNORECASE)

_RECEIVERS = {"app", "router", "api", "server", "routes"}
_SNIPPET_BEFORE = 100
_SNIPPET_LEN = 400


def _line_of(source: str, index: int) -> int:
    return source.count("\n", 0, index) + 1


def _snippet(source: str, index: int) -> str:
    start = max(0, index - _SNIPPET_BEFORE)
    return source[start : start + _SNIPPET_LEN]


def extract_routes_from_js_source(source: str) -> list[RouteDecl]:
    """
    Regex pass over Express-style JavaScript/TypeScript.

    Only receivers that look like routers (app/router/api/...) are considered so
    that e.g. `axios.get("/x")` or `map.get("k")` are not mistaken for routes.
    Template literals with ${...} are skipped.
    """
    routes: list[RouteDecl] = []

    for m in _ROUTE_CALL.finditer(source):
        receiver, method, path = m.group(1), m.group(2).upper(), m.group(4).strip()
        if receiver.lower() not in _RECEIVERS and not receiver.lower().endswith("router"):
            continue
        if "${" in path or not path.startswith("/"):
            continue
        routes.append(
            RouteDecl(
                method=method,
                path=path,
                handler_name="",
                decorator_line=_line_of(source, m.start()),
                snippet=_snippet(source, m.start()),
            )
        )

    for m in _ROUTE_CHAIN.finditer(source):
        path = m.group(2).strip()
        if "${" in path:
            continue
        # walk the .get(...).post(...) chain up to the end of the statement
        end = source.find(";", m.end())
        chain = source[m.end() : end if end != -1 else len(source)]
        for cm in _CHAIN_METHOD.finditer(chain):
            method = cm.group(1).upper()
            routes.append(
                RouteDecl(
                    method=method,
                    path=path,
                    handler_name="",
                    decorator_line=_line_of(source, m.start()),
                    snippet=_snippet(source, m.start()),
                )
            )

    # de-dupe per file (first occurrence wins), stable by line
    seen: set[tuple[str, str]] = set()
    out: list[RouteDecl] = []
    for r in sorted(routes, key=lambda r: (r.decorator_line, r.method)):
        key = (r.method, r.path)
        if key in seen:
            continue
        seen.add(key)
        out.append(r)
    return out


def extract_routes_from_js_file(path: Path, max_bytes: int = 500_000) -> list[RouteDecl]:
    try:
        source = path.read_bytes()[:max_bytes].decode("utf-8", errors="ignore")
    except OSError:
        return []
    abs_path = str(path.resolve())
    return [replace(r, file_path=abs_path) for r in extract_routes_from_js_source(source)]
