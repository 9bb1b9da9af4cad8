from __future__ import annotations

import re
from typing import Optional


# {id}, { id }, {item_id:int} -> {id}; the convertor suffix is dropped
_PARAM_BRACE = re.compile(r"\{\s*([^{}/:\s]+)\s*(?::[^{}]*)?\}")
# <id>, <int:id> -> {id}
_PARAM_ANGLE = re.compile(r"<(?:[a-z_][a-z0-9_]*:)?([a-z_][a-z0-9_]*)>")
# :id only at the start of a segment, so "things:batch" stays literal
_PARAM_COLON = re.compile(r"^:([a-z_][a-z0-9_]*)")


def _segment(seg: str) -> str:
    seg = _PARAM_BRACE.sub(r"{\1}", seg)
    seg = _PARAM_ANGLE.sub(r"{\1}", seg)
    return _PARAM_COLON.sub(r"{\1}", seg)


def canonicalize(path: Optional[str]) -> str:
    """
    Map any route template (OpenAPI, Express, Flask, FastAPI) to one canonical form.

      "/Users/:id/"          -> "/users/{id}"
      "users//<int:id>"      -> "/users/{id}"
      "/items/{item_id:int}" -> "/items/{item_id}"
      ""                     -> "/"

    Total and idempotent: canonicalize(canonicalize(x)) == canonicalize(x).
    Works per segment: each one is trimmed and empty ones are dropped, which
    gives a single leading slash and no trailing or duplicate slashes.
    """
    segments = [s.strip() for s in (path or "").lower().split("/")]
    return "/" + "/".join(_segment(s) for s in segments if s)


def canonical_method(method: Optional[str]) -> str:
    return (method or "").strip().upper() or "GET"
