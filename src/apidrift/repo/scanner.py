from __future__ import annotations

import os
from logging import getLogger
from pathlib import Path
from typing import Iterable

from apidrift.domain.models import HTTP_METHODS, ObservedEndpoint
from apidrift.extractors.express.routes import extract_routes_from_js_file
from apidrift.extractors.fastapi.chunker import RouteDecl, extract_routes_from_file

log = getLogger(__name__)

PYTHON_EXTENSIONS = (".py",)
JS_EXTENSIONS = (".js", ".mjs", ".cjs", ".ts")
SOURCE_EXTENSIONS = PYTHON_EXTENSIONS + JS_EXTENSIONS

# vendored deps, build output, tool caches (incl. our own .apidrift cache)
IGNORED_DIRS = frozenset(
    {
        ".git",
        ".venv",
        "venv",
        "__pycache__",
        "node_modules",
        "bower_components",
        "dist",
        "build",
        "coverage",
        ".next",
        ".nuxt",
        ".mypy_cache",
        ".pytest_cache",
        ".apidrift",
    }
)


def scan_source_files(
    root: Path,
    max_files: int | None = None,
    extensions: tuple[str, ...] = SOURCE_EXTENSIONS,
) -> list[str]:
    """
    Return absolute paths (as strings) of source files under root.

    Sorted walk, so the same tree always yields the same list (the list feeds
    the cache fingerprint).
    """
    out: list[str] = []
    for dirpath, dirs, files in _walk(root):
        root_p = Path(dirpath)

        # prune ignored dirs; sort for a deterministic walk
        dirs[:] = sorted(d for d in dirs if d not in IGNORED_DIRS)

        for f in sorted(files):
            if f.endswith(extensions) and not f.endswith(".d.ts"):
                out.append(str((root_p / f).resolve()))
                if max_files is not None and len(out) >= max_files:
                    return out
    return out


def _walk(root: Path):
    # Separate helper to make unit testing easier (can be mocked)
    return os.walk(root)


def _rel(root: Path, path: str) -> str:
    return os.path.relpath(path, str(root.resolve())).replace(os.sep, "/")


def load_source_text(root: Path, files: Iterable[str]) -> str:
    """Concatenate files into one text with `// FILE: <rel path>` headers."""
    chunks: list[str] = []
    for f in files:
        try:
            content = Path(f).read_text(encoding="utf-8", errors="ignore")
        except OSError as e:
            log.warning("cannot read %s: %s", f, e)
            continue
        chunks.append(f"// FILE: {_rel(root, f)}\n{content}")
    return "\n\n".join(chunks)


def _extract(path: Path) -> list[RouteDecl]:
    if path.suffix in PYTHON_EXTENSIONS:
        return extract_routes_from_file(path)
    return extract_routes_from_js_file(path)


def scan_observed_endpoints(root: Path, files: Iterable[str]) -> list[ObservedEndpoint]:
    observed: list[ObservedEndpoint] = []
    for f in files:
        for r in _extract(Path(f)):
            if r.method not in HTTP_METHODS:
                continue
            observed.append(
                ObservedEndpoint(
                    method=r.method,
                    path=r.path,
                    source_location=f"{_rel(root, r.file_path or f)}:{r.decorator_line}",
                    handler_name=r.handler_name,
                    snippet=r.snippet or None,
                )
            )
    log.debug("found %d routes in %s", len(observed), root)
    return observed
