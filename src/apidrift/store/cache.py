from __future__ import annotations

import hashlib
import os
import tempfile
import threading
from logging import getLogger
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from apidrift.domain.models import ReconciliationResult
from apidrift.errors import CacheIOError

log = getLogger(__name__)


def fingerprint(contract_text: str, source_text: str) -> str:
    """Stable sha256 over contract text then source text (order matters)."""
    data = f"{contract_text}\n{source_text}".encode("utf-8")
    return hashlib.sha256(data).hexdigest()


class FingerprintCache:
    """Content-addressed store: one JSON file per fingerprint.

    Notes:
    - Entries are never edited in place; `put` replaces the whole file atomically.
    - There is no eviction; entries accumulate until `clear()`.
    - A corrupt or unreadable entry reads as a miss.
    """

    SUFFIX = ".json"

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)
        self._write_lock = threading.Lock()

    @staticmethod
    def cache_dir_for_project(project_root: Path) -> Path:
        return project_root / ".apidrift" / "cache"

    def path_for(self, fp: str) -> Path:
        return self.cache_dir / f"{fp}{self.SUFFIX}"

    # ----------------------------
    # Read
    # ----------------------------

    def get(self, fp: str) -> Optional[ReconciliationResult]:
        try:
            return self._read(fp)
        except CacheIOError as e:
            log.warning("cache read failed, treating as miss: %s", e)
            return None

    def _read(self, fp: str) -> Optional[ReconciliationResult]:
        path = self.path_for(fp)
        if not path.is_file():
            log.debug("cache miss %s", fp[:12])
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise CacheIOError(f"cannot read {path}: {e}", path=str(path)) from e
        try:
            result = ReconciliationResult.model_validate_json(text)
        except ValidationError as e:
            raise CacheIOError(f"corrupt cache entry {path}: {e}", path=str(path)) from e
        log.debug("cache hit %s", fp[:12])
        return result

    # ----------------------------
    # Write
    # ----------------------------

    def put(self, fp: str, result: ReconciliationResult) -> Path:
        """Write (or overwrite) the entry for `fp`. Raises CacheIOError on failure."""
        path = self.path_for(fp)
        text = result.model_dump_json(indent=2, by_alias=True)
        with self._write_lock:
            tmp_name: Optional[str] = None
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=str(self.cache_dir), suffix=".tmp")
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, path)
            except OSError as e:
                if tmp_name and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise CacheIOError(f"cannot write {path}: {e}", path=str(path)) from e
        log.debug("cache put %s", fp[:12])
        return path

    # ----------------------------
    # Housekeeping
    # ----------------------------

    def entries(self) -> list[str]:
        if not self.cache_dir.is_dir():
            return []
        return sorted(p.stem for p in self.cache_dir.glob(f"*{self.SUFFIX}"))

    def clear(self) -> int:
        removed = 0
        for fp in self.entries():
            try:
                self.path_for(fp).unlink()
            except OSError as e:
                raise CacheIOError(f"cannot remove {self.path_for(fp)}: {e}", path=str(self.path_for(fp))) from e
            removed += 1
        return removed
