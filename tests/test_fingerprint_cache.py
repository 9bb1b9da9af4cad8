from pathlib import Path

import pytest

from apidrift.domain.models import ApiRecord, DivergenceReport, ReconciliationResult, Summary
from apidrift.errors import CacheIOError
from apidrift.store.cache import FingerprintCache, fingerprint


def make_result(fp: str, total: int = 1) -> ReconciliationResult:
    apis = [ApiRecord(method="GET", path=f"/r{i}", implemented=True) for i in range(total)]
    return ReconciliationResult(
        fingerprint=fp,
        report=DivergenceReport(apis=apis, summary=Summary(total_apis=total)),
        oracle_text='{"apis": []}',
    )


def test_fingerprint_is_stable_and_order_sensitive():
    assert fingerprint("contract", "source") == fingerprint("contract", "source")
    assert fingerprint("contract", "source") != fingerprint("source", "contract")
    assert fingerprint("a", "bc") != fingerprint("ab", "c")
    assert len(fingerprint("", "")) == 64


def test_put_then_get_round_trips(tmp_path: Path):
    cache = FingerprintCache(tmp_path / "cache")
    fp = fingerprint("c", "s")

    assert cache.get(fp) is None

    written = cache.put(fp, make_result(fp))
    assert written == tmp_path / "cache" / f"{fp}.json"

    got = cache.get(fp)
    assert got is not None
    assert got.report.to_json() == make_result(fp).report.to_json()
    assert got.oracle_text == '{"apis": []}'


def test_put_overwrites_wholesale(tmp_path: Path):
    cache = FingerprintCache(tmp_path)
    cache.put("abc", make_result("abc", total=3))
    cache.put("abc", make_result("abc", total=1))

    got = cache.get("abc")
    assert got is not None and got.report.summary.total_apis == 1
    assert [p.name for p in tmp_path.iterdir()] == ["abc.json"]  # no temp files left behind


def test_survives_a_new_instance(tmp_path: Path):
    FingerprintCache(tmp_path).put("fp1", make_result("fp1"))
    assert FingerprintCache(tmp_path).get("fp1") is not None


def test_corrupt_entry_reads_as_miss(tmp_path: Path):
    cache = FingerprintCache(tmp_path)
    (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "wrong.json").write_text('{"hello": 1}', encoding="utf-8")

    assert cache.get("bad") is None
    assert cache.get("wrong") is None


def test_write_failure_raises_cache_io_error(tmp_path: Path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    cache = FingerprintCache(blocker)

    with pytest.raises(CacheIOError):
        cache.put("fp", make_result("fp"))


def test_entries_and_clear(tmp_path: Path):
    cache = FingerprintCache(tmp_path / "c")
    assert cache.entries() == []
    cache.put("b", make_result("b"))
    cache.put("a", make_result("a"))

    assert cache.entries() == ["a", "b"]
    assert cache.clear() == 2
    assert cache.entries() == []


def test_cache_dir_for_project(tmp_path: Path):
    assert FingerprintCache.cache_dir_for_project(tmp_path) == tmp_path / ".apidrift" / "cache"
