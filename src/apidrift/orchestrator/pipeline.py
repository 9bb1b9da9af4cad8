from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import Optional

from apidrift.config import Settings
from apidrift.contract.loader import load_contract
from apidrift.domain.models import DivergenceReport, ReconciliationResult
from apidrift.errors import CacheIOError
from apidrift.inventory.endpoints import build_contract_inventory, build_observed_inventory
from apidrift.oracle.adapter import OracleAdapter
from apidrift.oracle.client import GeminiClient, OracleClient
from apidrift.reconcile.engine import reconcile
from apidrift.repo.scanner import load_source_text, scan_observed_endpoints, scan_source_files
from apidrift.store.cache import FingerprintCache, fingerprint
from apidrift.testgen.plan import build_test_plan
from apidrift.testgen.postman import write_postman_collection
from apidrift.testgen.render import write_test_suite

log = getLogger(__name__)

REPORT_FILENAME = "report.json"
POSTMAN_FILENAME = "postman_collection.json"
GENERATED_TESTS_ROOT = "tests/generated"


@dataclass(frozen=True)
class CheckResult:
    report: DivergenceReport
    fingerprint: Optional[str]
    from_cache: bool
    oracle_called: bool
    files_scanned: int
    contract_endpoints: int
    observed_endpoints: int
    cache_error: Optional[str] = None
    artifacts: dict[str, str] = field(default_factory=dict)


def write_artifacts(report: DivergenceReport, output_dir: Path) -> dict[str, str]:
    """report.json, the Postman collection and the generated pytest suite."""
    output_dir.mkdir(parents=True, exist_ok=True)

    report_path = output_dir / REPORT_FILENAME
    report_path.write_text(report.to_json(), encoding="utf-8")

    postman_path = write_postman_collection(report.test_cases, output_dir / POSTMAN_FILENAME)

    plan = build_test_plan(report.test_cases, generated_root=GENERATED_TESTS_ROOT)
    test_files = write_test_suite(plan, output_dir)

    return {
        "report": str(report_path),
        "postman": str(postman_path),
        "tests": str(output_dir / GENERATED_TESTS_ROOT) if test_files else "",
    }


def run_check(
    contract_path: Path,
    source_root: Path,
    *,
    cache_dir: Path,
    output_dir: Optional[Path] = None,
    settings: Optional[Settings] = None,
    oracle: Optional[OracleClient] = None,
    force: bool = False,
    check_fields: bool = False,
    max_files: int | None = None,
) -> CheckResult:
    """
    One contract/source pair, end to end.

    The oracle is only built and called on a cache miss (or with force=True),
    so a cache hit needs no API key. A hit re-reconciles the stored oracle
    text, so `check_fields` applies whether or not the result was cached.
    Nothing is cached unless reconciliation succeeded.
    """
    settings = settings or Settings.from_environment()
    source_root = source_root.resolve()

    contract = load_contract(contract_path)
    contract_inv = build_contract_inventory(contract.endpoints)

    files = scan_source_files(source_root, max_files=max_files)
    source_text = load_source_text(source_root, files)
    observed_list = scan_observed_endpoints(source_root, files)
    observed_inv = build_observed_inventory(observed_list)
    log.info(
        "contract: %d endpoints, source: %d files / %d endpoints",
        len(contract_inv),
        len(files),
        len(observed_inv),
    )

    def _result(report: DivergenceReport, **kw) -> CheckResult:
        artifacts = write_artifacts(report, output_dir) if output_dir is not None else {}
        return CheckResult(
            report=report,
            files_scanned=len(files),
            contract_endpoints=len(contract_inv),
            observed_endpoints=len(observed_inv),
            artifacts=artifacts,
            **kw,
        )

    if not source_text.strip():
        # nothing implemented yet (initial commit): nothing to compare
        log.warning("no source code found under %s; skipping divergence prediction", source_root)
        return _result(DivergenceReport(), fingerprint=None, from_cache=False, oracle_called=False)

    fp = fingerprint(contract.raw_text, source_text)
    cache = FingerprintCache(cache_dir)

    if not force:
        cached = cache.get(fp)
        if cached is not None:
            log.info("cache hit %s; oracle not called", fp[:12])
            report = cached.report
            if cached.oracle_text:
                # the stored report reflects the flags of the run that wrote it
                report = reconcile(
                    contract_inv, observed_inv, cached.oracle_text, check_fields=check_fields
                ).to_report()
            return _result(report, fingerprint=fp, from_cache=True, oracle_called=False)

    client = oracle if oracle is not None else GeminiClient.from_settings(settings)
    adapter = OracleAdapter(client, max_output_tokens=settings.max_output_tokens)
    payload = adapter.invoke(contract.raw_text, source_text, observed_inv.values())

    outcome = reconcile(contract_inv, observed_inv, payload, check_fields=check_fields)
    report = outcome.to_report()

    cache_error: Optional[str] = None
    try:
        cache.put(fp, ReconciliationResult(fingerprint=fp, report=report, oracle_text=payload.text))
    except CacheIOError as e:
        log.warning("could not cache result: %s", e)
        cache_error = e.message

    return _result(report, fingerprint=fp, from_cache=False, oracle_called=True, cache_error=cache_error)
