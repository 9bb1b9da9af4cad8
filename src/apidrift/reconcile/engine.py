from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import Any, Iterable, Mapping, Union

from apidrift.domain.models import (
    HTTP_METHODS,
    ApiRecord,
    Divergence,
    DivergenceReport,
    Summary,
    TestCase,
)
from apidrift.inventory.endpoints import ContractInventory, EndpointKey, ObservedInventory
from apidrift.inventory.paths import canonical_method, canonicalize
from apidrift.reconcile.payload import ParseErr, RawPayload, parse_payload
from apidrift.reconcile.severity import classify_type, coerce_severity, severity_for

log = getLogger(__name__)

_MISSING_DETAILS = "Declared in the contract but not implemented"
_EXTRA_DETAILS = "Implemented but not present in the contract"


@dataclass(frozen=True)
class ReconcileOutcome:
    apis: list[ApiRecord]
    summary: Summary
    test_cases: list[TestCase]

    def to_report(self) -> DivergenceReport:
        return DivergenceReport(apis=self.apis, test_cases=self.test_cases, summary=self.summary)


def reconcile(
    contract: ContractInventory,
    observed: ObservedInventory,
    raw_payload: Union[RawPayload, Mapping[str, Any], str],
    *,
    check_fields: bool = False,
) -> ReconcileOutcome:
    """
    Merge the oracle's claimed APIs with the contract and observed inventories.

    Produces exactly one ApiRecord per EndpointKey in the union of the three
    inventories. The oracle is not trusted to be exhaustive or right about what
    exists: `implemented` always comes from `observed`, and endpoints the oracle
    left out are filled in from the inventories.

    Only payload parsing raises (PayloadSchemaError / OracleMalformedResponse).
    """
    parsed = parse_payload(raw_payload)
    if isinstance(parsed, ParseErr):
        raise parsed.to_error()

    records = _claimed_records(parsed.apis)

    claimed = set(records)
    declared = set(contract)
    seen = set(observed)

    # endpoints the oracle left out; _apply_ground_truth tags them missing/extra
    for key in sorted((declared | seen) - claimed):
        records[key] = ApiRecord(method=key.method, path=key.path)

    for key, record in records.items():
        _apply_ground_truth(key, record, contract, observed)
        if check_fields and key in declared and key in seen:
            _check_response_fields(key, record, contract, observed)

    apis = [records[k] for k in sorted(records, key=lambda k: (k.path, k.method))]
    return ReconcileOutcome(
        apis=apis,
        summary=summarize(apis),
        test_cases=normalize_test_cases(parsed.test_cases),
    )


def summarize(apis: Iterable[ApiRecord]) -> Summary:
    """Fold the summary out of the records; never maintained by hand."""
    counts = {"HIGH": 0, "MEDIUM": 0, "LOW": 0}
    total = missing = extra = 0
    for api in apis:
        total += 1
        for d in api.divergences:
            counts[d.severity] += 1
            if d.type == "missing_endpoint":
                missing += 1
            elif d.type == "extra_endpoint":
                extra += 1
    return Summary(
        total_apis=total,
        high_severity=counts["HIGH"],
        medium_severity=counts["MEDIUM"],
        low_severity=counts["LOW"],
        missing_endpoints=missing,
        extra_endpoints=extra,
    )


def normalize_test_cases(items: Iterable[Any]) -> list[TestCase]:
    out: list[TestCase] = []
    for i, tc in enumerate(items):
        if not isinstance(tc, dict):
            log.warning("skipping test_cases[%d]: not an object", i)
            continue
        method = canonical_method(str(tc.get("method") or ""))
        path = canonicalize(str(tc.get("path") or ""))
        name = str(tc.get("name") or "").strip() or f"{method} {path}"
        out.append(
            TestCase(
                name=name,
                method=method,
                path=path,
                request_body=tc.get("requestBody", tc.get("request_body")),
                expected_status=_status(tc.get("expectedStatus", tc.get("expected_status")), method),
            )
        )
    return out


# ----------------------------
# internal helpers
# ----------------------------


def _status(value: Any, method: str) -> int:
    if isinstance(value, bool):
        value = None
    if isinstance(value, (int, float)) and float(value).is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 201 if method == "POST" else 200


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


def _add(divergences: list[Divergence], new: Divergence) -> None:
    if any(d.type == new.type and d.details == new.details for d in divergences):
        return
    divergences.append(new)


def _claimed_divergences(api: Mapping[str, Any]) -> list[Divergence]:
    raw = api.get("predicted_divergences")
    if raw is None:
        raw = api.get("divergences")
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        return []

    out: list[Divergence] = []
    for item in raw:
        if isinstance(item, str):
            item = {"type": item}
        if not isinstance(item, dict):
            continue
        label = str(item.get("type") or "").strip()
        dtype = classify_type(label)
        details = item.get("details")
        if details is None:
            details = item.get("message", "")
        _add(
            out,
            Divergence(
                type=dtype,
                details=str(details),
                severity=coerce_severity(item.get("severity")) or severity_for(dtype),
                label=label if label and label != dtype else None,
            ),
        )
    return out


def _claimed_records(apis: Iterable[Mapping[str, Any]]) -> dict[EndpointKey, ApiRecord]:
    records: dict[EndpointKey, ApiRecord] = {}
    for api in apis:
        key = EndpointKey.of(str(api.get("method") or ""), str(api.get("path") or ""))
        if key.method not in HTTP_METHODS:
            log.warning("skipping oracle api %s: unsupported method", key)
            continue
        divergences = _claimed_divergences(api)
        if key in records:
            # first claim wins, later duplicates only contribute divergences
            for d in divergences:
                _add(records[key].divergences, d)
            continue
        records[key] = ApiRecord(
            method=key.method,
            path=key.path,
            expected_request_fields=_str_list(api.get("expected_request_fields")),
            expected_response_fields=_str_list(api.get("expected_response_fields")),
            required_fields=_str_list(api.get("required_fields")),
            divergences=divergences,
        )
    return records


def _apply_ground_truth(
    key: EndpointKey,
    record: ApiRecord,
    contract: ContractInventory,
    observed: ObservedInventory,
) -> None:
    declared = contract.get(key)
    found = observed.get(key)

    record.implemented = found is not None
    record.source_location = found.source_location if found and found.source_location else None

    if declared is not None:
        record.expected_request_fields = list(declared.expected_request_fields)
        record.expected_response_fields = list(declared.expected_response_fields)
        record.required_fields = list(declared.required_fields)

    divs = record.divergences
    if found is not None:
        divs[:] = [d for d in divs if d.type != "missing_endpoint"]
    if declared is not None:
        divs[:] = [d for d in divs if d.type != "extra_endpoint"]

    if declared is not None and found is None and not any(d.type == "missing_endpoint" for d in divs):
        divs.insert(0, Divergence(type="missing_endpoint", details=_MISSING_DETAILS, severity="HIGH"))
    if declared is None and found is not None and not any(d.type == "extra_endpoint" for d in divs):
        divs.insert(0, Divergence(type="extra_endpoint", details=_EXTRA_DETAILS, severity="HIGH"))


def _check_response_fields(
    key: EndpointKey,
    record: ApiRecord,
    contract: ContractInventory,
    observed: ObservedInventory,
) -> None:
    snippet = (observed[key].snippet or "").lower()
    if not snippet or any(d.type == "missing_field" for d in record.divergences):
        return
    missing = [f for f in contract[key].expected_response_fields if f.lower() not in snippet]
    if missing:
        record.divergences.append(
            Divergence(
                type="missing_field",
                details=f"Fields possibly missing in implementation: {', '.join(missing)}",
                severity="MEDIUM",
            )
        )
