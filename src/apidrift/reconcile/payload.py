"""
Parse-then-validate boundary for oracle output.

Oracle text is untrusted. Nothing downstream sees it until it has been turned
into a ParseOk; every failure is a ParseErr that keeps the raw text around.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Literal, Mapping, Optional, Union

from apidrift.errors import OracleMalformedResponse, PayloadSchemaError

log = getLogger(__name__)


@dataclass(frozen=True)
class RawPayload:
    """Verbatim oracle text plus the JSON object extracted from it."""

    text: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ParseOk:
    apis: list[dict[str, Any]]
    test_cases: list[Any]
    raw_text: Optional[str] = None


@dataclass(frozen=True)
class ParseErr:
    kind: Literal["malformed", "schema"]
    reason: str
    raw_text: Optional[str] = None

    def to_error(self) -> PayloadSchemaError:
        if self.kind == "malformed":
            return OracleMalformedResponse(self.reason, raw_text=self.raw_text)
        return PayloadSchemaError(self.reason, raw_text=self.raw_text)


ParseResult = Union[ParseOk, ParseErr]


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Decode the outermost {...} span of free-form text.

    Raises OracleMalformedResponse (with the raw text) when there is no span or
    the span is not a JSON object.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise OracleMalformedResponse("no JSON object found in oracle response", raw_text=text)
    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise OracleMalformedResponse(f"oracle response is not valid JSON: {e}", raw_text=text) from e
    if not isinstance(data, dict):
        raise OracleMalformedResponse("oracle response is not a JSON object", raw_text=text)
    return data


def _as_list(value: Any, name: str) -> Optional[list[Any]]:
    # absent/null -> [], lone object -> [object], anything else that isn't a list -> None
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        log.debug("coercing single %s object into a list", name)
        return [value]
    return None


def parse_payload(raw: Union[RawPayload, Mapping[str, Any], str]) -> ParseResult:
    raw_text: Optional[str] = None
    source: Any = raw
    if isinstance(raw, RawPayload):
        raw_text = raw.text
        source = raw.data or raw.text

    if isinstance(source, str):
        raw_text = source
        try:
            data: Any = extract_json_object(source)
        except OracleMalformedResponse as e:
            return ParseErr(kind="malformed", reason=e.message, raw_text=raw_text)
    else:
        data = source

    if not isinstance(data, Mapping):
        return ParseErr(kind="schema", reason="payload is not an object", raw_text=raw_text)

    apis = _as_list(data.get("apis"), "apis")
    if apis is None:
        return ParseErr(
            kind="schema",
            reason=f"`apis` must be an array, got {type(data.get('apis')).__name__}",
            raw_text=raw_text,
        )

    test_cases = _as_list(data.get("test_cases"), "test_cases")
    if test_cases is None:
        log.warning("ignoring non-array `test_cases` in oracle payload")
        test_cases = []

    kept: list[dict[str, Any]] = []
    for i, api in enumerate(apis):
        if not isinstance(api, dict):
            log.warning("skipping apis[%d]: not an object", i)
            continue
        if not str(api.get("path") or "").strip():
            log.warning("skipping apis[%d]: no path", i)
            continue
        kept.append(api)

    return ParseOk(apis=kept, test_cases=test_cases, raw_text=raw_text)
