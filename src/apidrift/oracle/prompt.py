from __future__ import annotations

import json
from typing import Iterable

from apidrift.domain.models import ObservedEndpoint

_RESPONSE_SCHEMA = """{
  "apis": [
    {
      "path": "",
      "method": "",
      "expected_request_fields": [],
      "expected_response_fields": [],
      "required_fields": [],
      "predicted_divergences": [
        { "type": "", "details": "", "severity": "" }
      ]
    }
  ],
  "test_cases": [
    { "name": "", "method": "", "path": "", "requestBody": null, "expectedStatus": 200 }
  ]
}"""

_DIVERGENCE_TYPES = (
    "missing_endpoint, extra_endpoint, method_mismatch, schema_mismatch, "
    "missing_field, type_mismatch, validation_missing, minor_difference"
)


def _observed_block(observed: Iterable[ObservedEndpoint]) -> str:
    rows = [
        {"method": o.method, "path": o.path, "sourceLocation": o.source_location}
        for o in sorted(observed, key=lambda o: (o.path, o.method, o.source_location))
    ]
    return json.dumps(rows, indent=2)


def build_prompt(contract_summary: str, source_summary: str, observed: Iterable[ObservedEndpoint]) -> str:
    """Deterministic prompt: same inputs, same bytes."""
    return f"""You are an API Divergence Detection Engine.

Compare the API contract with the implementation source code.

--- API CONTRACT ---
{contract_summary}

--- SOURCE CODE ---
{source_summary}

--- ENDPOINTS FOUND IN SOURCE ---
{_observed_block(observed)}

TASK:
1. For every endpoint in the contract or the source, identify missing endpoints,
   extra endpoints, method mismatches, missing or mistyped fields, missing
   validation and request/response schema issues.
2. Use only these divergence types: {_DIVERGENCE_TYPES}.
3. Generate synthetic test cases that exercise the contract.
4. Output STRICT JSON ONLY in this schema:

{_RESPONSE_SCHEMA}

Return STRICT JSON only.
"""
