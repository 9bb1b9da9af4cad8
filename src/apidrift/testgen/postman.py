from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from apidrift.domain.models import TestCase
from apidrift.testgen.render import concrete_path

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"


def _item(tc: TestCase) -> dict[str, Any]:
    path = concrete_path(tc.path)
    request: dict[str, Any] = {
        "method": tc.method,
        "header": [{"key": "Content-Type", "value": "application/json"}],
        "url": {
            "raw": f"{{{{baseUrl}}}}{path}",
            "host": ["{{baseUrl}}"],
            "path": [seg for seg in path.strip("/").split("/") if seg],
        },
    }
    if tc.request_body is not None:
        request["body"] = {"mode": "raw", "raw": json.dumps(tc.request_body, indent=2, sort_keys=True)}

    return {
        "name": tc.name,
        "request": request,
        "event": [
            {
                "listen": "test",
                "script": {
                    "type": "text/javascript",
                    "exec": [
                        f'pm.test("Status code is {tc.expected_status}", function () {{',
                        f"    pm.response.to.have.status({tc.expected_status});",
                        "});",
                    ],
                },
            }
        ],
    }


def build_postman_collection(
    test_cases: Iterable[TestCase],
    name: str = "API Divergence Test Suite",
    base_url: str = "http://localhost:3000",
) -> dict[str, Any]:
    """Postman v2.1 collection; same cases in, same collection out."""
    return {
        "info": {
            "name": name,
            "schema": POSTMAN_SCHEMA,
            "description": "Generated from the API contract vs implementation divergence analysis.",
        },
        "variable": [{"key": "baseUrl", "value": base_url}],
        "item": [_item(tc) for tc in test_cases],
    }


def write_postman_collection(test_cases: Iterable[TestCase], out_path: Path, **kwargs: Any) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    collection = build_postman_collection(test_cases, **kwargs)
    out_path.write_text(json.dumps(collection, indent=2), encoding="utf-8")
    return out_path
