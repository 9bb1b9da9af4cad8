from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import Any, Optional

import yaml

from apidrift.domain.models import HTTP_METHODS, ContractEndpoint
from apidrift.errors import ContractLoadError

log = getLogger(__name__)


@dataclass(frozen=True)
class LoadedContract:
    raw_text: str
    document: dict[str, Any]
    endpoints: list[ContractEndpoint]


def _resolve(doc: dict[str, Any], node: Any, depth: int = 0) -> Any:
    # follow local "#/..." refs only; remote refs are left unresolved
    while isinstance(node, dict) and isinstance(node.get("$ref"), str) and depth < 16:
        ref = node["$ref"]
        if not ref.startswith("#/"):
            return {}
        target: Any = doc
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            target = target.get(part) if isinstance(target, dict) else None
        node = target
        depth += 1
    return node if node is not None else {}


def _object_schema(doc: dict[str, Any], schema: Any) -> dict[str, Any]:
    schema = _resolve(doc, schema)
    if isinstance(schema, dict) and schema.get("type") == "array":
        schema = _resolve(doc, schema.get("items"))
    return schema if isinstance(schema, dict) else {}


def _json_schema(doc: dict[str, Any], container: Any) -> Optional[dict[str, Any]]:
    """Schema of an OpenAPI 3 `content` holder, or a Swagger 2 `schema`."""
    container = _resolve(doc, container)
    if not isinstance(container, dict):
        return None
    content = container.get("content")
    if isinstance(content, dict):
        media = content.get("application/json") or next(iter(content.values()), None)
        if isinstance(media, dict):
            return _object_schema(doc, media.get("schema"))
        return None
    if "schema" in container:
        return _object_schema(doc, container.get("schema"))
    return None


def _success_response(responses: Any) -> Any:
    if not isinstance(responses, dict):
        return None
    # YAML loads bare status codes as ints
    for code, response in sorted(responses.items(), key=lambda kv: str(kv[0])):
        if str(code).startswith("2"):
            return response
    return responses.get("default")


def _operation_endpoint(
    doc: dict[str, Any], path: str, method: str, op: dict[str, Any], shared_params: list[Any]
) -> ContractEndpoint:
    request_fields: list[str] = []
    required: list[str] = []

    req_schema = _json_schema(doc, op.get("requestBody"))
    if req_schema is None:
        # swagger 2: body parameter
        for param in [*shared_params, *(op.get("parameters") or [])]:
            param = _resolve(doc, param)
            if isinstance(param, dict) and param.get("in") == "body":
                req_schema = _object_schema(doc, param.get("schema"))
    if req_schema:
        request_fields = [str(k) for k in (req_schema.get("properties") or {})]
        required = [str(r) for r in (req_schema.get("required") or [])]

    resp_schema = _json_schema(doc, _success_response(op.get("responses")))
    response_fields = [str(k) for k in ((resp_schema or {}).get("properties") or {})]

    return ContractEndpoint(
        method=method,
        path=path,
        expected_request_fields=tuple(request_fields),
        expected_response_fields=tuple(response_fields),
        required_fields=tuple(required),
        operation_id=op.get("operationId"),
        summary=str(op.get("summary") or ""),
    )


def parse_contract(raw_text: str) -> LoadedContract:
    """Flatten an OpenAPI 3 / Swagger 2 document (YAML or JSON) into contract endpoints."""
    try:
        doc = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ContractLoadError(f"contract is not valid YAML/JSON: {e}") from e
    if not isinstance(doc, dict):
        raise ContractLoadError("contract document must be a mapping")

    base = ""
    if doc.get("swagger") and isinstance(doc.get("basePath"), str):
        base = doc["basePath"].rstrip("/")

    paths = doc.get("paths")
    if not isinstance(paths, dict):
        paths = {}

    endpoints: list[ContractEndpoint] = []
    for path_key, item in paths.items():
        item = _resolve(doc, item)
        if not isinstance(item, dict):
            continue
        shared = item.get("parameters") or []
        for method_key, op in item.items():
            method = str(method_key).upper()
            if method not in HTTP_METHODS:
                continue
            if not isinstance(op, dict):
                op = {}
            endpoints.append(_operation_endpoint(doc, f"{base}{path_key}", method, op, shared))

    log.debug("contract declares %d operations", len(endpoints))
    return LoadedContract(raw_text=raw_text, document=doc, endpoints=endpoints)


def load_contract(path: Path) -> LoadedContract:
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ContractLoadError(f"cannot read contract {path}: {e}") from e
    return parse_contract(raw_text)
