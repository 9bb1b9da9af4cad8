from pathlib import Path
import json
import textwrap

import pytest

from apidrift.contract.loader import load_contract, parse_contract
from apidrift.errors import ContractLoadError


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


def test_openapi3_fields_and_refs(project):
    loaded = load_contract(project["contract"])
    eps = {(e.method, e.path): e for e in loaded.endpoints}

    assert set(eps) == {("GET", "/users"), ("POST", "/users"), ("GET", "/users/{id}")}

    # array response resolved through $ref to the item schema
    assert eps[("GET", "/users")].expected_response_fields == ("id", "name")

    post = eps[("POST", "/users")]
    assert post.expected_request_fields == ("name", "email")
    assert post.required_fields == ("name",)
    assert post.expected_response_fields == ()

    assert loaded.raw_text == project["contract"].read_text(encoding="utf-8")


def test_swagger2_body_parameter_and_base_path():
    raw = textwrap.dedent(
        """
        swagger: "2.0"
        basePath: /api/
        paths:
          /items/{itemId}:
            parameters:
              - name: itemId
                in: path
            put:
              operationId: updateItem
              summary: Update an item
              parameters:
                - in: body
                  name: body
                  schema:
                    $ref: "#/definitions/Item"
              responses:
                200:
                  description: ok
                  schema:
                    $ref: "#/definitions/Item"
            head:
              responses: {}
        definitions:
          Item:
            type: object
            required: [title]
            properties:
              title: {type: string}
              price: {type: number}
        """
    )
    [ep] = parse_contract(raw).endpoints

    assert (ep.method, ep.path) == ("PUT", "/api/items/{itemId}")
    assert ep.expected_request_fields == ("title", "price")
    assert ep.required_fields == ("title",)
    assert ep.expected_response_fields == ("title", "price")
    assert ep.operation_id == "updateItem"
    assert ep.summary == "Update an item"


def test_json_contract_is_accepted():
    doc = {"openapi": "3.0.0", "paths": {"/ping": {"get": {"responses": {"204": {"description": "ok"}}}}}}
    [ep] = parse_contract(json.dumps(doc)).endpoints
    assert (ep.method, ep.path) == ("GET", "/ping")


def test_operation_without_body_is_tolerated():
    [ep] = parse_contract("paths:\n  /x:\n    delete: null\n").endpoints
    assert (ep.method, ep.path, ep.expected_request_fields) == ("DELETE", "/x", ())


@pytest.mark.parametrize("raw", ["- a\n- b\n", "paths: [unclosed", ""])
def test_invalid_contract(raw):
    with pytest.raises(ContractLoadError):
        parse_contract(raw)


def test_missing_contract_file(tmp_path: Path):
    with pytest.raises(ContractLoadError):
        load_contract(tmp_path / "nope.yaml")
