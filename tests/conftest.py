import json
from pathlib import Path
import textwrap

import pytest


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


class FakeOracle:
    """Stands in for the reasoning service; records every prompt it gets."""

    def __init__(self, text: str):
        self.text = text
        self.calls: list[dict] = []

    def generate(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        self.calls.append(
            {"prompt": prompt, "temperature": temperature, "max_output_tokens": max_output_tokens}
        )
        return self.text


CONTRACT_YAML = """
openapi: 3.0.0
info:
  title: Users
  version: "1.0"
paths:
  /users:
    get:
      responses:
        200:
          description: ok
          content:
            application/json:
              schema:
                type: array
                items:
                  $ref: "#/components/schemas/User"
    post:
      requestBody:
        content:
          application/json:
            schema:
              type: object
              required: [name]
              properties:
                name: {type: string}
                email: {type: string}
      responses:
        "201":
          description: created
  /users/{id}:
    get:
      responses:
        "200":
          description: ok
components:
  schemas:
    User:
      type: object
      properties:
        id: {type: integer}
        name: {type: string}
"""

ROUTES_JS = """
const express = require("express");
const router = express.Router();

router.get("/users", (req, res) => res.json([{ id: 1, name: "ada" }]));
router.get("/users/:id", getUser);
router.delete("/users/:id", removeUser);

module.exports = router;
"""

ORACLE_JSON = {
    "apis": [
        {
            "path": "/users",
            "method": "post",
            "expected_request_fields": ["name", "email"],
            "predicted_divergences": [
                {"type": "missing_endpoint", "details": "POST /users has no handler"}
            ],
        },
        {
            "path": "/users/{id}",
            "method": "GET",
            "implemented": False,
            "predicted_divergences": [
                {"type": "Missing Field", "details": "email never returned"}
            ],
        },
    ],
    "test_cases": [
        {"name": "create user", "method": "post", "path": "/Users/", "requestBody": {"name": "ada"}},
        {"name": "get user", "method": "get", "path": "/users/:id", "expectedStatus": "200"},
    ],
}


def oracle_text(payload: dict) -> str:
    return "Here is the analysis:\n```json\n" + json.dumps(payload, indent=2) + "\n```\nDone."


@pytest.fixture
def project(tmp_path: Path) -> dict:
    contract = tmp_path / "swagger.yaml"
    write(contract, CONTRACT_YAML)
    src = tmp_path / "src"
    write(src / "routes" / "users.js", ROUTES_JS)
    return {
        "contract": contract,
        "src": src,
        "cache_dir": tmp_path / "cache",
        "out": tmp_path / "out",
    }


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle(oracle_text(ORACLE_JSON))


@pytest.fixture
def make_oracle():
    def _make(payload) -> FakeOracle:
        return FakeOracle(payload if isinstance(payload, str) else oracle_text(payload))

    return _make
