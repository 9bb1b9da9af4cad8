from __future__ import annotations

import json
import re
from logging import getLogger
from pathlib import Path

from apidrift.testgen.plan import PlannedTest, TestFilePlan, TestPlan

log = getLogger(__name__)

_PARAM = re.compile(r"\{([^{}/]+)\}")

# value substituted for {param} segments in generated requests
PATH_PARAM_PLACEHOLDER = "1"

_HEADER = '''"""Generated by apidrift from the contract divergence analysis. Do not edit."""
import json
import os

import httpx
import pytest

BASE_URL = os.environ.get("APIDRIFT_BASE_URL", "http://localhost:3000")


@pytest.fixture(scope="module")
def client():
    with httpx.Client(base_url=BASE_URL, timeout=10.0) as c:
        yield c
'''


def concrete_path(path: str) -> str:
    return _PARAM.sub(PATH_PARAM_PLACEHOLDER, path)


def _render_test(t: PlannedTest) -> str:
    lines = [
        "",
        "",
        f"def {t.test_name}(client):",
        f"    # {' '.join(t.description.split())}",
    ]
    if t.request_body is None:
        lines.append(f"    resp = client.request({t.method!r}, {concrete_path(t.path)!r})")
    else:
        body = json.dumps(t.request_body, sort_keys=True)
        lines.append(f"    payload = json.loads({body!r})")
        lines.append(f"    resp = client.request({t.method!r}, {concrete_path(t.path)!r}, json=payload)")
    lines.append(f"    assert resp.status_code == {t.expected_status}")
    return "\n".join(lines)


def render_test_file(file_plan: TestFilePlan) -> str:
    return _HEADER + "".join(_render_test(t) for t in file_plan.tests) + "\n"


def write_test_suite(plan: TestPlan, out_dir: Path) -> list[Path]:
    """Write every planned module below out_dir; returns the written paths."""
    written: list[Path] = []
    for fp in plan.files:
        target = out_dir / fp.rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(render_test_file(fp), encoding="utf-8")
        written.append(target)
    log.debug("wrote %d generated test modules under %s", len(written), out_dir)
    return written
