from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from apidrift.domain.models import TestCase


_SAFE = re.compile(r"[^a-zA-Z0-9_]+")


@dataclass(frozen=True)
class PlannedTest:
    test_name: str
    description: str
    method: str
    path: str
    request_body: Any
    expected_status: int


@dataclass(frozen=True)
class TestFilePlan:
    __test__ = False

    rel_path: str              # e.g. tests/generated/test_users.py
    group_key: str             # first path segment, e.g. "users"
    tests: Tuple[PlannedTest, ...]


@dataclass(frozen=True)
class TestPlan:
    __test__ = False

    generated_root: str
    files: Tuple[TestFilePlan, ...]


def _sha1_short(text: str, n: int = 6) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:n]


def _group_key(path: str) -> str:
    # /users/{id}/posts -> users ; / -> root
    for seg in path.strip("/").split("/"):
        if seg and not seg.startswith("{"):
            return seg
    return "root"


def _stem(group_key: str) -> str:
    return _SAFE.sub("_", group_key).strip("_").lower() or "api"


def _test_name(method: str, path: str) -> str:
    # GET /users/{id} -> test_get_users_by_id
    parts: List[str] = []
    for seg in path.strip("/").split("/"):
        if not seg:
            continue
        if seg.startswith("{") and seg.endswith("}"):
            parts.append(f"by_{seg[1:-1]}")
        else:
            parts.append(seg)

    body = "_".join(parts) if parts else "root"
    body = _SAFE.sub("_", body).strip("_").lower()
    return f"test_{method.lower()}_{body}"


def build_test_plan(
    test_cases: Iterable[TestCase],
    generated_root: str = "tests/generated",
) -> TestPlan:
    """
    TestCase list -> TestPlan (grouping + naming only; no IO).

    Cases are grouped by first path segment, one pytest module per group.
    Deterministic by construction: same cases, same plan.
    """
    by_group: Dict[str, List[TestCase]] = {}
    for tc in test_cases:
        by_group.setdefault(_group_key(tc.path), []).append(tc)

    used_filenames: Dict[str, str] = {}
    file_plans: List[TestFilePlan] = []

    for group_key in sorted(by_group):
        cases = sorted(by_group[group_key], key=lambda c: (c.path, c.method, c.name))

        filename = f"test_{_stem(group_key)}.py"
        # collision-safe filenames ("user-s" and "user_s" share a stem)
        if filename in used_filenames and used_filenames[filename] != group_key:
            filename = f"test_{_stem(group_key)}__{_sha1_short(group_key)}.py"
        used_filenames[filename] = group_key

        counts: Dict[str, int] = {}
        planned: List[PlannedTest] = []
        for c in cases:
            base = _test_name(c.method, c.path)
            counts[base] = counts.get(base, 0) + 1
            name = base if counts[base] == 1 else f"{base}_{counts[base]}"
            planned.append(
                PlannedTest(
                    test_name=name,
                    description=c.name,
                    method=c.method,
                    path=c.path,
                    request_body=c.request_body,
                    expected_status=c.expected_status,
                )
            )

        file_plans.append(
            TestFilePlan(
                rel_path=f"{generated_root.rstrip('/')}/{filename}",
                group_key=group_key,
                tests=tuple(planned),
            )
        )

    return TestPlan(generated_root=generated_root, files=tuple(file_plans))
