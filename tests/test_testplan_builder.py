import ast
from pathlib import Path

from apidrift.domain.models import TestCase
from apidrift.testgen.plan import build_test_plan
from apidrift.testgen.render import concrete_path, render_test_file, write_test_suite


def _cases():
    return [
        TestCase(name="List users", method="GET", path="/users"),
        TestCase(name="Get user", method="GET", path="/users/{id}"),
        TestCase(name="Create user", method="POST", path="/users", request_body={"name": "a"}, expected_status=201),
        TestCase(name="Login", method="POST", path="/auth/login", request_body={"user": "u"}),
        TestCase(name="Health", method="GET", path="/"),
    ]


def test_build_test_plan_groups_by_first_segment_and_names_tests():
    plan = build_test_plan(_cases(), generated_root="tests/generated")

    assert plan.generated_root == "tests/generated"
    files = {f.group_key: f for f in plan.files}
    assert list(files) == ["auth", "root", "users"]

    users = files["users"]
    assert users.rel_path == "tests/generated/test_users.py"
    assert [t.test_name for t in users.tests] == [
        "test_get_users",
        "test_post_users",
        "test_get_users_by_id",
    ]
    assert [t.test_name for t in files["root"].tests] == ["test_get_root"]


def test_duplicate_test_names_get_suffixes():
    cases = [
        TestCase(name="happy path", method="GET", path="/users"),
        TestCase(name="another", method="GET", path="/users"),
    ]
    [fp] = build_test_plan(cases).files
    assert sorted(t.test_name for t in fp.tests) == ["test_get_users", "test_get_users_2"]


def test_colliding_file_stems_are_disambiguated():
    cases = [
        TestCase(name="a", method="GET", path="/user-s"),
        TestCase(name="b", method="GET", path="/user_s"),
    ]
    paths = [f.rel_path for f in build_test_plan(cases).files]
    assert len(set(paths)) == 2
    assert "tests/generated/test_user_s.py" in paths


def test_plan_is_deterministic():
    a = build_test_plan(_cases())
    b = build_test_plan(list(reversed(_cases())))
    assert a == b


def test_rendered_module_is_valid_python():
    plan = build_test_plan(_cases())
    for fp in plan.files:
        text = render_test_file(fp)
        tree = ast.parse(text)
        names = {n.name for n in tree.body if isinstance(n, ast.FunctionDef)}
        assert {t.test_name for t in fp.tests} <= names


def test_rendered_request_uses_concrete_path_and_body():
    users = next(f for f in build_test_plan(_cases()).files if f.group_key == "users")
    text = render_test_file(users)

    assert "client.request('GET', '/users/1')" in text
    assert "payload = json.loads('{\"name\": \"a\"}')" in text
    assert "assert resp.status_code == 201" in text


def test_concrete_path():
    assert concrete_path("/a/{x}/b/{y_id}") == "/a/1/b/1"
    assert concrete_path("/plain") == "/plain"


def test_write_test_suite(tmp_path: Path):
    plan = build_test_plan(_cases())
    written = write_test_suite(plan, tmp_path)

    assert sorted(p.name for p in written) == ["test_auth.py", "test_root.py", "test_users.py"]
    assert all(p.parent == tmp_path / "tests" / "generated" for p in written)
