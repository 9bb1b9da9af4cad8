from pathlib import Path
import textwrap

from apidrift.repo.scanner import load_source_text, scan_observed_endpoints, scan_source_files


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


def test_scan_source_files_finds_src_files():
    repo_root = Path(__file__).resolve().parents[1]
    files = scan_source_files(repo_root, max_files=5000)

    target = (repo_root / "src" / "apidrift" / "cli.py").resolve()
    assert any(Path(p).resolve() == target for p in files)


def test_scan_is_sorted_and_skips_ignored_dirs(tmp_path: Path):
    write(tmp_path / "b.js", "")
    write(tmp_path / "a" / "z.py", "")
    write(tmp_path / "node_modules" / "lib" / "index.js", "")
    write(tmp_path / ".apidrift" / "cache" / "x.py", "")
    write(tmp_path / "bower_components" / "jquery.js", "")
    write(tmp_path / "types.d.ts", "")
    write(tmp_path / "README.md", "")

    files = scan_source_files(tmp_path)
    rel = [Path(f).relative_to(tmp_path.resolve()).as_posix() for f in files]
    assert rel == ["b.js", "a/z.py"]
    assert files == scan_source_files(tmp_path)


def test_load_source_text_has_file_headers(tmp_path: Path):
    write(tmp_path / "app.js", "app.get('/a', h);\n")
    files = scan_source_files(tmp_path)

    text = load_source_text(tmp_path, files)
    assert text.startswith("// FILE: app.js\n")
    assert "app.get('/a', h);" in text


def test_scan_observed_endpoints_mixed_languages(tmp_path: Path):
    write(
        tmp_path / "api" / "main.py",
        """
        from fastapi import FastAPI
        app = FastAPI()

        @app.get("/health")
        def health():
            return {"ok": True}

        @app.head("/health")
        def head():
            return None
        """,
    )
    write(tmp_path / "routes" / "users.js", "router.get('/users/:id', getUser);\n")

    observed = scan_observed_endpoints(tmp_path, scan_source_files(tmp_path))
    rows = sorted((o.method, o.path, o.source_location) for o in observed)

    assert rows == [
        ("GET", "/health", "api/main.py:5"),
        ("GET", "/users/:id", "routes/users.js:1"),
    ]
