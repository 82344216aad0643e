from pathlib import Path

import pytest

from wireaudit.repo import scanner
from wireaudit.repo.scanner import read_source_lines, scan_source_files


def test_scan_source_files_finds_src_files():
    repo_root = Path(__file__).resolve().parents[1]
    files = scan_source_files(repo_root, [".py"], max_files=5000)

    target = (repo_root / "src" / "wireaudit" / "cli.py").resolve()
    assert any(Path(p).resolve() == target for p in files)


def test_scan_order_is_sorted_and_ignores_vendor_dirs(tmp_path: Path):
    for rel in ["b/z.ts", "b/a.ts", "a/x.tsx", "top.ts", "node_modules/pkg/index.ts", "notes.md"]:
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text("", encoding="utf-8")

    files = scan_source_files(tmp_path, [".ts", ".tsx"])
    assert [p.relative_to(tmp_path).as_posix() for p in files] == [
        "top.ts",
        "a/x.tsx",
        "b/a.ts",
        "b/z.ts",
    ]


def test_missing_root_yields_nothing(tmp_path: Path):
    assert scan_source_files(tmp_path / "absent", [".ts"]) == []


def test_read_source_lines_strips_bom(tmp_path: Path):
    p = tmp_path / "bom.ts"
    p.write_bytes(b"\xef\xbb\xbffetch('/api/a')\nx\n")
    assert read_source_lines(p) == ["fetch('/api/a')", "x"]


def test_unlistable_root_raises(tmp_path: Path, monkeypatch):
    def walk(top, onerror):
        onerror(PermissionError(13, "Permission denied", str(top)))
        yield from ()

    monkeypatch.setattr(scanner, "_walk", walk)
    with pytest.raises(PermissionError):
        scan_source_files(tmp_path, [".ts"])


def test_unlistable_subdirectory_becomes_an_issue(tmp_path: Path, monkeypatch):
    def walk(top, onerror):
        yield str(top), ["private"], ["a.ts"]
        onerror(PermissionError(13, "Permission denied", str(top / "private")))

    monkeypatch.setattr(scanner, "_walk", walk)
    issues = []
    files = scan_source_files(tmp_path, [".ts"], issues=issues)

    assert [p.name for p in files] == ["a.ts"]
    assert [(i.path, i.reason) for i in issues] == [("private", "PermissionError: Permission denied")]
