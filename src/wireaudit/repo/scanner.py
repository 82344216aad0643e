from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from wireaudit.domain.models import ScanIssue
from wireaudit.repo.ignore import DEFAULT_IGNORES, should_ignore_dir

logger = logging.getLogger(__name__)


def scan_source_files(
    root: Path,
    extensions: Iterable[str],
    ignores: Iterable[str] = DEFAULT_IGNORES,
    max_files: int | None = None,
    issues: list[ScanIssue] | None = None,
) -> list[Path]:
    """
    Return source files under root in lexicographic walk order.

    Directory and file names are sorted at every level so the discovery
    order (which decides "first matching route wins") is identical on every
    platform. A missing root yields an empty list. A root that exists but
    cannot be listed raises OSError; a subdirectory that cannot be listed is
    appended to `issues` and the walk goes on.
    """
    if not root.is_dir():
        logger.warning("Source root does not exist, nothing to scan: %s", root)
        return []

    def on_error(err: OSError) -> None:
        failed = Path(err.filename) if err.filename else root
        if failed == root:
            raise err
        rel_path = rel_posix(failed, root)
        logger.warning("Skipping unreadable directory %s: %s", rel_path, err)
        if issues is not None:
            issues.append(ScanIssue(path=rel_path, reason=f"{type(err).__name__}: {err.strerror}"))

    exts = tuple(extensions)
    ignore_set = set(ignores)
    out: list[Path] = []
    for dirpath, dirs, files in _walk(root, on_error):
        root_p = Path(dirpath)

        # prune ignored dirs, and fix the descent order
        dirs[:] = sorted(d for d in dirs if not should_ignore_dir(root_p / d, ignore_set))

        for f in sorted(files):
            if f.endswith(exts):
                out.append(root_p / f)
                if max_files is not None and len(out) >= max_files:
                    return out
    return out


def _walk(root: Path, onerror):
    # Separate helper so tests can stand in a failing walk
    return os.walk(root, onerror=onerror)


def read_source_lines(path: Path) -> list[str]:
    """Read a UTF-8 source file as lines. Raises OSError/UnicodeDecodeError."""
    text = path.read_text(encoding="utf-8")
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.splitlines()


def rel_posix(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
