from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from wireaudit.config import AuditConfig
from wireaudit.paths.normalize import PLACEHOLDER, endpoint_path, to_segments


def is_dynamic_dir(name: str) -> bool:
    return name.startswith("[") and name.endswith("]")


def _subdirs(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.is_dir())
    except OSError:
        return []


def find_in_tree(base: Path, segments: Sequence[str], terminal: str) -> Optional[Path]:
    """
    Walk a directory-per-segment tree (`app/customers/[id]/page.tsx`) and
    return the terminal file for the segment list, or None.

    At each level an exact directory is tried first, then every dynamic
    `[param]` directory in name order. Placeholder segments only match
    dynamic directories.
    """
    if not segments:
        candidate = base / terminal
        return candidate if candidate.is_file() else None

    head, rest = segments[0], segments[1:]
    if PLACEHOLDER not in head:
        exact = base / head
        if exact.is_dir():
            found = find_in_tree(exact, rest, terminal)
            if found is not None:
                return found

    for sub in _subdirs(base):
        if is_dynamic_dir(sub.name) and sub.name != head:
            found = find_in_tree(sub, rest, terminal)
            if found is not None:
                return found
    return None


def resolve_page_from_route(route: str, client_root: Path, config: AuditConfig) -> Optional[Path]:
    """`/admin/salespeople` -> `<client>/app/admin/salespeople/page.tsx`."""
    segments = to_segments(endpoint_path(route))
    pages_root = client_root / config.pages_dir
    candidate = pages_root.joinpath(*segments, config.page_file)
    if candidate.is_file():
        return candidate
    return find_in_tree(pages_root, segments, config.page_file)


def resolve_page_from_file(file: str, repo_root: Path) -> Optional[Path]:
    path = Path(file).expanduser()
    if not path.is_absolute():
        path = repo_root / path
    return path if path.is_file() else None
