from __future__ import annotations

from pathlib import Path
from typing import Iterable

DEFAULT_IGNORES = frozenset(
    {
        ".git",
        ".next",
        ".venv",
        "venv",
        "__pycache__",
        "node_modules",
        "dist",
        "build",
        "coverage",
    }
)


def should_ignore_dir(dir_path: Path, ignores: Iterable[str] = DEFAULT_IGNORES) -> bool:
    return dir_path.name in set(ignores)
