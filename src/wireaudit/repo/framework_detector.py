from __future__ import annotations

from collections import Counter
from pathlib import Path


def _file_contains_any(path: Path, needles: list[str], max_bytes: int = 200_000) -> bool:
    try:
        with open(path, "rb") as f:
            data = f.read(max_bytes)
    except OSError:
        return False
    text = data.decode("utf-8", errors="ignore")
    return any(n in text for n in needles)


def detect_server_framework(files: list[Path], sample_limit: int = 200) -> tuple[str, float]:
    """
    Heuristic detection of the server's routing style, for the report only.
    Returns (framework, confidence).
    """
    sample = files[:sample_limit]
    scores = Counter()

    for p in sample:
        if p.suffix == ".ts" and _file_contains_any(p, ["@Controller(", "@nestjs/common"]):
            scores["nestjs"] += 3
        elif p.suffix == ".py" and _file_contains_any(p, ["from fastapi import", "APIRouter(", "FastAPI("]):
            scores["fastapi"] += 3

    if not scores:
        return ("unknown", 0.2)

    framework, top = scores.most_common(1)[0]
    total = sum(scores.values())
    confidence = max(0.3, min(0.99, top / max(total, 1)))
    return (framework, confidence)
