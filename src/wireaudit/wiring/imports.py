from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Optional

from wireaudit.config import AuditConfig

logger = logging.getLogger(__name__)

_IMPORT_FROM = re.compile(r"""\bfrom\s+['"]([^'"\n]+)['"]""")
_IMPORT_BARE = re.compile(r"""^\s*import\s+['"]([^'"\n]+)['"]""", re.MULTILINE)


def import_specifiers(source: str) -> list[str]:
    """Module specifiers of static imports, in source order."""
    found = [(m.start(), m.group(1)) for m in _IMPORT_FROM.finditer(source)]
    found += [(m.start(), m.group(1)) for m in _IMPORT_BARE.finditer(source)]
    return [spec for _, spec in sorted(found)]


def resolve_specifier(
    spec: str, importer: Path, client_root: Path, config: AuditConfig
) -> Optional[Path]:
    """
    Resolve a local import to a file: `@/lib/api` against the client root,
    `./x` / `../x` against the importer's directory. Package imports give None.
    """
    alias = config.import_alias
    if alias and spec.startswith(alias):
        base = client_root / spec[len(alias):]
    elif spec.startswith("./") or spec.startswith("../"):
        base = importer.parent / spec
    else:
        return None

    base_str = os.path.normpath(str(base))
    for suffix in config.import_suffixes:
        candidate = Path(base_str + suffix)
        if candidate.is_file():
            return candidate
    return None


def resolve_file_set(entry_file: Path, client_root: Path, config: AuditConfig) -> list[Path]:
    """
    Files reachable from one entry point: the entry itself, its sibling
    source files, and the local modules it imports directly.

    Imports of the imported modules are not followed (one hop only).
    """
    files: list[Path] = [entry_file]
    seen = {entry_file.resolve()}

    def add(path: Path) -> None:
        key = path.resolve()
        if key not in seen:
            seen.add(key)
            files.append(path)

    exts = tuple(config.client_extensions)
    try:
        siblings = sorted(p for p in entry_file.parent.iterdir() if p.is_file() and p.name.endswith(exts))
    except OSError as e:
        logger.warning("Cannot list directory of %s: %s", entry_file, e)
        siblings = []
    for sibling in siblings:
        add(sibling)

    try:
        source = entry_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read imports of %s: %s", entry_file, e)
        return files

    for spec in import_specifiers(source):
        resolved = resolve_specifier(spec, entry_file, client_root, config)
        if resolved is None:
            logger.debug("Import %r of %s is not a local file", spec, entry_file)
            continue
        add(resolved)
    return files
