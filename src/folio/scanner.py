"""Content set scanner.

Walks the content root and returns every directory whose name matches the
gallery pattern as a RawSet. Pure filesystem reads; an unreadable or empty
root is a normal state and yields an empty list.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from folio.models.sets import RawSet

if TYPE_CHECKING:
    from collections.abc import Iterable

log = structlog.get_logger()

DEFAULT_ITEM_SUFFIXES: tuple[str, ...] = (".jpg", ".jpeg", ".png", ".gif", ".webp")
DEFAULT_TEMPLATE_SUFFIX = ".html.j2"


def scan_sets(
    content_root: Path,
    pattern: str | re.Pattern[str],
    *,
    template_suffix: str = DEFAULT_TEMPLATE_SUFFIX,
    item_suffixes: Iterable[str] = DEFAULT_ITEM_SUFFIXES,
) -> list[RawSet]:
    """Return matching set directories in deterministic (sorted walk) order."""
    name_re = re.compile(pattern) if isinstance(pattern, str) else pattern
    suffixes = frozenset(s.lower() for s in item_suffixes)

    if not content_root.is_dir():
        log.warning("content_root_unreadable", path=str(content_root))
        return []

    def _on_walk_error(exc: OSError) -> None:
        log.warning("content_dir_unreadable", path=exc.filename, error=exc.strerror)

    found: list[RawSet] = []
    for dirpath, dirnames, _ in os.walk(content_root, onerror=_on_walk_error):
        # In-place sort keeps the walk order stable across platforms
        dirnames.sort()
        for dirname in dirnames:
            if not name_re.search(dirname):
                continue
            raw = _read_set_dir(Path(dirpath) / dirname, template_suffix, suffixes)
            if raw is not None:
                found.append(raw)

    log.debug("sets_scanned", root=str(content_root), count=len(found))
    return found


def _read_set_dir(path: Path, template_suffix: str, item_suffixes: frozenset[str]) -> RawSet | None:
    try:
        files = sorted(entry for entry in path.iterdir() if entry.is_file())
    except OSError:
        log.warning("set_dir_unreadable", path=str(path), exc_info=True)
        return None

    template = next((f for f in files if f.name.endswith(template_suffix)), None)
    item_count = sum(1 for f in files if f.suffix.lower() in item_suffixes)
    return RawSet(path=path, name=path.name, item_count=item_count, template=template)
