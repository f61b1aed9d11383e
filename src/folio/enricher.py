"""Set enrichment.

Two passes over the scanner output: the first keeps only sets that can be
shown (template present, at least one item, not seen before); the second
computes the view-facing fields. Neither pass mutates its input list.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from folio.models.sets import PortfolioSet

if TYPE_CHECKING:
    from datetime import timedelta
    from pathlib import Path

    from folio.models.sets import RawSet
    from folio.protocols import Clock

log = structlog.get_logger()

ORDER_PREFIX = "00"


def link_name_for(name: str) -> str:
    """Strip the "00" ordering prefix and its separator: "00-foo" → "foo"."""
    if not name.startswith(ORDER_PREFIX):
        return name
    rest = name[len(ORDER_PREFIX) :]
    if rest and not rest[0].isalnum():
        rest = rest[1:]
    return rest or name


def subpath_for(raw: RawSet, content_root: Path) -> str:
    """Parent directory of the set relative to the root, POSIX style ("" at top level)."""
    relative = raw.path.parent.resolve().relative_to(content_root.resolve()).as_posix()
    return "" if relative == "." else relative


def filter_sets(raw_sets: list[RawSet], content_root: Path) -> list[RawSet]:
    """First pass: drop empty, template-less and duplicate sets, keep scan order."""
    kept: list[RawSet] = []
    seen: set[tuple[str, str]] = set()
    for raw in raw_sets:
        if raw.template is None:
            log.debug("set_skipped", name=raw.name, reason="no_template")
            continue
        if raw.item_count == 0:
            log.debug("set_skipped", name=raw.name, reason="no_items")
            continue
        identity = (subpath_for(raw, content_root), raw.name)
        if identity in seen:
            log.debug("set_skipped", name=raw.name, reason="duplicate")
            continue
        seen.add(identity)
        kept.append(raw)
    return kept


def enrich_sets(
    raw_sets: list[RawSet],
    content_root: Path,
    *,
    fresh_interval: timedelta | None,
    clock: Clock,
) -> list[PortfolioSet]:
    """Filter, then build a PortfolioSet for every survivor.

    ``fresh_interval`` of ``None`` disables the fresh flag; every set then
    has ``is_fresh=False``.
    """
    threshold = clock.now() - fresh_interval if fresh_interval is not None else None

    enriched: list[PortfolioSet] = []
    for raw in filter_sets(raw_sets, content_root):
        template = raw.template
        if template is None:
            continue
        subpath = subpath_for(raw, content_root)
        try:
            mtime = datetime.fromtimestamp(template.stat().st_mtime, tz=UTC)
        except OSError:
            # Template removed between scan and enrichment
            log.warning("template_unreadable", name=raw.name, path=str(template))
            continue

        template_path = "/".join(p for p in (subpath, raw.name, template.name) if p)
        enriched.append(
            PortfolioSet(
                name=raw.name,
                link_name=link_name_for(raw.name),
                subpath=subpath,
                template_path=template_path,
                template_mtime=mtime,
                item_count=raw.item_count,
                is_fresh=threshold is not None and mtime >= threshold,
            )
        )
    return enriched
