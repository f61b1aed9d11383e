"""Listing order: fresh sets first, everything else newest-name-first."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from folio.models.sets import PortfolioSet


def reverse_name_key(item: PortfolioSet) -> tuple[str, str]:
    # link_name first so "00-" prefixed sets sort by their display name
    return (item.link_name, item.name)


def order_sets(sets: list[PortfolioSet]) -> list[PortfolioSet]:
    """Return a new list: reverse-name order with fresh sets moved to the front.

    Fresh sets are walked in reverse-name order and each one is inserted at
    index 0, the way they are discovered.
    """
    result: list[PortfolioSet] = []
    for item in sorted(sets, key=reverse_name_key, reverse=True):
        if item.is_fresh:
            result.insert(0, item)
        else:
            result.append(item)
    return result
