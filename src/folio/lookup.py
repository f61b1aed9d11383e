"""Lookups over an ordered listing: by year, by set, and neighbour navigation.

Pure functions with no I/O and no AppState. Misses raise FolioError, which the
HTTP layer turns into a 404.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from folio.enricher import ORDER_PREFIX
from folio.errors import ErrorCode, FolioError
from folio.models.sets import SetNavigation

if TYPE_CHECKING:
    from folio.models.sets import PortfolioSet

_ORDERED_NAME = re.compile(r"^\d{2}")


def normalise_set_name(set_name: str) -> str:
    """Map a URL set name back to its directory name.

    URLs carry ``link_name``; sets without a numeric ordering prefix live on
    disk as "00-<name>".
    """
    if _ORDERED_NAME.match(set_name):
        return set_name
    return f"{ORDER_PREFIX}-{set_name}"


def sets_for_year(sets: list[PortfolioSet], year: str) -> list[PortfolioSet]:
    """Sets stored under the ``year`` directory, in listing order."""
    matches = [s for s in sets if s.subpath == year]
    if not matches:
        raise FolioError(
            code=ErrorCode.YEAR_NOT_FOUND,
            message=f"No sets found for year '{year}'.",
            suggestion="Browse the index page for the years that have sets.",
        )
    return matches


def find_set(sets: list[PortfolioSet], year: str, set_name: str) -> tuple[int, PortfolioSet]:
    """Return ``(position, set)`` of the set shown at ``/<year>/<set_name>.html``."""
    if not sets:
        raise FolioError(
            code=ErrorCode.NO_SETS,
            message="The portfolio has no sets to show.",
        )
    in_year = [(position, item) for position, item in enumerate(sets) if item.subpath == year]
    names = (normalise_set_name(set_name), set_name)
    for position, item in in_year:
        if item.name in names:
            return position, item
    # "00-2024-spring" is linked as "2024-spring", which already looks numbered
    for position, item in in_year:
        if item.link_name == set_name:
            return position, item
    raise FolioError(
        code=ErrorCode.SET_NOT_FOUND,
        message=f"Set '{set_name}' not found in year '{year}'.",
        suggestion=f"See /{year}.html for the sets of that year.",
    )


def navigation_for(sets: list[PortfolioSet], position: int) -> SetNavigation:
    """Neighbours by position: ``next`` is the one listed before, ``previous`` after."""
    return SetNavigation(
        previous=sets[position + 1] if position + 1 < len(sets) else None,
        next=sets[position - 1] if position > 0 else None,
    )
