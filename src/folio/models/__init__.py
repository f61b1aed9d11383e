from __future__ import annotations

from folio.models.cache import ResponseCacheEntry
from folio.models.sets import PortfolioSet, RawSet, SetNavigation

__all__ = [
    # sets
    "RawSet",
    "PortfolioSet",
    "SetNavigation",
    # cache
    "ResponseCacheEntry",
]
