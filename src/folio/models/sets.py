from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class RawSet(BaseModel):
    """A set directory as found by the scanner, before enrichment."""

    path: Path  # Absolute directory path
    name: str  # Directory base name, e.g. "00-2024-spring"
    item_count: int = 0
    template: Path | None = None  # Absolute template file path


class PortfolioSet(BaseModel):
    """An enriched set, ready for the view layer.

    Two sets are the same set when they live at the same subpath under the
    same name, whatever their other fields say.
    """

    name: str
    link_name: str  # name without the "00-" ordering prefix
    subpath: str  # parent dir relative to the content root, e.g. "2024"
    template_path: str  # template id: "<subpath>/<name>/<template file>"
    template_mtime: datetime
    item_count: int
    is_fresh: bool = False

    @property
    def identity(self) -> tuple[str, str]:
        return (self.subpath, self.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PortfolioSet):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)


class SetNavigation(BaseModel):
    """Neighbours of a set in the listing. ``next`` is the newer one."""

    previous: PortfolioSet | None = None
    next: PortfolioSet | None = None
