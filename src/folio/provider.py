"""Set provider: scan → enrich → order, memoized per session.

The listing is kept in the user's session and reused while the number of
scanned set directories equals the length of the stored listing. The count
comparison does not notice a set being replaced by another one; a changed
template is still caught per render by the freshness checker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from folio.clock import SystemClock
from folio.enricher import enrich_sets
from folio.ordering import order_sets
from folio.scanner import DEFAULT_ITEM_SUFFIXES, DEFAULT_TEMPLATE_SUFFIX, scan_sets

if TYPE_CHECKING:
    from collections.abc import Callable

    from folio.config import Settings
    from folio.models.sets import PortfolioSet, RawSet
    from folio.protocols import (
        Clock,
        ResponseCacheProtocol,
        SessionProtocol,
        SessionStoreProtocol,
        TemplateEngineProtocol,
    )

log = structlog.get_logger()

SESSION_SETS_KEY = "folio.sets"


@dataclass
class ProviderOptions:
    """The slice of Settings the provider needs, checked once per call."""

    content_root: Path
    gallery_pattern: str
    template_suffix: str = DEFAULT_TEMPLATE_SUFFIX
    item_suffixes: tuple[str, ...] = DEFAULT_ITEM_SUFFIXES
    fresh_interval: timedelta | None = None
    debug: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderOptions:
        portfolio = settings.portfolio
        return cls(
            content_root=Path(portfolio.content_path).expanduser(),
            gallery_pattern=portfolio.gallery_pattern,
            template_suffix=portfolio.template_suffix,
            item_suffixes=tuple(portfolio.item_suffixes),
            fresh_interval=portfolio.fresh_flag_interval if portfolio.enable_fresh_flag else None,
            debug=settings.debug,
        )


@dataclass
class SetProvider:
    options: ProviderOptions
    engine: TemplateEngineProtocol
    response_cache: ResponseCacheProtocol
    clock: Clock = field(default_factory=SystemClock)
    sessions: SessionStoreProtocol | None = None

    async def get_sets(self, session: SessionProtocol) -> list[PortfolioSet]:
        """Return the ordered listing, from the session when it is still current."""
        raw_sets = scan_sets(
            self.options.content_root,
            self.options.gallery_pattern,
            template_suffix=self.options.template_suffix,
            item_suffixes=self.options.item_suffixes,
        )
        if not raw_sets:
            log.info("sets_empty", root=str(self.options.content_root))
            return []

        if not self.options.debug and session.has(SESSION_SETS_KEY):
            cached: list[PortfolioSet] = session.get(SESSION_SETS_KEY) or []
            if len(cached) == len(raw_sets):
                log.debug("sets_from_session", count=len(cached))
                return cached

        return await self._recompute(raw_sets, session)

    async def _recompute(
        self, raw_sets: list[RawSet], session: SessionProtocol
    ) -> list[PortfolioSet]:
        sets = order_sets(
            enrich_sets(
                raw_sets,
                self.options.content_root,
                fresh_interval=self.options.fresh_interval,
                clock=self.clock,
            )
        )
        session.set(SESSION_SETS_KEY, sets)
        log.info(
            "sets_recomputed",
            scanned=len(raw_sets),
            listed=len(sets),
            fresh=sum(1 for s in sets if s.is_fresh),
        )
        await self._sweep_caches()
        return sets

    async def _sweep_caches(self) -> None:
        """Best-effort cleanup of compiled templates, stored responses and idle sessions."""
        steps: list[tuple[str, Callable[[], object]]] = [
            ("compiled", self.engine.clear_compiled_cache),
            ("templates", self.engine.clear_template_cache),
        ]
        if self.sessions is not None:
            steps.append(("sessions", self.sessions.sweep))
        for step, action in steps:
            try:
                action()
            except Exception:
                log.warning("cache_sweep_error", step=step, exc_info=True)
        try:
            await self.response_cache.cleanup()
        except Exception:
            log.warning("cache_sweep_error", step="responses", exc_info=True)
