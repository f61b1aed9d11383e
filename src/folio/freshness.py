"""Template freshness check, run before every render.

Compares the compiled artifact's mtime with the template source. A stale
artifact is deleted so the next render recompiles it, and the stored HTTP
response for the current request path is dropped. Nothing is persisted
between calls; the state is recomputed every time.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from folio.protocols import ResponseCacheProtocol, TemplateEngineProtocol

log = structlog.get_logger()


class TemplateState(StrEnum):
    FRESH = "fresh"
    STALE = "stale"


class TemplateFreshnessChecker:
    def __init__(
        self,
        engine: TemplateEngineProtocol,
        response_cache: ResponseCacheProtocol,
        *,
        debug: bool = False,
    ) -> None:
        self._engine = engine
        self._response_cache = response_cache
        self._debug = debug

    async def ensure_fresh(self, template_id: str, request_key: str) -> TemplateState:
        """Evict the compiled artifact and cached response if the source changed.

        After this returns, either the artifact is current or it is gone.
        """
        if self._debug:
            # Debug builds never cache, the engine recompiles on its own
            return TemplateState.FRESH

        artifact = self._engine.compiled_artifact_path(template_id)
        try:
            artifact_mtime = artifact.stat().st_mtime if artifact.is_file() else 0.0
        except OSError:
            artifact_mtime = 0.0

        if self._engine.is_template_fresh(template_id, artifact_mtime):
            return TemplateState.FRESH

        log.info("template_stale", template=template_id, artifact=str(artifact))
        try:
            artifact.unlink(missing_ok=True)
        except OSError:
            log.warning("artifact_delete_failed", artifact=str(artifact), exc_info=True)

        await self._response_cache.invalidate(request_key)
        return TemplateState.STALE
