"""Application state container.

AppState is created once at startup (inside the Starlette lifespan) and
stored on ``app.state.folio``; every route handler reads it from there.
Tests build one directly and hand it to ``create_app``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from folio.config import Settings
    from folio.freshness import TemplateFreshnessChecker
    from folio.provider import SetProvider
    from folio.response_cache import ResponseCache
    from folio.session import MemorySessionStore
    from folio.templating import JinjaTemplateEngine


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every route handler."""

    settings: Settings
    engine: JinjaTemplateEngine
    response_cache: ResponseCache
    sessions: MemorySessionStore
    provider: SetProvider
    checker: TemplateFreshnessChecker
