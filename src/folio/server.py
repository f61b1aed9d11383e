"""HTTP entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the Starlette lifespan context manager
- Register the page routes and map FolioError to 404
- Start uvicorn
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from email.utils import format_datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.responses import HTMLResponse, PlainTextResponse, Response
from starlette.routing import Route

from folio import __version__
from folio.config import Settings
from folio.errors import ErrorCode, FolioError
from folio.freshness import TemplateFreshnessChecker
from folio.lookup import find_set, navigation_for, sets_for_year
from folio.provider import ProviderOptions, SetProvider
from folio.response_cache import ResponseCache
from folio.session import SESSION_COOKIE, MemorySessionStore
from folio.state import AppState
from folio.templating import JinjaTemplateEngine

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

    from folio.protocols import Clock
    from folio.session import Session

log = structlog.get_logger()

INDEX_TEMPLATE = "index.html.j2"
ABOUT_TEMPLATE = "about.html.j2"


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# State wiring
# ---------------------------------------------------------------------------


def build_state(
    settings: Settings,
    response_cache: ResponseCache,
    *,
    clock: Clock | None = None,
) -> AppState:
    """Wire the engine, provider and checker around an initialised response cache."""
    portfolio = settings.portfolio
    engine = JinjaTemplateEngine(
        [Path(portfolio.templates_path).expanduser(), Path(portfolio.content_path).expanduser()],
        Path(settings.templates.compiled_dir).expanduser(),
        bytecode_pattern=settings.templates.bytecode_pattern,
    )
    sessions = MemorySessionStore(
        idle_timeout=settings.sessions.idle_timeout,
        max_sessions=settings.sessions.max_sessions,
        clock=clock,
    )
    provider = SetProvider(
        options=ProviderOptions.from_settings(settings),
        engine=engine,
        response_cache=response_cache,
        sessions=sessions,
    )
    if clock is not None:
        provider.clock = clock
    checker = TemplateFreshnessChecker(engine, response_cache, debug=settings.debug)
    return AppState(
        settings=settings,
        engine=engine,
        response_cache=response_cache,
        sessions=sessions,
        provider=provider,
        checker=checker,
    )


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------


def _state(request: Request) -> AppState:
    return request.app.state.folio


def _session(request: Request) -> Session:
    return _state(request).sessions.open(request.cookies.get(SESSION_COOKIE))


def _finish(request: Request, response: Response, session: Session) -> Response:
    if request.cookies.get(SESSION_COOKIE) != session.session_id:
        response.set_cookie(SESSION_COOKIE, session.session_id, httponly=True, samesite="lax")
    return response


def _cache_headers(settings: Settings, last_modified: datetime | None) -> dict[str, str]:
    if settings.debug:
        return {}
    headers = {"Cache-Control": f"public, max-age={settings.cache.max_age_seconds}"}
    if last_modified is not None:
        headers["Last-Modified"] = format_datetime(last_modified.astimezone(UTC), usegmt=True)
    return headers


def display_date(moment: datetime) -> str:
    """Human date for page footers: "March 3rd, 2024"."""
    day = moment.day
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{moment:%B} {day}{suffix}, {moment.year}"


def _template_mtime(state: AppState, template_id: str) -> datetime | None:
    mtime = state.engine.source_mtime(template_id)
    return datetime.fromtimestamp(mtime, tz=UTC) if mtime is not None else None


async def _render_page(
    request: Request,
    template_id: str,
    context: dict[str, Any],
    last_modified: datetime | None,
) -> HTMLResponse:
    """Freshness check, then serve from the response cache or render and store."""
    state = _state(request)
    settings = state.settings
    key = request.url.path

    await state.checker.ensure_fresh(template_id, key)

    if not settings.debug:
        cached = await state.response_cache.get(key)
        if cached is not None and not cached.stale:
            log.debug("response_cache_hit", key=key)
            return HTMLResponse(
                cached.body,
                headers=_cache_headers(settings, cached.last_modified),
            )

    body = state.engine.render(template_id, context)
    if not settings.debug:
        await state.response_cache.set(
            key,
            body,
            settings.cache.ttl_hours,
            last_modified=last_modified,
        )
    return HTMLResponse(body, headers=_cache_headers(settings, last_modified))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _check_year(year: str) -> None:
    if len(year) != 4 or not year.isdigit():
        raise FolioError(
            code=ErrorCode.YEAR_NOT_FOUND,
            message=f"'{year}' is not a year.",
            suggestion="Years are four digits, e.g. /2024.html.",
        )


async def index(request: Request) -> Response:
    session = _session(request)
    sets = await _state(request).provider.get_sets(session)
    response = await _render_page(
        request,
        INDEX_TEMPLATE,
        {"sets": sets},
        _template_mtime(_state(request), INDEX_TEMPLATE),
    )
    return _finish(request, response, session)


async def year_index(request: Request) -> Response:
    year = request.path_params["year"]
    _check_year(year)
    session = _session(request)
    sets = sets_for_year(await _state(request).provider.get_sets(session), year)
    response = await _render_page(
        request,
        INDEX_TEMPLATE,
        {"sets": sets},
        _template_mtime(_state(request), INDEX_TEMPLATE),
    )
    return _finish(request, response, session)


async def set_page(request: Request) -> Response:
    year = request.path_params["year"]
    _check_year(year)
    session = _session(request)
    sets = await _state(request).provider.get_sets(session)
    position, found = find_set(sets, year, request.path_params["set_name"])
    context = {
        "standalone": True,
        "last_mod": display_date(found.template_mtime),
        "set": found,
        "nav": navigation_for(sets, position),
    }
    response = await _render_page(request, found.template_path, context, found.template_mtime)
    return _finish(request, response, session)


async def about(request: Request) -> Response:
    last_modified = _template_mtime(_state(request), ABOUT_TEMPLATE)
    context = {"last_mod": display_date(last_modified) if last_modified else ""}
    return await _render_page(request, ABOUT_TEMPLATE, context, last_modified)


async def _folio_error_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, FolioError):
        raise exc
    error = exc.to_dict()["error"]
    log.warning("request_not_found", path=request.url.path, **error)
    body = "\n".join(line for line in (error["message"], error["suggestion"]) if line)
    return PlainTextResponse(body, status_code=404)


ROUTES = [
    Route("/", index),
    Route("/about.html", about),
    Route("/{year}.html", year_index),
    Route("/{year}/{set_name}.html", set_page),
]


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, *, state: AppState | None = None) -> Starlette:
    """Build the Starlette app.

    With ``state`` given the app is ready immediately (tests); otherwise the
    lifespan opens the response cache database and builds the state.
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        if state is not None:
            yield
            return

        app_settings = settings or Settings()
        _setup_logging(app_settings)
        log.info("server_starting", version=__version__, debug=app_settings.debug)

        db_path = Path(app_settings.cache.db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(db_path))
        response_cache = ResponseCache(db, cleanup_grace_days=app_settings.cache.cleanup_grace_days)
        await response_cache.init_db()

        app.state.folio = build_state(app_settings, response_cache)
        log.info(
            "server_started",
            content_path=app_settings.portfolio.content_path,
            fresh_flag=app_settings.portfolio.enable_fresh_flag,
        )
        try:
            yield
        finally:
            await db.close()
            log.info("server_stopping")

    app = Starlette(
        debug=bool(settings and settings.debug),
        routes=ROUTES,
        lifespan=lifespan,
        exception_handlers={FolioError: _folio_error_handler},
    )
    if state is not None:
        app.state.folio = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
