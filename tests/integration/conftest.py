"""Integration test fixtures.

Provides a fully wired AppState (real Jinja2 engine, in-memory SQLite
response cache, frozen clock) over a temporary content tree, and an httpx
client talking to the Starlette app through the ASGI transport.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import httpx
import pytest

from folio.config import Settings
from folio.server import build_state, create_app

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from pathlib import Path

    from conftest import FrozenClock
    from folio.response_cache import ResponseCache
    from folio.state import AppState

INDEX_TEMPLATE = (
    "{% for s in sets %}"
    '<a href="/{{ s.subpath }}/{{ s.link_name }}.html">{{ s.link_name }}</a>'
    "{% if s.is_fresh %}<em>new</em>{% endif %}\n"
    "{% endfor %}"
)
ABOUT_TEMPLATE = "<p>About, updated {{ last_mod }}</p>"
OLD_MTIME = 1_000_000_000.0


@pytest.fixture()
def templates_dir(tmp_path: Path) -> Path:
    templates = tmp_path / "templates"
    templates.mkdir()
    for name, body in (("index.html.j2", INDEX_TEMPLATE), ("about.html.j2", ABOUT_TEMPLATE)):
        page = templates / name
        page.write_text(body, encoding="utf-8")
        os.utime(page, (OLD_MTIME, OLD_MTIME))
    return templates


@pytest.fixture()
def portfolio(make_set: Callable[..., Path]) -> None:
    make_set("00-2024-spring", "2024")
    make_set("2023-fall", "2023")
    make_set("2023-summer", "2023")


def _settings(tmp_path: Path, content_root: Path, templates_dir: Path, **overrides) -> Settings:
    return Settings(
        portfolio={
            "content_path": str(content_root),
            "templates_path": str(templates_dir),
            **overrides.pop("portfolio", {}),
        },
        templates={"compiled_dir": str(tmp_path / "compiled")},
        **overrides,
    )


@pytest.fixture()
def make_state(
    tmp_path: Path,
    content_root: Path,
    templates_dir: Path,
    response_cache: ResponseCache,
    clock: FrozenClock,
) -> Callable[..., AppState]:
    def _make(**overrides) -> AppState:
        settings = _settings(tmp_path, content_root, templates_dir, **overrides)
        return build_state(settings, response_cache, clock=clock)

    return _make


@pytest.fixture()
def app_state(make_state: Callable[..., AppState]) -> AppState:
    return make_state()


@pytest.fixture()
async def client(app_state: AppState) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(app_state.settings, state=app_state)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://localhost",
    ) as http_client:
        yield http_client
