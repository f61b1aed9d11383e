"""End-to-end route tests through the ASGI app."""

from __future__ import annotations

import os
from datetime import timedelta
from typing import TYPE_CHECKING

import httpx

from folio.server import create_app
from folio.session import SESSION_COOKIE

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from folio.state import AppState


def _client(state: AppState) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=create_app(state.settings, state=state)),
        base_url="http://localhost",
    )


# ---------------------------------------------------------------------------
# Index and year pages
# ---------------------------------------------------------------------------


class TestIndex:
    async def test_lists_sets_in_order(self, portfolio: None, client: httpx.AsyncClient) -> None:
        response = await client.get("/")

        assert response.status_code == 200
        lines = response.text.strip().splitlines()
        assert lines == [
            '<a href="/2024/2024-spring.html">2024-spring</a>',
            '<a href="/2023/2023-summer.html">2023-summer</a>',
            '<a href="/2023/2023-fall.html">2023-fall</a>',
        ]

    async def test_sets_cache_headers_and_session_cookie(
        self, portfolio: None, client: httpx.AsyncClient
    ) -> None:
        response = await client.get("/")

        assert response.headers["cache-control"] == "public, max-age=3600"
        assert response.headers["last-modified"].endswith("GMT")
        assert SESSION_COOKIE in response.cookies

    async def test_session_reused_across_requests(
        self, portfolio: None, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        await client.get("/")
        second = await client.get("/")

        assert len(app_state.sessions) == 1
        assert SESSION_COOKIE not in second.cookies

    async def test_cookieless_clients_stay_bounded(
        self,
        portfolio: None,
        make_state: Callable[..., AppState],
    ) -> None:
        state = make_state(sessions={"max_sessions": 5})

        async with _client(state) as client:
            for _ in range(50):
                client.cookies.clear()
                response = await client.get("/")
                assert response.status_code == 200

        assert len(state.sessions) == 5

    async def test_empty_portfolio_renders_empty_index(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/")
        assert response.status_code == 200
        assert response.text == ""

    async def test_fresh_set_promoted(
        self,
        make_set: Callable[..., Path],
        make_state: Callable[..., AppState],
    ) -> None:
        make_set("00-2024-spring", "2024", age=timedelta(days=60))
        make_set("2023-fall", "2023", age=timedelta(days=10))
        make_set("2023-summer", "2023", age=timedelta(days=90))
        state = make_state(portfolio={"enable_fresh_flag": True, "fresh_flag_interval": "P30D"})

        async with _client(state) as client:
            response = await client.get("/")

        lines = response.text.strip().splitlines()
        assert lines[0] == '<a href="/2023/2023-fall.html">2023-fall</a><em>new</em>'
        assert lines[1] == '<a href="/2024/2024-spring.html">2024-spring</a>'


class TestYearPage:
    async def test_lists_only_that_year(self, portfolio: None, client: httpx.AsyncClient) -> None:
        response = await client.get("/2023.html")

        assert response.status_code == 200
        assert "2023-summer" in response.text
        assert "2023-fall" in response.text
        assert "2024-spring" not in response.text

    async def test_year_without_sets_is_404(
        self, portfolio: None, client: httpx.AsyncClient
    ) -> None:
        response = await client.get("/2030.html")
        assert response.status_code == 404

    async def test_non_year_is_404(self, portfolio: None, client: httpx.AsyncClient) -> None:
        response = await client.get("/spring.html")
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Set page
# ---------------------------------------------------------------------------


class TestSetPage:
    async def test_renders_set_with_navigation(
        self, portfolio: None, client: httpx.AsyncClient
    ) -> None:
        response = await client.get("/2023/2023-summer.html")

        assert response.status_code == 200
        assert "<h1>2023-summer</h1>" in response.text
        assert '<a class="next">2024-spring</a>' in response.text
        assert '<a class="prev">2023-fall</a>' in response.text

    async def test_prefixed_set_by_link_name(
        self, portfolio: None, client: httpx.AsyncClient
    ) -> None:
        response = await client.get("/2024/2024-spring.html")

        assert response.status_code == 200
        assert "<h1>2024-spring</h1>" in response.text
        assert 'class="next"' not in response.text

    async def test_unknown_set_is_404(self, portfolio: None, client: httpx.AsyncClient) -> None:
        response = await client.get("/2023/2023-winter.html")
        assert response.status_code == 404
        assert response.text == (
            "Set '2023-winter' not found in year '2023'.\nSee /2023.html for the sets of that year."
        )

    async def test_no_sets_is_404(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/2023/2023-fall.html")
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Response cache and template freshness
# ---------------------------------------------------------------------------


class TestCaching:
    async def test_rendered_page_is_stored(
        self, portfolio: None, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        await client.get("/2023/2023-fall.html")

        entry = await app_state.response_cache.get("/2023/2023-fall.html")
        assert entry is not None
        assert "<h1>2023-fall</h1>" in entry.body

    async def test_edited_template_invalidates_stored_page(
        self,
        portfolio: None,
        content_root: Path,
        client: httpx.AsyncClient,
        app_state: AppState,
    ) -> None:
        first = await client.get("/2023/2023-fall.html")
        assert "<h1>2023-fall</h1>" in first.text

        template_id = "2023/2023-fall/set.html.j2"
        artifact = app_state.engine.compiled_artifact_path(template_id)
        assert artifact.exists()
        os.utime(artifact, (1_000_000_000.0, 1_000_000_000.0))
        source = content_root / template_id
        source.write_text("<h2>Autumn, revised</h2>", encoding="utf-8")
        edited_at = (app_state.provider.clock.now() - timedelta(days=1)).timestamp()
        os.utime(source, (edited_at, edited_at))

        second = await client.get("/2023/2023-fall.html")

        assert second.text == "<h2>Autumn, revised</h2>"
        entry = await app_state.response_cache.get("/2023/2023-fall.html")
        assert entry is not None
        assert entry.body == "<h2>Autumn, revised</h2>"

    async def test_debug_mode_skips_caching(
        self,
        portfolio: None,
        make_state: Callable[..., AppState],
    ) -> None:
        state = make_state(debug=True)

        async with _client(state) as client:
            response = await client.get("/")

        assert response.status_code == 200
        assert "cache-control" not in response.headers
        assert "last-modified" not in response.headers
        assert await state.response_cache.get("/") is None


class TestAbout:
    async def test_about_page(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/about.html")

        assert response.status_code == 200
        assert response.text == "<p>About, updated September 9th, 2001</p>"
