"""Shared test fixtures for the folio test suite."""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from folio.response_cache import ResponseCache

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

NOW = datetime.now(UTC).replace(microsecond=0)
SET_TEMPLATE = (
    "<h1>{{ set.link_name }}</h1>"
    "{% if nav and nav.next %}<a class=\"next\">{{ nav.next.link_name }}</a>{% endif %}"
    "{% if nav and nav.previous %}<a class=\"prev\">{{ nav.previous.link_name }}</a>{% endif %}"
)


class FrozenClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current


class FakeEngine:
    """In-memory TemplateEngineProtocol with configurable freshness."""

    def __init__(self, compiled_dir: Path) -> None:
        self.compiled_dir = compiled_dir
        self.fresh = True
        self.fresh_calls: list[tuple[str, float]] = []
        self.compiled_clears = 0
        self.template_clears = 0

    def is_template_fresh(self, template_id: str, reference_time: float) -> bool:
        self.fresh_calls.append((template_id, reference_time))
        return self.fresh

    def compiled_artifact_path(self, template_id: str) -> Path:
        return self.compiled_dir / (template_id.replace("/", "_") + ".cache")

    def clear_compiled_cache(self) -> None:
        self.compiled_clears += 1

    def clear_template_cache(self) -> None:
        self.template_clears += 1


class FakeResponseCache:
    """Records invalidate/cleanup calls; never stores anything."""

    def __init__(self) -> None:
        self.invalidated: list[str] = []
        self.cleanups = 0

    async def get(self, key: str):
        return None

    async def set(self, key: str, body: str, ttl_hours: int, **kwargs) -> None:
        return None

    async def invalidate(self, key: str) -> None:
        self.invalidated.append(key)

    async def cleanup(self) -> None:
        self.cleanups += 1


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def content_root(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    root.mkdir()
    return root


@pytest.fixture()
def make_set(content_root: Path) -> Callable[..., Path]:
    """Factory writing a set directory: ``<root>/<subpath>/<name>/``.

    The template mtime is set to ``NOW - age``.
    """

    def _make(
        name: str,
        subpath: str = "2024",
        *,
        items: int = 2,
        template: bool = True,
        age: timedelta = timedelta(days=90),
    ) -> Path:
        set_dir = content_root / subpath / name if subpath else content_root / name
        set_dir.mkdir(parents=True, exist_ok=True)
        for i in range(items):
            (set_dir / f"{i:02d}.jpg").write_bytes(b"\xff\xd8")
        if template:
            template_file = set_dir / "set.html.j2"
            template_file.write_text(SET_TEMPLATE, encoding="utf-8")
            ts = (NOW - age).timestamp()
            os.utime(template_file, (ts, ts))
        return set_dir

    return _make


@pytest.fixture()
def fake_engine(tmp_path: Path) -> FakeEngine:
    compiled = tmp_path / "compiled"
    compiled.mkdir()
    return FakeEngine(compiled)


@pytest.fixture()
def fake_response_cache() -> FakeResponseCache:
    return FakeResponseCache()


@pytest.fixture()
async def response_cache() -> AsyncGenerator[ResponseCache, None]:
    """ResponseCache over an in-memory SQLite database."""
    async with aiosqlite.connect(":memory:") as db:
        cache = ResponseCache(db)
        await cache.init_db()
        yield cache
