"""Protocol interfaces for the collaborators the core talks to.

The set provider and the freshness checker reference these protocols, not
the concrete implementations. Tests swap in in-memory fakes; the server
wires Jinja2, aiosqlite and the in-memory session store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from folio.models.cache import ResponseCacheEntry


class Clock(Protocol):
    """Single source of "now" for freshness decisions."""

    def now(self) -> datetime: ...


class TemplateEngineProtocol(Protocol):
    """Interface for the template engine's compiled-artifact cache."""

    def is_template_fresh(self, template_id: str, reference_time: float) -> bool: ...

    def compiled_artifact_path(self, template_id: str) -> Path: ...

    def clear_compiled_cache(self) -> None: ...

    def clear_template_cache(self) -> None: ...


class ResponseCacheProtocol(Protocol):
    """Interface for the downstream HTTP response cache store."""

    async def get(self, key: str) -> ResponseCacheEntry | None: ...

    async def set(
        self,
        key: str,
        body: str,
        ttl_hours: int,
        *,
        content_type: str = "text/html; charset=utf-8",
        last_modified: datetime | None = None,
    ) -> None: ...

    async def invalidate(self, key: str) -> None: ...

    async def cleanup(self) -> None: ...


class SessionProtocol(Protocol):
    """One user's session: a small key-value bag."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def has(self, key: str) -> bool: ...


class SessionStoreProtocol(Protocol):
    """Holds the sessions; idle ones are dropped by ``sweep``."""

    def sweep(self) -> int: ...
