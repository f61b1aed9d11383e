from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ResponseCacheEntry(BaseModel):
    """A rendered page stored by the HTTP response cache."""

    key: str  # Request path, e.g. "/2024/spring.html"
    body: str
    content_type: str = "text/html; charset=utf-8"
    last_modified: datetime | None = None
    stored_at: datetime
    expires_at: datetime
    stale: bool = False
