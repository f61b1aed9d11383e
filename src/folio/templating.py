"""Jinja2 adapter implementing TemplateEngineProtocol.

Compiled templates live on disk in a FileSystemBytecodeCache directory; the
freshness checker compares an artifact's mtime with its source's mtime and
deletes the artifact when the source is newer. ``auto_reload`` stays on so
the in-memory template cache also picks up edited sources.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from jinja2.bccache import FileSystemBytecodeCache

if TYPE_CHECKING:
    from collections.abc import Sequence

log = structlog.get_logger()


class JinjaTemplateEngine:
    """Template engine backed by a Jinja2 Environment with a bytecode cache."""

    def __init__(
        self,
        search_paths: Sequence[Path],
        compiled_dir: Path,
        *,
        bytecode_pattern: str = "folio-%s.cache",
    ) -> None:
        compiled_dir.mkdir(parents=True, exist_ok=True)
        self.bytecode_cache = FileSystemBytecodeCache(
            directory=str(compiled_dir),
            pattern=bytecode_pattern,
        )
        self.loader = FileSystemLoader([str(p) for p in search_paths])
        self.env = Environment(
            loader=self.loader,
            bytecode_cache=self.bytecode_cache,
            autoescape=select_autoescape(["html", "j2"]),
            auto_reload=True,
        )

    def _source_filename(self, template_id: str) -> str | None:
        try:
            _, filename, _ = self.loader.get_source(self.env, template_id)
        except TemplateNotFound:
            return None
        return filename

    def source_mtime(self, template_id: str) -> float | None:
        """Modification time of the template source, or None if it is missing."""
        filename = self._source_filename(template_id)
        if filename is None:
            return None
        try:
            return os.path.getmtime(filename)
        except OSError:
            return None

    def is_template_fresh(self, template_id: str, reference_time: float) -> bool:
        """True when the source has not changed after ``reference_time``.

        A missing source counts as fresh: there is nothing to recompile.
        """
        mtime = self.source_mtime(template_id)
        if mtime is None:
            return True
        return mtime <= reference_time

    def compiled_artifact_path(self, template_id: str) -> Path:
        """Where the bytecode cache stores (or would store) this template."""
        # Same key Jinja computes in BaseLoader.load: template name + source filename
        key = self.bytecode_cache.get_cache_key(template_id, self._source_filename(template_id))
        return Path(self.bytecode_cache.directory) / (self.bytecode_cache.pattern % key)

    def clear_compiled_cache(self) -> None:
        self.bytecode_cache.clear()

    def clear_template_cache(self) -> None:
        if self.env.cache is not None:
            self.env.cache.clear()

    def render(self, template_id: str, context: dict[str, Any]) -> str:
        return self.env.get_template(template_id).render(**context)
