"""Document rendering with caching.

Reads a document source, splits its frontmatter and renders the body, with
file-based caching and mtime tracking.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from lectern.core.cache import CacheEntry, FileCache
from lectern.core.frontmatter import Frontmatter, split_frontmatter
from lectern.core.markdown import Heading, render_markdown

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Result of rendering a document."""

    html: str
    meta: Frontmatter
    headings: list[Heading]
    source_path: Path
    from_cache: bool


class DocumentRenderer:
    """Renders documents from the posts directory.

    Cache invalidation is based on source file mtime. Without a cache every
    call renders fresh.
    """

    def __init__(self, posts_dir: Path, cache: FileCache | None = None) -> None:
        """Initialize renderer.

        Args:
            posts_dir: Directory containing document sources
            cache: Optional FileCache for rendered content
        """
        self._posts_dir = posts_dir
        self._cache = cache

    @property
    def posts_dir(self) -> Path:
        """Directory containing document sources."""
        return self._posts_dir

    def render(self, file: str, slug: str | None = None) -> RenderResult:
        """Render a document.

        Args:
            file: Source file name relative to the posts directory
            slug: Cache key (defaults to the file stem)

        Returns:
            RenderResult with HTML, frontmatter and heading outline

        Raises:
            FileNotFoundError: If the source file doesn't exist
        """
        source_path = self._resolve_source_path(file)
        if not source_path.is_file():
            raise FileNotFoundError(f"Source file not found: {source_path}")

        key = slug or source_path.stem
        source_mtime = source_path.stat().st_mtime

        if self._cache is not None:
            cached = self._cache.get(key, source_mtime)
            if cached is not None:
                logger.debug(f"Render cache hit: {key}")
                return _from_cache(cached, source_path)

        text = source_path.read_text(encoding="utf-8")
        meta, body = split_frontmatter(text)
        result = render_markdown(body)

        if self._cache is not None:
            self._cache.set(
                key,
                result.html,
                meta,
                source_mtime,
                [h.to_dict() for h in result.headings],
            )

        return RenderResult(
            html=result.html,
            meta=meta,
            headings=result.headings,
            source_path=source_path,
            from_cache=False,
        )

    def invalidate(self, slug: str) -> None:
        if self._cache is not None:
            self._cache.invalidate(slug)

    def _resolve_source_path(self, file: str) -> Path:
        """Resolve a source file, refusing paths outside the posts directory.

        Raises:
            FileNotFoundError: If the path escapes the posts directory
        """
        root = self._posts_dir.resolve()
        source_path = (root / file).resolve()
        if not source_path.is_relative_to(root):
            raise FileNotFoundError(f"Source file outside posts directory: {file}")
        return source_path


def _from_cache(cached: CacheEntry, source_path: Path) -> RenderResult:
    headings = [
        Heading(id=str(entry["id"]), text=str(entry["text"]), level=int(entry["level"]))
        for entry in cached.meta["headings"]
    ]
    return RenderResult(
        html=cached.html,
        meta=cached.meta["meta"],
        headings=headings,
        source_path=source_path,
        from_cache=True,
    )
