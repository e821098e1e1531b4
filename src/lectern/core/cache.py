"""On-disk render cache.

Layout under the cache root:

    .cache/
    ├── documents/<slug>.json     # body HTML, frontmatter, headings, source mtime
    └── diagrams/<hash>.svg       # Kroki output keyed by content hash

A document record is only served while its recorded mtime equals the source's
current mtime.
"""

import hashlib
import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TypedDict

from lectern.core.frontmatter import Frontmatter

logger = logging.getLogger(__name__)

GITIGNORE = "# Generated by lectern\n*\n"


class CachedMetadata(TypedDict):
    source_mtime: float
    meta: Frontmatter
    headings: list[dict[str, str | int]]


@dataclass
class CacheEntry:
    """A valid cached render."""

    html: str
    meta: CachedMetadata


def compute_diagram_hash(source: str, kind: str, fmt: str = "svg") -> str:
    """Key for a rendered diagram.

    Args:
        source: Diagram source text
        kind: Kroki endpoint (``mermaid``, ``plantuml``, ...)
        fmt: Output format

    Returns:
        Hex SHA-256 digest of kind, format and source
    """
    digest = hashlib.sha256()
    for part in (kind, fmt, source):
        digest.update(part.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


class FileCache:
    """Render cache for documents and diagrams, rooted at ``cache_dir``."""

    def __init__(self, cache_dir: Path) -> None:
        self._root = cache_dir

    @property
    def cache_dir(self) -> Path:
        return self._root

    @property
    def documents_dir(self) -> Path:
        return self._root / "documents"

    @property
    def diagrams_dir(self) -> Path:
        return self._root / "diagrams"

    def get(self, slug: str, source_mtime: float) -> CacheEntry | None:
        """Look up a document render.

        Args:
            slug: Document slug
            source_mtime: The source file's current mtime

        Returns:
            The cached render, or None when absent, unreadable or stale
        """
        record = self._read_record(self.documents_dir / f"{slug}.json")
        if record is None or record["source_mtime"] != source_mtime:
            return None
        return CacheEntry(
            html=record["html"],
            meta=CachedMetadata(
                source_mtime=record["source_mtime"],
                meta=record.get("meta") or {},
                headings=record["headings"],
            ),
        )

    def set(
        self,
        slug: str,
        html: str,
        meta: Frontmatter,
        source_mtime: float,
        headings: list[dict[str, str | int]],
    ) -> None:
        """Record a document render.

        Args:
            slug: Document slug
            html: Rendered body
            meta: Parsed frontmatter
            source_mtime: mtime of the source that was rendered
            headings: Outline entries as dictionaries
        """
        record = {
            "source_mtime": source_mtime,
            "html": html,
            "meta": meta,
            "headings": headings,
        }
        self._write(self.documents_dir / f"{slug}.json", json.dumps(record))

    def invalidate(self, slug: str) -> None:
        (self.documents_dir / f"{slug}.json").unlink(missing_ok=True)

    def clear(self) -> None:
        """Drop every document render; diagrams are kept."""
        shutil.rmtree(self.documents_dir, ignore_errors=True)

    def get_diagram(self, content_hash: str, fmt: str = "svg") -> str | None:
        path = self.diagrams_dir / f"{content_hash}.{fmt}"
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Unreadable cached diagram {path.name}: {e}")
            return None

    def set_diagram(self, content_hash: str, content: str, fmt: str = "svg") -> None:
        self._write(self.diagrams_dir / f"{content_hash}.{fmt}", content)

    def _write(self, path: Path, text: str) -> None:
        if not self._root.is_dir():
            self._root.mkdir(parents=True, exist_ok=True)
            (self._root / ".gitignore").write_text(GITIGNORE, encoding="utf-8")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    def _read_record(self, path: Path) -> dict | None:
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.debug(f"Ignoring corrupt cache record {path.name}: {e}")
            return None
        if not isinstance(record, dict):
            return None
        if not {"source_mtime", "html", "headings"} <= record.keys():
            return None
        return record
