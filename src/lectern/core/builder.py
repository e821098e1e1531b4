"""Index building.

Scans the posts directory and materializes the document summaries consumed
at startup in place of re-parsing every source file.
"""

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from lectern.core.frontmatter import meta_text, split_frontmatter
from lectern.core.index import Document, DocumentIndex, parse_order
from lectern.core.types import Slug

logger = logging.getLogger(__name__)

DEFAULT_EXCERPT_LENGTH = 500


def file_timestamp(stat: os.stat_result) -> str:
    """Creation time (modification time where unavailable) as ISO-8601 UTC."""
    birthtime = getattr(stat, "st_birthtime", None)
    seconds = birthtime if birthtime else stat.st_mtime
    moment = datetime.fromtimestamp(seconds, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class IndexBuilder:
    """Builds document summaries from markdown sources."""

    def __init__(self, posts_dir: Path, *, excerpt_length: int = DEFAULT_EXCERPT_LENGTH) -> None:
        """Initialize builder.

        Args:
            posts_dir: Directory containing ``*.md`` sources
            excerpt_length: Number of body characters kept for search
        """
        self._posts_dir = posts_dir
        self._excerpt_length = excerpt_length

    def build(self) -> DocumentIndex:
        """Scan the posts directory.

        Unreadable files are logged and skipped.

        Returns:
            DocumentIndex over every readable source

        Raises:
            FileNotFoundError: If the posts directory doesn't exist
        """
        if not self._posts_dir.is_dir():
            raise FileNotFoundError(f"Posts directory not found: {self._posts_dir}")

        documents: list[Document] = []
        for path in sorted(self._posts_dir.glob("*.md")):
            try:
                documents.append(self.build_document(path))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping {path.name}: {e}")
        logger.info(f"Indexed {len(documents)} documents from {self._posts_dir}")
        return DocumentIndex(documents)

    def build_document(self, path: Path) -> Document:
        """Build the summary of one source file."""
        text = path.read_text(encoding="utf-8")
        meta, body = split_frontmatter(text)
        slug = path.stem
        tags = meta.get("tags")

        return Document(
            slug=Slug(slug),
            file=path.name,
            title=meta_text(meta, "title") or slug,
            date=meta_text(meta, "date") or slug[:10],
            timestamp=file_timestamp(path.stat()),
            order=parse_order(meta_text(meta, "order")),
            description=meta_text(meta, "description"),
            tags=tuple(tags) if isinstance(tags, list) else (),
            excerpt=body[: self._excerpt_length],
        )


def write_index(index: DocumentIndex, path: Path) -> None:
    """Write the index artifact as a 2-space indented JSON list."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [doc.to_dict() for doc in index]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Built {path.name} with {len(payload)} posts")
