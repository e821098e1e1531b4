"""In-memory document index.

Holds the summaries of every document after startup and answers listing, tag
and search queries. The index is immutable once built; concurrent readers
never observe partial state.
"""

import json
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import cmp_to_key
from pathlib import Path
from typing import Any

from lectern.core.types import Slug

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


@dataclass(frozen=True)
class Document:
    """Summary of one authored document."""

    slug: Slug
    file: str
    title: str
    date: str
    timestamp: str | None = None
    order: float | None = None
    description: str = ""
    tags: tuple[str, ...] = field(default_factory=tuple)
    excerpt: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        """Build a document from one entry of the prebuilt index artifact.

        Raises:
            ValueError: If the entry has no usable slug
        """
        slug = data.get("slug")
        if not isinstance(slug, str) or not slug:
            raise ValueError(f"Index entry without slug: {data!r}")
        tags = data.get("tags")
        return cls(
            slug=Slug(slug),
            file=str(data.get("file") or f"{slug}.md"),
            title=str(data.get("title") or slug),
            date=str(data.get("date") or ""),
            timestamp=data.get("timestamp") if isinstance(data.get("timestamp"), str) else None,
            order=parse_order(data.get("order")),
            description=str(data.get("description") or ""),
            tags=tuple(str(t) for t in tags) if isinstance(tags, list) else (),
            excerpt=str(data.get("body") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the index artifact's JSON shape."""
        order: float | int | None = self.order
        if order is not None and order.is_integer():
            order = int(order)
        return {
            "slug": self.slug,
            "file": self.file,
            "title": self.title,
            "date": self.date,
            "timestamp": self.timestamp,
            "order": order,
            "description": self.description,
            "tags": list(self.tags),
            "body": self.excerpt,
        }

    @property
    def timestamp_value(self) -> float | None:
        """Timestamp as epoch seconds, None when absent or unparseable."""
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True)
class TagCount:
    """A tag and the number of documents carrying it."""

    tag: str
    count: int

    def to_dict(self) -> dict[str, str | int]:
        return {"tag": self.tag, "count": self.count}


def parse_order(value: object) -> float | None:
    """Parse an explicit order value; non-finite or non-numeric yields None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_timestamp(value: str | None) -> float | None:
    """Parse an ISO-8601 timestamp to epoch seconds (naive means UTC)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    result = parsed.timestamp()
    return result if math.isfinite(result) else None


def compare_documents(a: Document, b: Document) -> int:
    """Listing order: newest timestamp, newest date, lowest order, title.

    Missing timestamps count as the epoch and missing orders sort last.
    Dates compare lexicographically, which is chronological for ISO dates.
    """
    a_ts = a.timestamp_value or 0.0
    b_ts = b.timestamp_value or 0.0
    if a_ts != b_ts:
        return -1 if a_ts > b_ts else 1

    if a.date != b.date:
        return -1 if a.date > b.date else 1

    a_order = a.order if a.order is not None else math.inf
    b_order = b.order if b.order is not None else math.inf
    if a_order != b_order:
        return -1 if a_order < b_order else 1

    a_title, b_title = a.title.casefold(), b.title.casefold()
    if a_title != b_title:
        return -1 if a_title < b_title else 1
    if a.title != b.title:
        return -1 if a.title < b.title else 1
    return 0


def sort_documents(documents: Iterable[Document]) -> list[Document]:
    """Sort documents in listing order (stable for fully equal keys)."""
    return sorted(documents, key=cmp_to_key(compare_documents))


class DocumentIndex:
    """Sorted, read-only collection of document summaries."""

    __slots__ = ("_documents", "_slug_index")

    def __init__(self, documents: Iterable[Document] = ()) -> None:
        """Initialize index.

        Args:
            documents: Document summaries in any order. Later duplicates of a
                slug are dropped.
        """
        unique: dict[str, Document] = {}
        for document in documents:
            if document.slug in unique:
                logger.warning(f"Duplicate slug in index: {document.slug}")
                continue
            unique[document.slug] = document
        self._documents = tuple(sort_documents(unique.values()))
        self._slug_index = {doc.slug: i for i, doc in enumerate(self._documents)}

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self):
        return iter(self._documents)

    @property
    def documents(self) -> list[Document]:
        """All documents in listing order."""
        return list(self._documents)

    def get(self, slug: str) -> Document | None:
        idx = self._slug_index.get(slug)
        return self._documents[idx] if idx is not None else None

    def all_tags(self) -> list[TagCount]:
        """Every distinct tag with its usage count.

        Ordered by descending count; ties keep first-encounter order (in
        listing order).
        """
        counts: dict[str, int] = {}
        for document in self._documents:
            for tag in document.tags:
                counts[tag] = counts.get(tag, 0) + 1
        ranked = sorted(counts.items(), key=lambda item: -item[1])
        return [TagCount(tag=tag, count=count) for tag, count in ranked]

    def by_tag(self, tag: str) -> list[Document]:
        """Documents whose tag set contains ``tag`` exactly (case-sensitive)."""
        return [doc for doc in self._documents if tag in doc.tags]

    def search(self, query: str) -> list[Document]:
        """Case-insensitive substring search.

        Matches title, description, joined tags and body excerpt. Queries
        shorter than two characters return nothing.
        """
        if len(query) < MIN_QUERY_LENGTH:
            return []
        needle = query.lower()
        return [doc for doc in self._documents if needle in _search_text(doc)]


def _search_text(document: Document) -> str:
    return "\n".join(
        (
            document.title.lower(),
            document.description.lower(),
            " ".join(document.tags).lower(),
            document.excerpt.lower(),
        )
    )


def load_index(path: Path) -> DocumentIndex:
    """Load the prebuilt index artifact.

    Entries that cannot be read are skipped with a warning.

    Args:
        path: Path to ``content.json``

    Returns:
        DocumentIndex with the loaded documents

    Raises:
        FileNotFoundError: If the artifact does not exist
        ValueError: If the artifact is not a JSON list
    """
    if not path.exists():
        raise FileNotFoundError(f"Index file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Index file is not valid JSON: {path}: {e}") from e
    if not isinstance(data, list):
        raise ValueError(f"Index file must contain a list: {path}")

    documents: list[Document] = []
    for entry in data:
        if not isinstance(entry, dict):
            logger.warning(f"Skipping malformed index entry: {entry!r}")
            continue
        try:
            documents.append(Document.from_dict(entry))
        except ValueError as e:
            logger.warning(f"Skipping index entry: {e}")
    logger.info(f"Loaded {len(documents)} documents from {path}")
    return DocumentIndex(documents)
