"""Atom feed generation."""

import logging
from datetime import UTC, datetime
from pathlib import Path
from urllib.parse import quote
from xml.etree import ElementTree as ET

from lectern.core.index import Document, DocumentIndex

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
DEFAULT_FEED_LIMIT = 20


def post_url(site_url: str, document: Document) -> str:
    return f"{site_url.rstrip('/')}/#/post/{quote(document.slug)}"


def entry_updated(document: Document) -> str:
    return document.timestamp or f"{document.date}T00:00:00Z"


def build_feed(
    index: DocumentIndex,
    *,
    site_url: str,
    title: str,
    limit: int = DEFAULT_FEED_LIMIT,
    now: datetime | None = None,
) -> str:
    """Render an Atom feed of the most recent documents.

    Args:
        index: Document index (already in listing order)
        site_url: Public site URL without trailing slash
        title: Feed title
        limit: Maximum number of entries
        now: Feed update time (defaults to the current time)

    Returns:
        Feed XML document
    """
    site_url = site_url.rstrip("/")
    updated = (now or datetime.now(tz=UTC)).isoformat(timespec="milliseconds")

    ET.register_namespace("", ATOM_NS)
    feed = ET.Element(f"{{{ATOM_NS}}}feed")
    ET.SubElement(feed, f"{{{ATOM_NS}}}title").text = title
    ET.SubElement(feed, f"{{{ATOM_NS}}}link", href=site_url, rel="alternate")
    ET.SubElement(feed, f"{{{ATOM_NS}}}link", href=f"{site_url}/feed.xml", rel="self")
    ET.SubElement(feed, f"{{{ATOM_NS}}}id").text = f"{site_url}/"
    ET.SubElement(feed, f"{{{ATOM_NS}}}updated").text = updated.replace("+00:00", "Z")

    for document in index.documents[:limit]:
        url = post_url(site_url, document)
        entry = ET.SubElement(feed, f"{{{ATOM_NS}}}entry")
        ET.SubElement(entry, f"{{{ATOM_NS}}}title").text = document.title
        ET.SubElement(entry, f"{{{ATOM_NS}}}link", href=url, rel="alternate")
        ET.SubElement(entry, f"{{{ATOM_NS}}}id").text = url
        ET.SubElement(entry, f"{{{ATOM_NS}}}updated").text = entry_updated(document)
        ET.SubElement(entry, f"{{{ATOM_NS}}}summary").text = document.description

    ET.indent(feed, space="  ")
    body = ET.tostring(feed, encoding="unicode")
    return f'<?xml version="1.0" encoding="utf-8"?>\n{body}\n'


def write_feed(feed_xml: str, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(feed_xml, encoding="utf-8")
    logger.info(f"Built {path.name}")
