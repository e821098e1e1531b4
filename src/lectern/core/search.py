"""Search overlay."""

import html
import logging
from urllib.parse import quote

from lectern.core.dom import View
from lectern.core.index import MIN_QUERY_LENGTH, Document, DocumentIndex

logger = logging.getLogger(__name__)

HINT_HTML = '<div class="search-hint">Type at least 2 characters...</div>'
EMPTY_HTML = '<div class="search-empty">No results found</div>'


class SearchOverlay:
    """Overlay listing index matches for the typed query."""

    def __init__(self, view: View, index: DocumentIndex) -> None:
        self.view = view
        self.index = index
        self.is_open = False
        self.query = ""

    def open(self) -> None:
        self.is_open = True
        self.query = ""
        self.view.clear()

    def close(self) -> None:
        if not self.is_open:
            return
        self.is_open = False

    def toggle(self) -> bool:
        if self.is_open:
            self.close()
        else:
            self.open()
        return self.is_open

    def input(self, query: str) -> list[Document]:
        """Update results for a query.

        Returns:
            Matching documents, empty below the query floor
        """
        self.query = query
        if len(query) < MIN_QUERY_LENGTH:
            self.view.mount(HINT_HTML)
            return []
        matches = self.index.search(query)
        if not matches:
            self.view.mount(EMPTY_HTML)
            return []
        self.view.mount("".join(render_result(doc) for doc in matches))
        logger.debug(f"Search {query!r} matched {len(matches)} document(s)")
        return matches

    def first_result(self) -> str | None:
        """Fragment of the first result link, if any."""
        link = self.view.root.select_one("a.search-result")
        return str(link["href"]) if link is not None else None


def render_result(document: Document) -> str:
    meta = html.escape(document.date)
    if document.tags:
        meta += " · " + html.escape(", ".join(document.tags))
    return (
        f'<a href="#/post/{quote(document.slug)}" class="search-result" data-close-search>'
        f'<div class="search-result-title">{html.escape(document.title)}</div>'
        f'<div class="search-result-meta">{meta}</div></a>'
    )
