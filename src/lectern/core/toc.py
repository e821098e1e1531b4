"""Table of contents sidebar with scroll-aware highlighting."""

import html
import logging

from bs4 import Tag

from lectern.core.dom import (
    IntersectionEntry,
    IntersectionObserver,
    View,
    Viewport,
    add_class,
    remove_class,
)
from lectern.core.markdown import Heading

logger = logging.getLogger(__name__)

TOC_ROOT_MARGIN = "-80px 0px -70% 0px"
ACTIVE_CLASS = "active"


def indent_for(level: int) -> int:
    return (level - 2) * 12 + 8


class TocSynchronizer:
    """Renders the outline into the sidebar and tracks the active heading.

    Exactly one observer is live at a time; it is disconnected whenever the
    outline is re-rendered or cleared.
    """

    def __init__(self, sidebar: View, viewport: Viewport) -> None:
        self.sidebar = sidebar
        self.viewport = viewport
        self._observer: IntersectionObserver | None = None
        self.active_id: str | None = None

    @property
    def observer(self) -> IntersectionObserver | None:
        return self._observer

    def render(self, headings: list[Heading], content_root: Tag) -> None:
        """Render sidebar links and watch the heading elements.

        Args:
            headings: Outline in document order
            content_root: Element containing the rendered headings
        """
        self._disconnect()
        self.active_id = None
        if not headings:
            self.sidebar.clear()
            return

        links = "".join(
            f'<a href="#{html.escape(h.id, quote=True)}" class="toc-link toc-level-{h.level}" '
            f'style="padding-left: {indent_for(h.level)}px">{html.escape(h.text)}</a>'
            for h in headings
        )
        self.sidebar.mount(
            f'<div class="toc-content"><div class="toc-label">On this page</div>{links}</div>'
        )

        targets: list[Tag] = []
        for heading in headings:
            target = content_root.find(id=heading.id)
            if isinstance(target, Tag):
                targets.append(target)

        observer = IntersectionObserver(
            self.viewport, self._on_intersect, root_margin=TOC_ROOT_MARGIN, threshold=0.0
        )
        self._observer = observer
        for target in targets:
            observer.observe(target)
        logger.debug(f"TOC rendered with {len(headings)} heading(s)")

    def clear(self) -> None:
        self._disconnect()
        self.active_id = None
        self.sidebar.clear()

    def _disconnect(self) -> None:
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None

    def _on_intersect(self, entries: list[IntersectionEntry], observer: IntersectionObserver) -> None:
        # Last intersecting entry in the batch wins.
        for entry in entries:
            if entry.is_intersecting:
                self._activate(str(entry.target.get("id") or ""))

    def _activate(self, heading_id: str) -> None:
        links = self.sidebar.select(".toc-link")
        for link in links:
            remove_class(link, ACTIVE_CLASS)
        for link in links:
            if link.get("href") == f"#{heading_id}":
                add_class(link, ACTIVE_CLASS)
                self.active_id = heading_id
                return
