"""Tests for the table of contents synchronizer."""

import pytest
from lectern.core.dom import Box, View, Viewport
from lectern.core.markdown import Heading, render_markdown
from lectern.core.toc import TOC_ROOT_MARGIN, TocSynchronizer

DOCUMENT = render_markdown("# Title\n\n## Intro\n\ntext\n\n### Details\n\n## Usage\n")
HEADINGS = DOCUMENT.headings


@pytest.fixture
def content() -> View:
    view = View("content")
    view.mount(DOCUMENT.html)
    return view


def lay_out(viewport: Viewport, content: View, tops: dict[str, float]) -> None:
    viewport.set_layout(
        (element, Box(tops[str(element["id"])], 40))
        for element in content.select("[id]")
        if str(element["id"]) in tops
    )


class TestOutline:
    """Tests for the outline fed to the synchronizer."""

    def test__rendered_document__levels_two_to_four(self) -> None:
        """The outline skips h1 and excludes the anchor text."""
        assert HEADINGS == [
            Heading(id="intro", text="Intro", level=2),
            Heading(id="details", text="Details", level=3),
            Heading(id="usage", text="Usage", level=2),
        ]


class TestTocSynchronizer:
    """Tests for TocSynchronizer."""

    def test__render__indented_links(self, content: View) -> None:
        """Each heading gets a link indented by level."""
        sidebar = View("toc-sidebar")
        toc = TocSynchronizer(sidebar, Viewport())

        toc.render(HEADINGS, content.root)

        assert '<div class="toc-label">On this page</div>' in sidebar.html
        assert (
            '<a href="#details" class="toc-link toc-level-3" style="padding-left: 20px">Details</a>'
            in sidebar.html
        )
        assert 'style="padding-left: 8px">Intro</a>' in sidebar.html

    def test__scroll__active_link_follows_band(self, content: View) -> None:
        """The heading inside the active band is highlighted."""
        viewport = Viewport(height=1000)
        sidebar = View("toc-sidebar")
        toc = TocSynchronizer(sidebar, viewport)
        lay_out(viewport, content, {"intro": 100, "details": 900, "usage": 2000})

        toc.render(HEADINGS, content.root)
        assert toc.active_id == "intro"

        viewport.scroll_to(800)
        assert toc.active_id == "details"

        viewport.scroll_to(1900)
        assert toc.active_id == "usage"
        active = sidebar.select(".toc-link.active")
        assert [a["href"] for a in active] == ["#usage"]

    def test__simultaneous_intersections__last_applied_wins(self, content: View) -> None:
        """With two headings in the band, the later entry is active."""
        viewport = Viewport(height=1000)
        toc = TocSynchronizer(View("toc-sidebar"), viewport)
        lay_out(viewport, content, {"intro": 100, "details": 150, "usage": 2000})

        toc.render(HEADINGS, content.root)

        assert toc.active_id == "details"
        assert len(toc.sidebar.select(".toc-link.active")) == 1

    def test__rerender__disconnects_previous_observer(self, content: View) -> None:
        """Only one observer is live at a time."""
        viewport = Viewport()
        toc = TocSynchronizer(View("toc-sidebar"), viewport)
        headings = HEADINGS

        toc.render(headings, content.root)
        toc.render(headings, content.root)

        assert len(viewport.observers) == 1
        assert viewport.observers[0].root_margin == TOC_ROOT_MARGIN

    def test__clear__empties_sidebar_and_observer(self, content: View) -> None:
        """Clearing removes links and stops watching."""
        viewport = Viewport()
        toc = TocSynchronizer(View("toc-sidebar"), viewport)
        toc.render(HEADINGS, content.root)

        toc.clear()

        assert toc.sidebar.html == ""
        assert viewport.observers == []
        assert toc.observer is None

    def test__no_headings__empty_sidebar(self) -> None:
        """Documents without headings get no outline."""
        viewport = Viewport()
        toc = TocSynchronizer(View("toc-sidebar"), viewport)

        toc.render([], View("content").root)

        assert toc.sidebar.html == ""
        assert viewport.observers == []
