"""Rendering surface abstractions.

A headless stand-in for the pieces of a browser document the site relies on:

- ``View``: a named region whose children are replaced on every mount, with
  removal watches that fire when a watched element leaves the region.
- ``Viewport``: scroll offset, height and element layout reported by the
  surface, driving ``IntersectionObserver`` instances with CSS-style root
  margins and thresholds.

Everything is synchronous and single-threaded; callbacks run inline.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag
from bs4.element import PageElement

logger = logging.getLogger(__name__)

MARGIN_RE = re.compile(r"^(-?\d+(?:\.\d+)?)(px|%)?$")


def parse_fragment(markup: str) -> list[PageElement]:
    """Parse an HTML fragment into detached nodes."""
    fragment = BeautifulSoup(markup, "html.parser")
    return [node.extract() for node in list(fragment.contents)]


def new_element(name: str, attrs: dict[str, str] | None = None) -> Tag:
    """Create a detached element."""
    return BeautifulSoup("", "html.parser").new_tag(name, attrs=attrs or {})


def set_inner_html(tag: Tag, markup: str) -> None:
    """Replace the children of a tag with parsed markup."""
    tag.clear()
    for node in parse_fragment(markup):
        tag.append(node)


def add_class(tag: Tag, name: str) -> None:
    classes = list(tag.get("class") or [])
    if name not in classes:
        classes.append(name)
    tag["class"] = classes


def remove_class(tag: Tag, name: str) -> None:
    classes = [c for c in (tag.get("class") or []) if c != name]
    if classes:
        tag["class"] = classes
    elif tag.has_attr("class"):
        del tag["class"]


def has_class(tag: Tag, name: str) -> bool:
    return name in (tag.get("class") or [])


class MutationWatch:
    """Fires a callback once when a target element is removed from a view."""

    def __init__(self, view: "View", target: Tag, callback: Callable[[], None]) -> None:
        self._view = view
        self._target = target
        self._callback = callback
        self.connected = True

    def disconnect(self) -> None:
        if self.connected:
            self.connected = False
            self._view._discard_watch(self)

    def _notify(self, removed: list[PageElement]) -> None:
        for node in removed:
            if node is self._target or any(parent is node for parent in self._target.parents):
                self.disconnect()
                self._callback()
                return


class View:
    """A named region of the rendering surface.

    Mounting replaces every child of the region; watches registered with
    ``watch_removal`` are notified about the detached nodes.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.root: Tag = new_element("div", {"id": name})
        self._watches: list[MutationWatch] = []

    @property
    def html(self) -> str:
        """Inner HTML of the region."""
        return self.root.decode_contents()

    def mount(self, markup: str) -> Tag:
        """Replace the region's content with parsed markup.

        Args:
            markup: HTML fragment

        Returns:
            The region root
        """
        removed = list(self.root.contents)
        self.root.clear()
        for node in parse_fragment(markup):
            self.root.append(node)
        self._notify_removed(removed)
        return self.root

    def clear(self) -> None:
        """Remove all content from the region."""
        self.mount("")

    def remove(self, element: Tag) -> None:
        """Detach a single element from the region."""
        element.extract()
        self._notify_removed([element])

    def select(self, selector: str) -> list[Tag]:
        return list(self.root.select(selector))

    def contains(self, element: Tag) -> bool:
        """Whether ``element`` is currently mounted in this region."""
        return any(parent is self.root for parent in element.parents)

    def watch_removal(self, target: Tag, callback: Callable[[], None]) -> MutationWatch:
        """Call ``callback`` once when ``target`` (or an ancestor) is removed."""
        watch = MutationWatch(self, target, callback)
        self._watches.append(watch)
        return watch

    def _discard_watch(self, watch: MutationWatch) -> None:
        if watch in self._watches:
            self._watches.remove(watch)

    def _notify_removed(self, removed: list[PageElement]) -> None:
        if not removed:
            return
        for watch in list(self._watches):
            try:
                watch._notify(removed)
            except Exception:
                logger.exception(f"Removal callback failed in view {self.name}")


@dataclass(frozen=True)
class Box:
    """Vertical layout of an element in document coordinates."""

    top: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class RootMargin:
    """Parsed root margin; percentages are fractions of the viewport height."""

    top: float
    bottom: float
    top_is_percent: bool = False
    bottom_is_percent: bool = False

    @classmethod
    def parse(cls, margin: str) -> "RootMargin":
        """Parse a CSS margin shorthand (``"-80px 0px -70% 0px"``).

        Horizontal components are accepted and ignored.

        Raises:
            ValueError: If a component is not a px or % length
        """
        parts = margin.split()
        if not parts or len(parts) > 4:
            raise ValueError(f"Invalid root margin: {margin!r}")
        values = [_parse_length(p) for p in parts]
        # CSS shorthand expansion: top [right [bottom [left]]]
        top = values[0]
        bottom = values[2] if len(values) > 2 else values[0]
        return cls(
            top=top[0],
            bottom=bottom[0],
            top_is_percent=top[1],
            bottom_is_percent=bottom[1],
        )

    def band(self, scroll_y: float, height: float) -> tuple[float, float]:
        """Return the (top, bottom) of the margin-adjusted root rectangle."""
        top = self.top * height / 100 if self.top_is_percent else self.top
        bottom = self.bottom * height / 100 if self.bottom_is_percent else self.bottom
        return scroll_y - top, scroll_y + height + bottom


def _parse_length(value: str) -> tuple[float, bool]:
    match = MARGIN_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid margin length: {value!r}")
    return float(match.group(1)), match.group(2) == "%"


@dataclass(frozen=True)
class IntersectionEntry:
    """Change of intersection state for one observed element."""

    target: Tag
    is_intersecting: bool
    ratio: float


IntersectionCallback = Callable[[list[IntersectionEntry], "IntersectionObserver"], None]


class IntersectionObserver:
    """Watches elements for intersection with a viewport band.

    The callback receives only entries whose state changed since the last
    evaluation, the first evaluation after ``observe`` included.
    """

    def __init__(
        self,
        viewport: "Viewport",
        callback: IntersectionCallback,
        *,
        root_margin: str = "0px",
        threshold: float = 0.0,
    ) -> None:
        self._viewport = viewport
        self._callback = callback
        self.root_margin = root_margin
        self._margin = RootMargin.parse(root_margin)
        self.threshold = threshold
        self._targets: list[Tag] = []
        self._state: dict[int, bool] = {}
        self.connected = False

    @property
    def targets(self) -> list[Tag]:
        return list(self._targets)

    def observe(self, target: Tag) -> None:
        if any(t is target for t in self._targets):
            return
        self._targets.append(target)
        if not self.connected:
            self.connected = True
            self._viewport._attach(self)
        self._evaluate([target])

    def unobserve(self, target: Tag) -> None:
        self._targets = [t for t in self._targets if t is not target]
        self._state.pop(id(target), None)

    def disconnect(self) -> None:
        self._targets = []
        self._state.clear()
        if self.connected:
            self.connected = False
            self._viewport._detach(self)

    def _evaluate(self, targets: Iterable[Tag] | None = None) -> None:
        band_top, band_bottom = self._margin.band(self._viewport.scroll_y, self._viewport.height)
        entries: list[IntersectionEntry] = []
        for target in list(targets if targets is not None else self._targets):
            box = self._viewport.box_of(target)
            ratio = _intersection_ratio(box, band_top, band_bottom)
            if box is None:
                intersecting = False
            elif self.threshold > 0:
                intersecting = ratio >= self.threshold
            else:
                intersecting = box.bottom > band_top and box.top < band_bottom
            if self._state.get(id(target)) != intersecting:
                self._state[id(target)] = intersecting
                entries.append(IntersectionEntry(target, intersecting, ratio))
        if entries:
            self._callback(entries, self)


def _intersection_ratio(box: Box | None, band_top: float, band_bottom: float) -> float:
    if box is None:
        return 0.0
    overlap = min(box.bottom, band_bottom) - max(box.top, band_top)
    if overlap <= 0:
        return 0.0
    if box.height <= 0:
        return 1.0
    return min(1.0, overlap / box.height)


class Viewport:
    """Scroll position and element layout of the rendering surface.

    The surface reports layout with ``set_layout`` and scrolling with
    ``scroll_to``; connected observers are re-evaluated after each report.
    """

    def __init__(self, height: float = 800.0) -> None:
        self.height = height
        self.scroll_y = 0.0
        self._layout: dict[int, tuple[Tag, Box]] = {}
        self._observers: list[IntersectionObserver] = []

    @property
    def observers(self) -> list[IntersectionObserver]:
        return list(self._observers)

    def box_of(self, element: Tag) -> Box | None:
        entry = self._layout.get(id(element))
        return entry[1] if entry is not None else None

    def set_layout(self, boxes: Iterable[tuple[Tag, Box]]) -> None:
        """Record element positions and re-evaluate observers."""
        for element, box in boxes:
            self._layout[id(element)] = (element, box)
        self._refresh()

    def clear_layout(self) -> None:
        self._layout.clear()

    def scroll_to(self, y: float) -> None:
        self.scroll_y = max(0.0, y)
        self._refresh()

    def resize(self, height: float) -> None:
        self.height = height
        self._refresh()

    def _attach(self, observer: IntersectionObserver) -> None:
        self._observers.append(observer)

    def _detach(self, observer: IntersectionObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _refresh(self) -> None:
        for observer in list(self._observers):
            try:
                observer._evaluate()
            except Exception:
                logger.exception("Intersection callback failed")
