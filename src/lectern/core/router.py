"""Hash-based router.

Routes are tried in registration order and the first match wins. A string
pattern must equal the path exactly; a ``RoutePattern`` matches segment by
segment and binds its captures as parameters:

    router.add_route("/", show_home)
    router.add_route(RoutePattern.parse("/post/<slug>"), show_post)
    router.add_route(RoutePattern.parse("/tag/<tag:path>"), show_tag)

A fragment that matches nothing leaves the current view and navigation state
untouched.
"""

import asyncio
import enum
import inspect
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from lectern.core.events import HASHCHANGE, Location

logger = logging.getLogger(__name__)

CAPTURE_RE = re.compile(r"^<([A-Za-z_][A-Za-z0-9_]*)(?::(path))?>$")

RouteHandler = Callable[[dict[str, str]], Awaitable[None] | None]


class RouterState(enum.Enum):
    IDLE = "idle"
    MATCHING = "matching"
    DISPATCHED = "dispatched"


@dataclass(frozen=True)
class Literal:
    """Segment that must equal ``value``."""

    value: str


@dataclass(frozen=True)
class Capture:
    """Segment bound to ``name``; ``rest`` consumes every remaining segment."""

    name: str
    rest: bool = False


Segment = Literal | Capture


@dataclass(frozen=True)
class RoutePattern:
    """Structured path pattern of literal and capture segments."""

    segments: tuple[Segment, ...]
    source: str = ""

    @classmethod
    def parse(cls, pattern: str) -> "RoutePattern":
        """Parse ``/post/<slug>`` style patterns.

        ``<name>`` captures one non-empty segment; ``<name:path>`` captures
        the non-empty remainder of the path and must come last.

        Raises:
            ValueError: If the pattern is malformed
        """
        if not pattern.startswith("/"):
            raise ValueError(f"Route pattern must start with '/': {pattern!r}")
        segments: list[Segment] = []
        names: set[str] = set()
        parts = pattern.strip("/").split("/") if pattern != "/" else []
        for i, part in enumerate(parts):
            if part.startswith("<"):
                match = CAPTURE_RE.match(part)
                if match is None:
                    raise ValueError(f"Invalid capture {part!r} in {pattern!r}")
                name, rest = match.group(1), match.group(2) is not None
                if name in names:
                    raise ValueError(f"Duplicate capture {name!r} in {pattern!r}")
                if rest and i != len(parts) - 1:
                    raise ValueError(f"Path capture must be last in {pattern!r}")
                names.add(name)
                segments.append(Capture(name, rest))
            else:
                segments.append(Literal(part))
        return cls(tuple(segments), pattern)

    def match(self, path: str) -> dict[str, str] | None:
        """Match a full path.

        Returns:
            Captured parameters, or None when the path does not match
        """
        parts = path.strip("/").split("/") if path.strip("/") else []
        params: dict[str, str] = {}
        for i, segment in enumerate(self.segments):
            if isinstance(segment, Capture) and segment.rest:
                remainder = "/".join(parts[i:])
                if not remainder:
                    return None
                params[segment.name] = remainder
                return params
            if i >= len(parts):
                return None
            if isinstance(segment, Literal):
                if parts[i] != segment.value:
                    return None
            else:
                if not parts[i]:
                    return None
                params[segment.name] = parts[i]
        if len(parts) != len(self.segments):
            return None
        return params

    def __str__(self) -> str:
        return self.source


@dataclass(frozen=True)
class Route:
    pattern: str | RoutePattern
    handler: RouteHandler

    def match(self, path: str) -> dict[str, str] | None:
        if isinstance(self.pattern, str):
            return {} if self.pattern == path else None
        return self.pattern.match(path)


@dataclass(frozen=True)
class NavigationState:
    """The active route match."""

    pattern: str
    params: dict[str, str] = field(default_factory=dict)
    location: str = "#/"


def extract_path(fragment: str) -> str:
    """Path portion of a location fragment.

    The leading ``#`` and any ``?query`` are dropped; empty means ``/``.
    """
    path = fragment[1:] if fragment.startswith("#") else fragment
    path = path.split("?", 1)[0]
    return path or "/"


class Router:
    """Dispatches location changes to registered handlers.

    Handlers may be plain functions or coroutine functions. Coroutines are
    scheduled on the running loop; ``settle()`` waits for them. Handler
    failures are logged and never propagate.
    """

    def __init__(self, location: Location) -> None:
        self.location = location
        self.state = RouterState.IDLE
        self.current: NavigationState | None = None
        self._routes: list[Route] = []
        self._pending: set[asyncio.Task[Any]] = set()
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    def add_route(self, pattern: str | RoutePattern, handler: RouteHandler) -> None:
        self._routes.append(Route(pattern, handler))

    def start(self) -> NavigationState | None:
        """Subscribe to location changes and handle the current location."""
        if self._unsubscribe is None:
            self._unsubscribe = self.location.bus.subscribe(HASHCHANGE, self.handle)
        return self.handle(self.location.hash)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def navigate(self, fragment: str) -> None:
        self.location.assign(fragment)

    def resolve(self, fragment: str) -> tuple[Route, dict[str, str]] | None:
        path = extract_path(fragment)
        for route in self._routes:
            params = route.match(path)
            if params is not None:
                return route, params
        return None

    def handle(self, fragment: str) -> NavigationState | None:
        """Match a fragment and dispatch its handler.

        Args:
            fragment: Location fragment (``#/post/x``)

        Returns:
            The new navigation state, or None if nothing matched
        """
        previous = self.state
        self.state = RouterState.MATCHING
        resolved = self.resolve(fragment)
        if resolved is None:
            logger.debug(f"No route for {fragment}")
            self.state = previous
            return None

        route, params = resolved
        navigation = NavigationState(str(route.pattern), params, fragment)
        self.current = navigation
        self.state = RouterState.DISPATCHED
        logger.debug(f"Dispatching {fragment} to {route.pattern}")
        self._dispatch(route, params)
        return navigation

    def _dispatch(self, route: Route, params: dict[str, str]) -> None:
        try:
            result = route.handler(params)
        except Exception:
            logger.exception(f"Route handler for {route.pattern} failed")
            return
        if inspect.isawaitable(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.error(f"Route handler for {route.pattern} is async but no event loop is running")
                if inspect.iscoroutine(result):
                    result.close()
                return
            task = asyncio.ensure_future(result, loop=loop)
            self._pending.add(task)
            task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Route handler failed: {exc}", exc_info=exc)

    async def settle(self) -> None:
        """Wait until every scheduled handler has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
