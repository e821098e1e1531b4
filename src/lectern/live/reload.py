"""Live reload over WebSocket.

The posts directory is watched with ``watchfiles``. Each batch of matching
changes drops the cached index and tells connected browsers which post route
to re-enter.
"""

import asyncio
import contextlib
import json
import logging
import weakref
from collections.abc import Iterable
from pathlib import Path

from aiohttp import WSMsgType, web
from watchfiles import Change, awatch

from lectern.loader import IndexLoader

logger = logging.getLogger(__name__)

DEFAULT_WATCH_PATTERNS = ("*.md",)


class LiveReloadManager:
    """Source watcher plus the set of browsers listening for reloads."""

    def __init__(
        self,
        posts_dir: Path,
        watch_patterns: list[str] | None = None,
        *,
        index_loader: IndexLoader | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            posts_dir: Directory holding document sources
            watch_patterns: Globs, relative to ``posts_dir``, that trigger a
                reload (default ``*.md``)
            index_loader: Loader to invalidate when sources change
        """
        self.posts_dir = posts_dir
        self.watch_patterns = tuple(watch_patterns or DEFAULT_WATCH_PATTERNS)
        self._index_loader = index_loader
        self._clients: weakref.WeakSet[web.WebSocketResponse] = weakref.WeakSet()
        self._watcher: asyncio.Task[None] | None = None

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    async def start(self) -> None:
        if self._watcher is not None:
            return
        if not self.posts_dir.is_dir():
            logger.warning(f"Live reload disabled, no posts directory at {self.posts_dir}")
            return
        self._watcher = asyncio.create_task(self._watch())
        logger.debug(f"Watching {self.posts_dir} for {', '.join(self.watch_patterns)}")

    async def stop(self) -> None:
        """Cancel the watcher and disconnect every client."""
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
        for ws in list(self._clients):
            await ws.close()

    async def handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self._clients.add(ws)
        logger.debug(f"Live reload client connected, {len(self._clients)} listening")
        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    logger.debug(f"Live reload connection error: {ws.exception()}")
                    break
        finally:
            self._clients.discard(ws)
        return ws

    async def _watch(self) -> None:
        async for changes in awatch(self.posts_dir):
            await self.process_changes(changes)

    async def process_changes(self, changes: Iterable[tuple[Change, str]]) -> list[str]:
        """Handle one batch of file system changes.

        Any matching change invalidates the index. Deleted sources are not
        announced since there is no post left to show.

        Returns:
            Router paths announced to clients, in path order
        """
        announced: list[str] = []
        for change, raw_path in sorted(changes, key=lambda item: item[1]):
            path = Path(raw_path)
            if not self.watches(path):
                continue
            if self._index_loader is not None:
                self._index_loader.invalidate()
            if change == Change.deleted:
                logger.info(f"Source removed: {path.name}")
                continue
            route = f"/post/{path.stem}"
            logger.info(f"Source changed: {path.name}")
            await self.broadcast({"type": "reload", "path": route})
            announced.append(route)
        return announced

    def watches(self, path: Path) -> bool:
        """Whether ``path`` is a watched source under the posts directory."""
        try:
            relative = path.relative_to(self.posts_dir)
        except ValueError:
            return False
        return any(relative.match(pattern) for pattern in self.watch_patterns)

    async def broadcast(self, message: dict[str, str]) -> int:
        """Send a JSON message to every open client.

        Returns:
            Number of clients reached
        """
        payload = json.dumps(message)
        sent = 0
        for ws in list(self._clients):
            if ws.closed:
                continue
            try:
                await ws.send_str(payload)
            except ConnectionResetError:
                self._clients.discard(ws)
                continue
            sent += 1
        return sent


def create_live_reload_routes(manager: LiveReloadManager) -> list[web.RouteDef]:
    return [web.get("/ws/live-reload", manager.handle_websocket)]
