"""Scene plugin registry.

Scenes are interactive graphics modules embedded in documents with
``<div data-scene="name"></div>``. A plugin is a callable receiving an owned
canvas element and its container; it may return (or resolve to) a
zero-argument cleanup callback.

Third-party scenes register via entry points in pyproject.toml:

    [project.entry-points."lectern.scenes"]
    spinning-cube = "my_package.scenes:init_cube"
"""

import logging
from collections.abc import Awaitable, Callable
from importlib.metadata import entry_points

from bs4 import Tag

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "lectern.scenes"

Cleanup = Callable[[], None]
ScenePlugin = Callable[[Tag, Tag], Cleanup | None | Awaitable[Cleanup | None]]


class SceneNotFoundError(LookupError):
    """Raised when a document references an unregistered scene."""


class SceneRegistry:
    """Mapping of scene identifiers to plugin initializers."""

    def __init__(self) -> None:
        self._plugins: dict[str, ScenePlugin] = {}

    def register(self, name: str, plugin: ScenePlugin) -> None:
        if name in self._plugins:
            logger.warning(f"Scene {name!r} registered twice, replacing previous plugin")
        self._plugins[name] = plugin

    def get(self, name: str) -> ScenePlugin:
        """Look up a scene plugin.

        Raises:
            SceneNotFoundError: If no plugin is registered under ``name``
        """
        try:
            return self._plugins[name]
        except KeyError:
            raise SceneNotFoundError(f"Unknown scene: {name}") from None

    def names(self) -> list[str]:
        return sorted(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def load_entry_points(self) -> int:
        """Register scenes advertised under the ``lectern.scenes`` group.

        Broken entry points are logged and skipped.

        Returns:
            Number of scenes loaded
        """
        loaded = 0
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                plugin = ep.load()
            except Exception as e:
                logger.warning(f"Failed to load scene plugin {ep.name}: {e}")
                continue
            self.register(ep.name, plugin)
            loaded += 1
        logger.debug(f"Loaded {loaded} scene plugin(s) from entry points")
        return loaded
