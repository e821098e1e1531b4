"""Post-mount enhancement of rendered documents.

Runs four independent enhancements over a mounted view:

1. syntax highlighting of ``code.language-*`` blocks
2. diagram rendering of ``[data-diagram]`` blocks
3. scene plugin loading for ``[data-scene]`` elements
4. one-shot lazy arming of ``video[data-lazy-video]`` elements

Each enhancement runs in its own failure boundary: an exception or a slow
external call in one never aborts or delays the others.
"""

import asyncio
import html
import inspect
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field

from bs4 import Tag

from lectern.core.diagrams import DiagramEngine
from lectern.core.dom import (
    IntersectionEntry,
    IntersectionObserver,
    View,
    Viewport,
    add_class,
    new_element,
    remove_class,
    set_inner_html,
)
from lectern.core.highlight import PygmentsHighlighter
from lectern.core.scenes import SceneRegistry

logger = logging.getLogger(__name__)

VIDEO_THRESHOLD = 0.1


@dataclass
class EnhancementReport:
    """What one enhancement pass did."""

    highlighted: int = 0
    diagrams_rendered: int = 0
    diagrams_failed: int = 0
    scenes_loaded: int = 0
    scenes_failed: int = 0
    videos_armed: int = 0
    errors: dict[str, str] = field(default_factory=dict)


class EnhancementOrchestrator:
    """Attaches highlighting, diagrams, scenes and lazy video to a view."""

    def __init__(
        self,
        *,
        viewport: Viewport,
        scenes: SceneRegistry | None = None,
        diagrams: DiagramEngine | None = None,
        highlighter: PygmentsHighlighter | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            viewport: Viewport used for lazy video arming
            scenes: Scene plugin registry (empty registry if None)
            diagrams: Diagram engine; diagram blocks stay as source if None
            highlighter: Syntax highlighter; highlighting is skipped if None
        """
        self._viewport = viewport
        self._scenes = scenes if scenes is not None else SceneRegistry()
        self._diagrams = diagrams
        self._highlighter = highlighter

    async def enhance(self, view: View) -> EnhancementReport:
        """Run all enhancements over a mounted view.

        Args:
            view: View holding the freshly mounted document

        Returns:
            EnhancementReport; never raises
        """
        report = EnhancementReport()
        await asyncio.gather(
            self._isolated("highlight", self._highlight(view, report), report),
            self._isolated("diagrams", self._render_diagrams(view, report), report),
            self._isolated("scenes", self._load_scenes(view, report), report),
            self._isolated("videos", self._arm_videos(view, report), report),
        )
        return report

    async def _isolated(self, name: str, task: Awaitable[None], report: EnhancementReport) -> None:
        try:
            await task
        except Exception as e:
            report.errors[name] = str(e)
            logger.warning(f"Enhancement {name} failed: {e}")

    async def _highlight(self, view: View, report: EnhancementReport) -> None:
        if self._highlighter is None:
            return
        for code in view.select('pre code[class*="language-"]'):
            if self._highlighter.highlight_element(code):
                report.highlighted += 1

    async def _render_diagrams(self, view: View, report: EnhancementReport) -> None:
        blocks = view.select("[data-diagram]")
        if not blocks or self._diagrams is None:
            return
        for block in blocks:
            kind = str(block.get("data-diagram") or "mermaid")
            source = block.get_text()
            try:
                svg = await self._diagrams.render(kind, source)
            except Exception as e:
                set_inner_html(block, f"<pre><code>{html.escape(source)}</code></pre>")
                remove_class(block, "diagram-rendered")
                report.diagrams_failed += 1
                logger.warning(f"Diagram block failed to render: {e}")
                continue
            set_inner_html(block, svg)
            add_class(block, "diagram-rendered")
            report.diagrams_rendered += 1

    async def _load_scenes(self, view: View, report: EnhancementReport) -> None:
        for container in view.select("[data-scene]"):
            name = str(container.get("data-scene") or "")
            try:
                await self._mount_scene(view, container, name)
            except Exception as e:
                set_inner_html(
                    container,
                    f'<div class="scene-error">Scene failed to load: {html.escape(name)}</div>',
                )
                report.scenes_failed += 1
                logger.warning(f"Scene load failed: {name}: {e}")
                continue
            report.scenes_loaded += 1

    async def _mount_scene(self, view: View, container: Tag, name: str) -> None:
        plugin = self._scenes.get(name)
        canvas = new_element("canvas", {"class": "scene-canvas"})
        container.append(canvas)
        add_class(container, "scene-container")

        cleanup = plugin(canvas, container)
        if inspect.isawaitable(cleanup):
            cleanup = await cleanup
        if cleanup is None:
            return
        if view.contains(container):
            view.watch_removal(container, cleanup)
        else:
            # Navigated away while the plugin was initializing
            logger.debug(f"Scene {name} finished after removal, cleaning up")
            cleanup()

    async def _arm_videos(self, view: View, report: EnhancementReport) -> None:
        for video in view.select("video[data-lazy-video]"):
            self._arm_video(view, video)
            report.videos_armed += 1

    def _arm_video(self, view: View, video: Tag) -> None:
        def on_intersect(entries: list[IntersectionEntry], observer: IntersectionObserver) -> None:
            if any(entry.is_intersecting for entry in entries):
                video["preload"] = "metadata"
                observer.disconnect()

        observer = IntersectionObserver(self._viewport, on_intersect, threshold=VIDEO_THRESHOLD)
        observer.observe(video)
        if observer.connected:
            view.watch_removal(video, observer.disconnect)
