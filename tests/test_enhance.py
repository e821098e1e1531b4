"""Tests for post-mount enhancement."""

import asyncio

import pytest
from bs4 import Tag
from lectern.core.dom import Box, View, Viewport
from lectern.core.enhance import EnhancementOrchestrator
from lectern.core.highlight import PygmentsHighlighter
from lectern.core.markdown import render_markdown
from lectern.core.scenes import SceneRegistry

DOCUMENT = """
## Demo

```python
x = 1
```

```mermaid
graph TD; A-->B
```

<div data-scene="broken"></div>

![clip](demo.mp4)
"""


class FakeDiagramEngine:
    """Diagram engine returning canned SVG."""

    def __init__(self, fail_on: str | None = None, delay: float = 0.0) -> None:
        self.fail_on = fail_on
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def render(self, kind: str, source: str) -> str:
        self.calls.append((kind, source))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_on is not None and self.fail_on in source:
            raise RuntimeError("kroki down")
        return f'<svg class="{kind}"></svg>'


def mounted(markdown: str) -> View:
    view = View("content")
    view.mount(render_markdown(markdown).html)
    return view


def broken_scene(canvas: Tag, container: Tag) -> None:
    raise RuntimeError("scene init failed")


class TestEnhancementIsolation:
    """Tests for failure isolation between enhancements."""

    @pytest.mark.asyncio
    async def test__throwing_scene__highlight_and_diagrams_complete(self) -> None:
        """A failing scene plugin doesn't stop the other enhancements."""
        scenes = SceneRegistry()
        scenes.register("broken", broken_scene)
        orchestrator = EnhancementOrchestrator(
            viewport=Viewport(),
            scenes=scenes,
            diagrams=FakeDiagramEngine(),
            highlighter=PygmentsHighlighter(),
        )
        view = mounted(DOCUMENT)

        report = await orchestrator.enhance(view)

        assert report.scenes_failed == 1
        assert report.highlighted == 1
        assert report.diagrams_rendered == 1
        assert view.select("code.highlighted")
        assert view.select(".diagram-rendered svg.mermaid")
        assert "Scene failed to load: broken" in view.html

    @pytest.mark.asyncio
    async def test__one_bad_diagram__others_still_render(self) -> None:
        """Per-block diagram failures fall back to escaped source."""
        orchestrator = EnhancementOrchestrator(
            viewport=Viewport(), diagrams=FakeDiagramEngine(fail_on="bad")
        )
        view = mounted("```mermaid\nbad <x>\n```\n\n```mermaid\ngood\n```\n")

        report = await orchestrator.enhance(view)

        assert report.diagrams_failed == 1
        assert report.diagrams_rendered == 1
        assert "<pre><code>bad &lt;x&gt;\n</code></pre>" in view.html
        assert len(view.select(".diagram-rendered")) == 1

    @pytest.mark.asyncio
    async def test__enhancer_crash__recorded_not_raised(self) -> None:
        """An enhancement that raises outright is contained."""

        class ExplodingHighlighter(PygmentsHighlighter):
            def highlight_element(self, code: Tag) -> bool:
                raise RuntimeError("highlighter crashed")

        orchestrator = EnhancementOrchestrator(
            viewport=Viewport(),
            diagrams=FakeDiagramEngine(),
            highlighter=ExplodingHighlighter(),
        )
        view = mounted(DOCUMENT)

        report = await orchestrator.enhance(view)

        assert report.errors == {"highlight": "highlighter crashed"}
        assert report.diagrams_rendered == 1

    @pytest.mark.asyncio
    async def test__no_engine__diagram_source_stays(self) -> None:
        """Without a diagram engine the escaped source is left in place."""
        view = mounted("```mermaid\nA-->B\n```\n")

        report = await EnhancementOrchestrator(viewport=Viewport()).enhance(view)

        assert report.diagrams_rendered == 0
        assert "A--&gt;B" in view.html


class TestScenes:
    """Tests for scene plugin loading."""

    @pytest.mark.asyncio
    async def test__scene__gets_canvas_and_cleanup_on_removal(self) -> None:
        """Plugins receive an owned canvas; cleanup runs when removed."""
        events: list[str] = []

        async def init_scene(canvas: Tag, container: Tag):
            events.append(f"init:{canvas.name}:{container['data-scene']}")
            return lambda: events.append("cleanup")

        scenes = SceneRegistry()
        scenes.register("cube", init_scene)
        view = mounted('<div data-scene="cube"></div>\n')

        report = await EnhancementOrchestrator(viewport=Viewport(), scenes=scenes).enhance(view)
        assert report.scenes_loaded == 1
        assert view.select(".scene-container canvas.scene-canvas")

        view.mount("<p>next page</p>")

        assert events == ["init:canvas:cube", "cleanup"]

    @pytest.mark.asyncio
    async def test__removed_during_init__cleanup_runs_once(self) -> None:
        """A scene that resolves after navigation away is cleaned up at once."""
        events: list[str] = []
        gate = asyncio.Event()

        async def slow_scene(canvas: Tag, container: Tag):
            events.append("init")
            await gate.wait()
            return lambda: events.append("cleanup")

        scenes = SceneRegistry()
        scenes.register("slow", slow_scene)
        view = mounted('<div data-scene="slow"></div>\n')
        task = asyncio.create_task(EnhancementOrchestrator(viewport=Viewport(), scenes=scenes).enhance(view))
        while not events:
            await asyncio.sleep(0)

        view.mount("<p>next page</p>")
        gate.set()
        report = await task
        view.mount("<p>another page</p>")

        assert report.scenes_loaded == 1
        assert events == ["init", "cleanup"]

    @pytest.mark.asyncio
    async def test__unknown_scene__inline_error(self) -> None:
        """Unregistered scenes render an inline error."""
        view = mounted('<div data-scene="missing"></div>\n')

        report = await EnhancementOrchestrator(viewport=Viewport()).enhance(view)

        assert report.scenes_failed == 1
        assert '<div class="scene-error">Scene failed to load: missing</div>' in view.html


class TestLazyVideo:
    """Tests for lazy video arming."""

    @pytest.mark.asyncio
    async def test__video__promoted_once_intersecting(self) -> None:
        """Preload is raised on first intersection and the watch stops."""
        viewport = Viewport(height=500)
        view = mounted("![clip](demo.mp4)\n")
        (video,) = view.select("video")
        viewport.set_layout([(video, Box(1000, 200))])

        report = await EnhancementOrchestrator(viewport=viewport).enhance(view)
        assert report.videos_armed == 1
        assert video["preload"] == "none"
        assert len(viewport.observers) == 1

        viewport.scroll_to(700)

        assert video["preload"] == "metadata"
        assert viewport.observers == []

    @pytest.mark.asyncio
    async def test__video_removed_before_intersecting__observer_released(self) -> None:
        """Navigating away disconnects pending video observers."""
        viewport = Viewport(height=500)
        view = mounted("![clip](demo.mp4)\n")
        (video,) = view.select("video")
        viewport.set_layout([(video, Box(1000, 200))])
        await EnhancementOrchestrator(viewport=viewport).enhance(view)

        view.mount("<p>elsewhere</p>")

        assert viewport.observers == []
