"""Application context.

``SiteContext`` owns every piece of runtime state: the document index, the
router and its navigation state, the content/sidebar/search views, the
viewport and the components drawing into them. Route handlers read and write
only through the context.
"""

import asyncio
import logging
from urllib.parse import unquote

from lectern.config import Config
from lectern.core.cache import FileCache
from lectern.core.diagrams import DiagramEngine, KrokiDiagramEngine
from lectern.core.dom import View, Viewport
from lectern.core.enhance import EnhancementOrchestrator, EnhancementReport
from lectern.core.events import EventBus, Location
from lectern.core.highlight import PygmentsHighlighter
from lectern.core.index import DocumentIndex
from lectern.core.preferences import PreferenceStore
from lectern.core.renderer import DocumentRenderer
from lectern.core.router import NavigationState, RoutePattern, Router
from lectern.core.scenes import SceneRegistry
from lectern.core.search import SearchOverlay
from lectern.core.steps import StepsBlock, init_steps
from lectern.core.toc import TocSynchronizer
from lectern.core.views import (
    LOADING_HTML,
    render_article,
    render_error,
    render_home,
    render_tag_page,
    render_tags_page,
)
from lectern.loader import load_site_index

logger = logging.getLogger(__name__)


class SiteContext:
    """The running site.

    Routes, in precedence order: ``/``, ``/post/<slug>``, ``/tag/<tag>``
    and ``/tags``.
    """

    def __init__(
        self,
        index: DocumentIndex,
        renderer: DocumentRenderer,
        *,
        viewport: Viewport | None = None,
        scenes: SceneRegistry | None = None,
        diagrams: DiagramEngine | None = None,
        highlighter: PygmentsHighlighter | None = None,
        preferences: PreferenceStore | None = None,
        initial_hash: str = "#/",
    ) -> None:
        self.index = index
        self.renderer = renderer
        self.bus = EventBus()
        self.location = Location(self.bus, initial_hash)
        self.router = Router(self.location)
        self.viewport = viewport or Viewport()

        self.content = View("content")
        self.sidebar = View("toc-sidebar")
        self.search_results = View("search-results")

        self.toc = TocSynchronizer(self.sidebar, self.viewport)
        self.search = SearchOverlay(self.search_results, index)
        self.preferences = preferences or PreferenceStore(None)
        self.enhancer = EnhancementOrchestrator(
            viewport=self.viewport,
            scenes=scenes,
            diagrams=diagrams,
            highlighter=highlighter,
        )
        self.steps: list[StepsBlock] = []
        self.last_report: EnhancementReport | None = None

        self.router.add_route("/", self.show_home)
        self.router.add_route(RoutePattern.parse("/post/<slug>"), self.show_post)
        self.router.add_route(RoutePattern.parse("/tag/<tag:path>"), self.show_tag)
        self.router.add_route("/tags", self.show_tags)

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        scenes: SceneRegistry | None = None,
        initial_hash: str = "#/",
    ) -> "SiteContext":
        """Assemble a context from configuration.

        Loads the prebuilt index when present, otherwise indexes the posts
        directory directly.
        """
        cache = FileCache(config.cache.dir) if config.cache.enabled else None
        diagrams: DiagramEngine | None = None
        if config.diagrams.kroki_url:
            diagrams = KrokiDiagramEngine(
                config.diagrams.kroki_url,
                cache=cache,
                timeout=config.diagrams.timeout,
            )
        if scenes is None:
            scenes = SceneRegistry()
            scenes.load_entry_points()

        return cls(
            load_site_index(config),
            DocumentRenderer(config.site.posts_dir, cache),
            scenes=scenes,
            diagrams=diagrams,
            highlighter=PygmentsHighlighter(),
            preferences=PreferenceStore(config.preferences.path),
            initial_hash=initial_hash,
        )

    @property
    def navigation(self) -> NavigationState | None:
        """The current route match."""
        return self.router.current

    def start(self) -> NavigationState | None:
        return self.router.start()

    async def visit(self, fragment: str) -> NavigationState | None:
        """Navigate to ``fragment`` and wait for its handler to finish.

        Re-visiting the current fragment re-runs its handler. The context must
        have been started.
        """
        if not self.location.assign(fragment):
            self.router.handle(self.location.hash)
        await self.router.settle()
        return self.router.current

    def show_home(self, params: dict[str, str]) -> None:
        self.toc.clear()
        self.search.close()
        self.content.mount(render_home(self.index.documents))

    async def show_post(self, params: dict[str, str]) -> None:
        self.search.close()
        slug = unquote(params["slug"])
        document = self.index.get(slug)
        if document is None:
            self.content.mount(render_error("Post not found"))
            self.toc.clear()
            return

        self.content.mount(LOADING_HTML)
        try:
            result = await asyncio.to_thread(self.renderer.render, document.file, document.slug)
        except Exception as e:
            logger.error(f"Failed to load post {slug}: {e}")
            self.content.mount(render_error("Failed to load post", str(e)))
            self.toc.clear()
            return

        self.content.mount(render_article(document, result.meta, result.html))
        self.viewport.clear_layout()
        self.last_report = await self.enhancer.enhance(self.content)
        self.toc.render(result.headings, self.content.root)
        self.steps = init_steps(self.content.root)
        self.viewport.scroll_to(0)

    def show_tag(self, params: dict[str, str]) -> None:
        self.toc.clear()
        self.search.close()
        tag = unquote(params["tag"])
        self.content.mount(render_tag_page(tag, self.index.by_tag(tag)))

    def show_tags(self, params: dict[str, str]) -> None:
        self.toc.clear()
        self.search.close()
        self.content.mount(render_tags_page(self.index.all_tags()))

