"""aiohttp development server for Lectern.

Serves the document index as JSON, the Atom feed, raw document sources and
the single-page shell. Markdown is never rendered server-side.
"""

import logging
from pathlib import Path

from aiohttp import web

from lectern.api.documents import create_documents_routes
from lectern.app_keys import config_key, index_loader_key, site_dir_key
from lectern.config import Config
from lectern.live import LiveReloadManager
from lectern.live.reload import create_live_reload_routes
from lectern.loader import IndexLoader

logger = logging.getLogger(__name__)

live_reload_key = web.AppKey("live_reload_manager", LiveReloadManager)


async def spa_fallback(request: web.Request) -> web.StreamResponse:
    """Serve index.html for client-side hash routing.

    All non-API paths fall back to the site shell when it exists.
    """
    index_path = request.app[site_dir_key] / "index.html"
    if not index_path.is_file():
        return web.json_response(
            {"error": "Not found", "path": request.path},
            status=404,
        )
    return web.FileResponse(index_path)


def create_app(config: Config) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration

    Returns:
        Configured aiohttp application
    """
    app = web.Application()

    index_loader = IndexLoader(config)
    app[config_key] = config
    app[index_loader_key] = index_loader
    app[site_dir_key] = config.site.output_dir

    # API routes (registered first to take precedence over the SPA fallback)
    app.router.add_routes(create_documents_routes())

    if config.live_reload.enabled:
        manager = LiveReloadManager(
            config.site.posts_dir,
            watch_patterns=config.live_reload.watch_patterns,
            index_loader=index_loader,
        )
        app[live_reload_key] = manager
        app.router.add_routes(create_live_reload_routes(manager))
        app.on_startup.append(_start_live_reload)
        app.on_cleanup.append(_stop_live_reload)

    posts_dir: Path = config.site.posts_dir
    if posts_dir.is_dir():
        app.router.add_static("/posts", posts_dir)
    else:
        logger.warning(f"Posts directory not found: {posts_dir}")

    # SPA fallback, must be last to catch all non-API routes
    app.router.add_get("/{path:.*}", spa_fallback)

    return app


async def _start_live_reload(app: web.Application) -> None:
    await app[live_reload_key].start()


async def _stop_live_reload(app: web.Application) -> None:
    await app[live_reload_key].stop()


def run_server(config: Config) -> None:
    """Run the server.

    Args:
        config: Application configuration
    """
    app = create_app(config)
    logger.info(f"Serving {config.site.title} on http://{config.server.host}:{config.server.port}")
    web.run_app(app, host=config.server.host, port=config.server.port, print=None)
