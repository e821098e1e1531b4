"""Tests for the development server."""

from dataclasses import replace
from typing import Any

import pytest
from aiohttp import web
from lectern.app_keys import config_key, index_loader_key, site_dir_key
from lectern.config import Config
from lectern.server import create_app, live_reload_key


@pytest.fixture
def app(test_config: Config) -> web.Application:
    return create_app(test_config)


class TestCreateApp:
    """Tests for create_app()."""

    def test__valid_config__returns_configured_app(self, test_config: Config) -> None:
        """Create app with shared state keys."""
        app = create_app(test_config)

        assert app[config_key] is test_config
        assert app[site_dir_key] == test_config.site.output_dir
        assert index_loader_key in app
        assert live_reload_key not in app

    def test__live_reload_enabled__websocket_route(self, test_config: Config) -> None:
        """Live reload adds its manager and WebSocket endpoint."""
        config = replace(test_config, live_reload=replace(test_config.live_reload, enabled=True))

        app = create_app(config)

        assert live_reload_key in app
        paths = [r.resource.canonical for r in app.router.routes() if r.resource is not None]
        assert "/ws/live-reload" in paths


class TestDocumentsApi:
    """Tests for the /api routes."""

    @pytest.mark.asyncio
    async def test__documents__index_with_etag(self, aiohttp_client: Any, app: web.Application) -> None:
        """The index is served as JSON and revalidates with its ETag."""
        client = await aiohttp_client(app)

        response = await client.get("/api/documents")
        assert response.status == 200
        data = await response.json()
        assert {d["slug"] for d in data} == {"2024-01-02-hello", "2024-03-05-notes"}
        notes = next(d for d in data if d["slug"] == "2024-03-05-notes")
        assert notes["order"] == 2
        assert notes["tags"] == ["notes", "intro"]

        etag = response.headers["ETag"]
        cached = await client.get("/api/documents", headers={"If-None-Match": etag})
        assert cached.status == 304

    @pytest.mark.asyncio
    async def test__document__found_and_missing(self, aiohttp_client: Any, app: web.Application) -> None:
        """Single documents return their summary or a JSON 404."""
        client = await aiohttp_client(app)

        found = await client.get("/api/documents/2024-01-02-hello")
        missing = await client.get("/api/documents/nope")

        assert (await found.json())["title"] == "Hello World"
        assert missing.status == 404
        assert await missing.json() == {"error": "Post not found", "path": "/post/nope"}

    @pytest.mark.asyncio
    async def test__tags__counts_and_filter(self, aiohttp_client: Any, app: web.Application) -> None:
        """Tag aggregates and per-tag listings."""
        client = await aiohttp_client(app)

        tags = await (await client.get("/api/tags")).json()
        tag = await (await client.get("/api/tags/getting%20started")).json()

        assert tags[0] == {"tag": "intro", "count": 2}
        assert tag["tag"] == "getting started"
        assert tag["count"] == 1
        assert tag["documents"][0]["slug"] == "2024-01-02-hello"

    @pytest.mark.asyncio
    async def test__search__query_results(self, aiohttp_client: Any, app: web.Application) -> None:
        """Search returns matches; short queries return none."""
        client = await aiohttp_client(app)

        hit = await (await client.get("/api/search", params={"q": "diagrams"})).json()
        short = await (await client.get("/api/search", params={"q": "d"})).json()

        assert [r["slug"] for r in hit["results"]] == ["2024-03-05-notes"]
        assert short == {"query": "d", "results": []}

    @pytest.mark.asyncio
    async def test__feed__atom(self, aiohttp_client: Any, app: web.Application) -> None:
        """The feed is served as Atom."""
        client = await aiohttp_client(app)

        response = await client.get("/feed.xml")

        assert response.status == 200
        assert response.headers["Content-Type"].startswith("application/atom+xml")
        body = await response.text()
        assert "<title>Test Site</title>" in body
        assert "https://example.com/research/#/post/2024-01-02-hello" in body


class TestStaticAndFallback:
    """Tests for raw sources and the SPA fallback."""

    @pytest.mark.asyncio
    async def test__posts__raw_markdown(self, aiohttp_client: Any, app: web.Application) -> None:
        """Sources are served untouched for client-side rendering."""
        client = await aiohttp_client(app)

        response = await client.get("/posts/2024-01-02-hello.md")

        assert response.status == 200
        assert "title: Hello World" in await response.text()

    @pytest.mark.asyncio
    async def test__no_shell__json_404(self, aiohttp_client: Any, app: web.Application) -> None:
        """Without index.html the fallback reports not found."""
        client = await aiohttp_client(app)

        response = await client.get("/anything")

        assert response.status == 404
        assert await response.json() == {"error": "Not found", "path": "/anything"}

    @pytest.mark.asyncio
    async def test__shell__served_for_any_path(self, aiohttp_client: Any, test_config: Config) -> None:
        """Any non-API path serves the single-page shell."""
        (test_config.site.output_dir / "index.html").write_text("<html><body>shell</body></html>")
        client = await aiohttp_client(create_app(test_config))

        response = await client.get("/some/deep/path")

        assert response.status == 200
        assert "text/html" in response.headers["Content-Type"]
        assert "shell" in await response.text()
