"""Documents API endpoints.

Serves the document index, tag aggregates and search results as JSON. The
server never renders markdown; clients fetch raw sources from ``/posts/``.
"""

import json
from hashlib import md5

from aiohttp import web

from lectern.app_keys import config_key, index_loader_key
from lectern.core.feed import build_feed


def create_documents_routes() -> list[web.RouteDef]:
    return [
        web.get("/api/documents", list_documents),
        web.get("/api/documents/{slug}", get_document),
        web.get("/api/tags", list_tags),
        web.get("/api/tags/{tag}", get_tag),
        web.get("/api/search", search_documents),
        web.get("/feed.xml", get_feed),
    ]


async def list_documents(request: web.Request) -> web.Response:
    index = request.app[index_loader_key].load()
    payload = [doc.to_dict() for doc in index]
    body = json.dumps(payload)

    etag = _compute_etag(body)
    if request.headers.get("If-None-Match") == etag:
        return web.Response(status=304)

    return web.json_response(
        text=body,
        headers={"ETag": etag, "Cache-Control": "private, max-age=60"},
    )


async def get_document(request: web.Request) -> web.Response:
    slug = request.match_info["slug"]
    document = request.app[index_loader_key].load().get(slug)
    if document is None:
        return web.json_response(
            {"error": "Post not found", "path": f"/post/{slug}"},
            status=404,
        )
    return web.json_response(document.to_dict())


async def list_tags(request: web.Request) -> web.Response:
    index = request.app[index_loader_key].load()
    return web.json_response([t.to_dict() for t in index.all_tags()])


async def get_tag(request: web.Request) -> web.Response:
    tag = request.match_info["tag"]
    documents = request.app[index_loader_key].load().by_tag(tag)
    return web.json_response(
        {"tag": tag, "count": len(documents), "documents": [d.to_dict() for d in documents]}
    )


async def search_documents(request: web.Request) -> web.Response:
    query = request.query.get("q", "")
    matches = request.app[index_loader_key].load().search(query)
    return web.json_response({"query": query, "results": [d.to_dict() for d in matches]})


async def get_feed(request: web.Request) -> web.Response:
    config = request.app[config_key]
    index = request.app[index_loader_key].load()
    feed = build_feed(
        index,
        site_url=config.site.url,
        title=config.site.title,
        limit=config.site.feed_limit,
    )
    return web.Response(text=feed, content_type="application/atom+xml")


def _compute_etag(content: str) -> str:
    content_hash = md5(content.encode("utf-8"), usedforsecurity=False).hexdigest()[:16]
    return f'"{content_hash}"'
