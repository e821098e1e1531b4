"""HTML for the site's content views."""

import html
from collections.abc import Iterable, Sequence
from urllib.parse import quote

from lectern.core.frontmatter import Frontmatter, meta_text
from lectern.core.index import Document, TagCount

HOME_LINK = '<p><a href="#/">Go home</a></p>'
LOADING_HTML = '<div class="loading">Loading...</div>'


def tag_href(tag: str) -> str:
    return f"#/tag/{quote(tag, safe='')}"


def render_tag_list(tags: Iterable[str]) -> str:
    return "".join(
        f'<a href="{tag_href(tag)}" class="tag-inline">{html.escape(tag)}</a>' for tag in tags
    )


def render_tag_cloud(tags: Sequence[TagCount]) -> str:
    return "".join(
        f'<a href="{tag_href(t.tag)}" class="tag-chip">{html.escape(t.tag)}'
        f'<span class="tag-count">{t.count}</span></a>'
        for t in tags
    )


def render_post_card(document: Document) -> str:
    tags = render_tag_list(document.tags)
    parts = [
        f'<div class="post-card" data-href="#/post/{quote(document.slug)}">',
        f'<div class="post-card-date">{html.escape(document.date)}</div>',
        f'<h2 class="post-card-title">{html.escape(document.title)}</h2>',
    ]
    if document.description:
        parts.append(f'<p class="post-card-desc">{html.escape(document.description)}</p>')
    if tags:
        parts.append(f'<div class="post-card-tags">{tags}</div>')
    parts.append("</div>")
    return "".join(parts)


def render_post_list(documents: Iterable[Document]) -> str:
    return f'<div class="post-list">{"".join(render_post_card(d) for d in documents)}</div>'


def render_empty(heading: str) -> str:
    return f'<div class="empty-state"><h2>{html.escape(heading)}</h2>{HOME_LINK}</div>'


def render_error(heading: str, detail: str | None = None) -> str:
    body = f"<p>{html.escape(detail)}</p>" if detail else ""
    return f'<div class="error-state"><h2>{html.escape(heading)}</h2>{body}{HOME_LINK}</div>'


def render_home(documents: Sequence[Document]) -> str:
    if not documents:
        return '<div class="empty-state"><p>No posts yet.</p></div>'
    return render_post_list(documents)


def render_tag_page(tag: str, documents: Sequence[Document]) -> str:
    if not documents:
        return render_empty(f'No posts tagged "{tag}"')
    label = "post" if len(documents) == 1 else "posts"
    return (
        '<div class="tag-header">'
        f'<h1>Posts tagged <span class="tag-highlight">{html.escape(tag)}</span></h1>'
        f'<span class="tag-count-label">{len(documents)} {label}</span>'
        f"</div>{render_post_list(documents)}"
    )


def render_tags_page(tags: Sequence[TagCount]) -> str:
    if not tags:
        return render_empty("No tags yet")
    return (
        '<div class="tags-page"><h1>All Tags</h1>'
        f'<div class="tag-cloud">{render_tag_cloud(tags)}</div></div>'
    )


def render_article(document: Document, meta: Frontmatter, body_html: str) -> str:
    """Article shell around a rendered body.

    Frontmatter from the source wins over the index summary.
    """
    meta_tags = meta.get("tags")
    tags = render_tag_list(meta_tags if isinstance(meta_tags, list) else document.tags)
    date = meta_text(meta, "date") or document.date
    title = meta_text(meta, "title") or document.title
    description = meta_text(meta, "description")

    header = [
        '<header class="article-header"><div class="article-meta">',
        f"<time>{html.escape(date)}</time>",
    ]
    if tags:
        header.append(f'<div class="article-tags">{tags}</div>')
    header.append(f'</div><h1 class="article-title">{html.escape(title)}</h1>')
    if description:
        header.append(f'<p class="article-description">{html.escape(description)}</p>')
    header.append("</header>")

    return (
        f'<article class="article">{"".join(header)}'
        f'<div class="article-body">{body_html}</div></article>'
        '<footer class="article-footer"><a href="#/" class="back-link">&larr; All posts</a></footer>'
    )
