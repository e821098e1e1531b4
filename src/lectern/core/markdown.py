"""Extended markdown rendering.

Extends mistune's HTML renderer with the site's custom constructs:

- heading anchors with deterministic identifiers
- media sizing directives (``![alt|wide](clip.mp4)``) and video embeds
- fenced diagram, conversation (``chat``) and ``steps`` blocks
- ``[!note]``-style callout blockquotes

Rendering is pure text-to-text and never raises: a failing custom block
degrades to a plain code block, a failing document to an escaped ``<pre>``.
"""

import html
import logging
import re
from dataclasses import dataclass

import mistune

from lectern.core.blocks import (
    CALLOUT_ICONS,
    CALLOUT_LABELS,
    SlugRegistry,
    match_callout,
    parse_conversation,
    slugify_heading,
    split_steps,
)

logger = logging.getLogger(__name__)

PLUGINS = ["table", "strikethrough", "url"]

# Fence language -> Kroki diagram endpoint
DIAGRAM_LANGUAGES = {
    "mermaid": "mermaid",
    "plantuml": "plantuml",
    "graphviz": "graphviz",
    "dot": "graphviz",
}
CONVERSATION_LANGUAGE = "chat"
STEPS_LANGUAGE = "steps"

VIDEO_EXTENSIONS = frozenset({"mp4", "webm", "ogg"})
SIZE_DIRECTIVE_RE = re.compile(r"\s*\|(wide|narrow)\s*$")
MEDIA_ONLY_RE = re.compile(r"^\s*<figure[\s>].*</figure>\s*$", re.DOTALL)

TOC_LEVELS = (2, 3, 4)


@dataclass(frozen=True)
class Heading:
    """Heading collected while rendering."""

    id: str
    text: str
    level: int

    def to_dict(self) -> dict[str, str | int]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "text": self.text, "level": self.level}


@dataclass
class MarkdownResult:
    """Rendered HTML plus the outline of headings at TOC levels."""

    html: str
    headings: list[Heading]


class ContentRenderer(mistune.HTMLRenderer):
    """mistune renderer with the site's block rules.

    One instance renders one document: heading identifiers are made unique
    across the whole document, nested conversation and step bodies included.
    """

    def __init__(self) -> None:
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._slugs = SlugRegistry()
        self._markdown = mistune.create_markdown(renderer=self, plugins=PLUGINS)

    def render_markdown(self, text: str) -> str:
        """Render markdown through this renderer (reentrant)."""
        return str(self._markdown(text))

    def heading(self, text: str, level: int, **attrs: object) -> str:
        anchor = self._slugs.unique(slugify_heading(text))
        if level in TOC_LEVELS:
            plain = html.unescape(re.sub(r"<[^>]*>", "", text)).strip()
            self.headings.append(Heading(id=anchor, text=plain, level=level))
        return (
            f'<h{level} id="{anchor}">'
            f'<a class="heading-anchor" href="#{anchor}">#</a>{text}</h{level}>\n'
        )

    def image(self, text: str, url: str, title: str | None = None) -> str:
        alt = re.sub(r"<[^>]*>", "", text)
        size_class = ""
        directive = SIZE_DIRECTIVE_RE.search(alt)
        if directive:
            size_class = f' class="media-{directive.group(1)}"'
            alt = alt[: directive.start()].strip()

        src = html.escape(html.unescape(self.safe_url(url)), quote=True)
        caption = f"<figcaption>{html.escape(html.unescape(title))}</figcaption>" if title else ""

        extension = re.split(r"[?#]", url, maxsplit=1)[0].rsplit(".", 1)[-1].lower()
        if extension in VIDEO_EXTENSIONS:
            return (
                f'<figure{size_class}><video controls preload="none" data-lazy-video="{src}">'
                f'<source src="{src}" type="video/{extension}"></video>{caption}</figure>'
            )

        alt_attr = html.escape(html.unescape(alt), quote=True)
        return (
            f'<figure{size_class}><img src="{src}" alt="{alt_attr}" '
            f'loading="lazy" data-lightbox>{caption}</figure>'
        )

    def paragraph(self, text: str) -> str:
        # A lone media element must not end up inside <p>
        if MEDIA_ONLY_RE.match(text) and text.count("<figure") == 1:
            return text.strip() + "\n"
        return super().paragraph(text)

    def block_code(self, code: str, info: str | None = None) -> str:
        words = (info or "").split()
        language = words[0] if words else ""
        try:
            if language in DIAGRAM_LANGUAGES:
                return self._render_diagram(code, language)
            if language == CONVERSATION_LANGUAGE:
                return self._render_conversation(code)
            if language == STEPS_LANGUAGE:
                return self._render_steps(code)
        except Exception:
            logger.exception(f"Failed to render {language} block, falling back to code")
        return _code_block(code, language)

    def block_quote(self, text: str) -> str:
        callout = match_callout(text)
        if callout is None:
            return super().block_quote(text)
        kind, content = callout
        return (
            f'<div class="callout callout-{kind}">'
            f'<div class="callout-title"><span class="callout-icon">{CALLOUT_ICONS[kind]}</span> '
            f"{CALLOUT_LABELS[kind]}</div>"
            f'<div class="callout-content">{content}</div></div>\n'
        )

    def _render_diagram(self, code: str, language: str) -> str:
        return (
            f'<div class="diagram-block" data-diagram="{DIAGRAM_LANGUAGES[language]}">'
            f"{html.escape(code)}</div>\n"
        )

    def _render_conversation(self, code: str) -> str:
        parts: list[str] = []
        for message in parse_conversation(code.rstrip("\n")):
            body = self.render_markdown(message.text.strip())
            parts.append(
                f'<div class="chat-message chat-{message.role}">'
                f'<div class="chat-role">{message.role.capitalize()}</div>'
                f'<div class="chat-text">{body}</div></div>'
            )
        return f'<div class="chat-block">{"".join(parts)}</div>\n'

    def _render_steps(self, code: str) -> str:
        steps = split_steps(code)
        parts: list[str] = []
        for step in steps:
            body = self.render_markdown(step.body)
            parts.append(
                f'<div class="step" data-step="{step.number}">'
                '<div class="step-header">'
                f'<span class="step-number">{step.number}</span>'
                f'<span class="step-title">{html.escape(step.title)}</span>'
                '<span class="step-toggle">+</span></div>'
                f'<div class="step-body">{body}</div></div>'
            )
        return (
            f'<div class="steps-block" data-total="{len(steps)}">'
            '<div class="steps-progress"><div class="steps-progress-bar"></div></div>'
            f'{"".join(parts)}</div>\n'
        )


def render_markdown(text: str) -> MarkdownResult:
    """Render an extended-markdown body to HTML.

    Args:
        text: Frontmatter-stripped document body

    Returns:
        MarkdownResult with HTML and the headings at levels 2-4
    """
    renderer = ContentRenderer()
    try:
        rendered = renderer.render_markdown(text)
    except Exception:
        logger.exception("Markdown rendering failed, falling back to preformatted text")
        return MarkdownResult(html=f"<pre>{html.escape(text)}</pre>\n", headings=[])
    return MarkdownResult(html=rendered, headings=list(renderer.headings))


def _code_block(code: str, language: str) -> str:
    lang_class = f' class="language-{html.escape(language, quote=True)}"' if language else ""
    return f"<pre><code{lang_class}>{html.escape(code)}</code></pre>\n"
