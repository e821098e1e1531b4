"""Parsing helpers for the custom markdown blocks.

Pure text functions used by the block renderer: heading anchor slugs,
conversation transcripts, progressive-disclosure steps and callout tags.
"""

import html
import re
from dataclasses import dataclass

TAG_RE = re.compile(r"<[^>]*>")
NON_WORD_RE = re.compile(r"[^\w]+")
ROLE_RE = re.compile(r"^(user|assistant|system):\s*(.*)$", re.IGNORECASE)
STEP_SPLIT_RE = re.compile(r"^###\s+", re.MULTILINE)
CALLOUT_RE = re.compile(r"^\s*<p>\[!(note|warning|tip|danger)\]\s*", re.IGNORECASE)

CALLOUT_LABELS = {
    "note": "Note",
    "warning": "Warning",
    "tip": "Tip",
    "danger": "Danger",
}

CALLOUT_ICONS = {
    "note": (
        '<svg viewBox="0 0 16 16" aria-hidden="true" focusable="false">'
        '<circle cx="8" cy="8" r="6.25"></circle>'
        '<line x1="8" y1="7" x2="8" y2="11"></line>'
        '<circle class="callout-icon-fill" cx="8" cy="4.8" r="0.9"></circle>'
        "</svg>"
    ),
    "warning": (
        '<svg viewBox="0 0 16 16" aria-hidden="true" focusable="false">'
        '<path d="M8 2.5L14 13H2L8 2.5Z"></path>'
        '<line x1="8" y1="6" x2="8" y2="9.6"></line>'
        '<circle class="callout-icon-fill" cx="8" cy="11.5" r="0.85"></circle>'
        "</svg>"
    ),
    "tip": (
        '<svg viewBox="0 0 16 16" aria-hidden="true" focusable="false">'
        '<path d="M8 2.7A4.05 4.05 0 0 0 5.5 9.9c.4.33.68.73.8 1.2h3.4c.12-.47.4-.87.8-1.2'
        'A4.05 4.05 0 0 0 8 2.7Z"></path>'
        '<line x1="6.1" y1="12.35" x2="9.9" y2="12.35"></line>'
        '<line x1="6.6" y1="13.8" x2="9.4" y2="13.8"></line>'
        "</svg>"
    ),
    "danger": (
        '<svg viewBox="0 0 16 16" aria-hidden="true" focusable="false">'
        '<path d="M5 1.8h6l3.2 3.2v6L11 14.2H5L1.8 11V5L5 1.8Z"></path>'
        '<line x1="8" y1="4.7" x2="8" y2="9.2"></line>'
        '<circle class="callout-icon-fill" cx="8" cy="11.4" r="0.85"></circle>'
        "</svg>"
    ),
}


@dataclass(frozen=True)
class Message:
    """One message of a conversation transcript."""

    role: str
    text: str


@dataclass(frozen=True)
class Step:
    """One step of a progressive-disclosure block."""

    number: int
    title: str
    body: str


def slugify_heading(text: str) -> str:
    """Derive an anchor identifier from rendered heading text.

    Markup is stripped and entities unescaped before slugging, so inline
    formatting never changes the identifier.

    Args:
        text: Heading text, possibly containing inline HTML

    Returns:
        Lowercase hyphenated identifier (may be empty)
    """
    plain = html.unescape(TAG_RE.sub("", text))
    return NON_WORD_RE.sub("-", plain.lower()).strip("-")


class SlugRegistry:
    """Hands out unique heading identifiers within one document.

    The first occurrence keeps the bare slug; later collisions get ``-1``,
    ``-2``, ... in source order.
    """

    def __init__(self) -> None:
        self._seen: dict[str, int] = {}

    def unique(self, base: str) -> str:
        slug = base or "section"
        count = self._seen.get(slug)
        if count is None:
            self._seen[slug] = 0
            return slug
        while True:
            count += 1
            candidate = f"{slug}-{count}"
            if candidate not in self._seen:
                self._seen[slug] = count
                self._seen[candidate] = 0
                return candidate


def parse_conversation(text: str) -> list[Message]:
    """Split a conversation transcript into messages.

    A line starting with ``user:``, ``assistant:`` or ``system:`` (any case)
    opens a new message. Every following line, blank lines included, belongs
    to that message. Lines before the first role line are dropped.

    Args:
        text: Raw content of the fenced block

    Returns:
        Messages in source order
    """
    messages: list[Message] = []
    role: str | None = None
    lines: list[str] = []

    for line in text.split("\n"):
        match = ROLE_RE.match(line)
        if match:
            if role is not None:
                messages.append(Message(role=role, text="\n".join(lines)))
            role = match.group(1).lower()
            lines = [match.group(2)]
        elif role is not None:
            lines.append(line)

    if role is not None:
        messages.append(Message(role=role, text="\n".join(lines)))
    return messages


def split_steps(text: str) -> list[Step]:
    """Split a steps block on ``### `` lines.

    Each segment's first line is the title and the rest its markdown body.
    Blank segments (such as whitespace before the first marker) are skipped.

    Args:
        text: Raw content of the fenced block

    Returns:
        Steps numbered from 1 in source order
    """
    segments = [s for s in STEP_SPLIT_RE.split(text) if s.strip()]
    steps: list[Step] = []
    for number, segment in enumerate(segments, start=1):
        title, _, body = segment.strip().partition("\n")
        steps.append(Step(number=number, title=title.strip(), body=body.strip()))
    return steps


def match_callout(quote_html: str) -> tuple[str, str] | None:
    """Detect a callout tag at the start of a rendered blockquote.

    Args:
        quote_html: Rendered inner HTML of the blockquote

    Returns:
        Tuple of (callout type, content with the tag removed), or None for a
        plain blockquote
    """
    match = CALLOUT_RE.match(quote_html)
    if match is None:
        return None
    kind = match.group(1).lower()
    return kind, "<p>" + quote_html[match.end() :]
