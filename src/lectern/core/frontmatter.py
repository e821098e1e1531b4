"""Frontmatter splitting.

Separates a ``---`` delimited metadata block from the document body. The
metadata grammar is deliberately tiny: ``key: value`` lines, with bracketed
values parsed as comma-separated lists. Parsing is total: anything that does
not look like a frontmatter block is returned untouched as body.
"""

import re

FrontmatterValue = str | list[str]
Frontmatter = dict[str, FrontmatterValue]

FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---\r?\n(.*)\Z", re.DOTALL)
QUOTE_RE = re.compile(r"^[\"']|[\"']$")


def split_frontmatter(text: str) -> tuple[Frontmatter, str]:
    """Split raw document text into metadata and body.

    Args:
        text: Raw document text

    Returns:
        Tuple of (metadata, body). When the text does not start with a
        complete delimiter block, metadata is empty and body is the input.
    """
    match = FRONTMATTER_RE.match(text)
    if match is None:
        return {}, text
    return parse_metadata(match.group(1)), match.group(2)


def parse_metadata(block: str) -> Frontmatter:
    """Parse the lines of a frontmatter block.

    Lines without a colon are ignored. Values are never coerced: dates and
    numbers stay strings.

    Args:
        block: Text between the two delimiter lines

    Returns:
        Mapping of keys to string or list-of-string values
    """
    meta: Frontmatter = {}
    for line in block.splitlines():
        if not line.strip():
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        meta[key.strip()] = _parse_value(value.strip())
    return meta


def _parse_value(value: str) -> FrontmatterValue:
    if len(value) >= 2 and value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        if not inner.strip():
            return []
        return [QUOTE_RE.sub("", item.strip()) for item in inner.split(",")]
    return value


def meta_text(meta: Frontmatter, key: str) -> str:
    """Scalar value of ``key``; empty for missing keys and list values."""
    value = meta.get(key)
    return value if isinstance(value, str) else ""
