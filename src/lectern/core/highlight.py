"""Syntax highlighting for rendered code blocks."""

import logging

from bs4 import Tag
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from lectern.core.dom import add_class, set_inner_html

logger = logging.getLogger(__name__)

LANGUAGE_PREFIX = "language-"


class PygmentsHighlighter:
    """Highlights ``<code class="language-*">`` elements in place."""

    def __init__(self) -> None:
        self._formatter = HtmlFormatter(nowrap=True)

    def highlight_element(self, code: Tag) -> bool:
        """Highlight one code element.

        Args:
            code: ``<code>`` element carrying a ``language-*`` class

        Returns:
            True if the element was highlighted, False for unknown languages
        """
        language = language_of(code)
        if language is None:
            return False
        try:
            lexer = get_lexer_by_name(language)
        except ClassNotFound:
            logger.debug(f"No lexer for language: {language}")
            return False

        highlighted = highlight(code.get_text(), lexer, self._formatter)
        set_inner_html(code, highlighted.rstrip("\n"))
        add_class(code, "highlighted")
        return True


def language_of(code: Tag) -> str | None:
    """Return the language named by a ``language-*`` class, if any."""
    for name in code.get("class") or []:
        if name.startswith(LANGUAGE_PREFIX) and len(name) > len(LANGUAGE_PREFIX):
            return name[len(LANGUAGE_PREFIX) :]
    return None
