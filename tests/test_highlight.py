"""Tests for syntax highlighting."""

from lectern.core.dom import View
from lectern.core.highlight import PygmentsHighlighter, language_of


def code_view(markup: str) -> View:
    view = View("content")
    view.mount(markup)
    return view


class TestPygmentsHighlighter:
    """Tests for PygmentsHighlighter."""

    def test__known_language__tokens_wrapped(self) -> None:
        """Known languages get token spans and the highlighted class."""
        view = code_view('<pre><code class="language-python">def f(): pass</code></pre>')
        (code,) = view.select("code")

        assert PygmentsHighlighter().highlight_element(code) is True

        assert "highlighted" in code["class"]
        assert code.select("span.k")
        assert code.get_text() == "def f(): pass"

    def test__unknown_language__left_alone(self) -> None:
        """Unknown languages are not an error."""
        view = code_view('<pre><code class="language-nosuchlang">x</code></pre>')
        (code,) = view.select("code")

        assert PygmentsHighlighter().highlight_element(code) is False
        assert view.html == '<pre><code class="language-nosuchlang">x</code></pre>'


class TestLanguageOf:
    """Tests for language_of()."""

    def test__classes__language_extracted(self) -> None:
        """The first language-* class names the language."""
        view = code_view('<code class="foo language-rust"></code><code class="language-"></code>')
        first, empty = view.select("code")

        assert language_of(first) == "rust"
        assert language_of(empty) is None
