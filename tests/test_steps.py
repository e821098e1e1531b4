"""Tests for steps block state."""

import pytest
from lectern.core.dom import View
from lectern.core.markdown import render_markdown
from lectern.core.steps import init_steps

STEPS = "```steps\n### Install\nRun it.\n### Configure\nEdit it.\n### Ship\nDone.\n```\n"


@pytest.fixture
def view() -> View:
    view = View("content")
    view.mount(render_markdown(STEPS).html)
    return view


class TestStepsBlock:
    """Tests for StepsBlock."""

    def test__init__collapsed_with_empty_progress(self, view: View) -> None:
        """Steps start closed."""
        (block,) = init_steps(view.root)

        assert block.total == 3
        assert block.open_count == 0
        assert view.root.select_one(".steps-progress-bar")["style"] == "width: 0%"

    def test__toggle__updates_progress_and_marker(self, view: View) -> None:
        """Opening a step widens the bar and flips its toggle."""
        (block,) = init_steps(view.root)

        assert block.toggle(2) is True
        assert block.toggle(3) is True
        assert block.toggle(3) is False

        assert block.progress == pytest.approx(1 / 3)
        step = view.root.select_one('.step[data-step="2"]')
        assert "open" in step["class"]
        assert step.select_one(".step-toggle").get_text() == "−"
        assert view.root.select_one(".steps-progress-bar")["style"] == "width: 33.3333%"

    def test__out_of_range__raises(self, view: View) -> None:
        """Step numbers are 1-based and bounded."""
        (block,) = init_steps(view.root)

        with pytest.raises(IndexError):
            block.toggle(0)
        with pytest.raises(IndexError):
            block.toggle(4)

    def test__no_blocks__empty(self) -> None:
        """Documents without steps produce no state."""
        view = View("content")
        view.mount("<p>x</p>")

        assert init_steps(view.root) == []
