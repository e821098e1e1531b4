"""Progressive disclosure for rendered steps blocks."""

import logging

from bs4 import Tag

from lectern.core.dom import add_class, has_class, remove_class

logger = logging.getLogger(__name__)

OPEN_CLASS = "open"


class StepsBlock:
    """Open/closed state of one ``.steps-block``.

    Steps start collapsed; the progress bar width tracks the share of open
    steps.
    """

    def __init__(self, block: Tag) -> None:
        self.block = block
        self.steps = block.select(".step")
        self.total = len(self.steps)
        for step in self.steps:
            self._set_open(step, False)
        self._update_progress()

    @property
    def open_count(self) -> int:
        return sum(1 for step in self.steps if has_class(step, OPEN_CLASS))

    @property
    def progress(self) -> float:
        """Fraction of steps currently open."""
        return self.open_count / self.total if self.total else 0.0

    def toggle(self, number: int) -> bool:
        """Toggle step ``number`` (1-based).

        Returns:
            True if the step is open afterwards

        Raises:
            IndexError: If no step has that number
        """
        if not 1 <= number <= self.total:
            raise IndexError(f"No step {number} in a block of {self.total}")
        step = self.steps[number - 1]
        is_open = not has_class(step, OPEN_CLASS)
        self._set_open(step, is_open)
        self._update_progress()
        return is_open

    def _set_open(self, step: Tag, is_open: bool) -> None:
        if is_open:
            add_class(step, OPEN_CLASS)
        else:
            remove_class(step, OPEN_CLASS)
        toggle = step.select_one(".step-toggle")
        if toggle is not None:
            toggle.string = "−" if is_open else "+"

    def _update_progress(self) -> None:
        bar = self.block.select_one(".steps-progress-bar")
        if bar is not None:
            bar["style"] = f"width: {self.progress * 100:g}%"


def init_steps(root: Tag) -> list[StepsBlock]:
    """Attach step state to every steps block under ``root``."""
    blocks = [StepsBlock(block) for block in root.select(".steps-block")]
    if blocks:
        logger.debug(f"Initialized {len(blocks)} steps block(s)")
    return blocks
