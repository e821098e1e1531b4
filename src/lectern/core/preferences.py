"""Persisted reader preferences (color theme, monospace font)."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

THEMES = ("dark", "light")


@dataclass(frozen=True)
class MonoFont:
    name: str
    value: str


MONO_FONTS = (
    MonoFont("JetBrains Mono", "'JetBrains Mono', monospace"),
    MonoFont("Fira Code", "'Fira Code', monospace"),
    MonoFont("Source Code Pro", "'Source Code Pro', monospace"),
)


class PreferenceStore:
    """Theme and font preferences backed by a small JSON file.

    Values are read once on construction and written on every change. A
    missing or unreadable file yields the defaults.
    """

    def __init__(self, path: Path | None) -> None:
        """Initialize store.

        Args:
            path: JSON file location, or None to keep preferences in memory
        """
        self.path = path
        self.theme = "dark"
        self.font_index = 0
        self._load()

    @property
    def font(self) -> MonoFont:
        return MONO_FONTS[self.font_index]

    def set_theme(self, theme: str) -> None:
        """Set the color theme.

        Raises:
            ValueError: If the theme is not ``dark`` or ``light``
        """
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {', '.join(THEMES)}")
        self.theme = theme
        self._save()

    def toggle_theme(self) -> str:
        self.set_theme("light" if self.theme == "dark" else "dark")
        return self.theme

    def cycle_font(self) -> MonoFont:
        self.font_index = (self.font_index + 1) % len(MONO_FONTS)
        self._save()
        return self.font

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences {self.path}: {e}")
            return
        if not isinstance(data, dict):
            return
        if data.get("theme") in THEMES:
            self.theme = data["theme"]
        font = data.get("font")
        if isinstance(font, int) and not isinstance(font, bool) and 0 <= font < len(MONO_FONTS):
            self.font_index = font

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"theme": self.theme, "font": self.font_index}
        self.path.write_text(json.dumps(payload), encoding="utf-8")
