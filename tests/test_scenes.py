"""Tests for the scene registry."""

from unittest.mock import MagicMock, patch

import pytest
from lectern.core.scenes import ENTRY_POINT_GROUP, SceneNotFoundError, SceneRegistry


def init_cube(canvas, container):
    return None


class TestSceneRegistry:
    """Tests for SceneRegistry."""

    def test__register__lookup_by_name(self) -> None:
        """Registered plugins are returned by name."""
        registry = SceneRegistry()
        registry.register("cube", init_cube)

        assert registry.get("cube") is init_cube
        assert "cube" in registry
        assert registry.names() == ["cube"]

    def test__unknown__raises(self) -> None:
        """Unknown names raise SceneNotFoundError."""
        with pytest.raises(SceneNotFoundError, match="Unknown scene: nope"):
            SceneRegistry().get("nope")

    def test__entry_points__loaded_and_broken_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        """Entry point plugins register; failing imports are logged."""
        good = MagicMock()
        good.name = "cube"
        good.load.return_value = init_cube
        bad = MagicMock()
        bad.name = "broken"
        bad.load.side_effect = ImportError("no module")

        with patch("lectern.core.scenes.entry_points", return_value=[good, bad]) as eps:
            registry = SceneRegistry()
            loaded = registry.load_entry_points()

        eps.assert_called_once_with(group=ENTRY_POINT_GROUP)
        assert loaded == 1
        assert registry.names() == ["cube"]
        assert "Failed to load scene plugin broken" in caplog.text
