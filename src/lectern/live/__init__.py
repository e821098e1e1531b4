"""Live reload support for the development server."""

from lectern.live.reload import LiveReloadManager

__all__ = ["LiveReloadManager"]
