"""Diagram rendering via Kroki.

Renders diagram sources to inline SVG with content-based caching to avoid
redundant requests.
"""

import base64
import logging
import re
import zlib
from typing import Protocol

import httpx

from lectern.core.cache import FileCache, compute_diagram_hash

logger = logging.getLogger(__name__)

GOOGLE_FONTS_RE = re.compile(r"@import\s+url\([^)]*fonts\.googleapis\.com[^)]*\)\s*;?")


class DiagramEngine(Protocol):
    """Anything that turns diagram source into SVG markup."""

    async def render(self, kind: str, source: str) -> str: ...


class KrokiDiagramEngine:
    """Renders diagrams to SVG through a Kroki server."""

    def __init__(
        self,
        server_url: str = "https://kroki.io",
        *,
        cache: FileCache | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Kroki engine.

        Args:
            server_url: Kroki server URL
            cache: Optional cache for rendered SVG
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.server_url = server_url.rstrip("/")
        self._cache = cache
        self._timeout = timeout
        self._transport = transport

    async def render(self, kind: str, source: str) -> str:
        """Render a diagram to SVG.

        Args:
            kind: Kroki endpoint (mermaid, plantuml, graphviz, ...)
            source: Diagram source code

        Returns:
            SVG markup with Google Fonts imports stripped

        Raises:
            httpx.HTTPError: If the request fails
        """
        content_hash = compute_diagram_hash(source, kind)
        if self._cache is not None:
            cached = self._cache.get_diagram(content_hash)
            if cached is not None:
                logger.debug(f"Diagram cache hit: {content_hash[:12]}")
                return cached

        url = f"{self.server_url}/{kind}/svg/{encode_source(source)}"
        logger.info(f"Rendering {kind} diagram via Kroki")
        logger.debug(f"Kroki URL: {url}")

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.get(url, timeout=self._timeout)
            if response.status_code >= 400:
                logger.error(f"Kroki error: {response.text}")
            response.raise_for_status()

        svg = strip_google_fonts(response.text)
        if self._cache is not None:
            self._cache.set_diagram(content_hash, svg)
        return svg


def encode_source(source: str) -> str:
    """Encode diagram source for Kroki URL.

    Uses deflate compression + base64 URL-safe encoding.

    Args:
        source: Diagram source code

    Returns:
        Encoded string for URL
    """
    compressed = zlib.compress(source.encode("utf-8"), level=9)
    return base64.urlsafe_b64encode(compressed).decode("ascii")


def strip_google_fonts(svg: str) -> str:
    """Strip Google Fonts @import from SVG.

    PlantUML embeds @import for Google Fonts when using Roboto; the site
    serves its own fonts.

    Args:
        svg: SVG content

    Returns:
        SVG with Google Fonts import removed
    """
    return GOOGLE_FONTS_RE.sub("", svg)
