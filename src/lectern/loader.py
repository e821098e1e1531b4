"""Document index loading for the site and the development server."""

import logging
import threading

from lectern.config import Config
from lectern.core.builder import IndexBuilder
from lectern.core.index import DocumentIndex, load_index

logger = logging.getLogger(__name__)


def load_site_index(config: Config) -> DocumentIndex:
    """Load the index artifact, falling back to scanning the posts directory.

    A site with neither yields an empty index.
    """
    index_path = config.index_path
    if index_path.exists():
        try:
            return load_index(index_path)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable index, rebuilding: {e}")
    if config.site.posts_dir.is_dir():
        return IndexBuilder(
            config.site.posts_dir, excerpt_length=config.site.excerpt_length
        ).build()
    logger.warning(f"No index at {index_path} and no posts directory at {config.site.posts_dir}")
    return DocumentIndex()


class IndexLoader:
    """Lazily built, invalidatable document index.

    The development server indexes the posts directory directly so edits
    show up without a separate build; without a posts directory it serves
    the prebuilt artifact.
    """

    def __init__(self, config: Config) -> None:
        self._config = config
        self._index: DocumentIndex | None = None
        self._lock = threading.Lock()

    def load(self) -> DocumentIndex:
        with self._lock:
            if self._index is None:
                self._index = self._build()
            return self._index

    def invalidate(self) -> None:
        with self._lock:
            self._index = None
        logger.debug("Document index invalidated")

    def _build(self) -> DocumentIndex:
        posts_dir = self._config.site.posts_dir
        if posts_dir.is_dir():
            return IndexBuilder(posts_dir, excerpt_length=self._config.site.excerpt_length).build()
        return load_site_index(self._config)
