"""Configuration for Lectern.

Settings live in a ``lectern.toml`` file, found by walking up from the working
directory. Every section is optional; relative paths are resolved against the
directory holding the file.
"""

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "lectern.toml"

_MISSING: Any = object()


@dataclass
class SiteConfig:
    """Where posts come from and where build artifacts go."""

    title: str = "Research"
    url: str = "http://127.0.0.1:8080"
    posts_dir: Path = field(default_factory=lambda: Path("posts"))
    output_dir: Path = field(default_factory=lambda: Path("."))
    feed_limit: int = 20
    excerpt_length: int = 500


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class CacheConfig:
    enabled: bool = True
    dir: Path = field(default_factory=lambda: Path(".cache"))


@dataclass
class DiagramsConfig:
    """Kroki settings; diagrams stay as source when ``kroki_url`` is unset."""

    kroki_url: str | None = None
    timeout: float = 30.0


@dataclass
class LiveReloadConfig:
    enabled: bool = True
    watch_patterns: list[str] | None = None


@dataclass
class PreferencesConfig:
    """Reader preference file; None keeps preferences in memory."""

    path: Path | None = None


@dataclass
class Config:
    """Complete Lectern configuration."""

    site: SiteConfig
    server: ServerConfig
    cache: CacheConfig
    diagrams: DiagramsConfig
    live_reload: LiveReloadConfig
    preferences: PreferencesConfig
    config_path: Path | None = None

    @property
    def index_path(self) -> Path:
        """Location of the prebuilt index artifact."""
        return self.site.output_dir / "content.json"

    @property
    def feed_path(self) -> Path:
        return self.site.output_dir / "feed.xml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration.

        Args:
            config_path: Explicit file to read; when None, ``lectern.toml`` is
                searched for from the working directory upwards

        Returns:
            Config with defaults filled in for absent sections

        Raises:
            FileNotFoundError: If ``config_path`` is given but missing
            ValueError: If the file is not valid TOML or a value has the
                wrong type
        """
        if config_path is None:
            config_path = cls._discover_config()
            if config_path is None:
                return cls._default()
        elif not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        return cls._load_from_file(config_path)

    @classmethod
    def _discover_config(cls) -> Path | None:
        cwd = Path.cwd()
        for directory in (cwd, *cwd.parents):
            candidate = directory / CONFIG_FILENAME
            if candidate.exists():
                return candidate
        return None

    @classmethod
    def _default(cls) -> "Config":
        return cls(
            site=SiteConfig(),
            server=ServerConfig(),
            cache=CacheConfig(),
            diagrams=DiagramsConfig(),
            live_reload=LiveReloadConfig(),
            preferences=PreferencesConfig(),
        )

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e

        base = path.parent
        return cls(
            site=cls._parse_site(_section(data, "site"), base),
            server=cls._parse_server(_section(data, "server")),
            cache=cls._parse_cache(_section(data, "cache"), base),
            diagrams=cls._parse_diagrams(_section(data, "diagrams")),
            live_reload=cls._parse_live_reload(_section(data, "live_reload")),
            preferences=cls._parse_preferences(_section(data, "preferences"), base),
            config_path=path,
        )

    @classmethod
    def _parse_site(cls, data: dict[str, Any] | None, base: Path) -> SiteConfig:
        """Parse ``[site]``.

        Without the section, posts are expected in ``posts/`` next to the
        config file and artifacts are written beside it.
        """
        if data is None:
            return SiteConfig(posts_dir=base / "posts", output_dir=base)

        feed_limit = _get(data, "site", "feed_limit", int, 20)
        if feed_limit < 1:
            raise ValueError("site.feed_limit must be a positive integer")
        excerpt_length = _get(data, "site", "excerpt_length", int, 500)
        if excerpt_length < 0:
            raise ValueError("site.excerpt_length must be a non-negative integer")

        return SiteConfig(
            title=_get(data, "site", "title", str, "Research"),
            url=_get(data, "site", "url", str, "http://127.0.0.1:8080").rstrip("/"),
            posts_dir=base / _get(data, "site", "posts_dir", str, "posts"),
            output_dir=base / _get(data, "site", "output_dir", str, "."),
            feed_limit=feed_limit,
            excerpt_length=excerpt_length,
        )

    @classmethod
    def _parse_server(cls, data: dict[str, Any] | None) -> ServerConfig:
        if data is None:
            return ServerConfig()
        return ServerConfig(
            host=_get(data, "server", "host", str, "127.0.0.1"),
            port=_get(data, "server", "port", int, 8080),
        )

    @classmethod
    def _parse_cache(cls, data: dict[str, Any] | None, base: Path) -> CacheConfig:
        if data is None:
            return CacheConfig(dir=base / ".cache")
        return CacheConfig(
            enabled=_get(data, "cache", "enabled", bool, True),
            dir=base / _get(data, "cache", "dir", str, ".cache"),
        )

    @classmethod
    def _parse_diagrams(cls, data: dict[str, Any] | None) -> DiagramsConfig:
        if data is None:
            return DiagramsConfig()
        timeout = _get(data, "diagrams", "timeout", float, 30.0)
        if timeout <= 0:
            raise ValueError("diagrams.timeout must be a positive number")
        return DiagramsConfig(
            kroki_url=_get(data, "diagrams", "kroki_url", str, None),
            timeout=float(timeout),
        )

    @classmethod
    def _parse_live_reload(cls, data: dict[str, Any] | None) -> LiveReloadConfig:
        if data is None:
            return LiveReloadConfig()
        patterns = _get(data, "live_reload", "watch_patterns", list, None)
        if patterns is not None and not all(isinstance(p, str) for p in patterns):
            raise ValueError("live_reload.watch_patterns items must be strings")
        return LiveReloadConfig(
            enabled=_get(data, "live_reload", "enabled", bool, True),
            watch_patterns=patterns,
        )

    @classmethod
    def _parse_preferences(cls, data: dict[str, Any] | None, base: Path) -> PreferencesConfig:
        if data is None:
            return PreferencesConfig()
        path = _get(data, "preferences", "path", str, None)
        return PreferencesConfig(path=base / path if path is not None else None)

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        posts_dir: Path | None = None,
        output_dir: Path | None = None,
        kroki_url: str | None = None,
        cache_enabled: bool | None = None,
        live_reload_enabled: bool | None = None,
    ) -> "Config":
        """Return a copy with command-line overrides applied.

        None means "keep the configured value".
        """

        def pick(section: Any, **values: Any) -> Any:
            changed = {key: value for key, value in values.items() if value is not None}
            return replace(section, **changed) if changed else section

        return replace(
            self,
            site=pick(self.site, posts_dir=posts_dir, output_dir=output_dir),
            server=pick(self.server, host=host, port=port),
            cache=pick(self.cache, enabled=cache_enabled),
            diagrams=pick(self.diagrams, kroki_url=kroki_url),
            live_reload=pick(self.live_reload, enabled=live_reload_enabled),
        )


_TYPE_NAMES = {
    str: "a string",
    int: "an integer",
    bool: "a boolean",
    float: "a positive number",
    list: "a list",
}


def _section(data: dict[str, Any], name: str) -> dict[str, Any] | None:
    value = data.get(name)
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"{name} section must be a dictionary")
    return value


def _get(data: dict[str, Any], section: str, key: str, kind: type, default: Any = _MISSING) -> Any:
    """Read ``key`` from a section, checking its type.

    Booleans are never accepted as numbers; integers are accepted as floats.

    Raises:
        ValueError: If the value has the wrong type
    """
    value = data.get(key, default)
    if value is None and default is None:
        return None
    if kind is float:
        valid = isinstance(value, int | float) and not isinstance(value, bool)
    elif kind is int:
        valid = isinstance(value, int) and not isinstance(value, bool)
    else:
        valid = isinstance(value, kind)
    if not valid:
        raise ValueError(f"{section}.{key} must be {_TYPE_NAMES[kind]}")
    return value
