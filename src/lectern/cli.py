"""CLI interface for Lectern.

Command-line tool for building, serving and previewing the site.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from lectern.config import Config

CONFIG_OPTION_HELP = "Path to configuration file (default: auto-discover lectern.toml)"


@click.group()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output (debug logging)",
)
def cli(verbose: bool) -> None:
    """Lectern - markdown posts, hash-routed."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Path | None, **overrides: object) -> Config:
    try:
        config = Config.load(config_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    return config.with_overrides(**overrides)  # type: ignore[arg-type]


config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path, dir_okay=False),
    default=None,
    help=CONFIG_OPTION_HELP,
)
posts_dir_option = click.option(
    "--posts-dir",
    "-s",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Document source directory (overrides config)",
)


@cli.command()
@config_option
@posts_dir_option
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory for content.json and feed.xml (overrides config)",
)
def build(config_path: Path | None, posts_dir: Path | None, output_dir: Path | None) -> None:
    """Build content.json and feed.xml from the posts directory."""
    from lectern.core.builder import IndexBuilder, write_index
    from lectern.core.feed import build_feed, write_feed

    config = _load_config(config_path, posts_dir=posts_dir, output_dir=output_dir)

    try:
        index = IndexBuilder(
            config.site.posts_dir, excerpt_length=config.site.excerpt_length
        ).build()
        write_index(index, config.index_path)
        feed = build_feed(
            index,
            site_url=config.site.url,
            title=config.site.title,
            limit=config.site.feed_limit,
        )
        write_feed(feed, config.feed_path)
    except OSError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(f"Built {config.index_path.name} with {len(index)} posts")
    click.echo(f"Built {config.feed_path.name}")


@cli.command()
@config_option
@posts_dir_option
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--live-reload/--no-live-reload",
    default=None,
    help="Enable/disable live reload (overrides config, default: enabled)",
)
def serve(
    config_path: Path | None,
    posts_dir: Path | None,
    host: str | None,
    port: int | None,
    live_reload: bool | None,
) -> None:
    """Start the development server."""
    from lectern.server import run_server

    config = _load_config(
        config_path,
        posts_dir=posts_dir,
        host=host,
        port=port,
        live_reload_enabled=live_reload,
    )

    click.echo(f"Starting server on {config.server.host}:{config.server.port}")
    click.echo(f"Posts directory: {config.site.posts_dir}")
    if config.live_reload.enabled:
        click.echo("Live reload: enabled")
    else:
        click.echo("Live reload: disabled")

    run_server(config)


@cli.command()
@click.argument("fragment")
@config_option
@posts_dir_option
@click.option(
    "--kroki-url",
    default=None,
    help="Kroki server URL for diagram rendering (overrides config)",
)
@click.option(
    "--cache/--no-cache",
    default=None,
    help="Enable/disable render caching (overrides config, default: enabled)",
)
@click.option(
    "--toc",
    is_flag=True,
    help="Also print the table of contents sidebar",
)
def render(
    fragment: str,
    config_path: Path | None,
    posts_dir: Path | None,
    kroki_url: str | None,
    cache: bool | None,
    toc: bool,
) -> None:
    """Navigate to FRAGMENT (e.g. "#/post/hello") and print the content."""
    from lectern.app import SiteContext

    config = _load_config(
        config_path,
        posts_dir=posts_dir,
        kroki_url=kroki_url,
        cache_enabled=cache,
    )
    site = SiteContext.from_config(config, initial_hash=fragment)

    async def _navigate() -> bool:
        navigation = site.start()
        await site.router.settle()
        return navigation is not None

    if not asyncio.run(_navigate()):
        click.echo(click.style(f"Error: no route matches {fragment}", fg="red"), err=True)
        sys.exit(1)

    click.echo(site.content.html)
    if toc and site.sidebar.html:
        click.echo(site.sidebar.html)


@cli.command()
@click.argument("query")
@config_option
@posts_dir_option
def search(query: str, config_path: Path | None, posts_dir: Path | None) -> None:
    """Print documents matching QUERY."""
    from lectern.loader import load_site_index

    config = _load_config(config_path, posts_dir=posts_dir)
    index = load_site_index(config)

    matches = index.search(query)
    if not matches:
        if len(query) < 2:
            click.echo("Type at least 2 characters...")
        else:
            click.echo("No results found")
        return

    for document in matches:
        tags = f" [{', '.join(document.tags)}]" if document.tags else ""
        click.echo(f"{document.date}  {document.slug}  {document.title}{tags}")


if __name__ == "__main__":
    cli()
