"""Shared test fixtures."""

from pathlib import Path

import pytest
from lectern.config import (
    CacheConfig,
    Config,
    DiagramsConfig,
    LiveReloadConfig,
    PreferencesConfig,
    ServerConfig,
    SiteConfig,
)

HELLO_POST = """---
title: Hello World
date: 2024-01-02
description: First post
tags: [intro, "getting started"]
---
## Getting Started!!

Some text about python.

```python
print("hi")
```
"""

NOTES_POST = """---
title: Field Notes
date: 2024-03-05
tags: [notes, intro]
order: 2
---
Plain body mentioning diagrams.
"""


@pytest.fixture
def posts_dir(tmp_path: Path) -> Path:
    """Create a posts directory with two documents."""
    posts = tmp_path / "posts"
    posts.mkdir(exist_ok=True)
    (posts / "2024-01-02-hello.md").write_text(HELLO_POST, encoding="utf-8")
    (posts / "2024-03-05-notes.md").write_text(NOTES_POST, encoding="utf-8")
    return posts


@pytest.fixture
def test_config(tmp_path: Path, posts_dir: Path) -> Config:
    """Create a test configuration with tmp_path directories.

    Live reload is disabled so tests don't start a file watcher.
    """
    return Config(
        site=SiteConfig(
            title="Test Site",
            url="https://example.com/research",
            posts_dir=posts_dir,
            output_dir=tmp_path,
        ),
        server=ServerConfig(),
        cache=CacheConfig(dir=tmp_path / ".cache"),
        diagrams=DiagramsConfig(),
        live_reload=LiveReloadConfig(enabled=False),
        preferences=PreferencesConfig(),
    )
