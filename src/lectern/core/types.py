"""Core type definitions."""

from typing import NewType

# Document slug (file stem, URL-safe), e.g. "2024-01-05-notes"
Slug = NewType("Slug", str)
