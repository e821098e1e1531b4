"""Lectern - extended markdown content site with hash routing."""

__version__ = "0.1.0"
