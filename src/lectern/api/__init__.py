"""JSON API endpoints over the document index."""
