"""Content pipeline, document index and navigation core."""
