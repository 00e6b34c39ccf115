"""REST endpoint helpers."""
