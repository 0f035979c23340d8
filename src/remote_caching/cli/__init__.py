"""Command-line interface for inspecting and clearing the cache."""
