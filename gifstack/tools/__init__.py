"""Command line tools for gifstack."""
