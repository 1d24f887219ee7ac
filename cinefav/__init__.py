"""Movie search with a persistent favorites list."""

__version__ = "1.0.0"
