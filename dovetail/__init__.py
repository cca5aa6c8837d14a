"""Dovetail Journaling: graph persistence and same-sentiment matching."""

__version__ = "1.0.0"
