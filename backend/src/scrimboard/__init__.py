"""Scrimboard - scrim and tournament standings backend."""

__version__ = "0.1.0"
