"""Resilient key/value cache with Redis primary and in-process fallback."""

__version__ = "1.0.0"
