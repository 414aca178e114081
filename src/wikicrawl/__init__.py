"""Resilient crawler for repository documentation wikis."""

__version__ = "0.1.0"
