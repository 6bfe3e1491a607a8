"""Resilient HTTP client for delegate agents talking to the dispatch manager."""

__version__ = "0.3.0"
