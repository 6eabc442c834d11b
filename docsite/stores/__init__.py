"""Persistent stores used across runs."""

from .snippet_cache import SnippetCache, snippet_key

__all__ = ["SnippetCache", "snippet_key"]
