"""GitHub-compatible heading anchors."""

from __future__ import annotations

import re
from typing import Dict, Set

_LINK = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_HTML_TAG = re.compile(r"<[^>]+>")
_DISALLOWED = re.compile(r"[^\w\- ]")


def plain_heading_text(title: str) -> str:
    """Strip inline markup that never contributes to an anchor."""
    text = _LINK.sub(r"\1", title)
    return _HTML_TAG.sub("", text)


def slugify(title: str) -> str:
    """Return the base anchor for a heading; the same text always yields the same slug."""
    slug = plain_heading_text(title).strip().lower()
    slug = _DISALLOWED.sub("", slug)
    return slug.replace(" ", "-")


class SlugRegistry:
    """Hands out per-document unique slugs, suffixing repeats with ``-1``, ``-2``..."""

    def __init__(self) -> None:
        self._used: Set[str] = set()
        self._counters: Dict[str, int] = {}

    def add(self, title: str) -> str:
        base = slugify(title)
        candidate = base
        while candidate in self._used:
            count = self._counters.get(base, 0) + 1
            self._counters[base] = count
            candidate = f"{base}-{count}"
        self._used.add(candidate)
        return candidate

    @property
    def slugs(self) -> frozenset[str]:
        return frozenset(self._used)


__all__ = ["SlugRegistry", "plain_heading_text", "slugify"]
