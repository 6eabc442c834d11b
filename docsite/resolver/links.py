"""Link target normalisation helpers."""

from __future__ import annotations

import posixpath
from typing import Optional
from urllib.parse import unquote

from ..models import LinkReference


class LinkEscapesRoot(ValueError):
    """Raised when a relative link climbs above the documentation root."""


def normalize_target(source: str, target: str) -> str:
    """Resolve ``target`` against the directory of ``source``.

    Returns a root-relative POSIX path. An empty target refers to ``source``
    itself; a leading ``/`` makes the target root-relative.
    """
    cleaned = unquote(target.split("?", 1)[0]).replace("\\", "/")
    if not cleaned:
        return source
    trailing_slash = cleaned.endswith("/")
    if cleaned.startswith("/"):
        joined = cleaned.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(source), cleaned)
    normalized = posixpath.normpath(joined) if joined else "."
    if normalized == ".." or normalized.startswith("../"):
        raise LinkEscapesRoot(target)
    if normalized == ".":
        normalized = ""
    if trailing_slash and normalized:
        normalized += "/"
    return normalized


def normalize_anchor(anchor: Optional[str]) -> Optional[str]:
    if anchor is None:
        return None
    return unquote(anchor)


def describe(link: LinkReference) -> str:
    return link.raw or f"#{link.anchor}"


__all__ = ["LinkEscapesRoot", "describe", "normalize_anchor", "normalize_target"]
