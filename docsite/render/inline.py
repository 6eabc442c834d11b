"""Inline Markdown rendering: code spans, links, images and emphasis."""

from __future__ import annotations

import html
import re
from typing import Callable, List, Mapping, Optional

Rewrite = Callable[[str], str]

_TOKEN = re.compile(
    r"(?P<ticks>`+)(?P<code>.+?)(?P=ticks)"
    r"|<(?P<auto>(?:https?|mailto):[^>\s]+)>"
    r"|(?P<bang>!?)\[(?P<label>[^\]]*)\]\(\s*(?P<target><[^>]*>|[^)\s]+)"
    r"(?:\s+[\"'(](?P<title>[^)]*?)[\"')])?\s*\)"
    r"|(?P<ref_bang>!?)\[(?P<ref_label>[^\]]+)\]\[(?P<ref_id>[^\]]*)\]",
    re.DOTALL,
)
_STRONG = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1")
_EMPHASIS = re.compile(r"(?<![\w*])([*_])(?=\S)(.+?)(?<=\S)\1(?![\w*])")


def render_inline(
    text: str,
    rewrite: Optional[Rewrite] = None,
    references: Optional[Mapping[str, str]] = None,
) -> str:
    """Render one run of inline Markdown to HTML.

    ``rewrite`` maps a raw link target to the href written into the page; it
    defaults to the identity. ``references`` holds reference definitions
    (lower-cased label to raw target) for ``[text][id]`` links.
    """
    rewrite = rewrite or _identity
    references = references or {}
    parts: List[str] = []
    position = 0
    for match in _TOKEN.finditer(text):
        rendered = _render_token(match, rewrite, references)
        if rendered is None:
            continue
        parts.append(_format_text(text[position : match.start()]))
        parts.append(rendered)
        position = match.end()
    parts.append(_format_text(text[position:]))
    return "".join(parts)


def _render_token(match: re.Match[str], rewrite: Rewrite, references: Mapping[str, str]) -> Optional[str]:
    if match.group("ticks"):
        return f"<code>{html.escape(match.group('code').strip())}</code>"
    if match.group("auto"):
        url = html.escape(match.group("auto"), quote=True)
        return f'<a href="{url}">{url}</a>'

    if match.group("ref_label") is not None:
        label = match.group("ref_label")
        reference = (match.group("ref_id") or label).strip().lower()
        target = references.get(reference)
        if target is None:
            # not a link; leave the brackets as text
            return None
        return _render_link(label, target, None, bool(match.group("ref_bang")), rewrite)

    return _render_link(
        match.group("label"),
        match.group("target"),
        match.group("title"),
        bool(match.group("bang")),
        rewrite,
    )


def _render_link(label: str, target: str, title: Optional[str], image: bool, rewrite: Rewrite) -> str:
    if target.startswith("<") and target.endswith(">"):
        target = target[1:-1]
    href = html.escape(rewrite(target), quote=True)
    title_attr = f' title="{html.escape(title, quote=True)}"' if title else ""
    if image:
        return f'<img src="{href}" alt="{html.escape(label, quote=True)}"{title_attr}>'
    return f'<a href="{href}"{title_attr}>{_format_text(label)}</a>'


def _format_text(text: str) -> str:
    if not text:
        return ""
    escaped = html.escape(text, quote=False)
    escaped = _STRONG.sub(r"<strong>\2</strong>", escaped)
    return _EMPHASIS.sub(r"<em>\2</em>", escaped)


def _identity(target: str) -> str:
    return target


__all__ = ["Rewrite", "render_inline"]
