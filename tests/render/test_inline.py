"""Tests for inline Markdown rendering."""

from __future__ import annotations

from docsite.render import render_inline


def test_text_is_escaped_and_emphasised() -> None:
    assert render_inline("a < b & **bold** and *em*") == "a &lt; b &amp; <strong>bold</strong> and <em>em</em>"


def test_code_spans_are_literal() -> None:
    assert render_inline("run `a *b* <c>`") == "run <code>a *b* &lt;c&gt;</code>"


def test_links_use_rewritten_targets() -> None:
    html = render_inline("[Guide](guide.md#setup) and ![Logo](img/logo.png)", lambda target: f"X:{target}")
    assert html == '<a href="X:guide.md#setup">Guide</a> and <img src="X:img/logo.png" alt="Logo">'


def test_reference_links_resolve_from_definitions() -> None:
    html = render_inline("See [the guide][guide] or [Other][]", references={"guide": "guide.md", "other": "o.md"})
    assert html == 'See <a href="guide.md">the guide</a> or <a href="o.md">Other</a>'


def test_unknown_reference_stays_text() -> None:
    assert render_inline("[a][missing]") == "[a][missing]"


def test_autolinks() -> None:
    assert render_inline("<https://example.com>") == '<a href="https://example.com">https://example.com</a>'
