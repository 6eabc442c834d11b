"""Tests for HTML site rendering."""

from __future__ import annotations

from docsite.loader import ContentLoader, DocumentScanner
from docsite.render import SiteRenderer, output_paths, render_blocks
from docsite.resolver import CrossReferenceResolver
from docsite.context import DiagnosticLog
from docsite.loader import MarkdownParser


def _resolve(docs_builder):
    context = docs_builder.context()
    paths = DocumentScanner(context.config).scan(context.root)
    documents = ContentLoader().load_all(paths, context)
    return CrossReferenceResolver(site_title="Docs").resolve(documents, context)


def test_output_paths_map_index_pages_to_directories(docs_builder) -> None:
    docs_builder.write(
        {
            "README.md": "# Home\n",
            "guide.md": "# Guide\n",
            "a/index.md": "# A\n",
            "a/README.md": "# A readme\n",
        }
    )
    mapping = output_paths(_resolve(docs_builder).site_tree)

    assert mapping == {
        "README.md": "index.html",
        "guide.md": "guide.html",
        "a/README.md": "a/index.html",
        "a/index.md": "a/index.md.html",
    }


def test_render_blocks_produces_html() -> None:
    document = MarkdownParser().parse(
        "page.md",
        "# Title\n\nSome *text*.\n\n```python\nprint('<hi>')\n```\n\n> [!WARNING]\n> Careful\n",
        DiagnosticLog(),
    )
    html = render_blocks(document.blocks)

    assert '<h1 id="title">Title</h1>' in html
    assert "<p>Some <em>text</em>.</p>" in html
    assert '<pre><code class="language-python">print(&#x27;&lt;hi&gt;&#x27;)\n</code></pre>' in html
    assert '<aside class="callout callout-warning"><p>Careful</p></aside>' in html


def test_render_site_writes_pages_with_rewritten_links(docs_builder, tmp_path) -> None:
    docs_builder.write(
        {
            "README.md": "# Home\n\n[Guide](guides/setup.md#install) [Missing](nope.md) [Web](https://example.com)\n",
            "guides/setup.md": "# Setup\n\n## Install\n\n[Back](../README.md) ![Logo](../img/logo.png)\n",
            "img/logo.png": "png",
        }
    )
    resolution = _resolve(docs_builder)
    output = tmp_path / "site"

    written = SiteRenderer(site_title="Docs").render_site(resolution, docs_builder.path(), output)

    assert sorted(path.relative_to(output).as_posix() for path in written) == [
        "guides/setup.html",
        "img/logo.png",
        "index.html",
    ]
    home = (output / "index.html").read_text(encoding="utf-8")
    assert '<a href="guides/setup.html#install">Guide</a>' in home
    assert '<a href="nope.md">Missing</a>' in home
    assert '<a href="https://example.com">Web</a>' in home
    assert "<title>Home - Docs</title>" in home

    setup = (output / "guides" / "setup.html").read_text(encoding="utf-8")
    assert '<a href="../index.html">Back</a>' in setup
    assert '<img src="../img/logo.png" alt="Logo">' in setup
    assert 'href="setup.html"' in setup


def test_render_site_generates_listing_without_root_index(docs_builder, tmp_path) -> None:
    docs_builder.write({"b.md": "# Bee\n", "a.md": "# Ay\n"})
    resolution = _resolve(docs_builder)
    output = tmp_path / "site"

    SiteRenderer(site_title="Docs & More").render_site(resolution, docs_builder.path(), output)

    listing = (output / "index.html").read_text(encoding="utf-8")
    assert "<h1>Docs &amp; More</h1>" in listing
    assert listing.index('href="a.html"') < listing.index('href="b.html"')
