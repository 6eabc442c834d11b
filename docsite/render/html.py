"""HTML site rendering with Jinja2 templates."""

from __future__ import annotations

import html
import posixpath
import re
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..logging import get_logger
from ..models import (
    Block,
    Callout,
    CodeBlock,
    Document,
    Heading,
    Paragraph,
    SiteNode,
    SiteTree,
    Table,
)
from ..resolver import Resolution
from .inline import render_inline

_REFERENCE_DEF = re.compile(r"^ {0,3}\[(?P<label>[^\]^][^\]]*)\]:\s*(?P<target><[^>]*>|\S+)")
_EXTERNAL = re.compile(r"^(?:[A-Za-z][A-Za-z0-9+.-]*:|//)")
_CALLOUT_MARKER = re.compile(r"^\[!(\w+)\]\s*$")

INDEX_PAGE = "index.html"


def output_paths(site_tree: SiteTree) -> Dict[str, str]:
    """Map each page's source path to its output path under the site root.

    A directory's index page becomes ``<dir>/index.html``; other pages keep
    their relative path with an ``.html`` suffix. When two sources would
    land on the same file, the later one keeps its full name plus ``.html``.
    """
    mapping: Dict[str, str] = {}
    taken: set[str] = set()

    def _assign(source: str, preferred: str) -> None:
        target = preferred if preferred not in taken else f"{source}.html"
        mapping[source] = target
        taken.add(target)

    def _visit(node: SiteNode) -> None:
        if node.page is not None:
            if node.is_directory:
                _assign(node.page, posixpath.join(node.path, INDEX_PAGE))
            else:
                _assign(node.page, posixpath.splitext(node.page)[0] + ".html")
        for child in node.children:
            _visit(child)

    _visit(site_tree.root)
    return mapping


class SiteRenderer:
    """Writes one HTML page per Document plus a root ``index.html``."""

    def __init__(self, templates_dir: Path | None = None, *, site_title: str = "Documentation") -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self.site_title = site_title
        self.logger = get_logger("render")
        self._env = self._create_env(self.templates_dir)

    def render_site(self, resolution: Resolution, root: Path, output_dir: Path) -> List[Path]:
        """Render every page of ``resolution`` into ``output_dir``; return written files."""
        output_dir.mkdir(parents=True, exist_ok=True)
        mapping = output_paths(resolution.site_tree)
        written: List[Path] = []

        for document in resolution.documents:
            target = mapping.get(document.path)
            if target is None:
                continue
            page = self.render_page(document, resolution, mapping)
            written.append(self._write(output_dir, target, page))

        if INDEX_PAGE not in mapping.values():
            listing = self.render_listing(resolution.site_tree, mapping)
            written.append(self._write(output_dir, INDEX_PAGE, listing))

        written.extend(self._copy_assets(resolution, mapping, root, output_dir))
        self.logger.info("Rendered %d files into %s", len(written), output_dir)
        return written

    def render_page(self, document: Document, resolution: Resolution, mapping: Mapping[str, str]) -> str:
        current = mapping[document.path]
        rewrite = self._link_rewriter(document, resolution, mapping, current)
        body = render_blocks(document.blocks, rewrite=rewrite)
        template = self._env.get_template("page.html.j2")
        return template.render(
            site_title=self.site_title,
            page_title=document.title,
            body=body,
            nav=resolution.site_tree.root,
            current=document.path,
            link_to=self._nav_linker(mapping, current),
            home=_relative(INDEX_PAGE, current),
        )

    def render_listing(self, site_tree: SiteTree, mapping: Mapping[str, str]) -> str:
        template = self._env.get_template("index.html.j2")
        return template.render(
            site_title=self.site_title,
            nav=site_tree.root,
            current=None,
            link_to=self._nav_linker(mapping, INDEX_PAGE),
            home=INDEX_PAGE,
        )

    # ------------------------------------------------------------------

    @staticmethod
    def _create_env(templates_dir: Path) -> Environment:
        directories = [str(templates_dir)]
        default_dir = str(Path(__file__).with_name("templates"))
        if default_dir not in directories:
            directories.append(default_dir)
        return Environment(
            loader=FileSystemLoader(directories),
            autoescape=select_autoescape(enabled_extensions=("html", "j2")),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    @staticmethod
    def _nav_linker(mapping: Mapping[str, str], current: str):
        def _link_to(page: str) -> str:
            target = mapping.get(page)
            return _relative(target, current) if target else "#"

        return _link_to

    @staticmethod
    def _link_rewriter(
        document: Document,
        resolution: Resolution,
        mapping: Mapping[str, str],
        current: str,
    ):
        resolved: Dict[str, Optional[str]] = {}
        for link in document.links:
            resolved[link.raw] = resolution.targets.get(link)

        def _rewrite(raw: str) -> str:
            target = raw.strip()
            if not target or _EXTERNAL.match(target) or target not in resolved:
                return raw
            destination = resolved[target]
            if destination is None:
                return raw
            location, _, anchor = target.partition("#")
            fragment = f"#{anchor}" if anchor else ""
            if not location and destination == document.path:
                return fragment or _relative(current, current)
            output = mapping.get(destination, destination)
            return _relative(output, current) + fragment

        return _rewrite

    @staticmethod
    def _write(output_dir: Path, relative: str, content: str) -> Path:
        path = output_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def _copy_assets(
        self,
        resolution: Resolution,
        mapping: Mapping[str, str],
        root: Path,
        output_dir: Path,
    ) -> Iterable[Path]:
        assets = sorted(
            {target for target in resolution.targets.values() if target is not None and target not in mapping}
        )
        for asset in assets:
            source = root / asset
            destination = output_dir / asset
            if source.resolve() == destination.resolve():
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
            self.logger.debug("Copied asset %s", asset)
            yield destination


def render_blocks(blocks: Sequence[Block], *, rewrite=None) -> str:
    """Render document blocks to an HTML fragment."""
    references = _reference_definitions(blocks)
    parts: List[str] = []
    for block in blocks:
        rendered = _render_block(block, rewrite, references)
        if rendered:
            parts.append(rendered)
    return "\n".join(parts)


def _render_block(block: Block, rewrite, references: Mapping[str, str]) -> Optional[str]:
    if isinstance(block, Heading):
        title = render_inline(block.title, rewrite, references)
        return f'<h{block.level} id="{html.escape(block.slug, quote=True)}">{title}</h{block.level}>'
    if isinstance(block, CodeBlock):
        css = f' class="language-{html.escape(block.language, quote=True)}"' if block.language else ""
        return f"<pre><code{css}>{html.escape(block.code)}</code></pre>"
    if isinstance(block, Table):
        return f'<pre class="table">{html.escape(block.text)}</pre>'
    if isinstance(block, Callout):
        return _render_callout(block, rewrite, references)
    if isinstance(block, Paragraph):
        if block.plain:
            return f"<pre>{html.escape(block.text)}</pre>"
        lines = [line.strip() for line in block.lines if not _REFERENCE_DEF.match(line)]
        text = "\n".join(line for line in lines if line)
        if not text:
            return None
        return f"<p>{render_inline(text, rewrite, references)}</p>"
    # Blank lines and front matter produce no output.
    return None


def _render_callout(block: Callout, rewrite, references: Mapping[str, str]) -> str:
    lines = [line.strip() for line in block.body]
    if lines and _CALLOUT_MARKER.match(lines[0]):
        lines = lines[1:]
    text = "\n".join(line for line in lines if line)
    style = html.escape(block.style, quote=True)
    body = render_inline(text, rewrite, references) if text else ""
    return f'<aside class="callout callout-{style}"><p>{body}</p></aside>'


def _reference_definitions(blocks: Iterable[Block]) -> Dict[str, str]:
    definitions: Dict[str, str] = {}
    for block in blocks:
        if not isinstance(block, Paragraph) or block.plain:
            continue
        for line in block.lines:
            match = _REFERENCE_DEF.match(line)
            if match:
                definitions.setdefault(match.group("label").strip().lower(), match.group("target"))
    return definitions


def _relative(target: str, current: str) -> str:
    return posixpath.relpath(target, posixpath.dirname(current) or ".")


__all__ = ["INDEX_PAGE", "SiteRenderer", "output_paths", "render_blocks"]
