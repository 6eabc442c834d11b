"""Cross-reference resolution and navigation building."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..context import BuildContext
from ..loader.scanner import DocumentScanner, IgnoreRule
from ..logging import get_logger
from ..models import DiagnosticKind, Document, INDEX_FILENAMES, LinkReference, SiteTree
from .links import LinkEscapesRoot, describe, normalize_anchor, normalize_target
from .sitetree import build_site_tree

_DIRECTORY_INDEXES = ("README.md", "readme.md", "index.md")


@dataclass
class Resolution:
    """Resolver output: canonical documents, navigation and link targets."""

    documents: List[Document]
    site_tree: SiteTree
    targets: Dict[LinkReference, Optional[str]] = field(default_factory=dict)

    def document(self, path: str) -> Optional[Document]:
        for document in self.documents:
            if document.path == path:
                return document
        return None


class CrossReferenceResolver:
    """Resolves every LinkReference against the full Document set.

    Runs single-threaded after loading completes; all diagnostics go straight
    to the run log.
    """

    def __init__(self, *, case_insensitive: bool = False, site_title: str = "Documentation") -> None:
        self.case_insensitive = case_insensitive
        self.site_title = site_title
        self.logger = get_logger("resolver")
        self._index: Dict[str, Document] = {}
        self._scanner: Optional[DocumentScanner] = None
        self._ignore_rules: List[IgnoreRule] = []

    def resolve(self, documents: Sequence[Document], context: BuildContext) -> Resolution:
        canonical, duplicates = self._deduplicate(documents, context)
        self._index = {self._key(document.path): document for document in canonical}
        self._scanner = DocumentScanner(context.config)
        self._ignore_rules = self._scanner.ignore_rules(context.root.resolve())

        targets: Dict[LinkReference, Optional[str]] = {}
        for document in canonical:
            for link in document.links:
                targets[link] = self._resolve_link(document, link, context)
        # Duplicates stay out of the site but their links are still checked.
        for document in duplicates:
            for link in document.links:
                self._resolve_link(document, link, context)

        site_tree = build_site_tree(canonical, title=self.site_title)
        broken = sum(1 for target in targets.values() if target is None)
        self.logger.info(
            "Resolved %d links across %d documents (%d broken targets)",
            len(targets),
            len(canonical),
            broken,
        )
        return Resolution(
            documents=canonical,
            site_tree=site_tree,
            targets=targets,
        )

    # ------------------------------------------------------------------

    def _key(self, path: str) -> str:
        return path.casefold() if self.case_insensitive else path

    def _deduplicate(self, documents: Sequence[Document], context: BuildContext) -> tuple[List[Document], List[Document]]:
        winners: Dict[str, Document] = {}
        canonical: List[Document] = []
        duplicates: List[Document] = []
        for document in sorted(documents, key=lambda doc: doc.path):
            key = self._key(document.path)
            winner = winners.get(key)
            if winner is None:
                winners[key] = document
                canonical.append(document)
                continue
            duplicates.append(document)
            context.log.report(
                DiagnosticKind.DUPLICATE_PATH,
                f"{document.path} normalizes to the same path as {winner.path}; keeping {winner.path}",
                document.path,
            )
        return canonical, duplicates

    def _lookup(self, normalized: str) -> Optional[Document]:
        if not normalized.endswith("/"):
            found = self._index.get(self._key(normalized))
            if found is not None:
                return found
        base = normalized.rstrip("/")
        for name in _DIRECTORY_INDEXES:
            candidate = f"{base}/{name}" if base else name
            found = self._index.get(self._key(candidate))
            if found is not None:
                return found
        return None

    def _resolve_link(self, source: Document, link: LinkReference, context: BuildContext) -> Optional[str]:
        try:
            normalized = normalize_target(source.path, link.target)
        except LinkEscapesRoot:
            context.log.report(
                DiagnosticKind.BROKEN_LINK,
                f"Link target escapes the documentation root: {describe(link)}",
                link.source,
                link.line,
            )
            return None

        target = self._lookup(normalized)
        if target is None:
            asset = self._asset_path(context.root, normalized)
            if asset is not None:
                return asset
            context.log.report(
                DiagnosticKind.BROKEN_LINK,
                f"Link target not found: {describe(link)}",
                link.source,
                link.line,
            )
            return None

        anchor = normalize_anchor(link.anchor)
        if anchor is not None and not self._has_anchor(target, anchor):
            context.log.report(
                DiagnosticKind.BROKEN_ANCHOR,
                f"Anchor '#{anchor}' not found in {target.path}",
                link.source,
                link.line,
            )
        return target.path

    def _has_anchor(self, document: Document, anchor: str) -> bool:
        if anchor in document.anchors:
            return True
        if self.case_insensitive:
            folded = anchor.casefold()
            return any(candidate.casefold() == folded for candidate in document.anchors)
        return False

    def _asset_path(self, root: Path, normalized: str) -> Optional[str]:
        """Return the path of an existing non-Markdown file, e.g. an image."""
        cleaned = normalized.rstrip("/")
        if not cleaned:
            return None
        if posixpath.splitext(cleaned)[1].lower() in (".md", ".markdown"):
            return None
        if posixpath.basename(cleaned).lower() in INDEX_FILENAMES:
            return None
        if self._scanner is not None and self._scanner.is_excluded(root, cleaned, self._ignore_rules):
            return None
        candidate = root / cleaned
        if candidate.is_file():
            return cleaned
        return None


__all__ = ["CrossReferenceResolver", "Resolution", "build_site_tree", "normalize_target"]
