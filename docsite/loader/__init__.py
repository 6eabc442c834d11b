"""Content loader: discovers and parses Markdown sources into Documents."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..context import BuildContext, DiagnosticLog
from ..logging import get_logger
from ..models import DiagnosticKind, Document, Severity
from .parser import MarkdownParser, humanize_name, split_lines
from .scanner import DocumentScanner
from .slugs import SlugRegistry, slugify


class ContentLoader:
    """Loads every discoverable source file under a root into Documents."""

    def __init__(self, parser: MarkdownParser | None = None) -> None:
        self.parser = parser or MarkdownParser()
        self.logger = get_logger("loader")

    def load_document(self, root: Path, rel_path: str, log: DiagnosticLog) -> Optional[Document]:
        """Parse one file; undecodable files are reported and skipped."""
        path = root / rel_path
        try:
            raw = path.read_bytes()
        except OSError as exc:
            log.report(
                DiagnosticKind.ENCODING_ERROR,
                f"Unable to read file: {exc.strerror or exc}",
                rel_path,
                severity=Severity.ERROR,
            )
            return None
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            line = raw[: exc.start].count(b"\n") + 1
            log.report(
                DiagnosticKind.ENCODING_ERROR,
                f"File is not valid UTF-8 ({exc.reason} at byte {exc.start}); skipped",
                rel_path,
                line,
                severity=Severity.ERROR,
            )
            return None
        return self.parser.parse(rel_path, text, log)

    def load_all(
        self,
        paths: Sequence[str],
        context: BuildContext,
        *,
        workers: int | None = None,
    ) -> List[Document]:
        """Load files in parallel; per-worker logs merge into the run log at the barrier."""
        self.logger.info("Loading %d documents", len(paths))

        def _load(rel_path: str) -> Tuple[Optional[Document], DiagnosticLog]:
            log = context.fork_log()
            if context.cancel.cancelled:
                return None, log
            self.logger.debug("Parsing %s", rel_path)
            return self.load_document(context.root, rel_path, log), log

        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(_load, paths))

        context.barrier([log for _, log in outcomes])
        documents = [document for document, _ in outcomes if document is not None]
        self.logger.info("Loaded %d of %d documents", len(documents), len(paths))
        return documents


__all__ = [
    "ContentLoader",
    "DocumentScanner",
    "MarkdownParser",
    "SlugRegistry",
    "humanize_name",
    "slugify",
    "split_lines",
]
