"""Pipeline orchestration for build/check runs."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import CONFIG_FILENAME, ConfigError, DocSiteConfig, load_config
from .context import BuildContext, CancellationToken, DiagnosticLog
from .loader import ContentLoader, DocumentScanner
from .logging import get_logger
from .models import (
    CodeBlock,
    Diagnostic,
    DiagnosticKind,
    Document,
    Severity,
    SiteTree,
    SnippetResult,
    SourceLocation,
)
from .render import DiagnosticsReport, SiteRenderer
from .resolver import CrossReferenceResolver
from .stores import SnippetCache
from .validators import Checker, SnippetValidator, discover_checkers

REPORT_FILENAME = "diagnostics.json"


class BuildAbort(RuntimeError):
    """Fatal condition; carries the single diagnostic reported for the run."""

    def __init__(self, message: str, path: str = ".") -> None:
        super().__init__(message)
        self.diagnostic = Diagnostic(
            severity=Severity.ERROR,
            kind=DiagnosticKind.FATAL_ERROR,
            message=message,
            location=SourceLocation(path),
        )


@dataclass
class BuildOptions:
    """Per-run overrides; ``None`` keeps the value from ``.docsite.yml``."""

    output_dir: Optional[Path] = None
    report_path: Optional[Path] = None
    case_insensitive: Optional[bool] = None
    timeout: Optional[float] = None
    workers: Optional[int] = None
    use_cache: bool = True


@dataclass
class BuildResult:
    """Everything a build or check run produced."""

    root: Path
    documents: List[Document] = field(default_factory=list)
    site_tree: Optional[SiteTree] = None
    snippets: List[SnippetResult] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    cancelled: bool = False
    fatal: bool = False
    output_dir: Optional[Path] = None
    report_path: Optional[Path] = None
    written: List[Path] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        if self.fatal:
            return 2
        return 1 if any(item.is_error for item in self.diagnostics) else 0

    def report(self) -> DiagnosticsReport:
        return DiagnosticsReport(
            diagnostics=self.diagnostics,
            documents=len(self.documents),
            snippets=self.snippets,
            cancelled=self.cancelled,
            exit_code=self.exit_code,
            root=str(self.root),
        )


class Orchestrator:
    """Runs the Loader, Resolver, Validator and Output phases in order.

    Each phase finishes (its barrier) before the next starts. Malformed
    content never stops a run; only :class:`BuildAbort` conditions do.
    """

    def __init__(
        self,
        scanner: DocumentScanner | None = None,
        loader: ContentLoader | None = None,
        resolver: CrossReferenceResolver | None = None,
        checkers: Optional[Iterable[Checker]] = None,
        renderer: SiteRenderer | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self.scanner = scanner
        self.loader = loader or ContentLoader()
        self.resolver = resolver
        self._checker_overrides = list(checkers) if checkers is not None else None
        self.renderer = renderer
        self.cancel_token = cancel_token or CancellationToken()
        self.logger = get_logger("orchestrator")

    def run_build(self, path: str | Path, options: BuildOptions | None = None) -> BuildResult:
        """Build the HTML site and write the diagnostics report."""
        return self._run(path, options or BuildOptions(), render=True)

    def run_check(self, path: str | Path, options: BuildOptions | None = None) -> BuildResult:
        """Run every phase except writing the site."""
        return self._run(path, options or BuildOptions(), render=False)

    # ------------------------------------------------------------------

    def _run(self, path: str | Path, options: BuildOptions, *, render: bool) -> BuildResult:
        root = Path(path).expanduser().resolve()
        self.logger.info("Starting %s run for %s", "build" if render else "check", root)
        log = DiagnosticLog()
        result = BuildResult(root=root, output_dir=options.output_dir)

        try:
            config = self._preflight(root, options, render=render)
            result.output_dir = config.resolved_output_dir if render else None
            context = BuildContext(root=root, config=config, log=log, cancel=self.cancel_token)
            self._execute(context, result, options, render=render)
        except BuildAbort as exc:
            self._log_exception("Build aborted", exc)
            log.add(exc.diagnostic)
            result.fatal = True

        result.diagnostics = list(log)
        result.cancelled = self.cancel_token.cancelled
        result.report_path = self._report_path(result, options, render=render)
        if result.report_path is not None:
            self._write_report(result)

        counts = log.counts()
        self.logger.info(
            "Finished with %d error(s) and %d warning(s)%s",
            counts[Severity.ERROR.value],
            counts[Severity.WARNING.value],
            " (cancelled)" if result.cancelled else "",
        )
        return result

    def _preflight(self, root: Path, options: BuildOptions, *, render: bool) -> DocSiteConfig:
        if not root.exists():
            raise BuildAbort(f"Documentation root does not exist: {root}")
        if not root.is_dir():
            raise BuildAbort(f"Documentation root is not a directory: {root}")

        try:
            config = load_config(root)
        except ConfigError as exc:
            raise BuildAbort(str(exc), CONFIG_FILENAME) from exc

        if options.output_dir is not None:
            config.output_dir = options.output_dir.expanduser().resolve()
        if options.case_insensitive is not None:
            config.case_insensitive = options.case_insensitive
        if options.timeout is not None:
            if options.timeout <= 0:
                raise BuildAbort("Snippet timeout must be greater than zero")
            config.snippets.timeout = options.timeout
        if options.workers is not None:
            if options.workers < 1:
                raise BuildAbort("Worker count must be a positive integer")
            config.workers = options.workers

        if render:
            self._ensure_writable(config.resolved_output_dir)
        return config

    @staticmethod
    def _ensure_writable(output_dir: Path) -> None:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildAbort(f"Output directory is not writable: {output_dir} ({exc.strerror or exc})") from exc
        if not output_dir.is_dir() or not os.access(output_dir, os.W_OK):
            raise BuildAbort(f"Output directory is not writable: {output_dir}")

    def _execute(
        self,
        context: BuildContext,
        result: BuildResult,
        options: BuildOptions,
        *,
        render: bool,
    ) -> None:
        config = context.config
        scanner = self.scanner or DocumentScanner(config)
        paths = scanner.scan(context.root)
        self.logger.debug("Scanner discovered %d files", len(paths))

        documents = self.loader.load_all(paths, context, workers=config.workers)
        if context.cancel.cancelled:
            result.documents = documents
            return

        resolver = self.resolver or CrossReferenceResolver(
            case_insensitive=config.case_insensitive,
            site_title=config.site_title,
        )
        resolution = resolver.resolve(documents, context)
        result.documents = resolution.documents
        result.site_tree = resolution.site_tree
        if context.cancel.cancelled:
            return

        blocks = self._code_blocks(resolution.documents)
        result.snippets = self._validate(blocks, context, use_cache=options.use_cache)
        if context.cancel.cancelled or not render:
            return

        renderer = self.renderer or SiteRenderer(site_title=config.site_title)
        try:
            result.written = renderer.render_site(resolution, context.root, config.resolved_output_dir)
        except OSError as exc:
            raise BuildAbort(f"Failed to write site to {config.resolved_output_dir}: {exc}") from exc

    def _validate(self, blocks: Sequence[CodeBlock], context: BuildContext, *, use_cache: bool) -> List[SnippetResult]:
        settings = context.config.snippets
        checkers = self._select_checkers(context.config)
        cache = SnippetCache.for_root(context.root) if use_cache and settings.cache else None
        validator = SnippetValidator(
            checkers,
            timeout=settings.timeout,
            failure_severity=settings.failure_severity,
            skip_languages=settings.skip_languages,
            cache=cache,
            workers=context.config.workers,
        )
        results = validator.validate(blocks, context)
        if cache is not None:
            if not context.cancel.cancelled:
                cache.prune()
            try:
                cache.persist()
            except OSError:  # pragma: no cover - filesystem guard
                self.logger.debug("Unable to persist snippet cache", exc_info=True)
        return results

    def _select_checkers(self, config: DocSiteConfig) -> List[Checker]:
        if self._checker_overrides is not None:
            return list(self._checker_overrides)
        try:
            return discover_checkers(config.snippets.enabled)
        except ValueError as exc:
            raise BuildAbort(str(exc), CONFIG_FILENAME) from exc

    @staticmethod
    def _code_blocks(documents: Sequence[Document]) -> List[CodeBlock]:
        return [block for document in documents for block in document.code_blocks()]

    @staticmethod
    def _report_path(result: BuildResult, options: BuildOptions, *, render: bool) -> Optional[Path]:
        if options.report_path is not None:
            return options.report_path.expanduser().resolve()
        if render and result.output_dir is not None:
            return result.output_dir / REPORT_FILENAME
        return None

    def _write_report(self, result: BuildResult) -> None:
        assert result.report_path is not None
        try:
            result.report().save(result.report_path)
        except OSError:
            self.logger.warning("Unable to write diagnostics report to %s", result.report_path)
            result.report_path = None
            return
        self.logger.info("Wrote diagnostics report to %s", result.report_path)

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


__all__ = ["BuildAbort", "BuildOptions", "BuildResult", "Orchestrator", "REPORT_FILENAME"]
