"""Best-effort validation of fenced code blocks."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..context import BuildContext, CancellationToken, DiagnosticLog
from ..logging import get_logger
from ..models import (
    CheckOutcome,
    CodeBlock,
    DiagnosticKind,
    Severity,
    SnippetResult,
    ValidationStatus,
)
from ..stores import SnippetCache, snippet_key
from .base import CheckTimeout, Checker, normalize_language

_SKIP_MARKERS = {"ignore", "no-check", "nocheck", "skip-check"}


@dataclass
class _Job:
    index: int
    block: CodeBlock
    checker: Checker
    language: str
    key: str


class SnippetValidator:
    """Runs per-language checkers over code blocks, in parallel.

    Failures never abort the build: every problem becomes a SnippetError or
    SnippetTimeout diagnostic and validation continues with the next block.
    """

    def __init__(
        self,
        checkers: Sequence[Checker],
        *,
        timeout: float = 5.0,
        failure_severity: Severity = Severity.WARNING,
        skip_languages: Sequence[str] = (),
        cache: SnippetCache | None = None,
        workers: int | None = None,
    ) -> None:
        self.timeout = timeout
        self.failure_severity = failure_severity
        self.skip_languages = {lang.lower() for lang in skip_languages}
        self.cache = cache
        self.workers = workers
        self.logger = get_logger("validators")
        self._checkers = [checker for checker in checkers if checker.available()]
        skipped = [checker.name for checker in checkers if checker not in self._checkers]
        if skipped:
            self.logger.debug("Checkers unavailable in this environment: %s", ", ".join(skipped))

    def checker_for(self, language: Optional[str]) -> Optional[Checker]:
        normalized = normalize_language(language)
        if normalized is None:
            return None
        for checker in self._checkers:
            if checker.handles(normalized):
                return checker
        return None

    def validate(self, blocks: Sequence[CodeBlock], context: BuildContext) -> List[SnippetResult]:
        """Validate ``blocks``; diagnostics merge into the run log in block order."""
        results: List[Optional[SnippetResult]] = [None] * len(blocks)
        logs: List[DiagnosticLog] = [context.fork_log() for _ in blocks]
        jobs: List[_Job] = []

        for index, block in enumerate(blocks):
            if context.cancel.cancelled:
                break
            immediate = self._classify(block)
            if immediate is not None:
                results[index] = immediate
                continue
            language = normalize_language(block.language) or ""
            checker = self.checker_for(language)
            if checker is None:
                results[index] = SnippetResult(block=block, status=ValidationStatus.UNVERIFIED)
                continue
            key = snippet_key(checker.signature(language), block.code)
            cached = self.cache.get(key) if self.cache is not None else None
            if cached is not None:
                results[index] = self._result_from_outcome(block, checker, language, cached, logs[index], cached=True)
                continue
            jobs.append(_Job(index=index, block=block, checker=checker, language=language, key=key))

        self.logger.info(
            "Validating %d of %d code blocks (%d cached or not checkable)",
            len(jobs),
            len(blocks),
            len(blocks) - len(jobs),
        )

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = [(job, pool.submit(self._validate_one, job, context.cancel)) for job in jobs]
            for job, future in futures:
                result, log, outcome = future.result()
                logs[job.index] = log
                results[job.index] = result
                if outcome is not None and self.cache is not None:
                    self.cache.store(job.key, outcome)

        context.barrier(logs)
        return [result for result in results if result is not None]

    # ------------------------------------------------------------------

    def _classify(self, block: CodeBlock) -> Optional[SnippetResult]:
        if not block.language:
            return SnippetResult(block=block, status=ValidationStatus.SKIPPED, message="No language tag")
        words = {word.strip("{}.,").lower() for word in block.info.split()[1:]}
        if words & _SKIP_MARKERS:
            return SnippetResult(block=block, status=ValidationStatus.SKIPPED, message="Marked as not checked")
        if block.language.lower() in self.skip_languages or (
            normalize_language(block.language) in self.skip_languages
        ):
            return SnippetResult(block=block, status=ValidationStatus.SKIPPED, message="Language skipped by configuration")
        return None

    def _validate_one(
        self,
        job: _Job,
        cancel: CancellationToken,
    ) -> Tuple[Optional[SnippetResult], DiagnosticLog, Optional[CheckOutcome]]:
        log = DiagnosticLog()
        if cancel.cancelled:
            return None, log, None

        block, checker = job.block, job.checker
        self.logger.debug("Checking %s block at %s with %s", job.language, block.location, checker.name)
        try:
            outcome = self._run_check(checker, block.code, job.language)
        except CheckTimeout as exc:
            log.report(
                DiagnosticKind.SNIPPET_TIMEOUT,
                f"{job.language} snippet check by {checker.name} timed out after {self.timeout:g}s",
                block.path,
                block.line,
            )
            return (
                SnippetResult(block=block, status=ValidationStatus.TIMEOUT, checker=checker.name, message=str(exc)),
                log,
                None,
            )
        except Exception as exc:  # a crashing checker is reported like any other failure
            self.logger.debug("Checker %s raised", checker.name, exc_info=True)
            crashed = CheckOutcome.failed(f"{checker.name} checker crashed: {exc}")
            return self._result_from_outcome(block, checker, job.language, crashed, log), log, None
        return self._result_from_outcome(block, checker, job.language, outcome, log), log, outcome

    def _run_check(self, checker: Checker, code: str, language: str) -> CheckOutcome:
        if checker.runs_in_subprocess:
            return checker.check(code, language=language, timeout=self.timeout)
        return self._run_in_thread(checker, code, language)

    def _run_in_thread(self, checker: Checker, code: str, language: str) -> CheckOutcome:
        """Run an in-process check on a daemon thread and wait at most ``timeout``.

        A check that overruns is abandoned; being a daemon, its thread never
        holds up interpreter exit.
        """
        box: Dict[str, Any] = {}

        def _target() -> None:
            try:
                box["outcome"] = checker.check(code, language=language, timeout=self.timeout)
            except BaseException as exc:  # re-raised on the validating thread
                box["error"] = exc

        thread = threading.Thread(target=_target, name=f"docsite-check-{checker.name}", daemon=True)
        thread.start()
        thread.join(self.timeout)
        if thread.is_alive():
            raise CheckTimeout(f"{checker.name} did not finish within {self.timeout:g}s")
        if "error" in box:
            raise box["error"]
        return box["outcome"]

    def _result_from_outcome(
        self,
        block: CodeBlock,
        checker: Checker,
        language: str,
        outcome: CheckOutcome,
        log: DiagnosticLog,
        *,
        cached: bool = False,
    ) -> SnippetResult:
        if outcome.ok:
            return SnippetResult(block=block, status=ValidationStatus.PASSED, checker=checker.name, cached=cached)
        line = block.line + outcome.line if outcome.line else block.line
        log.report(
            DiagnosticKind.SNIPPET_ERROR,
            f"{language} snippet failed {checker.name} check: {outcome.message}",
            block.path,
            line,
            severity=self.failure_severity,
        )
        return SnippetResult(
            block=block,
            status=ValidationStatus.FAILED,
            checker=checker.name,
            message=outcome.message,
            cached=cached,
        )


__all__ = ["SnippetValidator"]
