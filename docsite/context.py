"""Run-scoped state passed explicitly to each build phase."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence, Set

from .config import DocSiteConfig
from .models import Diagnostic, DiagnosticKind, Severity, SourceLocation


class BuildCancelled(RuntimeError):
    """Raised inside a phase when the run-level token has been cancelled."""


class CancellationToken:
    """Cooperative cancellation checked between files and blocks."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise BuildCancelled("Build cancelled")


class DiagnosticLog:
    """Append-only diagnostic list with exact-match suppression.

    Each worker owns its own log during a parallel phase; the logs are merged
    into the run log at the phase barrier, in input order.
    """

    def __init__(self, diagnostics: Iterable[Diagnostic] = ()) -> None:
        self._items: List[Diagnostic] = []
        self._seen: Set[Diagnostic] = set()
        self.extend(diagnostics)

    def add(self, diagnostic: Diagnostic) -> bool:
        if diagnostic in self._seen:
            return False
        self._seen.add(diagnostic)
        self._items.append(diagnostic)
        return True

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        path: str,
        line: int = 0,
        *,
        severity: Severity = Severity.WARNING,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            severity=severity,
            kind=kind,
            message=message,
            location=SourceLocation(path, line),
        )
        self.add(diagnostic)
        return diagnostic

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.add(diagnostic)

    def merge(self, logs: Sequence["DiagnosticLog"]) -> None:
        for log in logs:
            self.extend(log)

    @property
    def has_errors(self) -> bool:
        return any(item.is_error for item in self._items)

    def counts(self) -> Dict[str, int]:
        counter = Counter(item.severity.value for item in self._items)
        return {severity.value: counter.get(severity.value, 0) for severity in Severity}

    def counts_by_kind(self) -> Dict[str, int]:
        return dict(sorted(Counter(item.kind.value for item in self._items).items()))

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [item for item in self._items if item.kind is kind]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class BuildContext:
    """Explicit context object handed to the loader, resolver and validator."""

    root: Path
    config: DocSiteConfig
    log: DiagnosticLog = field(default_factory=DiagnosticLog)
    cancel: CancellationToken = field(default_factory=CancellationToken)

    def fork_log(self) -> DiagnosticLog:
        """Return a fresh per-worker log to be merged at the next barrier."""
        return DiagnosticLog()

    def barrier(self, logs: Sequence[DiagnosticLog]) -> None:
        self.log.merge(logs)


__all__ = ["BuildCancelled", "BuildContext", "CancellationToken", "DiagnosticLog"]
