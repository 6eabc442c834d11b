"""Machine-readable diagnostics report."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..models import Diagnostic, Severity, SnippetResult, ValidationStatus


@dataclass
class DiagnosticsReport:
    """Diagnostics of one run plus a summary, serialised as JSON."""

    diagnostics: Sequence[Diagnostic]
    documents: int = 0
    snippets: Sequence[SnippetResult] = field(default_factory=list)
    cancelled: bool = False
    exit_code: int = 0
    root: Optional[str] = None

    def summary(self) -> Dict[str, object]:
        severities = Counter(item.severity.value for item in self.diagnostics)
        kinds = Counter(item.kind.value for item in self.diagnostics)
        statuses = Counter(result.status.value for result in self.snippets)
        return {
            "documents": self.documents,
            "diagnostics": len(self.diagnostics),
            "by_severity": {severity.value: severities.get(severity.value, 0) for severity in Severity},
            "by_kind": dict(sorted(kinds.items())),
            "snippets": {status.value: statuses.get(status.value, 0) for status in ValidationStatus},
            "cancelled": self.cancelled,
            "exit_code": self.exit_code,
        }

    def to_dict(self) -> Dict[str, object]:
        return {
            "root": self.root,
            "generated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "summary": self.summary(),
            "diagnostics": [item.to_dict() for item in self.diagnostics],
            "snippets": [result.to_dict() for result in self.snippets],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json() + "\n", encoding="utf-8")
        return path


def format_diagnostics(diagnostics: Sequence[Diagnostic]) -> List[str]:
    """Human-readable ``path:line: severity: [Kind] message`` lines."""
    return [str(item) for item in diagnostics]


__all__ = ["DiagnosticsReport", "format_diagnostics"]
