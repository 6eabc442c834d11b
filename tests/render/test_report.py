"""Tests for the JSON diagnostics report."""

from __future__ import annotations

import json
from pathlib import Path

from docsite.models import (
    CodeBlock,
    Diagnostic,
    DiagnosticKind,
    Severity,
    SnippetResult,
    SourceLocation,
    ValidationStatus,
)
from docsite.render import DiagnosticsReport, format_diagnostics


def _diagnostics():
    return [
        Diagnostic(Severity.WARNING, DiagnosticKind.BROKEN_LINK, "Link target not found: x.md", SourceLocation("a.md", 3)),
        Diagnostic(Severity.ERROR, DiagnosticKind.ENCODING_ERROR, "File is not valid UTF-8", SourceLocation("b.md", 1)),
    ]


def test_report_summary_counts() -> None:
    block = CodeBlock(lines=("```py\n", "x\n", "```\n"), line=4, path="a.md", language="py", code="x\n")
    report = DiagnosticsReport(
        diagnostics=_diagnostics(),
        documents=2,
        snippets=[SnippetResult(block=block, status=ValidationStatus.PASSED, checker="python")],
        exit_code=1,
    )

    summary = report.summary()
    assert summary["documents"] == 2
    assert summary["by_severity"] == {"warning": 1, "error": 1}
    assert summary["by_kind"] == {"BrokenLink": 1, "EncodingError": 1}
    assert summary["snippets"]["passed"] == 1
    assert summary["snippets"]["unverified"] == 0
    assert summary["exit_code"] == 1


def test_report_save_writes_records(tmp_path: Path) -> None:
    path = DiagnosticsReport(diagnostics=_diagnostics()).save(tmp_path / "out" / "diagnostics.json")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["diagnostics"][0] == {
        "severity": "warning",
        "kind": "BrokenLink",
        "file": "a.md",
        "line": 3,
        "message": "Link target not found: x.md",
    }
    assert data["summary"]["diagnostics"] == 2


def test_format_diagnostics() -> None:
    assert format_diagnostics(_diagnostics())[0] == "a.md:3: warning: [BrokenLink] Link target not found: x.md"
