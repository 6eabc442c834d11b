"""Tests for run-scoped context objects."""

from __future__ import annotations

import pytest

from docsite.context import BuildCancelled, CancellationToken, DiagnosticLog
from docsite.models import DiagnosticKind, Severity


def test_diagnostic_log_suppresses_exact_duplicates() -> None:
    log = DiagnosticLog()
    log.report(DiagnosticKind.BROKEN_LINK, "missing", "a.md", 1)
    log.report(DiagnosticKind.BROKEN_LINK, "missing", "a.md", 1)
    log.report(DiagnosticKind.BROKEN_LINK, "missing", "a.md", 2)
    assert len(log) == 2


def test_merge_preserves_input_order_and_dedupes() -> None:
    first, second = DiagnosticLog(), DiagnosticLog()
    first.report(DiagnosticKind.BROKEN_LINK, "one", "a.md", 1)
    second.report(DiagnosticKind.BROKEN_ANCHOR, "two", "b.md", 1)
    second.report(DiagnosticKind.BROKEN_LINK, "one", "a.md", 1)

    merged = DiagnosticLog()
    merged.merge([first, second])

    assert [item.message for item in merged] == ["one", "two"]


def test_counts_and_errors() -> None:
    log = DiagnosticLog()
    log.report(DiagnosticKind.BROKEN_LINK, "missing", "a.md", 1)
    assert not log.has_errors
    log.report(DiagnosticKind.ENCODING_ERROR, "bad bytes", "b.md", severity=Severity.ERROR)
    assert log.has_errors
    assert log.counts() == {"warning": 1, "error": 1}
    assert log.counts_by_kind() == {"BrokenLink": 1, "EncodingError": 1}


def test_cancellation_token() -> None:
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel()
    assert token.cancelled
    with pytest.raises(BuildCancelled):
        token.raise_if_cancelled()
