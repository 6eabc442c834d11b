"""Tests for parallel document loading."""

from __future__ import annotations

from docsite.context import DiagnosticLog
from docsite.loader import ContentLoader
from docsite.models import DiagnosticKind, Severity


def test_load_document_reports_invalid_utf8(docs_builder) -> None:
    docs_builder.write_bytes("bad.md", b"# Title\n\nCaf\xe9\n")
    log = DiagnosticLog()

    document = ContentLoader().load_document(docs_builder.path(), "bad.md", log)

    assert document is None
    [diagnostic] = list(log)
    assert diagnostic.kind is DiagnosticKind.ENCODING_ERROR
    assert diagnostic.severity is Severity.ERROR
    assert diagnostic.location.path == "bad.md"
    assert diagnostic.location.line == 3


def test_load_all_keeps_going_after_bad_files(docs_builder) -> None:
    docs_builder.write(
        {
            "a.md": "# A\n\n```python\nunterminated\n",
            "b.md": "# B\n",
        }
    )
    docs_builder.write_bytes("c.md", b"\xff\xfe")
    docs_builder.write({"d.md": "# D\n"})
    context = docs_builder.context()

    documents = ContentLoader().load_all(["a.md", "b.md", "c.md", "d.md"], context, workers=2)

    assert [document.path for document in documents] == ["a.md", "b.md", "d.md"]
    kinds = [diagnostic.kind for diagnostic in context.log]
    assert kinds == [DiagnosticKind.UNTERMINATED_BLOCK, DiagnosticKind.ENCODING_ERROR]


def test_load_all_stops_when_cancelled(docs_builder) -> None:
    docs_builder.write({"a.md": "# A\n", "b.md": "# B\n"})
    context = docs_builder.context()
    context.cancel.cancel()

    documents = ContentLoader().load_all(["a.md", "b.md"], context)

    assert documents == []
    assert len(context.log) == 0
