"""Tests for the parallel snippet validator."""

from __future__ import annotations

import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from docsite.context import DiagnosticLog
from docsite.loader import MarkdownParser
from docsite.models import CheckOutcome, DiagnosticKind, Severity, ValidationStatus
from docsite.stores import SnippetCache
from docsite.validators import Checker, JsonChecker, PythonChecker, SnippetValidator


class CountingChecker(Checker):
    name = "counting"
    languages = frozenset({"json"})

    def __init__(self) -> None:
        self.calls = 0
        self._lock = threading.Lock()

    def check(self, code, *, language, timeout):
        with self._lock:
            self.calls += 1
        if "bad" in code:
            return CheckOutcome.failed("bad token", 2)
        return CheckOutcome.passed()


class BlockingChecker(Checker):
    name = "blocking"
    languages = frozenset({"json"})

    def __init__(self) -> None:
        self.release = threading.Event()

    def check(self, code, *, language, timeout):
        self.release.wait(10)
        return CheckOutcome.passed()


class CrashingChecker(Checker):
    name = "crashing"
    languages = frozenset({"json"})

    def check(self, code, *, language, timeout):
        raise RuntimeError("boom")


def _blocks(text: str, path: str = "guide.md"):
    document = MarkdownParser().parse(path, text, DiagnosticLog())
    return list(document.code_blocks())


def test_blocks_are_classified_by_language(docs_builder) -> None:
    blocks = _blocks(
        "```\nno tag\n```\n"
        "```cobol\nDISPLAY 'HI'.\n```\n"
        "```text\nplain\n```\n"
        "```json ignore\n{broken\n```\n"
        "```json\n{\"ok\": true}\n```\n"
    )
    context = docs_builder.context()
    validator = SnippetValidator([JsonChecker()], skip_languages=["text"])

    results = validator.validate(blocks, context)

    assert [result.status for result in results] == [
        ValidationStatus.SKIPPED,
        ValidationStatus.UNVERIFIED,
        ValidationStatus.SKIPPED,
        ValidationStatus.SKIPPED,
        ValidationStatus.PASSED,
    ]
    assert len(context.log) == 0


def test_unverified_language_produces_no_errors(docs_builder) -> None:
    blocks = _blocks("```haskell\nmain = putStrLn \"hi\"\n```\n")
    context = docs_builder.context()

    [result] = SnippetValidator([JsonChecker()]).validate(blocks, context)

    assert result.status is ValidationStatus.UNVERIFIED
    assert not context.log.has_errors


def test_failures_are_reported_at_file_line(docs_builder) -> None:
    blocks = _blocks("# Data\n\n```json\n{\n  \"a\": 1\n  \"b\": 2\n}\n```\n")
    context = docs_builder.context()

    [result] = SnippetValidator([JsonChecker()], failure_severity=Severity.ERROR).validate(blocks, context)

    assert result.status is ValidationStatus.FAILED
    [diagnostic] = list(context.log)
    assert diagnostic.kind is DiagnosticKind.SNIPPET_ERROR
    assert diagnostic.severity is Severity.ERROR
    assert diagnostic.location.path == "guide.md"
    assert diagnostic.location.line == 6


def test_diagnostics_merge_in_block_order(docs_builder) -> None:
    blocks = _blocks("".join(f"```json\nbad {index}\n```\n" for index in range(6)))
    context = docs_builder.context()

    SnippetValidator([CountingChecker()], workers=4).validate(blocks, context)

    lines = [diagnostic.location.line for diagnostic in context.log]
    assert lines == [1 + 3 * index + 2 for index in range(6)]
    assert all(diagnostic.severity is Severity.WARNING for diagnostic in context.log)


def test_slow_in_process_check_times_out(docs_builder) -> None:
    blocks = _blocks("```json\n{}\n```\n")
    context = docs_builder.context()
    checker = BlockingChecker()
    try:
        [result] = SnippetValidator([checker], timeout=0.2).validate(blocks, context)
    finally:
        checker.release.set()

    assert result.status is ValidationStatus.TIMEOUT
    [diagnostic] = list(context.log)
    assert diagnostic.kind is DiagnosticKind.SNIPPET_TIMEOUT
    assert diagnostic.severity is Severity.WARNING


def test_crashing_checker_becomes_failure(docs_builder) -> None:
    blocks = _blocks("```json\n{}\n```\n")
    context = docs_builder.context()

    [result] = SnippetValidator([CrashingChecker()]).validate(blocks, context)

    assert result.status is ValidationStatus.FAILED
    assert "boom" in result.message
    assert len(context.log.of_kind(DiagnosticKind.SNIPPET_ERROR)) == 1


def test_cache_reuses_outcomes(docs_builder, tmp_path) -> None:
    blocks = _blocks("```json\n{}\n```\n```json\nbad\n```\n")
    checker = CountingChecker()
    cache = SnippetCache(tmp_path / "cache.json")

    first = SnippetValidator([checker], cache=cache).validate(blocks, docs_builder.context())
    context = docs_builder.context()
    second = SnippetValidator([checker], cache=cache).validate(blocks, context)

    assert checker.calls == 2
    assert [result.cached for result in first] == [False, False]
    assert [result.cached for result in second] == [True, True]
    assert [result.status for result in second] == [ValidationStatus.PASSED, ValidationStatus.FAILED]
    assert len(context.log.of_kind(DiagnosticKind.SNIPPET_ERROR)) == 1


def test_cancelled_validation_returns_nothing(docs_builder) -> None:
    blocks = _blocks("```json\n{}\n```\n")
    context = docs_builder.context()
    context.cancel.cancel()

    assert SnippetValidator([JsonChecker()]).validate(blocks, context) == []


def test_in_process_check_runs_on_daemon_thread(docs_builder) -> None:
    blocks = _blocks("```json\n{}\n```\n")
    seen = {}

    class RecordingChecker(Checker):
        name = "recording"
        languages = frozenset({"json"})

        def check(self, code, *, language, timeout):
            seen["daemon"] = threading.current_thread().daemon
            return CheckOutcome.passed()

    [result] = SnippetValidator([RecordingChecker()]).validate(blocks, docs_builder.context())

    assert result.status is ValidationStatus.PASSED
    assert seen["daemon"] is True


_HUNG_CHECK_SCRIPT = textwrap.dedent(
    """
    import time
    from pathlib import Path

    from docsite.config import DocSiteConfig
    from docsite.context import BuildContext, DiagnosticLog
    from docsite.loader import MarkdownParser
    from docsite.models import CheckOutcome
    from docsite.validators import Checker, SnippetValidator


    class SleepingChecker(Checker):
        name = "sleeping"
        languages = frozenset({"json"})

        def check(self, code, *, language, timeout):
            time.sleep(30)
            return CheckOutcome.passed()


    document = MarkdownParser().parse("guide.md", "```json\\n{}\\n```\\n", DiagnosticLog())
    context = BuildContext(root=Path("."), config=DocSiteConfig(root=Path(".")))
    [result] = SnippetValidator([SleepingChecker()], timeout=0.2).validate(
        list(document.code_blocks()), context
    )
    print(result.status.value)
    """
)


def test_abandoned_check_does_not_delay_exit(tmp_path) -> None:
    project_root = Path(__file__).resolve().parents[2]
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(project_root), env.get("PYTHONPATH")]))

    started = time.monotonic()
    completed = subprocess.run(
        [sys.executable, "-c", _HUNG_CHECK_SCRIPT],
        capture_output=True,
        text=True,
        cwd=tmp_path,
        env=env,
        timeout=25,
        check=False,
    )
    elapsed = time.monotonic() - started

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.strip() == ValidationStatus.TIMEOUT.value
    assert elapsed < 15


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script as the interpreter")
def test_subprocess_check_is_killed_on_timeout(docs_builder, tmp_path) -> None:
    script = tmp_path / "slow-python"
    script.write_text("#!/bin/sh\nexec sleep 5\n", encoding="utf-8")
    script.chmod(0o755)
    blocks = _blocks("```python\nprint('hi')\n```\n")
    context = docs_builder.context()

    started = time.monotonic()
    [result] = SnippetValidator([PythonChecker(executable=str(script))], timeout=0.2).validate(blocks, context)
    elapsed = time.monotonic() - started

    assert result.status is ValidationStatus.TIMEOUT
    assert result.checker == "python"
    [diagnostic] = list(context.log)
    assert diagnostic.kind is DiagnosticKind.SNIPPET_TIMEOUT
    assert diagnostic.location.line == 1
    assert elapsed < 4
