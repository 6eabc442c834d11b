"""Python snippet checker."""

from __future__ import annotations

import re
import sys

from .base import CheckOutcome, Checker, run_checker_process

# Parses stdin in a fresh isolated interpreter and reports "line:message".
_PARSE_SCRIPT = (
    "import ast, sys\n"
    "source = sys.stdin.read()\n"
    "try:\n"
    "    ast.parse(source, '<snippet>')\n"
    "except SyntaxError as exc:\n"
    "    print(f'{exc.lineno or 0}:{exc.msg}')\n"
    "    sys.exit(1)\n"
)
_OUTPUT = re.compile(r"^(?P<line>\d+):(?P<message>.*)$")


class PythonChecker(Checker):
    """Syntax-checks Python snippets with :mod:`ast` in a subprocess."""

    name = "python"
    languages = frozenset({"python"})
    runs_in_subprocess = True

    def __init__(self, executable: str | None = None) -> None:
        self.executable = executable or sys.executable

    def available(self) -> bool:
        return bool(self.executable)

    def check(self, code: str, *, language: str, timeout: float) -> CheckOutcome:
        completed = run_checker_process(
            [self.executable, "-I", "-c", _PARSE_SCRIPT], code, timeout=timeout
        )
        if completed.returncode == 0:
            return CheckOutcome.passed()
        output = completed.stdout.strip() or completed.stderr.strip()
        match = _OUTPUT.match(output.splitlines()[-1]) if output else None
        if match:
            line = int(match.group("line")) or None
            return CheckOutcome.failed(f"SyntaxError: {match.group('message')}", line)
        return CheckOutcome.failed(output or f"python exited with code {completed.returncode}")


__all__ = ["PythonChecker"]
