"""Shell snippet checker backed by ``bash -n``."""

from __future__ import annotations

import re
import shutil

from .base import CheckOutcome, Checker, run_checker_process

_LINE = re.compile(r"line (?P<line>\d+):\s*(?P<message>.*)")


class ShellChecker(Checker):
    name = "shell"
    languages = frozenset({"shell"})
    runs_in_subprocess = True

    def __init__(self, executable: str | None = None) -> None:
        self._executable = executable

    @property
    def executable(self) -> str | None:
        return self._executable or shutil.which("bash")

    def available(self) -> bool:
        return self.executable is not None

    def check(self, code: str, *, language: str, timeout: float) -> CheckOutcome:
        executable = self.executable
        if executable is None:
            return CheckOutcome.failed("bash is not installed")
        completed = run_checker_process([executable, "-n"], code, timeout=timeout)
        if completed.returncode == 0:
            return CheckOutcome.passed()
        stderr = completed.stderr.strip()
        match = _LINE.search(stderr)
        if match:
            return CheckOutcome.failed(match.group("message"), int(match.group("line")))
        return CheckOutcome.failed(stderr or f"bash exited with code {completed.returncode}")


__all__ = ["ShellChecker"]
