"""Core checker contracts and helpers."""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from typing import FrozenSet, Optional, Sequence

from ..models import CheckOutcome

_LANGUAGE_ALIASES = {
    "py": "python",
    "py3": "python",
    "python3": "python",
    "pycon": "python-console",
    "json5": "json5",
    "jsonc": "jsonc",
    "yml": "yaml",
    "sh": "shell",
    "bash": "shell",
    "zsh": "shell",
    "shell-script": "shell",
    "cs": "csharp",
    "c#": "csharp",
    "c-sharp": "csharp",
    "js": "javascript",
    "node": "javascript",
    "ts": "typescript",
    "golang": "go",
    "rs": "rust",
    "c++": "cpp",
    "cxx": "cpp",
    "h": "c",
}


def normalize_language(tag: Optional[str]) -> Optional[str]:
    """Map a fence info tag to its canonical language name."""
    if not tag:
        return None
    lowered = tag.strip().lower()
    return _LANGUAGE_ALIASES.get(lowered, lowered)


class CheckTimeout(RuntimeError):
    """Raised when a check exceeds its time budget."""


class Checker(ABC):
    """Contract for per-language snippet syntax checkers."""

    name: str = "checker"
    languages: FrozenSet[str] = frozenset()
    version: str = "1"
    # Subprocess checkers enforce the timeout themselves; in-process ones are
    # bounded by the validator.
    runs_in_subprocess: bool = False

    def available(self) -> bool:
        """Return True when the tooling this checker needs is installed."""
        return True

    def handles(self, language: str) -> bool:
        return language in self.languages

    def signature(self, language: str) -> str:
        return f"{self.name}:{self.version}:{language}"

    @abstractmethod
    def check(self, code: str, *, language: str, timeout: float) -> CheckOutcome:
        """Validate ``code``; raise :class:`CheckTimeout` when out of time."""


def run_checker_process(
    args: Sequence[str], code: str, *, timeout: float
) -> subprocess.CompletedProcess[str]:
    """Run an external checker with the snippet on stdin."""
    try:
        return subprocess.run(
            list(args),
            input=code,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise CheckTimeout(f"{args[0]} did not finish within {timeout:g}s") from exc


__all__ = [
    "CheckOutcome",
    "CheckTimeout",
    "Checker",
    "normalize_language",
    "run_checker_process",
]
