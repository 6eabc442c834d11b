"""Checkers for structured data snippets (JSON, YAML)."""

from __future__ import annotations

import json

import yaml

from .base import CheckOutcome, Checker


class JsonChecker(Checker):
    name = "json"
    languages = frozenset({"json"})

    def check(self, code: str, *, language: str, timeout: float) -> CheckOutcome:
        try:
            json.loads(code)
        except json.JSONDecodeError as exc:
            return CheckOutcome.failed(f"Invalid JSON: {exc.msg}", exc.lineno)
        return CheckOutcome.passed()


class YamlChecker(Checker):
    name = "yaml"
    languages = frozenset({"yaml"})

    def check(self, code: str, *, language: str, timeout: float) -> CheckOutcome:
        try:
            for _ in yaml.safe_load_all(code):
                pass
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            line = mark.line + 1 if mark is not None else None
            problem = getattr(exc, "problem", None) or str(exc)
            return CheckOutcome.failed(f"Invalid YAML: {problem}", line)
        return CheckOutcome.passed()


__all__ = ["JsonChecker", "YamlChecker"]
