"""Tests for checker discovery utilities."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from docsite.models import CheckOutcome
from docsite.validators import Checker, JsonChecker, PythonChecker, discover_checkers


class DummyChecker(Checker):
    """Test checker used for plugin discovery validation."""

    name = "dummy"
    languages = frozenset({"dummy"})

    def check(self, code, *, language, timeout):  # pragma: no cover - unused
        return CheckOutcome.passed()


def test_discover_checkers_returns_builtin_checkers() -> None:
    checkers = discover_checkers()
    names = [checker.name for checker in checkers]
    assert names[:5] == ["python", "json", "yaml", "shell", "tree-sitter"]


def test_discover_checkers_respects_enabled_filter() -> None:
    checkers = discover_checkers(["json", "Python"])
    assert [type(checker) for checker in checkers] == [PythonChecker, JsonChecker]


def test_discover_checkers_loads_entry_points(monkeypatch) -> None:
    dummy_entry = SimpleNamespace(
        name="dummy",
        load=lambda: DummyChecker,
    )

    class DummyEntryPoints(list):
        def select(self, **kwargs):
            if kwargs.get("group") == "docsite.checkers":
                return self
            return []

    monkeypatch.setattr(
        "docsite.validators.metadata.entry_points",
        lambda: DummyEntryPoints([dummy_entry]),
        raising=False,
    )

    checkers = discover_checkers(["dummy"])
    assert len(checkers) == 1
    assert isinstance(checkers[0], DummyChecker)


def test_discover_checkers_raises_for_unknown_name() -> None:
    with pytest.raises(ValueError):
        discover_checkers(["does-not-exist"])
