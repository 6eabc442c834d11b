"""Snippet checker plugins, discovery utilities and the snippet validator."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import CheckTimeout, Checker, normalize_language, run_checker_process
from .python import PythonChecker
from .shell import ShellChecker
from .structured import JsonChecker, YamlChecker
from .tree_sitter import TREE_SITTER_AVAILABLE, TreeSitterChecker
from .snippets import SnippetValidator

_ENTRY_POINT_GROUP = "docsite.checkers"

_BUILTIN_FACTORIES: dict[str, Callable[[], Checker]] = {
    "python": PythonChecker,
    "json": JsonChecker,
    "yaml": YamlChecker,
    "shell": ShellChecker,
    "tree-sitter": TreeSitterChecker,
}


def discover_checkers(enabled: Sequence[str] | None = None) -> List[Checker]:
    """Return instantiated checkers, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    checkers: List[Checker] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Checker]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, Checker):
            raise TypeError(f"Checker factory for '{name}' did not return a Checker instance")
        checkers.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - broken plugin
            raise RuntimeError(f"Failed to load checker entry point '{name}': {exc}") from exc

        def _factory(obj: object = loaded) -> Checker:
            return _coerce_checker(obj)

        _add(name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown checkers requested: {missing}")

    return checkers


def _coerce_checker(obj: object) -> Checker:
    if isinstance(obj, Checker):
        return obj
    if isinstance(obj, type) and issubclass(obj, Checker):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Checker):
            return instance
    raise TypeError("Checker entry point must be a Checker subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "CheckTimeout",
    "Checker",
    "JsonChecker",
    "PythonChecker",
    "ShellChecker",
    "SnippetValidator",
    "TREE_SITTER_AVAILABLE",
    "TreeSitterChecker",
    "YamlChecker",
    "discover_checkers",
    "normalize_language",
    "run_checker_process",
]
