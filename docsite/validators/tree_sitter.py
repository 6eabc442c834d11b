"""Tree-sitter powered syntax checker for C-family and other languages."""

from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional

from .base import CheckOutcome, Checker

try:  # pragma: no cover - optional dependency
    from tree_sitter import Parser
    from tree_sitter_languages import get_language

    TREE_SITTER_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    Parser = None  # type: ignore[assignment,misc]
    get_language = None  # type: ignore[assignment]
    TREE_SITTER_AVAILABLE = False


_GRAMMARS = {
    "csharp": "c_sharp",
    "java": "java",
    "javascript": "javascript",
    "typescript": "typescript",
    "go": "go",
    "rust": "rust",
    "c": "c",
    "cpp": "cpp",
}


class TreeSitterChecker(Checker):
    """Reports the first ERROR or MISSING node of the parse tree."""

    name = "tree-sitter"
    languages = frozenset(_GRAMMARS)

    def __init__(self, enabled: Optional[bool] = None) -> None:
        self._enabled = TREE_SITTER_AVAILABLE if enabled is None else enabled
        # Parsers are not thread-safe; keep one set per worker thread.
        self._local = threading.local()

    def available(self) -> bool:
        return self._enabled

    def check(self, code: str, *, language: str, timeout: float) -> CheckOutcome:
        parser = self._get_parser(language)
        if parser is None:
            return CheckOutcome.failed(f"No tree-sitter grammar for {language}")
        source_bytes = code.encode("utf-8")
        tree = parser.parse(source_bytes)
        if not tree.root_node.has_error:
            return CheckOutcome.passed()
        for node in self._iter_nodes(tree.root_node):
            if node.type == "ERROR":
                row = node.start_point[0]
                snippet = self._node_text(node, source_bytes).strip().splitlines()
                detail = f" near '{snippet[0][:40]}'" if snippet else ""
                return CheckOutcome.failed(f"Syntax error{detail}", row + 1)
            if node.is_missing:
                row = node.start_point[0]
                return CheckOutcome.failed(f"Missing '{node.type}'", row + 1)
        return CheckOutcome.failed("Syntax error")

    def _get_parser(self, language: str) -> Optional["Parser"]:
        if not self._enabled or language not in _GRAMMARS:
            return None
        parsers: Dict[str, Parser] = getattr(self._local, "parsers", None) or {}
        self._local.parsers = parsers
        parser = parsers.get(language)
        if parser is not None:
            return parser
        parser = Parser()
        parser.set_language(get_language(_GRAMMARS[language]))
        parsers[language] = parser
        return parser

    @classmethod
    def _iter_nodes(cls, node) -> Iterator:  # type: ignore[no-untyped-def]
        yield node
        for child in node.children:
            yield from cls._iter_nodes(child)

    @staticmethod
    def _node_text(node, source_bytes: bytes) -> str:  # type: ignore[no-untyped-def]
        return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


__all__ = ["TREE_SITTER_AVAILABLE", "TreeSitterChecker"]
