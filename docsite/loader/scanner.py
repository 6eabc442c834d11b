"""Discovery of documentation sources under a root directory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

from ..config import DocSiteConfig
from ..logging import get_logger

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".docsite",
    ".gitbook",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .docsite.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class DocumentScanner:
    """Walks the root to list Markdown sources in deterministic order."""

    def __init__(self, config: DocSiteConfig) -> None:
        self.config = config
        self.logger = get_logger("loader.scanner")

    def scan(self, root: Path) -> List[str]:
        """Return relative POSIX paths of recognised files, sorted lexicographically."""
        root = root.resolve()
        rules = self.ignore_rules(root)

        extensions = {ext.lower() for ext in self.config.extensions}
        paths = sorted(
            path.relative_to(root).as_posix()
            for path in self._iter_files(root, rules)
            if path.suffix.lower() in extensions
        )
        self.logger.debug("Discovered %d source files under %s", len(paths), root)
        return paths

    def ignore_rules(self, root: Path) -> List[IgnoreRule]:
        """Rules from ``.gitignore`` followed by the configured ``exclude_paths``."""
        rules = _parse_gitignore(root / ".gitignore")
        for pattern in self.config.exclude_paths:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                rules.append(rule)
        return rules

    def is_excluded(self, root: Path, rel_path: str, rules: Sequence[IgnoreRule]) -> bool:
        """Return True when a scan of ``root`` would never visit ``rel_path``."""
        root = root.resolve()
        output_dir = self.config.resolved_output_dir.resolve()
        parts = rel_path.split("/")
        for depth in range(1, len(parts)):
            prefix = "/".join(parts[:depth])
            if parts[depth - 1] in _EXCLUDED_DIRS:
                return True
            if (root / prefix).resolve() == output_dir:
                return True
            if _should_ignore(prefix, True, rules):
                return True
        if parts[-1] in _EXCLUDED_FILES:
            return True
        return _should_ignore(rel_path, False, rules)

    def _iter_files(self, root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
        output_dir = self.config.resolved_output_dir.resolve()
        for dirpath, dirnames, filenames in os.walk(root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept = []
            for name in sorted(dirnames):
                if name in _EXCLUDED_DIRS:
                    continue
                if (current_dir / name).resolve() == output_dir:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, rules):
                    continue
                kept.append(name)
            dirnames[:] = kept

            for filename in filenames:
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, rules):
                    continue
                yield current_dir / filename


__all__ = ["DocumentScanner", "IgnoreRule", "build_ignore_rule"]
