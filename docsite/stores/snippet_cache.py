"""Persistent cache for snippet validation outcomes."""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Optional

from ..models import CheckOutcome

_CACHE_VERSION = 1
CACHE_RELATIVE_PATH = Path(".docsite") / "snippet_cache.json"


def snippet_key(signature: str, code: str) -> str:
    """Cache key: checker signature plus a digest of the snippet text."""
    digest = hashlib.sha256()
    digest.update(signature.encode("utf-8"))
    digest.update(b"\0")
    digest.update(code.encode("utf-8"))
    return digest.hexdigest()


class SnippetCache:
    """Stores check outcomes keyed by checker signature and code hash.

    Validation is a pure function of the block text, so a hit can be reused
    across runs. Timeouts are never stored.
    """

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, object]] = {}
        self._used: set[str] = set()
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    @classmethod
    def for_root(cls, root: Path) -> "SnippetCache":
        return cls(root / CACHE_RELATIVE_PATH)

    def get(self, key: str) -> Optional[CheckOutcome]:
        entry = self._entries.get(key)
        if not entry:
            return None
        outcome = _outcome_from_dict(entry)
        if outcome is not None:
            self._used.add(key)
        return outcome

    def store(self, key: str, outcome: CheckOutcome) -> None:
        self._entries[key] = {
            "ok": outcome.ok,
            "message": outcome.message,
            "line": outcome.line,
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._used.add(key)
        self._dirty = True

    def prune(self) -> None:
        """Drop entries not read or stored during this run."""
        removed = [key for key in self._entries if key not in self._used]
        if removed:
            for key in removed:
                self._entries.pop(key, None)
            self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _CACHE_VERSION,
            "entries": self._entries,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        self._dirty = False

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        self._entries = {
            key: raw
            for key, raw in entries.items()
            if isinstance(key, str) and isinstance(raw, dict) and "ok" in raw
        }
        self._dirty = False


def _outcome_from_dict(payload: Dict[str, object]) -> Optional[CheckOutcome]:
    ok = payload.get("ok")
    message = payload.get("message")
    line = payload.get("line")
    if not isinstance(ok, bool):
        return None
    if message is not None and not isinstance(message, str):
        return None
    if line is not None and (isinstance(line, bool) or not isinstance(line, int)):
        return None
    return CheckOutcome(ok=ok, message=message, line=line)


__all__ = ["CACHE_RELATIVE_PATH", "SnippetCache", "snippet_key"]
