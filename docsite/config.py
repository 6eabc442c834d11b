"""Configuration loading for docsite (.docsite.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .models import Severity

CONFIG_FILENAME = ".docsite.yml"

DEFAULT_EXTENSIONS = (".md", ".markdown")
DEFAULT_OUTPUT_DIR = "_site"
DEFAULT_SNIPPET_TIMEOUT = 5.0
DEFAULT_SKIP_LANGUAGES = ("text", "txt", "plaintext", "console", "output", "diff", "mermaid")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class SnippetConfig:
    """Snippet validation settings."""

    enabled: Optional[List[str]] = None
    timeout: float = DEFAULT_SNIPPET_TIMEOUT
    failure_severity: Severity = Severity.WARNING
    skip_languages: List[str] = field(default_factory=lambda: list(DEFAULT_SKIP_LANGUAGES))
    cache: bool = True


@dataclass
class DocSiteConfig:
    """Represents the settings defined in .docsite.yml."""

    root: Path
    title: Optional[str] = None
    output_dir: Optional[Path] = None
    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    exclude_paths: List[str] = field(default_factory=list)
    case_insensitive: bool = False
    workers: Optional[int] = None
    snippets: SnippetConfig = field(default_factory=SnippetConfig)

    @property
    def site_title(self) -> str:
        return self.title or self.root.name or "Documentation"

    @property
    def resolved_output_dir(self) -> Path:
        return self.output_dir or (self.root / DEFAULT_OUTPUT_DIR)


def load_config(config_path: Path) -> DocSiteConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return DocSiteConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = DocSiteConfig(root=root)
    config.title = _as_str(data.get("title"))

    output_dir = _as_str(data.get("output_dir"))
    if output_dir:
        config.output_dir = (root / output_dir).resolve()

    extensions = _as_str_list(data.get("extensions"))
    if extensions:
        config.extensions = [_normalise_extension(ext) for ext in extensions]

    config.exclude_paths = _as_str_list(data.get("exclude_paths"))
    config.case_insensitive = _as_bool(data.get("case_insensitive")) or False

    workers = _as_int(data.get("workers"))
    if workers is not None:
        if workers < 1:
            raise ConfigError("workers must be a positive integer")
        config.workers = workers

    snippet_data = _as_dict(data.get("snippets"))
    if snippet_data:
        config.snippets = _parse_snippets(snippet_data)

    return config


def _parse_snippets(data: Dict[str, Any]) -> SnippetConfig:
    snippets = SnippetConfig()
    if "enabled" in data:
        snippets.enabled = _as_str_list(data.get("enabled"))

    timeout = _as_float(data.get("timeout"))
    if timeout is not None:
        if timeout <= 0:
            raise ConfigError("snippets.timeout must be greater than zero")
        snippets.timeout = timeout

    severity = _as_str(data.get("failure_severity"))
    if severity:
        try:
            snippets.failure_severity = Severity(severity.strip().lower())
        except ValueError as exc:
            raise ConfigError(
                f"snippets.failure_severity must be 'warning' or 'error', got {severity!r}"
            ) from exc

    if "skip_languages" in data:
        snippets.skip_languages = [lang.lower() for lang in _as_str_list(data.get("skip_languages"))]

    cache = _as_bool(data.get("cache"))
    if cache is not None:
        snippets.cache = cache
    return snippets


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _normalise_extension(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["CONFIG_FILENAME", "ConfigError", "DocSiteConfig", "SnippetConfig", "load_config"]
