"""Core data models shared across docsite components."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Optional, Tuple


class Severity(str, Enum):
    """How much a diagnostic matters to the exit code."""

    WARNING = "warning"
    ERROR = "error"


class DiagnosticKind(str, Enum):
    """Closed taxonomy of issues reported during a build."""

    ENCODING_ERROR = "EncodingError"
    UNTERMINATED_BLOCK = "UnterminatedBlock"
    INVALID_FRONT_MATTER = "InvalidFrontMatter"
    BROKEN_LINK = "BrokenLink"
    BROKEN_ANCHOR = "BrokenAnchor"
    DUPLICATE_PATH = "DuplicatePath"
    SNIPPET_ERROR = "SnippetError"
    SNIPPET_TIMEOUT = "SnippetTimeout"
    FATAL_ERROR = "FatalError"


@dataclass(frozen=True, order=True)
class SourceLocation:
    """File path (relative, POSIX) and 1-based line; line 0 means the whole file."""

    path: str
    line: int = 0

    def __str__(self) -> str:
        if self.line:
            return f"{self.path}:{self.line}"
        return self.path


@dataclass(frozen=True)
class Diagnostic:
    """Single reported issue with severity and location."""

    severity: Severity
    kind: DiagnosticKind
    message: str
    location: SourceLocation

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "kind": self.kind.value,
            "file": self.location.path,
            "line": self.location.line,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.severity.value}: [{self.kind.value}] {self.message}"


# ----------------------------------------------------------------------
# Content blocks


@dataclass(frozen=True)
class Block:
    """Base for parsed content blocks; keeps raw source lines for round trips."""

    lines: Tuple[str, ...]
    line: int

    kind = "block"

    @property
    def text(self) -> str:
        return "".join(self.lines)

    @property
    def end_line(self) -> int:
        return self.line + len(self.lines) - 1


@dataclass(frozen=True)
class Blank(Block):
    kind = "blank"


@dataclass(frozen=True)
class FrontMatter(Block):
    """Leading YAML metadata block delimited by ``---`` lines."""

    data: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    kind = "front_matter"


@dataclass(frozen=True)
class Heading(Block):
    level: int = 1
    title: str = ""
    slug: str = ""

    kind = "heading"


@dataclass(frozen=True)
class Paragraph(Block):
    # True for text that is never interpreted (e.g. after an unterminated fence)
    plain: bool = False

    kind = "paragraph"


@dataclass(frozen=True)
class Table(Block):
    """Pipe table; kept as an opaque payload."""

    kind = "table"


@dataclass(frozen=True)
class Callout(Block):
    """Hint or admonition block (GitBook ``{% hint %}`` or ``> [!NOTE]``)."""

    style: str = "info"
    body: Tuple[str, ...] = ()

    kind = "callout"


@dataclass(frozen=True)
class CodeBlock(Block):
    """Fenced code block; ``code`` excludes the fence lines."""

    path: str = ""
    language: Optional[str] = None
    info: str = ""
    code: str = ""

    kind = "code"

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(self.path, self.line)


# ----------------------------------------------------------------------
# Documents and links


@dataclass(frozen=True)
class LinkReference:
    """Outbound link from ``source``; ``target`` is the raw path part (may be empty)."""

    source: str
    target: str
    anchor: Optional[str]
    raw: str
    line: int

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(self.source, self.line)


@dataclass(frozen=True)
class Document:
    """One parsed source file. Immutable after load."""

    path: str
    title: str
    blocks: Tuple[Block, ...]
    links: Tuple[LinkReference, ...] = ()
    anchors: FrozenSet[str] = frozenset()
    front_matter: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)
    bom: bool = False

    @property
    def directory(self) -> str:
        return posixpath.dirname(self.path)

    @property
    def filename(self) -> str:
        return posixpath.basename(self.path)

    @property
    def is_index(self) -> bool:
        return self.filename.lower() in INDEX_FILENAMES

    def code_blocks(self) -> Iterator[CodeBlock]:
        for block in self.blocks:
            if isinstance(block, CodeBlock):
                yield block

    def headings(self) -> Iterator[Heading]:
        for block in self.blocks:
            if isinstance(block, Heading):
                yield block

    def to_markdown(self) -> str:
        """Re-serialize the blocks; byte-identical to the source for well-formed input."""
        body = "".join(block.text for block in self.blocks)
        return ("\ufeff" + body) if self.bom else body


INDEX_FILENAMES = ("readme.md", "index.md")


# ----------------------------------------------------------------------
# Navigation


@dataclass(frozen=True)
class SiteNode:
    """Directory or page in the navigation tree."""

    name: str
    path: str
    title: str
    page: Optional[str] = None
    children: Tuple["SiteNode", ...] = ()
    is_directory: bool = False

    def iter_pages(self) -> Iterator[str]:
        if self.page is not None:
            yield self.page
        for child in self.children:
            yield from child.iter_pages()


@dataclass(frozen=True)
class SiteTree:
    """Resolved navigation hierarchy across all Documents."""

    root: SiteNode

    def pages(self) -> Tuple[str, ...]:
        return tuple(self.root.iter_pages())


# ----------------------------------------------------------------------
# Snippet validation


class ValidationStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    UNVERIFIED = "unverified"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SnippetResult:
    """Outcome of validating one code block."""

    block: CodeBlock
    status: ValidationStatus
    checker: Optional[str] = None
    message: Optional[str] = None
    cached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.block.path,
            "line": self.block.line,
            "language": self.block.language,
            "status": self.status.value,
            "checker": self.checker,
            "message": self.message,
        }


@dataclass(frozen=True)
class CheckOutcome:
    """Result of one checker run; ``line`` is 1-based within the snippet."""

    ok: bool
    message: Optional[str] = None
    line: Optional[int] = None

    @classmethod
    def passed(cls) -> "CheckOutcome":
        return cls(ok=True)

    @classmethod
    def failed(cls, message: str, line: Optional[int] = None) -> "CheckOutcome":
        return cls(ok=False, message=message, line=line)
