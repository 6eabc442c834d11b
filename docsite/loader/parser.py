"""Line-oriented Markdown parser producing typed content blocks."""

from __future__ import annotations

import posixpath
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from ..context import DiagnosticLog
from ..models import (
    Blank,
    Block,
    Callout,
    CodeBlock,
    DiagnosticKind,
    Document,
    FrontMatter,
    Heading,
    LinkReference,
    Paragraph,
    Table,
)
from .slugs import SlugRegistry, plain_heading_text

_LINE = re.compile(r"[^\n]*\n|[^\n]+\Z")
_FENCE_OPEN = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_FENCE_CLOSE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})[ \t]*$")
_HEADING = re.compile(r"^ {0,3}(?P<marks>#{1,6})(?:[ \t]+(?P<title>.*?))?(?:[ \t]+#+)?[ \t]*$")
_HINT_OPEN = re.compile(r"^\s*\{%\s*hint\b(?P<attrs>.*?)%\}\s*$")
_HINT_CLOSE = re.compile(r"\{%\s*endhint\s*%\}")
_HINT_STYLE = re.compile(r"style\s*=\s*[\"'](?P<style>[\w-]+)[\"']")
_QUOTE = re.compile(r"^ {0,3}>")
_QUOTE_STYLE = re.compile(r"^ {0,3}>\s*\[!(?P<style>[A-Za-z]+)\]")
_TABLE_DELIMITER = re.compile(r"^\s*\|?(\s*:?-+:?\s*\|)+\s*(:?-+:?\s*)?$")
_FRONT_MATTER_CLOSE = ("---", "...")

_CODE_SPAN = re.compile(r"(`+)(.+?)\1")
_INLINE_LINK = re.compile(r"!?\[[^\]]*\]\(\s*(?P<target><[^>]*>|[^)\s]+)(?:\s+[\"'(][^)]*)?\s*\)")
_REFERENCE_DEF = re.compile(r"^ {0,3}\[(?P<label>[^\]^][^\]]*)\]:\s*(?P<target><[^>]*>|\S+)")
_EXTERNAL = re.compile(r"^(?:[A-Za-z][A-Za-z0-9+.-]*:|//)")


def split_lines(text: str) -> List[str]:
    """Split text into lines keeping terminators so joins are lossless."""
    return _LINE.findall(text)


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


class MarkdownParser:
    """Parses one file into a :class:`Document`.

    Recognised constructs: YAML front matter, ATX headings, fenced code
    blocks, pipe tables, GitBook hints and blockquote callouts. Everything
    else is a paragraph. Tables and callouts are opaque payloads.
    """

    def parse(self, path: str, text: str, log: DiagnosticLog) -> Document:
        bom = text.startswith("\ufeff")
        if bom:
            text = text[1:]
        lines = split_lines(text)
        blocks: List[Block] = []
        slugs = SlugRegistry()
        front_matter: Dict[str, Any] = {}

        index = 0
        if lines and _strip_eol(lines[0]) == "---":
            block, index = self._parse_front_matter(path, lines, log)
            if block is not None:
                blocks.append(block)
                front_matter = dict(block.data)

        while index < len(lines):
            line = _strip_eol(lines[index])
            if not line.strip():
                end = index
                while end < len(lines) and not _strip_eol(lines[end]).strip():
                    end += 1
                blocks.append(Blank(lines=tuple(lines[index:end]), line=index + 1))
                index = end
                continue

            fence = _FENCE_OPEN.match(line)
            if fence and not (fence.group("fence")[0] == "`" and "`" in fence.group("info")):
                close = self._find_fence_close(lines, index + 1, fence.group("fence"))
                if close is None:
                    log.report(
                        DiagnosticKind.UNTERMINATED_BLOCK,
                        f"Code fence opened with {fence.group('fence')} is never closed; "
                        "treating the rest of the file as plain text",
                        path,
                        index + 1,
                    )
                    blocks.append(Paragraph(lines=tuple(lines[index:]), line=index + 1, plain=True))
                    break
                blocks.append(self._code_block(path, lines, index, close, fence.group("info")))
                index = close + 1
                continue

            heading = _HEADING.match(line)
            if heading:
                title = (heading.group("title") or "").strip()
                blocks.append(
                    Heading(
                        lines=(lines[index],),
                        line=index + 1,
                        level=len(heading.group("marks")),
                        title=title,
                        slug=slugs.add(title),
                    )
                )
                index += 1
                continue

            hint = _HINT_OPEN.match(line)
            if hint:
                close = self._find_hint_close(lines, index + 1)
                if close is not None:
                    style_match = _HINT_STYLE.search(hint.group("attrs"))
                    blocks.append(
                        Callout(
                            lines=tuple(lines[index : close + 1]),
                            line=index + 1,
                            style=style_match.group("style").lower() if style_match else "info",
                            body=tuple(lines[index + 1 : close]),
                        )
                    )
                    index = close + 1
                    continue

            if _QUOTE.match(line):
                end = index
                while end < len(lines) and _QUOTE.match(_strip_eol(lines[end])):
                    end += 1
                style_match = _QUOTE_STYLE.match(line)
                blocks.append(
                    Callout(
                        lines=tuple(lines[index:end]),
                        line=index + 1,
                        style=style_match.group("style").lower() if style_match else "quote",
                        body=tuple(re.sub(r"^ {0,3}> ?", "", raw) for raw in lines[index:end]),
                    )
                )
                index = end
                continue

            if self._starts_table(lines, index):
                end = index + 2
                while end < len(lines) and _strip_eol(lines[end]).lstrip().startswith("|"):
                    end += 1
                blocks.append(Table(lines=tuple(lines[index:end]), line=index + 1))
                index = end
                continue

            end = index + 1
            while end < len(lines) and not self._interrupts_paragraph(lines, end):
                end += 1
            blocks.append(Paragraph(lines=tuple(lines[index:end]), line=index + 1))
            index = end

        links = tuple(self._extract_links(path, blocks))
        return Document(
            path=path,
            title=self._derive_title(path, front_matter, blocks),
            blocks=tuple(blocks),
            links=links,
            anchors=slugs.slugs,
            front_matter=front_matter,
            bom=bom,
        )

    # ------------------------------------------------------------------
    # Block helpers

    @staticmethod
    def _parse_front_matter(
        path: str, lines: Sequence[str], log: DiagnosticLog
    ) -> Tuple[Optional[FrontMatter], int]:
        for close in range(1, len(lines)):
            if _strip_eol(lines[close]).rstrip() in _FRONT_MATTER_CLOSE:
                break
        else:
            return None, 0

        raw = "".join(lines[1:close])
        data: Dict[str, Any] = {}
        try:
            loaded = yaml.safe_load(raw) if raw.strip() else {}
        except yaml.YAMLError as exc:
            log.report(DiagnosticKind.INVALID_FRONT_MATTER, f"Front matter is not valid YAML: {exc}", path, 1)
        else:
            # A leading thematic break around a heading or prose is not metadata.
            if not isinstance(loaded, dict):
                return None, 0
            data = {str(key): value for key, value in loaded.items()}
        return FrontMatter(lines=tuple(lines[: close + 1]), line=1, data=data), close + 1

    @staticmethod
    def _find_fence_close(lines: Sequence[str], start: int, opener: str) -> Optional[int]:
        for index in range(start, len(lines)):
            match = _FENCE_CLOSE.match(_strip_eol(lines[index]))
            if match:
                fence = match.group("fence")
                if fence[0] == opener[0] and len(fence) >= len(opener):
                    return index
        return None

    @staticmethod
    def _find_hint_close(lines: Sequence[str], start: int) -> Optional[int]:
        for index in range(start, len(lines)):
            if _HINT_CLOSE.search(lines[index]):
                return index
        return None

    @staticmethod
    def _code_block(path: str, lines: Sequence[str], start: int, close: int, info: str) -> CodeBlock:
        info = info.strip()
        language = info.split()[0].strip("{}.").lower() if info else None
        return CodeBlock(
            lines=tuple(lines[start : close + 1]),
            line=start + 1,
            path=path,
            language=language or None,
            info=info,
            code="".join(lines[start + 1 : close]),
        )

    @staticmethod
    def _starts_table(lines: Sequence[str], index: int) -> bool:
        if index + 1 >= len(lines):
            return False
        if not _strip_eol(lines[index]).lstrip().startswith("|"):
            return False
        return bool(_TABLE_DELIMITER.match(_strip_eol(lines[index + 1])))

    def _interrupts_paragraph(self, lines: Sequence[str], index: int) -> bool:
        line = _strip_eol(lines[index])
        if not line.strip():
            return True
        if _FENCE_OPEN.match(line) or _HEADING.match(line) or _HINT_OPEN.match(line):
            return True
        if _QUOTE.match(line):
            return True
        return self._starts_table(lines, index)

    # ------------------------------------------------------------------
    # Links and titles

    def _extract_links(self, path: str, blocks: Iterable[Block]) -> Iterable[LinkReference]:
        for block in blocks:
            if isinstance(block, (CodeBlock, FrontMatter, Blank)):
                continue
            if isinstance(block, Paragraph) and block.plain:
                continue
            in_code = False
            for offset, raw in enumerate(block.lines):
                line = _strip_eol(raw)
                if isinstance(block, Callout) and _FENCE_OPEN.match(re.sub(r"^ {0,3}> ?", "", line)):
                    in_code = not in_code
                    continue
                if in_code:
                    continue
                for target in self._link_targets(line):
                    reference = self._make_reference(path, target, block.line + offset)
                    if reference is not None:
                        yield reference

    @staticmethod
    def _link_targets(line: str) -> Iterable[str]:
        definition = _REFERENCE_DEF.match(line)
        if definition:
            yield definition.group("target")
            return
        stripped = _CODE_SPAN.sub("", line)
        for match in _INLINE_LINK.finditer(stripped):
            yield match.group("target")

    @staticmethod
    def _make_reference(path: str, raw: str, line: int) -> Optional[LinkReference]:
        target = raw.strip()
        if target.startswith("<") and target.endswith(">"):
            target = target[1:-1].strip()
        if not target or _EXTERNAL.match(target):
            return None
        location, _, anchor = target.partition("#")
        return LinkReference(
            source=path,
            target=location,
            anchor=anchor or None,
            raw=target,
            line=line,
        )

    @staticmethod
    def _derive_title(path: str, front_matter: Dict[str, Any], blocks: Sequence[Block]) -> str:
        title = front_matter.get("title")
        if isinstance(title, str) and title.strip():
            return title.strip()
        headings = [block for block in blocks if isinstance(block, Heading) and block.title]
        for heading in headings:
            if heading.level == 1:
                return plain_heading_text(heading.title).strip()
        if headings:
            return plain_heading_text(headings[0].title).strip()
        return humanize_name(path)


def humanize_name(path: str) -> str:
    """Fallback title from a file or directory name."""
    stem, _ = posixpath.splitext(posixpath.basename(path))
    if stem.lower() in ("readme", "index"):
        stem = posixpath.basename(posixpath.dirname(path)) or "Home"
    words = re.sub(r"[-_]+", " ", stem).strip()
    return words[:1].upper() + words[1:] if words else "Untitled"


__all__ = ["MarkdownParser", "humanize_name", "split_lines"]
