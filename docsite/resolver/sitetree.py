"""Navigation tree construction from the directory layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..loader.parser import humanize_name
from ..models import Document, SiteNode, SiteTree


@dataclass
class _Directory:
    path: str
    index: Optional[Document] = None
    files: Dict[str, Document] = field(default_factory=dict)
    dirs: Dict[str, "_Directory"] = field(default_factory=dict)


def build_site_tree(documents: Sequence[Document], *, title: str) -> SiteTree:
    """Build the SiteTree ordered by directory then filename.

    Within a directory, pages come first and sub-directories follow, each in
    lexicographic order. The first ``README.md``/``index.md`` of a directory
    becomes that directory's own page.
    """
    root = _Directory(path="")
    for document in sorted(documents, key=lambda doc: doc.path):
        directory = root
        parts = document.path.split("/")[:-1]
        for depth, part in enumerate(parts):
            child = directory.dirs.get(part)
            if child is None:
                child = _Directory(path="/".join(parts[: depth + 1]))
                directory.dirs[part] = child
            directory = child
        if document.is_index and directory.index is None:
            directory.index = document
        else:
            directory.files[document.filename] = document
    return SiteTree(root=_build_node(root, name="", title=title))


def _build_node(directory: _Directory, *, name: str, title: Optional[str] = None) -> SiteNode:
    children: List[SiteNode] = []
    for filename in sorted(directory.files):
        document = directory.files[filename]
        children.append(
            SiteNode(name=filename, path=document.path, title=document.title, page=document.path)
        )
    for dirname in sorted(directory.dirs):
        children.append(_build_node(directory.dirs[dirname], name=dirname))

    if title is None:
        title = directory.index.title if directory.index else humanize_name(f"{directory.path}/index.md")
    return SiteNode(
        name=name,
        path=directory.path,
        title=title,
        page=directory.index.path if directory.index else None,
        children=tuple(children),
        is_directory=True,
    )


__all__ = ["build_site_tree"]
