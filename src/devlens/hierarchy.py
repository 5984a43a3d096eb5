"""Turn a flat repository listing into a nested FileNode tree."""

import logging
from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .config import GlobalConfig
from .errors import MalformedEntry
from .models import FILE, FOLDER, FileNode

logger = logging.getLogger(__name__)


class HierarchyBuilder:
    """Builds repository trees and assigns size-based complexity tiers."""

    def __init__(self, settings: Optional[GlobalConfig] = None):
        settings = settings or GlobalConfig()
        self.ignored = set(settings.ignored_dirs)
        self.medium_threshold = settings.complexity_medium_bytes
        self.high_threshold = settings.complexity_high_bytes

    def classify(self, size: Optional[float]) -> str:
        """Map a byte size to a complexity tier; unknown sizes are low."""
        if size is None:
            return "low"
        if size > self.high_threshold:
            return "high"
        if size > self.medium_threshold:
            return "medium"
        return "low"

    def _should_ignore(self, parts: Sequence[str]) -> bool:
        return any(part in self.ignored for part in parts)

    @staticmethod
    def _validate(index: int, entry: object):
        if not isinstance(entry, Mapping):
            raise MalformedEntry(index, "entry is not a mapping")
        path = entry.get("path")
        if not isinstance(path, str) or not path.strip("/"):
            raise MalformedEntry(index)
        size = entry.get("size")
        if size is not None and (isinstance(size, bool) or not isinstance(size, (int, float))):
            raise MalformedEntry(index, f"non-numeric 'size' {size!r}")

    def build(self, entries: Iterable[Mapping]) -> List[FileNode]:
        """Build the tree and return its top-level nodes.

        Entries are processed in order. Missing ancestor folders are synthesized,
        and the first entry to claim a path wins; later claims are no-ops.
        """
        roots: List[FileNode] = []
        index: Dict[str, FileNode] = {}

        for position, entry in enumerate(entries):
            self._validate(position, entry)
            parts = [p for p in entry["path"].split("/") if p]

            if self._should_ignore(parts):
                logger.debug(f"Filtered out: {entry['path']}")
                continue

            kind = entry.get("type", entry.get("kind"))
            parent: Optional[FileNode] = None
            current_path = ""

            for depth, part in enumerate(parts):
                current_path = f"{current_path}/{part}" if current_path else part
                existing = index.get(current_path)
                if existing is not None:
                    if depth < len(parts) - 1 and not existing.is_container:
                        logger.debug(f"Dropping {entry['path']}: {current_path} is a file")
                        break
                    if depth == len(parts) - 1:
                        logger.debug(f"Skipping duplicate path {current_path}")
                    parent = existing
                    continue

                is_last = depth == len(parts) - 1
                if is_last and kind != "tree":
                    size = entry.get("size")
                    node = FileNode(
                        name=part,
                        path=current_path,
                        kind=FILE,
                        complexity=self.classify(size),
                        size=size,
                    )
                else:
                    node = FileNode(name=part, path=current_path, kind=FOLDER, children=[])

                index[current_path] = node
                if parent is None:
                    roots.append(node)
                else:
                    parent.children.append(node)
                parent = node

        return roots


def build_tree(entries: Iterable[Mapping], settings: Optional[GlobalConfig] = None) -> List[FileNode]:
    """Build a tree with a one-off builder."""
    return HierarchyBuilder(settings).build(entries)


def iter_nodes(nodes: Iterable[FileNode]) -> Iterator[FileNode]:
    """Walk a forest in pre-order."""
    for node in nodes:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


class TreeIndex:
    """Path-keyed view over a built tree with on-demand file outlines.

    Outlines live in their own slot per file path instead of being written into
    the file nodes, so expanding one file never touches another's state.
    """

    def __init__(self, roots: List[FileNode]):
        self.roots = roots
        self.nodes: Dict[str, FileNode] = {node.path: node for node in iter_nodes(roots)}
        self.outlines: Dict[str, List[FileNode]] = {}

    def __contains__(self, path: str) -> bool:
        return path in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, path: str) -> Optional[FileNode]:
        return self.nodes.get(path)

    def files(self) -> List[FileNode]:
        return [node for node in self.nodes.values() if node.kind == FILE]

    def attach_outline(self, path: str, outline: List[FileNode]):
        """Store a file's outline, replacing any earlier one."""
        node = self.nodes.get(path)
        if node is None:
            raise KeyError(path)
        if node.kind != FILE:
            raise KeyError(f"{path} is not a file")
        self.outlines[path] = list(outline)

    def children_of(self, path: str) -> List[FileNode]:
        """Folder children, or the attached outline for a file."""
        node = self.nodes.get(path)
        if node is None:
            raise KeyError(path)
        if node.kind == FILE:
            return self.outlines.get(path, [])
        return list(node.children or [])


def render_tree(roots: List[FileNode], max_depth: Optional[int] = None,
                outlines: Optional[Dict[str, List[FileNode]]] = None) -> str:
    """Render a forest as an ASCII tree, folders suffixed with '/'."""
    outlines = outlines or {}

    def label(node: FileNode) -> str:
        if node.kind == FOLDER:
            return node.name + "/"
        if node.kind == "class":
            return f"class {node.name}"
        if node.kind == "function":
            return f"{node.name}()"
        return node.name

    def build(nodes: List[FileNode], prefix: str, depth: int) -> List[str]:
        lines = []
        for i, node in enumerate(nodes):
            is_last = i == len(nodes) - 1
            current_prefix = "└── " if is_last else "├── "
            lines.append(prefix + current_prefix + label(node))

            children = node.children if node.children is not None else outlines.get(node.path)
            if children and (max_depth is None or depth + 1 < max_depth):
                extension = "    " if is_last else "│   "
                lines.extend(build(children, prefix + extension, depth + 1))
        return lines

    return "\n".join(build(roots, "", 0))
