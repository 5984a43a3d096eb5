"""Repository sync: tree building, schema extraction and on-demand outlines."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Protocol, Tuple

from .analyzer import CodeAnalyzer
from .config import GlobalConfig
from .hierarchy import HierarchyBuilder, TreeIndex, render_tree
from .models import FILE, Entity, FileNode, GitStats, RepoProject, RepoSnapshot
from .schema import extract_entities
from .stack import detect_stack

logger = logging.getLogger(__name__)


class RepoSource(Protocol):
    """What the indexer needs from a repository host."""

    def fetch_tree(self, owner: str, repo: str, branch: Optional[str] = None) -> Tuple[str, List[Dict]]:
        ...

    def fetch_file(self, owner: str, repo: str, path: str, branch: Optional[str] = None) -> str:
        ...


class RepoIndexer:
    """Builds and holds the semantic model of one repository."""

    def __init__(self, project: RepoProject, source: RepoSource,
                 settings: Optional[GlobalConfig] = None):
        self.project = project
        self.source = source
        self.settings = settings or GlobalConfig()
        self.builder = HierarchyBuilder(self.settings)
        self.analyzer = CodeAnalyzer()
        self.index: Optional[TreeIndex] = None
        self.branch: Optional[str] = project.branch

    def _model_files(self, index: TreeIndex) -> List[Tuple[FileNode, str]]:
        """Files whose name marks them as schema sources, in tree order."""
        found = []
        for node in index.files():
            dialect = self.settings.model_files.get(node.name)
            if dialect:
                found.append((node, dialect))
        return found

    def _read_entities(self, item: Tuple[FileNode, str]) -> List[Entity]:
        node, dialect = item
        try:
            content = self.source.fetch_file(self.project.owner, self.project.name, node.path, self.branch)
        except Exception as e:
            logger.warning(f"Skipping model file {node.path}: {e}")
            return []
        entities = extract_entities(content, dialect)
        logger.debug(f"{node.path}: {len(entities)} entities ({dialect})")
        return entities

    def extract_all_entities(self) -> List[Entity]:
        """Fetch every recognized model file and concatenate their entities."""
        if self.index is None:
            raise RuntimeError("sync() must run before entity extraction")

        model_files = self._model_files(self.index)
        if not model_files:
            return []

        entities: List[Entity] = []
        with ThreadPoolExecutor(max_workers=self.settings.fetch_workers) as pool:
            for found in pool.map(self._read_entities, model_files):
                entities.extend(found)
        return entities

    def sync(self, include_stats: bool = True) -> RepoSnapshot:
        """Fetch the repository listing and rebuild the whole model."""
        owner, name = self.project.owner, self.project.name
        logger.info(f"Syncing {self.project.key}")

        self.branch, entries = self.source.fetch_tree(owner, name, self.project.branch)
        roots = self.builder.build(entries)
        self.index = TreeIndex(roots)
        logger.info(f"Built tree for {self.project.key}@{self.branch}: {len(self.index)} nodes")

        entities = self.extract_all_entities()

        stats: Optional[GitStats] = None
        fetch_stats = getattr(self.source, "fetch_stats", None)
        if include_stats and fetch_stats is not None:
            stats = fetch_stats(owner, name, entries)

        synced_at = time.time()
        self.project.branch = self.branch
        self.project.last_sync = synced_at

        return RepoSnapshot(
            project=self.project.key,
            branch=self.branch,
            tree=roots,
            entities=entities,
            stack=detect_stack(roots),
            stats=stats,
            synced_at=synced_at,
        )

    def load(self, snapshot: RepoSnapshot):
        """Reuse a previously synced tree instead of fetching a new one."""
        self.branch = snapshot.branch
        self.index = TreeIndex(snapshot.tree)

    def expand(self, path: str, content: Optional[str] = None) -> List[FileNode]:
        """Outline one file and attach the result to the tree index.

        Expanding the same path again replaces the stored outline.
        """
        if self.index is None:
            raise RuntimeError("sync() or load() must run before expanding nodes")

        node = self.index.get(path)
        if node is None:
            raise KeyError(path)
        if node.kind != FILE:
            raise KeyError(f"{path} is not a file")

        family = self.analyzer.language_family(
            node.name, self.settings.indent_extensions, self.settings.brace_extensions
        )
        if family is None:
            logger.debug(f"No outline heuristics for {path}")
            outline: List[FileNode] = []
        else:
            if content is None:
                content = self.source.fetch_file(self.project.owner, self.project.name, path, self.branch)
            outline = self.analyzer.extract_outline(content, family, node.path)

        self.index.attach_outline(path, outline)
        return outline

    def generate_report(self, snapshot: RepoSnapshot) -> str:
        """Render a snapshot as a Markdown report."""
        outlines = self.index.outlines if self.index is not None else None
        content = []
        content.append(f"# Repository Map: {snapshot.project}\n")
        if snapshot.branch:
            content.append(f"*Branch:* `{snapshot.branch}`\n")

        content.append("## Directory Structure\n")
        content.append("```")
        content.append(render_tree(snapshot.tree, outlines=outlines))
        content.append("```\n")

        stack = snapshot.stack
        if stack.frontend or stack.backend or stack.devops:
            content.append("## Detected Stack\n")
            for label, items in (("Frontend", stack.frontend), ("Backend", stack.backend),
                                 ("DevOps", stack.devops)):
                if items:
                    content.append(f"- **{label}:** {', '.join(items)}")
            content.append("")

        if snapshot.entities:
            content.append("## Data Model\n")
            for entity in snapshot.entities:
                content.append(f"### `{entity.name}`\n")
                if entity.fields:
                    content.append("| Field | Type | Flags |")
                    content.append("|---|---|---|")
                    for f in entity.fields:
                        flags = [flag for flag, on in (("PK", f.is_primary_key), ("unique", f.is_unique),
                                                       ("optional", f.is_optional),
                                                       (f"FK -> {f.related_to}", f.is_foreign_key)) if on]
                        content.append(f"| `{f.name}` | `{f.type}` | {', '.join(flags)} |")
                    content.append("")
                if entity.relations:
                    content.append("**Relations:**")
                    for rel in entity.relations:
                        named = f" ({rel.name})" if rel.name else ""
                        content.append(f"- `{rel.target}` {rel.cardinality}{named}")
                    content.append("")
                if entity.indexes:
                    content.append("**Indexes:** " + ", ".join(f"`{i}`" for i in entity.indexes) + "\n")

        if snapshot.stats and snapshot.stats.extensions:
            content.append("## File Types\n")
            for ext, count in snapshot.stats.extensions.items():
                content.append(f"- `{ext}`: {count}")
            content.append("")

        return "\n".join(content)
