"""Heuristic technology detection from repository paths."""

from collections import Counter
from collections.abc import Mapping
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Tuple

from .models import FileNode, StackProfile

# (substring of a path, technology)
FRONTEND_MARKERS: List[Tuple[str, str]] = [
    ('package.json', 'Node.js'),
    ('tsconfig.json', 'TypeScript'),
    ('tailwind.config', 'Tailwind CSS'),
    ('next.config', 'Next.js'),
    ('App.tsx', 'React'),
    ('App.js', 'React'),
]
BACKEND_MARKERS: List[Tuple[str, str]] = [
    ('manage.py', 'Django'),
    ('requirements.txt', 'Python'),
    ('prisma', 'Prisma'),
    ('go.mod', 'Go'),
    ('pom.xml', 'Java/Maven'),
]
DEVOPS_MARKERS: List[Tuple[str, str]] = [
    ('Dockerfile', 'Docker'),
    ('docker-compose', 'Docker Compose'),
    ('.github/workflows', 'GitHub Actions'),
    ('terraform', 'Terraform'),
]


def _all_paths(nodes: Iterable[FileNode]) -> List[str]:
    paths = []
    for node in nodes:
        paths.append(node.path)
        if node.children:
            paths.extend(_all_paths(node.children))
    return paths


def _match(paths: List[str], markers: List[Tuple[str, str]]) -> List[str]:
    found: List[str] = []
    for marker, technology in markers:
        if technology not in found and any(marker in p for p in paths):
            found.append(technology)
    return found


def detect_stack(tree: List[FileNode]) -> StackProfile:
    """Guess frontend, backend and devops technologies from the tree."""
    paths = _all_paths(tree)
    return StackProfile(
        frontend=_match(paths, FRONTEND_MARKERS),
        backend=_match(paths, BACKEND_MARKERS),
        devops=_match(paths, DEVOPS_MARKERS),
    )


def count_extensions(entries: Iterable[Mapping]) -> Dict[str, int]:
    """Histogram of file extensions over the blobs of a tree listing."""
    counts: Counter = Counter()
    for entry in entries:
        if entry.get("type", entry.get("kind")) != "blob":
            continue
        suffix = PurePosixPath(entry.get("path", "")).suffix
        counts[suffix[1:] if suffix else "unknown"] += 1
    return dict(counts.most_common())
