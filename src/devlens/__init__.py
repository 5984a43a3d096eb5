"""
devlens - Repository-to-semantic-graph toolkit.

Builds a file hierarchy from a GitHub tree listing, extracts ORM entities from
schema files and recovers approximate class/function outlines from source.
"""

__version__ = "0.1.0"

from .analyzer import BRACE_BASED, INDENT_BASED, CodeAnalyzer
from .errors import DevlensError, InvalidInput, MalformedEntry
from .hierarchy import HierarchyBuilder, TreeIndex, build_tree
from .indexer import RepoIndexer
from .models import Entity, EntityField, FileNode, Relation
from .schema import BLOCK_DSL, CLASS_DSL, extract_entities

__all__ = [
    "BLOCK_DSL",
    "BRACE_BASED",
    "CLASS_DSL",
    "INDENT_BASED",
    "CodeAnalyzer",
    "DevlensError",
    "Entity",
    "EntityField",
    "FileNode",
    "HierarchyBuilder",
    "InvalidInput",
    "MalformedEntry",
    "Relation",
    "RepoIndexer",
    "TreeIndex",
    "__version__",
    "build_tree",
    "extract_entities",
]
