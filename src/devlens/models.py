"""Data models for devlens."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

# FileNode.kind
FOLDER = "folder"
FILE = "file"
CLASS = "class"
FUNCTION = "function"

# FileNode.complexity, in ascending order
COMPLEXITY_TIERS = ("low", "medium", "high")

# Relation.cardinality
ONE_TO_ONE = "one-to-one"
ONE_TO_MANY = "one-to-many"
MANY_TO_MANY = "many-to-many"


@dataclass
class FileNode:
    """One node of a repository tree or of a file's synthetic outline."""

    name: str
    path: str
    kind: str
    complexity: str = "low"
    size: Optional[int] = None
    children: Optional[List["FileNode"]] = None

    @property
    def is_container(self) -> bool:
        return self.children is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileNode":
        children = data.get("children")
        return cls(
            name=data["name"],
            path=data["path"],
            kind=data["kind"],
            complexity=data.get("complexity", "low"),
            size=data.get("size"),
            children=[cls.from_dict(c) for c in children] if children is not None else None,
        )


@dataclass
class EntityField:
    """A scalar column of an extracted entity."""

    name: str
    type: str
    is_primary_key: bool = False
    is_unique: bool = False
    is_optional: bool = False
    is_foreign_key: bool = False
    related_to: Optional[str] = None


@dataclass
class Relation:
    """A link from an entity to another entity, by name."""

    target: str
    cardinality: str
    name: Optional[str] = None


@dataclass
class Entity:
    """One data-model declaration (a table/model) found in a schema file."""

    name: str
    fields: List[EntityField] = field(default_factory=list)
    relations: List[Relation] = field(default_factory=list)
    indexes: List[str] = field(default_factory=list)

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entity":
        return cls(
            name=data["name"],
            fields=[EntityField(**f) for f in data.get("fields", [])],
            relations=[Relation(**r) for r in data.get("relations", [])],
            indexes=list(data.get("indexes", [])),
        )


@dataclass
class RepoProject:
    """A GitHub repository registered with devlens."""

    owner: str
    name: str
    url: str
    token: Optional[str] = None
    branch: Optional[str] = None
    last_sync: Optional[float] = None

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepoProject":
        return cls(**data)


@dataclass
class WeeklyCommits:
    date: str
    count: int


@dataclass
class ContributorStats:
    author: str
    commits: int
    additions: int = 0
    deletions: int = 0


@dataclass
class GitStats:
    """Repository activity as reported by the hosting service."""

    commits: List[WeeklyCommits] = field(default_factory=list)
    contributors: List[ContributorStats] = field(default_factory=list)
    extensions: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GitStats":
        return cls(
            commits=[WeeklyCommits(**c) for c in data.get("commits", [])],
            contributors=[ContributorStats(**c) for c in data.get("contributors", [])],
            extensions=dict(data.get("extensions", {})),
        )


@dataclass
class StackProfile:
    """Technologies guessed from the repository layout."""

    frontend: List[str] = field(default_factory=list)
    backend: List[str] = field(default_factory=list)
    devops: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RepoSnapshot:
    """Everything one sync learned about a repository."""

    project: str
    branch: Optional[str]
    tree: List[FileNode]
    entities: List[Entity] = field(default_factory=list)
    stack: StackProfile = field(default_factory=StackProfile)
    stats: Optional[GitStats] = None
    synced_at: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project,
            "branch": self.branch,
            "tree": [node.to_dict() for node in self.tree],
            "entities": [entity.to_dict() for entity in self.entities],
            "stack": self.stack.to_dict(),
            "stats": self.stats.to_dict() if self.stats else None,
            "synced_at": self.synced_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepoSnapshot":
        stats = data.get("stats")
        return cls(
            project=data["project"],
            branch=data.get("branch"),
            tree=[FileNode.from_dict(n) for n in data.get("tree", [])],
            entities=[Entity.from_dict(e) for e in data.get("entities", [])],
            stack=StackProfile(**data.get("stack", {})),
            stats=GitStats.from_dict(stats) if stats else None,
            synced_at=data.get("synced_at", 0.0),
        )
