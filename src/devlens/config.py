"""Configuration management for devlens using platformdirs."""

import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

from platformdirs import user_config_dir, user_data_dir
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import RepoProject, RepoSnapshot

logger = logging.getLogger(__name__)


class GlobalConfig(BaseSettings):
    """Global configuration for devlens."""

    model_config = SettingsConfigDict(
        env_prefix="DEVLENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    home: Optional[Path] = Field(default=None, description="Keep all devlens state under this directory")

    # GitHub access
    github_token: Optional[str] = Field(default=None, description="Token used when a project has none")
    github_api_url: str = Field(default="https://api.github.com")
    default_branches: List[str] = Field(default=["main", "master"])
    request_timeout: float = Field(default=10.0, description="Seconds per GitHub request")
    fetch_workers: int = Field(default=4, ge=1, description="Parallel model-file fetches")

    # Tree building
    ignored_dirs: List[str] = Field(
        default=[
            'node_modules', '.git', 'dist', 'build', '.next', 'venv', '.venv',
            '__pycache__', '.pytest_cache', '.mypy_cache', '.idea', '.vscode',
            '.DS_Store', 'Thumbs.db'
        ]
    )
    # Policy knob: observed variants use 10KB/50KB and 30KB/100KB.
    complexity_medium_bytes: int = Field(default=10_000, ge=0)
    complexity_high_bytes: int = Field(default=50_000, ge=0)

    # Extraction
    model_files: Dict[str, str] = Field(
        default={
            'schema.prisma': 'block-dsl',
            'models.py': 'class-dsl',
        }
    )
    indent_extensions: List[str] = Field(default=['.py', '.pyi', '.pyw'])
    brace_extensions: List[str] = Field(
        default=['.js', '.jsx', '.ts', '.tsx', '.mjs', '.cjs', '.java', '.kt', '.cs', '.swift', '.dart']
    )

    # Insights
    chat_context_chars: int = Field(default=5000, ge=0)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "GlobalConfig":
        if self.complexity_medium_bytes >= self.complexity_high_bytes:
            raise ValueError("complexity_medium_bytes must be lower than complexity_high_bytes")
        return self


class ConfigManager:
    """Manages the project registry and cached repository snapshots."""

    def __init__(self, root: Optional[Path] = None):
        self.global_config = GlobalConfig()
        root = root or self.global_config.home

        if root is None:
            self.config_dir = Path(user_config_dir("devlens", "devlens"))
            self.data_dir = Path(user_data_dir("devlens", "devlens"))
        else:
            self.config_dir = Path(root) / "config"
            self.data_dir = Path(root) / "data"
        self.snapshot_dir = self.data_dir / "snapshots"

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)

        self.projects_file = self.config_dir / "projects.json"
        self.projects: Dict[str, RepoProject] = self._load_projects()

    def _load_projects(self) -> Dict[str, RepoProject]:
        """Load projects from the registry file."""
        if not self.projects_file.exists():
            return {}

        try:
            with open(self.projects_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable project registry {self.projects_file}: {e}")
            return {}

        return {key: RepoProject.from_dict(entry) for key, entry in data.items()}

    def save_projects(self):
        """Save projects to the registry file."""
        data = {key: project.to_dict() for key, project in self.projects.items()}
        with open(self.projects_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)

    def add_project(self, project: RepoProject) -> RepoProject:
        """Register a repository; an existing registration is returned unchanged."""
        if project.key in self.projects:
            return self.projects[project.key]

        self.projects[project.key] = project
        self.save_projects()
        return project

    def remove_project(self, key: str) -> bool:
        """Forget a repository and its cached snapshot."""
        if key not in self.projects:
            return False
        del self.projects[key]
        self.save_projects()
        self._snapshot_file(key).unlink(missing_ok=True)
        return True

    def get_project(self, key: str) -> Optional[RepoProject]:
        return self.projects.get(key)

    def list_projects(self) -> List[RepoProject]:
        return list(self.projects.values())

    def token_for(self, project: RepoProject) -> Optional[str]:
        """Project token first, then the global one."""
        return project.token or self.global_config.github_token

    def _snapshot_file(self, key: str) -> Path:
        return self.snapshot_dir / (key.replace("/", "__") + ".json")

    def save_snapshot(self, snapshot: RepoSnapshot):
        """Persist a sync result and stamp the project's last sync time."""
        with open(self._snapshot_file(snapshot.project), 'w', encoding='utf-8') as f:
            json.dump(snapshot.to_dict(), f)

        project = self.projects.get(snapshot.project)
        if project is not None:
            project.branch = snapshot.branch
            project.last_sync = snapshot.synced_at or time.time()
            self.save_projects()

    def load_snapshot(self, key: str) -> Optional[RepoSnapshot]:
        """Return the last synced snapshot, or None if there is none."""
        path = self._snapshot_file(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable snapshot {path}: {e}")
            return None
        return RepoSnapshot.from_dict(data)
