"""Shared fixtures for devlens tests."""

from typing import Dict, List, Optional

import pytest


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep registry and snapshots out of the real user directories."""
    home = tmp_path / "devlens-home"
    monkeypatch.setenv("DEVLENS_HOME", str(home))
    monkeypatch.delenv("DEVLENS_GITHUB_TOKEN", raising=False)
    return home


class FakeSource:
    """In-memory stand-in for the GitHub client."""

    def __init__(self, entries: List[Dict], files: Optional[Dict[str, str]] = None, branch: str = "main"):
        self.entries = entries
        self.files = files or {}
        self.branch = branch
        self.fetched: List[str] = []

    def fetch_tree(self, owner, repo, branch=None):
        return branch or self.branch, self.entries

    def fetch_file(self, owner, repo, path, branch=None):
        self.fetched.append(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]


@pytest.fixture
def fake_source_cls():
    return FakeSource
