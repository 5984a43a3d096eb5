"""Tests for repository sync and on-demand expansion."""

import pytest

from devlens.indexer import RepoIndexer
from devlens.models import GitStats, RepoProject

ENTRIES = [
    {"path": "prisma", "type": "tree"},
    {"path": "prisma/schema.prisma", "type": "blob", "size": 400},
    {"path": "backend/blog/models.py", "type": "blob", "size": 12_000},
    {"path": "backend/manage.py", "type": "blob", "size": 600},
    {"path": "web/src/App.tsx", "type": "blob", "size": 80_000},
    {"path": "web/package.json", "type": "blob", "size": 900},
    {"path": "web/node_modules/react/index.js", "type": "blob", "size": 100},
    {"path": "Dockerfile", "type": "blob", "size": 200},
    {"path": "docs/models.py.md", "type": "blob", "size": 10},
]

FILES = {
    "prisma/schema.prisma": "model User {\n  id Int @id\n  posts Post[]\n}\nmodel Post {\n  id Int @id\n}\n",
    "backend/blog/models.py": "class Entry(models.Model):\n    title = models.CharField(max_length=10)\n",
    "web/src/App.tsx": "export default function App() {\n  return null;\n}\n",
}


@pytest.fixture
def project():
    return RepoProject(owner="octo", name="blog", url="https://github.com/octo/blog")


def test_sync_builds_tree_and_entities(project, fake_source_cls):
    """Sync concatenates entities from every recognized model file in tree order."""
    source = fake_source_cls(ENTRIES, FILES)
    snapshot = RepoIndexer(project, source).sync()

    assert snapshot.project == "octo/blog"
    assert snapshot.branch == "main"
    assert [n.name for n in snapshot.tree] == ["prisma", "backend", "web", "Dockerfile", "docs"]
    assert [e.name for e in snapshot.entities] == ["User", "Post", "Entry"]
    assert sorted(source.fetched) == ["backend/blog/models.py", "prisma/schema.prisma"]
    assert project.branch == "main"
    assert project.last_sync == snapshot.synced_at


def test_sync_detects_stack(project, fake_source_cls):
    """The stack profile is derived from the filtered tree."""
    snapshot = RepoIndexer(project, fake_source_cls(ENTRIES, FILES)).sync()

    assert snapshot.stack.frontend == ["Node.js", "React"]
    assert snapshot.stack.backend == ["Django", "Prisma"]
    assert snapshot.stack.devops == ["Docker"]


def test_sync_skips_unreadable_model_files(project, fake_source_cls):
    """A model file that cannot be fetched is skipped."""
    files = {"backend/blog/models.py": FILES["backend/blog/models.py"]}
    snapshot = RepoIndexer(project, fake_source_cls(ENTRIES, files)).sync()
    assert [e.name for e in snapshot.entities] == ["Entry"]


def test_sync_uses_stats_when_available(project, fake_source_cls):
    """Sources that provide statistics have them attached to the snapshot."""
    source = fake_source_cls(ENTRIES, FILES)
    source.fetch_stats = lambda owner, repo, entries: GitStats(extensions={"py": len(entries)})

    assert RepoIndexer(project, source).sync().stats.extensions == {"py": len(ENTRIES)}
    assert RepoIndexer(project, source).sync(include_stats=False).stats is None


def test_expand_attaches_outline(project, fake_source_cls):
    """Expanding a file outlines it under its full path, and re-expansion replaces."""
    source = fake_source_cls(ENTRIES, FILES)
    indexer = RepoIndexer(project, source)
    indexer.sync()

    outline = indexer.expand("web/src/App.tsx")
    assert [(n.kind, n.path) for n in outline] == [("function", "web/src/App.tsx/App")]

    outline = indexer.expand("web/src/App.tsx", "class Shell {\n  render() {\n}\n")
    assert indexer.index.children_of("web/src/App.tsx") == outline
    assert outline[0].children[0].path == "web/src/App.tsx/Shell/render"
    assert len(indexer.index.outlines) == 1


def test_expand_rejects_folders_and_unknown_paths(project, fake_source_cls):
    """Only file nodes can be expanded."""
    indexer = RepoIndexer(project, fake_source_cls(ENTRIES, FILES))
    with pytest.raises(RuntimeError):
        indexer.expand("web/src/App.tsx")

    indexer.sync()
    with pytest.raises(KeyError):
        indexer.expand("web/src")
    with pytest.raises(KeyError):
        indexer.expand("missing.py")


def test_expand_unsupported_extension(project, fake_source_cls):
    """Files without outline heuristics expand to nothing and are not fetched."""
    source = fake_source_cls(ENTRIES, FILES)
    indexer = RepoIndexer(project, source)
    indexer.sync()
    source.fetched.clear()

    assert indexer.expand("Dockerfile") == []
    assert source.fetched == []


def test_load_and_report(project, fake_source_cls):
    """A cached snapshot can be reloaded and rendered as Markdown."""
    snapshot = RepoIndexer(project, fake_source_cls(ENTRIES, FILES)).sync()

    indexer = RepoIndexer(project, fake_source_cls([], FILES))
    indexer.load(snapshot)
    indexer.expand("backend/blog/models.py")
    report = indexer.generate_report(snapshot)

    assert report.startswith("# Repository Map: octo/blog")
    assert "## Directory Structure" in report
    assert "class Entry" in report
    assert "### `User`" in report
    assert "| `id` | `Int` | PK |" in report
    assert "- `Post` one-to-many" in report
    assert "- **Backend:** Django, Prisma" in report
