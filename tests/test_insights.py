"""Tests for LLM prompt building and reply validation."""

import json

import pytest

from devlens.errors import InsightsError
from devlens.hierarchy import build_tree
from devlens.insights import (
    analyze_repository,
    build_chat_prompt,
    build_file_audit_prompt,
    build_stack_prompt,
    config_files,
    parse_analysis,
)
from devlens.models import FileNode

TREE = build_tree([
    {"path": "package.json", "type": "blob", "size": 10},
    {"path": "api/requirements.txt", "type": "blob", "size": 10},
    {"path": ".github/workflows/ci.yml", "type": "blob", "size": 10},
    {"path": "src/main.py", "type": "blob", "size": 10},
])

REPLY = {
    "performance": "Fine.",
    "architecture": "Layered.",
    "codeQuality": "Good.",
    "stack": {"frontend": ["React"], "backend": ["FastAPI"], "devops": [], "databases": ["PostgreSQL"]},
    "libraries": {"frontend": [], "backend": ["pydantic"], "devops": [], "databases": []},
}


def test_config_files():
    """Manifests and workflow files are picked out of the tree."""
    assert config_files(TREE) == [
        "package.json",
        "api/requirements.txt",
        ".github/workflows",
        ".github/workflows/ci.yml",
    ]


def test_stack_prompt_lists_config_files():
    """The stack prompt names the repository and its manifests."""
    prompt = build_stack_prompt("octo/blog", TREE)
    assert "Analyze this project: octo/blog." in prompt
    assert "api/requirements.txt" in prompt
    assert "src/main.py" not in prompt


def test_file_prompts():
    """Audit and chat prompts carry the node's path and truncated content."""
    node = FileNode(name="main.py", path="src/main.py", kind="file", complexity="high")
    assert "Complexity: high" in build_file_audit_prompt("octo/blog", node)

    prompt = build_chat_prompt("octo/blog", node, "What does it do?", "x" * 50, max_chars=10)
    assert "x" * 10 in prompt
    assert "x" * 11 not in prompt
    assert prompt.endswith("User Question: What does it do?")


def test_analyze_repository_parses_fenced_json():
    """A fenced JSON reply is validated into an AnalysisResult."""
    prompts = []

    def ask(prompt):
        prompts.append(prompt)
        return "```json\n" + json.dumps(REPLY) + "\n```"

    result = analyze_repository("octo/blog", TREE, ask)

    assert len(prompts) == 1
    assert result.code_quality == "Good."
    assert result.stack.databases == ["PostgreSQL"]
    assert result.sources == []


@pytest.mark.parametrize("reply", [None, "", "   ", "not json", json.dumps({"performance": "x"})])
def test_parse_analysis_rejects_bad_replies(reply):
    """Empty, non-JSON or incomplete replies raise InsightsError."""
    with pytest.raises(InsightsError):
        parse_analysis(reply)


def test_chat_budget_comes_from_settings(monkeypatch):
    """Without an explicit budget the snippet is cut at chat_context_chars."""
    monkeypatch.setenv("DEVLENS_CHAT_CONTEXT_CHARS", "10")
    node = FileNode(name="main.py", path="src/main.py", kind="file")

    prompt = build_chat_prompt("octo/blog", node, "q?", "x" * 100)

    assert "x" * 10 in prompt
    assert "x" * 11 not in prompt
