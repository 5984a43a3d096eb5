"""Prompt construction for the LLM collaborator and validation of its replies.

devlens does not talk to a model itself. Callers pass an ``ask`` callable
that takes a prompt and returns the model's text.
"""

import logging
import re
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InsightsError
from .hierarchy import iter_nodes
from .models import FileNode

logger = logging.getLogger(__name__)

Ask = Callable[[str], str]

CONFIG_FILE_SUFFIXES = (
    'package.json', 'requirements.txt', 'pyproject.toml', 'docker-compose.yml',
    'Dockerfile', '.env', 'terraform.tf',
)
CONFIG_FILE_DIRS = ('.github/workflows', 'charts/')

_CODE_FENCE = re.compile(r'^\s*```(?:json)?\s*(.*?)\s*```\s*$', re.DOTALL)


class StackLayers(BaseModel):
    frontend: List[str] = Field(default_factory=list)
    backend: List[str] = Field(default_factory=list)
    devops: List[str] = Field(default_factory=list)
    databases: List[str] = Field(default_factory=list)


class Source(BaseModel):
    title: str = "Documentation"
    uri: str = "#"


class AnalysisResult(BaseModel):
    """Structured repository audit returned by the model."""

    model_config = ConfigDict(populate_by_name=True)

    performance: str
    architecture: str
    code_quality: str = Field(alias="codeQuality")
    stack: StackLayers
    libraries: StackLayers
    sources: List[Source] = Field(default_factory=list)


def config_files(tree: List[FileNode]) -> List[str]:
    """Paths of dependency and infrastructure manifests in the tree."""
    return [
        node.path for node in iter_nodes(tree)
        if node.path.endswith(CONFIG_FILE_SUFFIXES) or any(d in node.path for d in CONFIG_FILE_DIRS)
    ]


def build_stack_prompt(repo_name: str, tree: List[FileNode]) -> str:
    files = ", ".join(config_files(tree)) or "none found"
    return f"""Analyze this project: {repo_name}.
Available configuration files: {files}.
Identify the Tech Stack and Dependencies:
1. Frontend: Framework (React, Vue, etc.) and main libraries from package.json.
2. Backend: Framework (Flask, FastAPI, Django, Express, etc.) and libraries from requirements.txt or pyproject.toml.
3. Databases: Mentioned in .env or settings (MySQL, PostgreSQL, MongoDB, Redis, etc.).
4. DevOps: CI/CD (GitHub Actions), Infrastructure (Terraform), Containerization (Docker, K8s, Helm).

Also provide a brief Code Audit (Performance, Architecture, Quality).

Return JSON only, with this shape:
{{"performance": str, "architecture": str, "codeQuality": str,
  "stack": {{"frontend": [str], "backend": [str], "devops": [str], "databases": [str]}},
  "libraries": {{"frontend": [str], "backend": [str], "devops": [str], "databases": [str]}},
  "sources": [{{"title": str, "uri": str}}]}}"""


def build_file_audit_prompt(repo_name: str, node: FileNode) -> str:
    return (
        f'Analyze file: "{node.path}" in repo: "{repo_name}". Complexity: {node.complexity}. '
        "Provide 2 precise technical insights about its architectural role and potential technical debt."
    )


def build_chat_prompt(repo_name: str, node: FileNode, question: str,
                      content: Optional[str] = None, max_chars: Optional[int] = None) -> str:
    """Question about a node, with a truncated code snippet when one is available."""
    if max_chars is None:
        from .config import GlobalConfig
        max_chars = GlobalConfig().chat_context_chars
    context = f"Context: Repository {repo_name}, Path: {node.path}. "
    if content:
        context += f"Code snippet for context:\n\n{content[:max_chars]}\n\n"
    return f"{context}\nUser Question: {question}"


def parse_analysis(text: Optional[str]) -> AnalysisResult:
    """Validate a model reply, tolerating a surrounding Markdown code fence."""
    if not text or not text.strip():
        raise InsightsError("Empty response from model")

    fenced = _CODE_FENCE.match(text)
    payload = fenced.group(1) if fenced else text
    try:
        return AnalysisResult.model_validate_json(payload)
    except ValidationError as e:
        raise InsightsError(f"Model reply is not a valid analysis: {e}") from e


def analyze_repository(repo_name: str, tree: List[FileNode], ask: Ask) -> AnalysisResult:
    """Ask the model for a stack and code audit of the repository."""
    prompt = build_stack_prompt(repo_name, tree)
    logger.info(f"Requesting analysis for {repo_name}")
    return parse_analysis(ask(prompt))
