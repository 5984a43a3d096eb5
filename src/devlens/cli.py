"""Command-line interface for devlens."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import requests
import typer
from rich import print
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ConfigManager
from .errors import DevlensError
from .github import GitHubClient, parse_repo_url
from .hierarchy import render_tree
from .indexer import RepoIndexer
from .insights import build_stack_prompt
from .models import RepoProject, RepoSnapshot

app = typer.Typer(
    name="devlens",
    help="Map a GitHub repository's tree, data model and code outline.",
    rich_markup_mode="rich",
)
console = Console()
logger = logging.getLogger(__name__)


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        print(f"[cyan]devlens[/cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """
    devlens - repository structure, schema and outline explorer.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def _fail(message: str):
    print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def _require_project(config_manager: ConfigManager, key: str) -> RepoProject:
    project = config_manager.get_project(key)
    if project is None:
        _fail(f"Project not found: {key} (add it with 'devlens add')")
    return project


def _require_snapshot(config_manager: ConfigManager, key: str) -> RepoSnapshot:
    snapshot = config_manager.load_snapshot(key)
    if snapshot is None:
        _fail(f"{key} has not been synced yet (run 'devlens sync {key}')")
    return snapshot


def _indexer(config_manager: ConfigManager, project: RepoProject) -> RepoIndexer:
    settings = config_manager.global_config
    client = GitHubClient.from_config(settings, token=config_manager.token_for(project))
    return RepoIndexer(project, client, settings)


@app.command(name="add", help="Register a GitHub repository")
def add_project(
    url: str = typer.Argument(..., help="Repository URL or owner/name"),
    token: Optional[str] = typer.Option(None, "--token", "-t", help="Token for private repositories"),
):
    """Register a repository for syncing."""
    try:
        owner, name = parse_repo_url(url)
    except ValueError as e:
        _fail(str(e))

    config_manager = ConfigManager()
    key = f"{owner}/{name}"
    if config_manager.get_project(key):
        print(f"[yellow]Already registered:[/yellow] {key}")
        return

    config_manager.add_project(RepoProject(
        owner=owner, name=name, url=f"https://github.com/{owner}/{name}", token=token
    ))
    print(f"[green]Added project:[/green] {key}")
    print(f"[cyan]Run 'devlens sync {key}' to fetch it[/cyan]")


@app.command(name="remove", help="Forget a repository")
def remove_project(key: str = typer.Argument(..., help="owner/name")):
    """Remove a repository and its cached snapshot."""
    config_manager = ConfigManager()
    if config_manager.remove_project(key):
        print(f"[green]Removed project:[/green] {key}")
    else:
        _fail(f"Project not found: {key}")


@app.command(name="list", help="List registered repositories")
def list_projects():
    """List registered repositories with their last sync."""
    config_manager = ConfigManager()
    projects = config_manager.list_projects()

    if not projects:
        print("[yellow]No projects registered[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("Project", style="cyan")
    table.add_column("Branch")
    table.add_column("Last sync", style="green")
    table.add_column("Entities", justify="right")

    for project in projects:
        last_sync = "-"
        entities = "-"
        if project.last_sync:
            last_sync = datetime.fromtimestamp(project.last_sync).strftime("%Y-%m-%d %H:%M")
            snapshot = config_manager.load_snapshot(project.key)
            if snapshot is not None:
                entities = str(len(snapshot.entities))
        table.add_row(project.key, project.branch or "-", last_sync, entities)

    console.print(table)


@app.command(name="sync", help="Fetch a repository and rebuild its model")
def sync_project(
    key: str = typer.Argument(..., help="owner/name"),
    stats: bool = typer.Option(True, "--stats/--no-stats", help="Also fetch commit statistics"),
):
    """Fetch the tree, extract schema entities and cache the snapshot."""
    config_manager = ConfigManager()
    project = _require_project(config_manager, key)
    indexer = _indexer(config_manager, project)

    try:
        with console.status(f"Scanning {key}..."):
            snapshot = indexer.sync(include_stats=stats)
    except (DevlensError, requests.RequestException) as e:
        logger.debug("Sync failed", exc_info=True)
        _fail(f"Sync failed: {e}")

    config_manager.save_snapshot(snapshot)
    print(f"[green]✓ Synced {key}[/green] ({snapshot.branch}): "
          f"{len(indexer.index)} nodes, {len(snapshot.entities)} entities")


@app.command(name="tree", help="Show the cached directory tree")
def show_tree(
    key: str = typer.Argument(..., help="owner/name"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Maximum depth to show"),
):
    config_manager = ConfigManager()
    snapshot = _require_snapshot(config_manager, key)
    console.print(render_tree(snapshot.tree, max_depth=depth), markup=False, highlight=False, soft_wrap=True)


@app.command(name="schema", help="Show extracted data-model entities")
def show_schema(key: str = typer.Argument(..., help="owner/name")):
    config_manager = ConfigManager()
    snapshot = _require_snapshot(config_manager, key)

    if not snapshot.entities:
        print("[yellow]No schema entities recognized[/yellow]")
        return

    for entity in snapshot.entities:
        table = Table(title=entity.name)
        table.add_column("Member", style="cyan")
        table.add_column("Type")
        table.add_column("Details", style="green")
        for f in entity.fields:
            details = []
            if f.is_primary_key:
                details.append("PK")
            if f.is_unique:
                details.append("unique")
            if f.is_foreign_key:
                details.append(f"FK -> {f.related_to}")
            table.add_row(f.name, f.type, ", ".join(details))
        for rel in entity.relations:
            table.add_row(rel.name or "-", f"-> {rel.target}", rel.cardinality)
        console.print(table)


@app.command(name="outline", help="Outline the classes and functions of one file")
def show_outline(
    key: str = typer.Argument(..., help="owner/name"),
    path: str = typer.Argument(..., help="File path inside the repository"),
    source: Optional[Path] = typer.Option(None, "--source", help="Read the file locally instead of fetching it"),
):
    """Fetch a file and show its approximate outline."""
    config_manager = ConfigManager()
    project = _require_project(config_manager, key)
    snapshot = _require_snapshot(config_manager, key)

    indexer = _indexer(config_manager, project)
    indexer.load(snapshot)
    content = source.read_text(encoding="utf-8") if source else None

    try:
        outline = indexer.expand(path, content)
    except KeyError:
        _fail(f"No file at {path} in {key}")
    except (DevlensError, requests.RequestException) as e:
        _fail(str(e))

    if not outline:
        print("[yellow]No classes or functions recognized[/yellow]")
        return
    console.print(render_tree(outline), markup=False, highlight=False, soft_wrap=True)


@app.command(name="stack", help="Show detected technologies and file types")
def show_stack(key: str = typer.Argument(..., help="owner/name")):
    config_manager = ConfigManager()
    snapshot = _require_snapshot(config_manager, key)

    table = Table(title=f"Stack of {key}")
    table.add_column("Layer", style="cyan")
    table.add_column("Technologies", style="green")
    table.add_row("Frontend", ", ".join(snapshot.stack.frontend) or "-")
    table.add_row("Backend", ", ".join(snapshot.stack.backend) or "-")
    table.add_row("DevOps", ", ".join(snapshot.stack.devops) or "-")
    console.print(table)

    if snapshot.stats and snapshot.stats.extensions:
        top = list(snapshot.stats.extensions.items())[:10]
        print("[cyan]File types:[/cyan] " + ", ".join(f"{ext} ({count})" for ext, count in top))


@app.command(name="report", help="Write a Markdown report of a synced repository")
def write_report(
    key: str = typer.Argument(..., help="owner/name"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout"),
):
    config_manager = ConfigManager()
    project = _require_project(config_manager, key)
    snapshot = _require_snapshot(config_manager, key)

    report = _indexer(config_manager, project).generate_report(snapshot)
    if output is None:
        console.print(report, markup=False, highlight=False, soft_wrap=True)
    else:
        output.write_text(report, encoding="utf-8")
        print(f"[green]✓ Report written to {output}[/green]")


@app.command(name="prompt", help="Print the stack-analysis prompt for an LLM")
def show_prompt(key: str = typer.Argument(..., help="owner/name")):
    config_manager = ConfigManager()
    snapshot = _require_snapshot(config_manager, key)
    console.print(build_stack_prompt(key, snapshot.tree), markup=False, highlight=False, soft_wrap=True)


if __name__ == "__main__":
    app()
