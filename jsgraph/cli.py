"""Typer-based CLI for jsgraph."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config, config_manager
from .artifacts import ArtifactStore
from .cypher import render
from .errors import JsGraphError
from .pipeline import IngestPipeline
from .storage import GraphSettings, SQLiteGraphSession, open_session
from .syntax import JavaScriptTreeProvider

app = typer.Typer(
    help="JavaScript call-graph extraction into a property graph.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"jsgraph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
):
    """jsgraph: scope extraction and graph lowering for JavaScript sources."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _settings(backend: Optional[str], db: Optional[Path]) -> GraphSettings:
    settings = GraphSettings.from_config()
    if backend:
        settings.backend = backend
    if db is not None:
        settings.sqlite_path = db
    if settings.backend not in config_manager.DEFAULT_GRAPH_CONFIGS:
        _fail(ValueError(f"Unknown graph backend '{settings.backend}'"))
    return settings


def _pipeline(
    settings: GraphSettings,
    output_dir: Optional[Path],
    allow_syntax_errors: bool,
) -> IngestPipeline:
    return IngestPipeline(
        session_factory=lambda: open_session(settings),
        artifacts=ArtifactStore(output_dir or config.ARTIFACT_DIR),
        provider=JavaScriptTreeProvider(allow_syntax_errors=allow_syntax_errors or config.ALLOW_SYNTAX_ERRORS),
    )


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


@app.command("ingest")
def ingest(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JavaScript file to ingest."),
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="Graph backend: sqlite or neo4j."),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database file."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for code/doc artifacts."),
    allow_syntax_errors: bool = typer.Option(False, help="Extract from files with syntax errors."),
):
    """Extract a file's scope tree and merge it into the graph store."""
    pipeline = _pipeline(_settings(backend, db), output_dir, allow_syntax_errors)
    try:
        report = pipeline.run(source)
    except JsGraphError as exc:
        _fail(exc)

    typer.echo(f"Ingested '{report.source_path}'.")
    typer.echo(
        f"Functions: {report.functions} | Classes: {report.classes} | Exports: {report.exports}"
    )
    typer.echo(f"Operations: {report.operations} | Artifacts: {report.artifacts_written}")
    if report.artifacts_failed:
        console.print(f"[yellow]{report.artifacts_failed} artifact(s) could not be written.[/yellow]")


@app.command("scope")
def show_scope(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JavaScript file to inspect."),
    allow_syntax_errors: bool = typer.Option(False, help="Extract from files with syntax errors."),
):
    """Print the extracted scope tree as JSON."""
    pipeline = _pipeline(GraphSettings.from_config(), None, allow_syntax_errors)
    try:
        scope = pipeline.extract(source)
    except JsGraphError as exc:
        _fail(exc)
    typer.echo(json.dumps(scope.to_dict(), indent=2))


@app.command("plan")
def show_plan(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JavaScript file to lower."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory used for artifact locators."),
):
    """Print the merge operations for a file as Cypher, without running them."""
    pipeline = _pipeline(GraphSettings.from_config(), output_dir, False)
    try:
        operations = pipeline.plan(pipeline.extract(source))
    except JsGraphError as exc:
        _fail(exc)
    typer.echo(render(operations))


@app.command("show-graph")
def show_graph(
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database file."),
):
    """Show node and edge counts of the SQLite graph."""
    path = db or config.SQLITE_PATH
    if not Path(path).exists():
        console.print(f"[yellow]No graph database at {path}.[/yellow]")
        raise typer.Exit(code=1)

    with SQLiteGraphSession(path) as session:
        table = Table(title=f"Graph: {path}")
        table.add_column("Label")
        table.add_column("Nodes", justify="right")
        by_label: dict = {}
        for node in session.get_nodes():
            by_label[node["label"]] = by_label.get(node["label"], 0) + 1
        for label, count in sorted(by_label.items()):
            table.add_row(label, str(count))
        console.print(table)
        counts = session.counts()
    typer.echo(f"Nodes: {counts['nodes']} | Edges: {counts['edges']}")


@app.command("set-graph")
def set_graph(
    backend: str = typer.Argument(..., help="Graph backend: sqlite or neo4j."),
    uri: str = typer.Option("", help="Neo4j bolt URI."),
    user: str = typer.Option("", help="Neo4j user."),
    password: str = typer.Option("", help="Neo4j password."),
    database: str = typer.Option("", help="Neo4j database name."),
    sqlite_path: str = typer.Option("", help="SQLite database file."),
):
    """Persist graph backend settings to the config file."""
    try:
        saved = config_manager.save_graph_config(backend, uri, user, password, database, sqlite_path)
    except ValueError as exc:
        _fail(exc)
    if not saved:
        console.print(f"[red]Could not write {config_manager.CONFIG_FILE}.[/red]")
        raise typer.Exit(code=1)
    typer.echo(f"Graph backend set to '{backend}' in {config_manager.CONFIG_FILE}.")


@app.command("show-config")
def show_config():
    """Show the active configuration."""
    settings = GraphSettings.from_config()
    table = Table(title="jsgraph configuration")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("config file", str(config_manager.CONFIG_FILE))
    table.add_row("backend", settings.backend)
    if settings.backend == "sqlite":
        table.add_row("sqlite path", str(settings.sqlite_path))
    else:
        table.add_row("uri", settings.uri)
        table.add_row("user", settings.user)
        table.add_row("database", settings.database)
    table.add_row("artifact dir", str(config.ARTIFACT_DIR))
    table.add_row("allow syntax errors", str(config.ALLOW_SYNTAX_ERRORS))
    console.print(table)


if __name__ == "__main__":
    app()
