"""CLI interface for nodel using Typer framework."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from nodel import __description__, __version__
from nodel.config import LogLevel, NodelConfig, load_config
from nodel.diagnostics import ErrorCollector, ErrorSeverity
from nodel.graph import GraphStore, MermaidRenderer
from nodel.graph.view import node_label
from nodel.models import read_snapshot, write_snapshot

app = typer.Typer(
    name="nodel",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()

_LOG_LEVELS = {
    LogLevel.ERROR.value: logging.ERROR,
    LogLevel.WARN.value: logging.WARNING,
    LogLevel.INFO.value: logging.INFO,
    LogLevel.DEBUG.value: logging.DEBUG,
}

SnapshotArgument = Annotated[Path, typer.Argument(help="Path to a JSON snapshot file")]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Configuration file path (default: search for .nodel.json)")
]
OutOption = Annotated[
    Optional[Path],
    typer.Option("--out", "-o", help="Write the updated snapshot here (default: overwrite input)")
]


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"nodel version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, help="Show version and exit")
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging")
    ] = False,
) -> None:
    """nodel - typed node graphs with collapsible groups."""
    if verbose:
        _setup_logging(LogLevel.DEBUG.value)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=_LOG_LEVELS.get(level, logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _open_store(snapshot: Path, config_path: Optional[Path], command: str) -> tuple[GraphStore, MermaidRenderer, NodelConfig]:
    """Load configuration and snapshot into a store backed by a Mermaid renderer."""
    try:
        config = load_config(config_path)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not logging.getLogger().handlers:
        _setup_logging(config.logging.level)

    try:
        records = read_snapshot(snapshot)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    renderer = MermaidRenderer(
        templates={record.template for record in records},
        config=config.render,
        default_relation=config.graph.default_relation,
        title=snapshot.stem,
    )
    store = GraphStore(renderer, config=config.graph, collector=ErrorCollector(command))
    if not store.load(records):
        _print_diagnostics(store)
        raise typer.Exit(1)
    return store, renderer, config


def _print_diagnostics(store: GraphStore) -> None:
    for diagnostic in store.diagnostics.diagnostics:
        color = "red" if diagnostic.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL) else "yellow"
        console.print(f"[{color}]{diagnostic.severity.value.title()}:[/{color}] {diagnostic.message}")


def _finish(store: GraphStore, snapshot: Path, out: Optional[Path], ok: bool) -> None:
    _print_diagnostics(store)
    if not ok:
        raise typer.Exit(1)

    output_file = write_snapshot(out or snapshot, store.to_snapshot())
    console.print(f"[green]Snapshot written:[/green] {output_file}")


@app.command()
def info(
    snapshot: SnapshotArgument,
    config: ConfigOption = None,
) -> None:
    """Show the nodes of a snapshot and their group state."""
    store, _, nodel_config = _open_store(snapshot, config, "info")

    table = Table(title=f"{snapshot.name} ({len(store.nodes)} nodes)")
    table.add_column("Id", style="cyan")
    table.add_column("Template")
    table.add_column("Label")
    table.add_column("Head/Leaf")
    table.add_column("Group")
    table.add_column("Visible")

    for node in store.nodes.values():
        shape = "/".join(
            flag for flag, present in (("head", node.is_head()), ("leaf", node.is_leaf())) if present
        )
        group = ""
        if node.is_group():
            state = "collapsed" if node.group.collapsed else "expanded"
            group = f"{node.group.name or ''} ({state}, {len(node.group.ends)} ends)"
        table.add_row(
            node.id,
            node.template,
            node_label(node, nodel_config.render.label_key),
            shape or "-",
            group or "-",
            "yes" if node.is_visible(store.nodes) else "[dim]no[/dim]",
        )

    console.print(table)
    _print_diagnostics(store)


@app.command()
def render(
    snapshot: SnapshotArgument,
    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Output file path (default: stdout)")
    ] = None,
    config: ConfigOption = None,
) -> None:
    """Render the visible graph as a Mermaid flowchart."""
    store, renderer, _ = _open_store(snapshot, config, "render")

    rendered = renderer.last_output or renderer.draw(store.nodes)
    if out:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(rendered, encoding="utf-8")
        console.print(f"[green]Graph generated:[/green] {out}")
    else:
        typer.echo(rendered)


@app.command("toggle-group")
def toggle_group(
    snapshot: SnapshotArgument,
    node_id: Annotated[str, typer.Argument(help="Node to collapse or expand")],
    collapse: Annotated[
        Optional[bool],
        typer.Option("--collapse/--expand", help="Force a state instead of flipping it")
    ] = None,
    out: OutOption = None,
    config: ConfigOption = None,
) -> None:
    """Collapse or expand a group, creating it on first use."""
    store, _, _ = _open_store(snapshot, config, "toggle-group")

    state = store.toggle_group(node_id, collapse)
    if state is not None:
        console.print(f"[blue]Group {node_id}:[/blue] {'collapsed' if state else 'expanded'}")
    _finish(store, snapshot, out, state is not None)


@app.command("toggle-connect")
def toggle_connect(
    snapshot: SnapshotArgument,
    parent_id: Annotated[str, typer.Argument(help="Parent node id")],
    child_id: Annotated[str, typer.Argument(help="Child node id")],
    relation: Annotated[
        Optional[str],
        typer.Option("--type", "-t", help="Relation type (default from configuration)")
    ] = None,
    out: OutOption = None,
    config: ConfigOption = None,
) -> None:
    """Connect two nodes, or disconnect them if already connected."""
    store, _, _ = _open_store(snapshot, config, "toggle-connect")

    ok = store.toggle_connect(parent_id, child_id, relation)
    if ok:
        relation = relation or store.config.default_relation
        console.print(f"[blue]Toggled {relation} edge:[/blue] {parent_id} -> {child_id}")
    _finish(store, snapshot, out, ok)


if __name__ == "__main__":
    app()
