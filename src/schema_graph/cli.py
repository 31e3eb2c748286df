"""
Command-line interface for schema_graph.

Provides build, fk-stats and map-names commands working from a prefetched
schema snapshot and a relational FK export.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from schema_graph import __version__
from schema_graph.config import GraphConfig, load_config
from schema_graph.graph.edge_enhancer import get_edge_stats
from schema_graph.graph.filters import TypeFilterConfig, compose_type_filters, create_pattern_type_filter
from schema_graph.graph.primary import ModelKindsRegistry, create_primary_model_checker
from schema_graph.graph.session import GraphSession
from schema_graph.introspection.cache import SnapshotTypeSource
from schema_graph.models import GraphResult, TypePredicate
from schema_graph.relational.fk_lookup import build_fk_lookup, get_lookup_stats
from schema_graph.relational.fk_parser import calculate_fk_stats, load_foreign_keys, validate_fk_data
from schema_graph.relational.name_mapper import (
    build_name_mapper,
    build_name_mapper_from_models,
    export_mappings_csv,
)

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_content_types(path: Path) -> List[Dict[str, Any]]:
    """
    Load content-type records from JSON or YAML.

    Accepts a plain list or an API page with a ``results`` list.
    """
    with open(path, "r") as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("results", [])
    return [ct for ct in data if isinstance(ct, dict)]


def write_structured(data: Dict[str, Any], output: Path) -> None:
    """Write ``data`` as YAML for .yaml/.yml paths, JSON otherwise."""
    output = Path(output)
    with open(output, "w") as f:
        if output.suffix.lower() in (".yaml", ".yml"):
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)


def _load_snapshot(snapshot: Path) -> SnapshotTypeSource:
    try:
        return SnapshotTypeSource.from_file(snapshot)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: Could not load schema snapshot {snapshot}: {e}[/red]")
        sys.exit(1)


def _resolve_primary_checker(
    config: GraphConfig,
    all_primary: bool,
) -> Tuple[Optional[TypePredicate], str]:
    if all_primary:
        return (lambda typename: True), "all types"
    if config.content_types:
        try:
            content_types = load_content_types(config.content_types)
        except (OSError, yaml.YAMLError) as e:
            console.print(f"[red]Error: Could not load content types {config.content_types}: {e}[/red]")
            sys.exit(1)
        return create_primary_model_checker(content_types), f"{len(content_types)} content types"
    if config.model_kinds:
        try:
            registry = ModelKindsRegistry.from_file(config.model_kinds)
        except (OSError, yaml.YAMLError) as e:
            console.print(f"[red]Error: Could not load model kinds {config.model_kinds}: {e}[/red]")
            sys.exit(1)
        return registry, f"{len(registry)} primary models"
    return None, "none"


@click.group()
@click.version_option(version=__version__, prog_name="schema_graph")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """
    Schema Graph - FK-aware relationship graphs from schema introspection

    Combine a schema snapshot with a relational foreign key export to build
    depth-bounded graphs whose edges carry direction and cardinality.
    """
    setup_logging(verbose)


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML config file (command-line options override it)",
)
@click.option(
    "--snapshot",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Prefetched schema snapshot (JSON)",
)
@click.option(
    "--root",
    "roots",
    multiple=True,
    help="Root type name (repeatable)",
)
@click.option(
    "--depth",
    type=int,
    default=None,
    help="Number of levels including roots (1 = roots only)",
)
@click.option(
    "--max-types",
    "max_types",
    type=int,
    default=None,
    help="Maximum types fetched per depth",
)
@click.option(
    "--fk-export",
    "fk_export",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Relational FK export (JSON array)",
)
@click.option(
    "--model-kinds",
    "model_kinds",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Model kinds document listing primary models",
)
@click.option(
    "--content-types",
    "content_types",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Content type records marking primary models",
)
@click.option(
    "--all-primary",
    is_flag=True,
    help="Treat every type as a primary model",
)
@click.option(
    "--pattern",
    "patterns",
    multiple=True,
    help="Only follow child types matching this wildcard pattern (repeatable)",
)
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the graph to this file (.json, .yaml or .yml)",
)
def build(
    config_path: Optional[Path],
    snapshot: Optional[Path],
    roots: Tuple[str, ...],
    depth: Optional[int],
    max_types: Optional[int],
    fk_export: Optional[Path],
    model_kinds: Optional[Path],
    content_types: Optional[Path],
    all_primary: bool,
    patterns: Tuple[str, ...],
    output: Optional[Path],
) -> None:
    """
    Build a relationship graph from a schema snapshot.

    Examples:

        # Two levels from DeviceType, every type primary
        schema_graph build --snapshot schema.json --root DeviceType --depth 2 --all-primary

        # FK-aware graph with primary models from model kinds
        schema_graph build --snapshot schema.json --root DeviceType --depth 3 \\
            --fk-export fk_export.json --model-kinds model_kinds.yaml --output graph.json

        # Everything from a config file
        schema_graph build --config graph.yaml
    """
    config = load_config(config_path) if config_path else GraphConfig()
    if snapshot:
        config.schema_snapshot = snapshot
    if roots:
        config.root_types = list(roots)
    if depth is not None:
        config.max_depth = depth
    if max_types is not None:
        config.max_types_per_depth = max_types
    if fk_export:
        config.foreign_keys = fk_export
    if model_kinds:
        config.model_kinds = model_kinds
    if content_types:
        config.content_types = content_types

    if not config.schema_snapshot:
        console.print("[red]Error: No schema snapshot given. Use --snapshot or set schema_snapshot in --config[/red]")
        sys.exit(1)
    if not config.root_types:
        console.print("[red]Error: No root types given. Use --root or set root_types in --config[/red]")
        sys.exit(1)
    if config.max_depth < 1 or config.max_types_per_depth < 1:
        console.print("[red]Error: --depth and --max-types must be at least 1[/red]")
        sys.exit(1)

    console.print("[bold blue]Schema Graph Build[/bold blue]")
    console.print(f"Snapshot: {config.schema_snapshot}")
    console.print(f"Roots: {', '.join(config.root_types)}")
    console.print(f"Depth: {config.max_depth}")

    source = _load_snapshot(config.schema_snapshot)
    primary_checker, primary_source = _resolve_primary_checker(config, all_primary)
    console.print(f"Primary models: {primary_source}")

    type_filter = config.build_type_filter()
    if patterns:
        cli_filter = create_pattern_type_filter(TypeFilterConfig(include_patterns=list(patterns)))
        type_filter = compose_type_filters(type_filter, cli_filter)

    session = GraphSession(
        source.fetch_type,
        primary_model_checker=primary_checker,
        type_filter=type_filter,
    )

    if config.foreign_keys:
        try:
            foreign_keys = load_foreign_keys(config.foreign_keys)
        except (OSError, ValueError) as e:
            console.print(f"[red]Error: Could not load FK export {config.foreign_keys}: {e}[/red]")
            sys.exit(1)
        fk_result = session.set_fk_data(foreign_keys, typenames=source.typenames)
        console.print(
            f"FK lookup: {len(fk_result.lookup)} entries "
            f"({fk_result.stats.coverage_rate:.1f}% coverage)"
        )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Building graph...", total=None)
        result = asyncio.run(
            session.rebuild(
                config.root_types,
                config.max_depth,
                include_scalars=config.include_scalars,
                show_field_nodes=config.show_field_nodes,
                max_types_per_depth=config.max_types_per_depth,
            )
        )
        progress.update(task, completed=True)

    console.print("\n[green]Graph built![/green]")
    _print_graph_summary(result)

    if output:
        write_structured(result.to_dict(), output)
        console.print(f"\n[green]Saved graph to: {output}[/green]")


def _print_graph_summary(result: GraphResult) -> None:
    stats = result.stats

    summary = Table(title="Graph Summary")
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", style="green", justify="right")
    summary.add_row("Nodes", str(stats.total_nodes))
    summary.add_row("Edges", str(stats.total_edges))
    summary.add_row("Types Fetched", str(stats.types_fetched))
    summary.add_row("Scalar Fields Filtered", str(stats.filtered_nodes))
    summary.add_row("Edges Skipped (non-primary)", str(stats.edges_skipped_non_primary))
    console.print(summary)

    depth_table = Table(title="Nodes per Depth")
    depth_table.add_column("Depth", style="cyan", justify="right")
    depth_table.add_column("Nodes", style="green", justify="right")
    for level in sorted(stats.nodes_per_depth):
        depth_table.add_row(str(level), str(stats.nodes_per_depth[level]))
    console.print(depth_table)

    if result.edges:
        edge_stats = get_edge_stats(result.edges)
        edge_table = Table(title="Edges")
        edge_table.add_column("Metric", style="cyan")
        edge_table.add_column("Value", style="green", justify="right")
        edge_table.add_row("FK Edges", f"{edge_stats['fk_edges']} ({edge_stats['fk_percentage']:.1f}%)")
        edge_table.add_row("Non-FK Edges", str(edge_stats["non_fk_edges"]))
        edge_table.add_row("Many-to-one", str(edge_stats["many_to_one"]))
        edge_table.add_row("Many-to-many", str(edge_stats["many_to_many"]))
        edge_table.add_row("Junction Tables", str(edge_stats["junction_tables"]))
        console.print(edge_table)
    else:
        console.print("\n[yellow]No edges created.[/yellow]")
        console.print("Edges only leave primary models; try --model-kinds or --all-primary.")


@cli.command("fk-stats")
@click.option(
    "--fk-export",
    "fk_export",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Relational FK export (JSON array)",
)
@click.option(
    "--snapshot",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Schema snapshot; type names are mapped back to tables",
)
@click.option(
    "--content-types",
    "content_types",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Content type records; tables are mapped forward to types",
)
@click.option(
    "--show-unmapped",
    is_flag=True,
    help="List tables that could not be mapped",
)
def fk_stats(
    fk_export: Path,
    snapshot: Optional[Path],
    content_types: Optional[Path],
    show_unmapped: bool,
) -> None:
    """
    Show how well an FK export maps onto the schema.

    Example:

        schema_graph fk-stats --fk-export fk_export.json --snapshot schema.json
    """
    if not snapshot and not content_types:
        console.print("[red]Error: Provide --snapshot or --content-types to map table names[/red]")
        sys.exit(1)

    console.print("[bold blue]Schema Graph - FK Statistics[/bold blue]")
    console.print(f"FK export: {fk_export}")

    try:
        foreign_keys = load_foreign_keys(fk_export)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if content_types:
        mapper = build_name_mapper_from_models(load_content_types(content_types))
    else:
        mapper = build_name_mapper(_load_snapshot(snapshot).typenames)

    result = build_fk_lookup(foreign_keys, mapper)
    export_stats = calculate_fk_stats(foreign_keys)
    lookup_stats = get_lookup_stats(result.lookup)

    table = Table(title="FK Lookup")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Foreign Keys", str(result.stats.total_fks))
    table.add_row("Unique Tables", str(export_stats["unique_tables"]))
    table.add_row("Mapped Tables", str(len(mapper)))
    table.add_row("Lookup Entries", str(lookup_stats["total_entries"]))
    table.add_row("Types with FKs", str(lookup_stats["unique_types"]))
    table.add_row("Many-to-one", str(lookup_stats["many_to_one"]))
    table.add_row("Many-to-many", str(lookup_stats["many_to_many"]))
    table.add_row("Self References", str(result.stats.self_references))
    table.add_row("Parse Errors", str(result.stats.parse_errors))
    table.add_row("Unmapped Tables", str(result.stats.unmapped_tables))
    table.add_row("Coverage", f"{result.stats.coverage_rate:.1f}%")
    console.print(table)

    _, warnings = validate_fk_data(foreign_keys)
    for warning in warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")

    if show_unmapped and result.unmapped_tables:
        console.print("\n[bold]Unmapped tables:[/bold]")
        for name in result.unmapped_tables:
            console.print(f"  {name}")


@cli.command("map-names")
@click.option(
    "--snapshot",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Schema snapshot whose type names are mapped",
)
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the mapping CSV to this file instead of stdout",
)
def map_names(snapshot: Path, output: Optional[Path]) -> None:
    """
    Map schema type names to relational table names.

    Example:

        schema_graph map-names --snapshot schema.json --output mappings.csv
    """
    source = _load_snapshot(snapshot)
    mapper = build_name_mapper(source.typenames)
    csv_text = export_mappings_csv(mapper)

    if output:
        with open(output, "w") as f:
            f.write(csv_text)
        stats = mapper.stats
        console.print(
            f"[green]Saved {stats.successful_mappings} mappings to: {output}[/green] "
            f"({stats.coverage_rate:.1f}% of {stats.total_mappings} types)"
        )
    else:
        click.echo(csv_text, nl=False)


if __name__ == "__main__":
    cli()
