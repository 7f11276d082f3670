"""
PlanLens CLI - Inspect distributed SQL EXPLAIN text.

Accepts both the dash-indented EXPLAIN TREE dump and the legacy
fragment/plan dump; the grammar is detected automatically.

Usage:
    planlens nodes explain.txt
    planlens nodes explain.txt --fragment 1
    planlens graph explain.txt --json
    mysql -e "EXPLAIN ..." | planlens signals -
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from planlens import __version__
from planlens.config import get_config
from planlens.engine import PlanReport, analyze_plan
from planlens.exceptions import ConfigurationError, ParseError
from planlens.graph import cardinality_share, parse_number_like
from planlens.parser import ParseFailure, read_explain_file, select_nodes_by_fragment
from planlens.signals import format_pruning_ratio

app = typer.Typer(
    name="planlens",
    help="Distributed SQL EXPLAIN parser and analyzer",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"PlanLens version {__version__}")
        raise typer.Exit()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
    )
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger("planlens").setLevel(level.upper())


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help="Log level (DEBUG, INFO, WARNING, ERROR). Defaults to PLANLENS_LOG_LEVEL.",
        ),
    ] = None,
) -> None:
    """PlanLens - Distributed SQL EXPLAIN parser and analyzer."""
    try:
        level = log_level or get_config().log_level
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(code=1)
    
    if level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        error_console.print(f"[red]Error:[/red] Unknown log level: {level}")
        raise typer.Exit(code=1)
    
    _configure_logging(level)


def _read_input(explain_file: str) -> str:
    """Read EXPLAIN text from a path, or from stdin when the path is '-'."""
    if explain_file == "-":
        content = typer.get_text_stream("stdin").read()
        if not content.strip():
            raise ParseError("No EXPLAIN text on stdin", source="stdin")
        return content
    return read_explain_file(explain_file)


def _load_report(explain_file: str) -> PlanReport:
    """Read, parse and analyze; exit with code 1 on any failure."""
    try:
        raw_text = _read_input(explain_file)
        config = get_config()
    except ParseError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1)
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(code=1)
    
    report = analyze_plan(raw_text, config=config.parser)
    if isinstance(report, ParseFailure):
        error_console.print(f"[red]Error:[/red] {escape(report.error)}")
        raise typer.Exit(code=1)
    
    for warning in report.warnings:
        error_console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
    
    return report


FileArgument = Annotated[
    str,
    typer.Argument(help="Path to EXPLAIN text file, or '-' for stdin"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output results as JSON"),
]


@app.command()
def nodes(
    explain_file: FileArgument,
    fragment: Annotated[
        Optional[int],
        typer.Option("--fragment", "-f", help="Only show nodes of this fragment"),
    ] = None,
    json_output: JsonOption = False,
) -> None:
    """
    List parsed plan nodes in emission order.
    
    With --fragment, depth is re-based so the fragment's top node is at 0.
    """
    report = _load_report(explain_file)
    selected = select_nodes_by_fragment(report.parse.nodes, fragment)
    
    if json_output:
        output_data = {
            "format": report.parse.format.value,
            "fragments": report.parse.fragments,
            "warnings": report.parse.warnings,
            "nodes": [node.model_dump(mode="json") for node in selected],
        }
        console.print_json(json.dumps(output_data, indent=2))
        return
    
    if not selected:
        console.print(f"[yellow]No nodes in fragment {fragment}.[/yellow]")
        return
    
    max_cardinality = max(
        (v for v in (parse_number_like(n.cardinality) for n in selected) if v is not None),
        default=None,
    )
    
    table = Table(title=f"Plan nodes ({report.parse.format.value} format)")
    table.add_column("Key", style="dim")
    table.add_column("Operator")
    table.add_column("Fragment", justify="right")
    table.add_column("Table")
    table.add_column("Cardinality", justify="right")
    table.add_column("Share", justify="right")
    
    for node in selected:
        share = cardinality_share(node.cardinality, max_cardinality)
        table.add_row(
            node.key,
            "  " * node.depth + escape(node.operator),
            "" if node.fragment_id is None else str(node.fragment_id),
            escape(node.table or ""),
            node.cardinality or "",
            f"{share:.0%}" if node.cardinality else "",
        )
    
    console.print(table)
    console.print(f"[dim]{len(selected)} node(s), fragments: {report.parse.fragments}[/dim]")


@app.command()
def graph(
    explain_file: FileArgument,
    json_output: JsonOption = False,
) -> None:
    """
    Show the fragment data-flow graph.
    
    Fragments are listed by id with their topological level; edges point
    from the producing fragment to the consuming one.
    """
    report = _load_report(explain_file)
    fragment_graph = report.graph
    
    if json_output:
        console.print_json(fragment_graph.model_dump_json(indent=2))
        return
    
    table = Table(title="Fragments")
    table.add_column("Fragment", justify="right")
    table.add_column("Level", justify="right")
    table.add_column("Partition")
    table.add_column("Root operator")
    table.add_column("Nodes", justify="right")
    table.add_column("Joins", justify="right")
    table.add_column("Scans", justify="right")
    table.add_column("Max cardinality", justify="right")
    table.add_column("Tables")
    
    for node in fragment_graph.nodes:
        table.add_row(
            str(node.fragment_id),
            str(node.level),
            escape(node.partition or ""),
            escape(node.root_operator or ""),
            str(node.node_count),
            str(node.join_count),
            str(node.scan_count),
            "" if node.max_cardinality is None else f"{node.max_cardinality:,}",
            escape(", ".join(node.tables)),
        )
    
    console.print(table)
    
    if not fragment_graph.edges:
        console.print("[dim]No exchanges between fragments.[/dim]")
        return
    
    console.print("\n[bold]Edges:[/bold]")
    for edge in fragment_graph.edges:
        console.print(
            f"  {edge.from_fragment_id} -> {edge.to_fragment_id}"
            f"  [dim](exchange {', '.join(edge.exchange_ids)})[/dim]"
        )


@app.command()
def signals(
    explain_file: FileArgument,
    json_output: JsonOption = False,
) -> None:
    """
    Show optimization signals per fragment.
    
    Signals are heuristic: predicate pushdown, partition/tablet pruning,
    materialized-view rewrite and runtime filters.
    """
    report = _load_report(explain_file)
    summary = report.materialization_summary
    
    if json_output:
        output_data = {
            "fragments": {
                str(fid): rollup.model_dump(mode="json")
                for fid, rollup in report.fragment_signals.items()
            },
            "nodes": {
                key: signal.model_dump(mode="json")
                for key, signal in report.node_signals.items()
            },
            "materialization_summary": (
                summary.model_dump(mode="json") if summary else None
            ),
            "has_unknown_column_stats": report.has_unknown_column_stats,
        }
        console.print_json(json.dumps(output_data, indent=2))
        return
    
    table = Table(title="Optimization signals by fragment")
    table.add_column("Fragment", justify="right")
    table.add_column("Scans", justify="right")
    table.add_column("Pushdown", justify="right")
    table.add_column("Pruning", justify="right")
    table.add_column("Rewrite", justify="right")
    
    for fid, rollup in report.fragment_signals.items():
        table.add_row(
            str(fid),
            str(rollup.scan_count),
            str(rollup.predicate_pushdown_count),
            str(rollup.pruning_count),
            str(rollup.rewrite_count),
        )
    
    console.print(table)
    
    for node in report.parse.nodes:
        node_signal = report.node_signals.get(node.key)
        if node_signal is None or not node_signal.has_pruning:
            continue
        parts = []
        partitions = format_pruning_ratio(node_signal.partition_pruning)
        if partitions and node_signal.partition_pruning.active:
            parts.append(f"partitions {partitions}")
        tablets = format_pruning_ratio(node_signal.tablet_pruning)
        if tablets and node_signal.tablet_pruning.active:
            parts.append(f"tablets {tablets}")
        console.print(f"  [green]{node.key}[/green] {escape(node.operator)}: {', '.join(parts)}")
    
    if summary is not None:
        lines = [
            f"Chosen: {', '.join(summary.chosen) or '-'}",
            f"Not chosen: {', '.join(summary.success_but_not_chosen) or '-'}",
        ]
        for failure in summary.failed:
            reason = f" ({failure.reason})" if failure.reason else ""
            lines.append(f"Failed: {failure.name}{reason}")
        console.print(Panel("\n".join(lines), title="Materializations", border_style="blue"))
    
    if report.has_unknown_column_stats:
        console.print(
            "[yellow]Planned with unknown column statistics; "
            "cardinalities may be unreliable.[/yellow]"
        )


if __name__ == "__main__":
    app()
