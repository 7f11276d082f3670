"""Heuristic optimization signals (pushdown, pruning, rewrite, runtime filters)."""

from planlens.signals.analyzer import (
    build_all_node_signals,
    build_fragment_optimization_signals,
    build_node_optimization_signals,
    format_pruning_ratio,
    parse_index_name,
    parse_pruning_signal,
)
from planlens.signals.document import (
    has_unknown_column_stats,
    parse_materialization_summary,
)
from planlens.signals.models import (
    FragmentOptimizationSignals,
    MaterializationFailure,
    MaterializationSummary,
    NodeOptimizationSignals,
    PredicatePushdownSignal,
    PruningSignal,
    RewriteLevel,
    TransparentRewriteSignal,
)

__all__ = [
    "NodeOptimizationSignals",
    "FragmentOptimizationSignals",
    "PredicatePushdownSignal",
    "PruningSignal",
    "RewriteLevel",
    "TransparentRewriteSignal",
    "MaterializationFailure",
    "MaterializationSummary",
    "build_node_optimization_signals",
    "build_all_node_signals",
    "build_fragment_optimization_signals",
    "parse_pruning_signal",
    "format_pruning_ratio",
    "parse_index_name",
    "parse_materialization_summary",
    "has_unknown_column_stats",
]
