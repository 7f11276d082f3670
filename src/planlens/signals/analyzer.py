"""
Per-node and per-fragment optimization signals.

Detection is pattern-based over node attributes and is best-effort:
a signal that cannot be confirmed is reported inactive, with whatever
evidence text was found, never as an error.

- Predicate pushdown: the node carries PREDICATES / FRONTEND_PREDICATES.
- Partition / tablet pruning: `partitions=1/3 (...)`, `tablets=2/16, ...`
  with selected < total.
- Transparent rewrite: a scan while the document reports a chosen
  materialization ("hit"), or a scan over an index whose name looks like a
  materialized view or rollup ("candidate").
- Runtime filters: the RUNTIME_FILTERS attribute, verbatim.
"""

from __future__ import annotations

import re
from collections import defaultdict

from planlens.parser.models import PlanNode, parse_int
from planlens.signals.models import (
    FragmentOptimizationSignals,
    MaterializationSummary,
    NodeOptimizationSignals,
    PredicatePushdownSignal,
    PruningSignal,
    RewriteLevel,
    TransparentRewriteSignal,
)

_PRUNING_RE = re.compile(r"(\d+)\s*/\s*(\d+)")
_INDEX_SUFFIX_RE = re.compile(r"\(([^()]+)\)\s*$")
_REWRITE_INDEX_RE = re.compile(r"mv|rollup|materialized|agg", re.IGNORECASE)


def parse_pruning_signal(value: str | None) -> PruningSignal:
    """
    Parse `<selected>/<total>` out of an attribute value.

    >>> parse_pruning_signal("1/3 (p202401)").active
    True
    >>> parse_pruning_signal("3/3").active
    False
    """
    if not value:
        return PruningSignal()

    match = _PRUNING_RE.search(value)
    if not match:
        return PruningSignal(evidence=value)

    selected, total = parse_int(match.group(1)), parse_int(match.group(2))
    if selected is None or total is None or total <= 0:
        return PruningSignal(evidence=value)

    return PruningSignal(
        active=selected < total,
        selected=selected,
        total=total,
        ratio=selected / total,
        evidence=value,
    )


def format_pruning_ratio(signal: PruningSignal) -> str | None:
    """Render as `1/3 (33.3%)`; None when the numbers are unknown."""
    if signal.selected is None or signal.total is None or signal.ratio is None:
        return None
    return f"{signal.selected}/{signal.total} ({signal.ratio * 100:.1f}%)"


def parse_index_name(table_text: str | None) -> str | None:
    """Index name from a table attribute like `db.tbl(mv_idx)`."""
    if not table_text:
        return None
    match = _INDEX_SUFFIX_RE.search(table_text)
    if not match:
        return None
    return match.group(1).strip() or None


def _predicate_evidence(node: PlanNode) -> str | None:
    for candidate in (
        node.predicates,
        node.lookup("PREDICATES"),
        node.lookup("FRONTEND_PREDICATES"),
    ):
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def build_node_optimization_signals(
    node: PlanNode,
    materialization_summary: MaterializationSummary | None,
) -> NodeOptimizationSignals:
    """Derive every signal for one node."""
    evidence = _predicate_evidence(node)
    runtime_filters = node.lookup("RUNTIME_FILTERS")

    chosen = list(materialization_summary.chosen) if materialization_summary else []
    index_name = parse_index_name(node.table or node.lookup("TABLE"))

    if node.is_scan_like and chosen:
        level = RewriteLevel.HIT
    elif node.is_scan_like and index_name and _REWRITE_INDEX_RE.search(index_name):
        level = RewriteLevel.CANDIDATE
    else:
        level = RewriteLevel.NONE

    return NodeOptimizationSignals(
        predicate_pushdown=PredicatePushdownSignal(active=evidence is not None, evidence=evidence),
        partition_pruning=parse_pruning_signal(node.lookup("partitions")),
        tablet_pruning=parse_pruning_signal(node.lookup("tablets")),
        transparent_rewrite=TransparentRewriteSignal(
            level=level,
            index_name=index_name,
            chosen_materializations=chosen,
        ),
        runtime_filters=runtime_filters.strip() if runtime_filters and runtime_filters.strip() else None,
    )


def build_all_node_signals(
    nodes: list[PlanNode],
    materialization_summary: MaterializationSummary | None,
) -> dict[str, NodeOptimizationSignals]:
    """Signals for every node, keyed by PlanNode.key."""
    return {
        node.key: build_node_optimization_signals(node, materialization_summary)
        for node in nodes
    }


def build_fragment_optimization_signals(
    nodes: list[PlanNode],
    node_signals: dict[str, NodeOptimizationSignals],
) -> dict[int, FragmentOptimizationSignals]:
    """
    Roll node signals up per fragment.

    Fragment header nodes and nodes outside any fragment are not counted.
    """
    counts: dict[int, dict[str, int]] = defaultdict(
        lambda: {
            "predicate_pushdown_count": 0,
            "pruning_count": 0,
            "rewrite_count": 0,
            "scan_count": 0,
        }
    )

    for node in nodes:
        if node.fragment_id is None or node.is_fragment_header:
            continue
        signals = node_signals.get(node.key)
        if signals is None:
            continue

        current = counts[node.fragment_id]
        if signals.predicate_pushdown.active:
            current["predicate_pushdown_count"] += 1
        if signals.has_pruning:
            current["pruning_count"] += 1
        if signals.transparent_rewrite.level is not RewriteLevel.NONE:
            current["rewrite_count"] += 1
        if node.is_scan_like:
            current["scan_count"] += 1

    return {
        fragment_id: FragmentOptimizationSignals(**values)
        for fragment_id, values in sorted(counts.items())
    }
