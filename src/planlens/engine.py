"""
One-call orchestration for PlanLens.

This is the single entry point that runs every stage over one EXPLAIN dump:
    
    parse -> fragment graph -> materialization summary
          -> per-node signals -> per-fragment rollups

The CLI is a thin adapter around analyze_plan(); library callers that only
need one stage should import it from its own package instead.

Usage:
    from planlens.engine import analyze_plan
    
    report = analyze_plan(text)
    if report.ok:
        for edge in report.graph.edges:
            print(edge.from_fragment_id, "->", edge.to_fragment_id)
    else:
        print(report.error)
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from planlens.graph import FragmentGraph, build_fragment_graph
from planlens.parser import ParseFailure, ParserConfig, ParseSuccess, parse_explain
from planlens.signals import (
    FragmentOptimizationSignals,
    MaterializationSummary,
    NodeOptimizationSignals,
    build_all_node_signals,
    build_fragment_optimization_signals,
    has_unknown_column_stats,
    parse_materialization_summary,
)

logger = logging.getLogger(__name__)


class PlanReport(BaseModel):
    """
    Everything derived from one successfully parsed dump.
    
    `node_signals` is keyed by PlanNode.key; `fragment_signals` by fragment
    id. `ok` mirrors ParseSuccess so callers can branch on either result.
    """
    
    model_config = ConfigDict(frozen=True)
    
    ok: Literal[True] = True
    parse: ParseSuccess
    graph: FragmentGraph
    materialization_summary: MaterializationSummary | None = None
    node_signals: dict[str, NodeOptimizationSignals] = Field(default_factory=dict)
    fragment_signals: dict[int, FragmentOptimizationSignals] = Field(default_factory=dict)
    has_unknown_column_stats: bool = False
    
    @property
    def warnings(self) -> list[str]:
        return self.parse.warnings


def analyze_plan(
    raw_text: str,
    config: ParserConfig | None = None,
) -> PlanReport | ParseFailure:
    """
    Parse a dump and derive the fragment graph and optimization signals.
    
    Args:
        raw_text: EXPLAIN TREE or EXPLAIN PLAN text.
        config: Parser resource limits. Defaults to DEFAULT_CONFIG.
    
    Returns:
        PlanReport on success, or the ParseFailure unchanged.
    """
    result = parse_explain(raw_text, config=config)
    if not result.ok:
        return result
    
    graph = build_fragment_graph(result.nodes)
    summary = parse_materialization_summary(result.raw_text)
    node_signals = build_all_node_signals(result.nodes, summary)
    fragment_signals = build_fragment_optimization_signals(result.nodes, node_signals)
    
    logger.debug(
        "Analyzed plan: %d fragments, %d edges, materializations=%s",
        len(graph.nodes),
        len(graph.edges),
        summary is not None,
    )
    
    return PlanReport(
        parse=result,
        graph=graph,
        materialization_summary=summary,
        node_signals=node_signals,
        fragment_signals=fragment_signals,
        has_unknown_column_stats=has_unknown_column_stats(result.raw_text),
    )
