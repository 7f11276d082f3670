"""
Read-only views over the flat node list for outline and list consumers.

The node list carries nesting only as `depth`. These helpers rebuild the
parent relation with a depth stack, the same way the outline is drawn:
a node deeper than anything open so far attaches to the last open node.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict

from planlens.graph.builder import parse_number_like
from planlens.parser.models import PlanNode

_SYSTEM_SINKS = {"VRESULT SINK", "RESULT SINK", "DATASTREAMSINK"}
_STREAM_DATA_SINK_RE = re.compile(r"STREAM\s+DATA\s+SINK")

# Segments already shown as dedicated columns in an outline row
_PARAM_SKIP_PREFIXES = ("[Fragment:", "TABLE:")
_PARAM_SKIP_RE = re.compile(r"^(?:cardinality=|afterFilter=|PREDICATES:)", re.IGNORECASE)


class OperatorCategory(str, Enum):
    """Coarse operator family, used for badges and filtering."""

    SCAN = "scan"
    JOIN = "join"
    AGG = "agg"
    EXCHANGE = "exchange"
    SINK = "sink"
    OTHER = "other"


def classify_operator(node: PlanNode) -> OperatorCategory:
    op = node.operator.upper()
    if "SCAN" in op:
        return OperatorCategory.SCAN
    if "JOIN" in op:
        return OperatorCategory.JOIN
    if "AGG" in op:
        return OperatorCategory.AGG
    if "EXCHANGE" in op:
        return OperatorCategory.EXCHANGE
    if op.endswith("SINK") or " SINK" in op:
        return OperatorCategory.SINK
    return OperatorCategory.OTHER


def is_system_sink(node: PlanNode) -> bool:
    """Result and stream sinks that every fragment has; low signal in lists."""
    op = node.operator.upper().strip()
    return op in _SYSTEM_SINKS or bool(_STREAM_DATA_SINK_RE.search(op))


def cardinality_share(cardinality: str | None, max_cardinality: int | float | None) -> float:
    """A node's cardinality as a 0..1 share of the largest one."""
    value = parse_number_like(cardinality)
    if value is None or not max_cardinality or max_cardinality <= 0:
        return 0.0
    return min(1.0, max(0.0, value / max_cardinality))


def build_parent_by_key(nodes: list[PlanNode]) -> dict[str, str | None]:
    """Map each node key to its parent's key (None for roots)."""
    parent: dict[str, str | None] = {}
    stack: list[str] = []

    for node in nodes:
        depth = min(max(0, node.depth), len(stack))
        del stack[depth:]
        parent[node.key] = stack[depth - 1] if depth > 0 else None
        stack.append(node.key)

    return parent


class OutlineRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    node: PlanNode
    depth: int
    has_children: bool
    descendant_count: int
    param_text: str


def build_param_text(node: PlanNode) -> str:
    parts = [
        seg for seg in node.segments[1:]
        if not seg.startswith(_PARAM_SKIP_PREFIXES) and not _PARAM_SKIP_RE.match(seg)
    ]
    return "  ".join(parts).strip()


def build_outline(nodes: list[PlanNode]) -> list[OutlineRow]:
    """
    Outline rows with effective depth and subtree sizes.

    Effective depth is clamped to one deeper than the enclosing row, so a
    jump of several levels still renders as a direct child.
    """
    depths: list[int] = []
    stack_size = 0
    for node in nodes:
        depth = min(max(0, node.depth), stack_size)
        depths.append(depth)
        stack_size = depth + 1

    descendants = [0] * len(nodes)
    open_rows: list[int] = []
    for i, depth in enumerate(depths):
        while open_rows and depth <= depths[open_rows[-1]]:
            top = open_rows.pop()
            descendants[top] = i - top - 1
        open_rows.append(i)
    for top in open_rows:
        descendants[top] = len(nodes) - top - 1

    return [
        OutlineRow(
            node=node,
            depth=depths[i],
            has_children=i + 1 < len(nodes) and depths[i + 1] > depths[i],
            descendant_count=descendants[i],
            param_text=build_param_text(node),
        )
        for i, node in enumerate(nodes)
    ]
