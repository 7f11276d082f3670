"""
Build the fragment data-flow graph from a flat node list.

Producer/consumer relationships are not printed explicitly; they are
recovered by matching exchange ids:

- An exchange consumer is any node whose operator mentions EXCHANGE and is
  not a sink. Its id comes from an `EXCHANGE ID` attribute or text, falling
  back to its own node id (the engine numbers exchange nodes by the id the
  producer's sink refers to).
- An exchange producer is a stream data sink. Its id comes only from the
  `EXCHANGE ID` attribute or text.

Numeric ids drop leading zeros so "05" and "5" match.
"""

from __future__ import annotations

import functools
import logging
import math
import re
from collections import defaultdict
from typing import Iterable

from planlens.graph.levels import compute_levels
from planlens.graph.models import FragmentGraph, FragmentGraphEdge, FragmentGraphNode
from planlens.parser.models import PlanNode

logger = logging.getLogger(__name__)

_EXCHANGE_ID_TEXT_RE = re.compile(r"EXCHANGE\s+ID\s*:\s*([0-9]+)", re.IGNORECASE)
_STREAM_DATA_SINK_RE = re.compile(r"STREAM\s+DATA\s+SINK", re.IGNORECASE)
_DATASTREAMSINK_RE = re.compile(r"DATASTREAMSINK", re.IGNORECASE)
_NUMBER_GROUPING_RE = re.compile(r"[, _]")


# =============================================================================
# Shared helpers
# =============================================================================


def parse_number_like(text: str | None) -> int | float | None:
    """
    Parse a printed number such as "149,996,355".
    
    Grouping characters (comma, space, underscore) are stripped. Returns None
    for empty or non-numeric text.
    """
    if not text:
        return None
    cleaned = _NUMBER_GROUPING_RE.sub("", text).strip()
    if not cleaned:
        return None
    try:
        return int(cleaned)
    except ValueError:
        pass
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _compare_ids(a: str, b: str) -> int:
    na, nb = parse_number_like(a), parse_number_like(b)
    if na is not None and nb is not None:
        return (na > nb) - (na < nb)
    return (a > b) - (a < b)


def sorted_unique_ids(values: Iterable[str]) -> list[str]:
    """Sort ids numerically when both sides are numbers, else as text."""
    return sorted(set(values), key=functools.cmp_to_key(_compare_ids))


def normalize_exchange_id(raw: str | int | None) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    if text.isascii() and text.isdigit():
        return text.lstrip("0") or "0"
    return text


# =============================================================================
# Exchange classification
# =============================================================================


def is_exchange_consumer(node: PlanNode) -> bool:
    op = node.operator.upper()
    if "EXCHANGE" not in op:
        return False
    if _STREAM_DATA_SINK_RE.search(op) or op.endswith("SINK"):
        return False
    return True


def is_stream_data_sink(node: PlanNode) -> bool:
    if _STREAM_DATA_SINK_RE.search(node.operator) or _DATASTREAMSINK_RE.search(node.operator):
        return True
    if any(_STREAM_DATA_SINK_RE.search(seg) for seg in node.segments):
        return True
    return bool(node.raw_line and _STREAM_DATA_SINK_RE.search(node.raw_line))


def _exchange_id_from_text(text: str) -> str | None:
    match = _EXCHANGE_ID_TEXT_RE.search(text)
    return normalize_exchange_id(match.group(1)) if match else None


def producer_exchange_id(node: PlanNode) -> str | None:
    """Exchange id declared on a node: attribute first, then free text."""
    attribute = node.lookup("EXCHANGE ID")
    if attribute:
        # Repeated attributes are merged as "05; 06"; the first one wins.
        exchange_id = normalize_exchange_id(attribute.split(";")[0])
        if exchange_id:
            return exchange_id
    
    for segment in node.segments:
        exchange_id = _exchange_id_from_text(segment)
        if exchange_id:
            return exchange_id
    
    if node.raw_line:
        return _exchange_id_from_text(node.raw_line)
    return None


def consumer_exchange_id(node: PlanNode) -> str | None:
    """Like producer_exchange_id, falling back to the node's own ids."""
    exchange_id = producer_exchange_id(node)
    if exchange_id:
        return exchange_id
    if node.node_id is not None:
        return normalize_exchange_id(node.node_id)
    return normalize_exchange_id(node.ids_raw)


# =============================================================================
# Graph construction
# =============================================================================


def _summarize_fragment(
    fragment_id: int,
    fragment_nodes: list[PlanNode],
    level: int,
    producer_ids: set[str],
    consumer_ids: set[str],
) -> FragmentGraphNode:
    header = next((n for n in fragment_nodes if n.is_fragment_header), None)
    payload = [n for n in fragment_nodes if not n.is_fragment_header]
    
    cardinalities = [
        value for value in (parse_number_like(n.cardinality) for n in payload)
        if value is not None
    ]
    has_colo_raw = header.lookup("HAS_COLO_PLAN_NODE") if header else None
    
    return FragmentGraphNode(
        fragment_id=fragment_id,
        level=level,
        partition=header.lookup("PARTITION") if header else None,
        has_colocate_plan_node=(
            None if has_colo_raw is None else has_colo_raw.strip().lower() == "true"
        ),
        root_operator=payload[0].operator if payload else None,
        node_count=len(payload),
        join_count=sum(1 for n in payload if "JOIN" in n.operator.upper()),
        scan_count=sum(1 for n in payload if "SCAN" in n.operator.upper()),
        runtime_filter_count=sum(1 for n in payload if n.lookup("RUNTIME_FILTERS")),
        max_cardinality=max(cardinalities) if cardinalities else None,
        tables=sorted_unique_ids(n.table.strip() for n in payload if n.table and n.table.strip()),
        producer_exchange_ids=sorted_unique_ids(producer_ids),
        consumer_exchange_ids=sorted_unique_ids(consumer_ids),
    )


def build_fragment_graph(nodes: list[PlanNode]) -> FragmentGraph:
    """
    Group nodes by fragment and connect fragments through exchanges.
    
    Nodes without a fragment id are ignored. Self-edges are never emitted.
    """
    by_fragment: dict[int, list[PlanNode]] = defaultdict(list)
    producers_by_exchange: dict[str, set[int]] = defaultdict(set)
    consumers_by_exchange: dict[str, set[int]] = defaultdict(set)
    producer_ids_by_fragment: dict[int, set[str]] = defaultdict(set)
    consumer_ids_by_fragment: dict[int, set[str]] = defaultdict(set)
    
    for node in nodes:
        if node.fragment_id is None:
            continue
        by_fragment[node.fragment_id].append(node)
        
        if is_exchange_consumer(node):
            exchange_id = consumer_exchange_id(node)
            if exchange_id:
                consumers_by_exchange[exchange_id].add(node.fragment_id)
                consumer_ids_by_fragment[node.fragment_id].add(exchange_id)
            continue
        
        if not is_stream_data_sink(node):
            continue
        exchange_id = producer_exchange_id(node)
        if exchange_id:
            producers_by_exchange[exchange_id].add(node.fragment_id)
            producer_ids_by_fragment[node.fragment_id].add(exchange_id)
    
    edge_exchanges: dict[tuple[int, int], set[str]] = defaultdict(set)
    for exchange_id, producers in producers_by_exchange.items():
        consumers = consumers_by_exchange.get(exchange_id)
        if not consumers:
            continue
        for producer in producers:
            for consumer in consumers:
                if producer != consumer:
                    edge_exchanges[(producer, consumer)].add(exchange_id)
    
    edges = [
        FragmentGraphEdge(
            from_fragment_id=src,
            to_fragment_id=dst,
            exchange_ids=sorted_unique_ids(exchange_ids),
        )
        for (src, dst), exchange_ids in sorted(edge_exchanges.items())
    ]
    
    fragment_ids = sorted(by_fragment)
    levels = compute_levels(fragment_ids, edges)
    
    logger.debug("Fragment graph: %d fragments, %d edges", len(fragment_ids), len(edges))
    return FragmentGraph(
        nodes=[
            _summarize_fragment(
                fid,
                by_fragment[fid],
                levels.get(fid, 0),
                producer_ids_by_fragment.get(fid, set()),
                consumer_ids_by_fragment.get(fid, set()),
            )
            for fid in fragment_ids
        ],
        edges=edges,
    )
