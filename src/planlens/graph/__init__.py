"""Fragment data-flow graph, layering and outline views."""

from planlens.graph.builder import (
    build_fragment_graph,
    consumer_exchange_id,
    is_exchange_consumer,
    is_stream_data_sink,
    parse_number_like,
    producer_exchange_id,
)
from planlens.graph.levels import compute_levels
from planlens.graph.models import (
    FragmentFlow,
    FragmentGraph,
    FragmentGraphEdge,
    FragmentGraphNode,
)
from planlens.graph.outline import (
    OperatorCategory,
    OutlineRow,
    build_outline,
    build_parent_by_key,
    cardinality_share,
    classify_operator,
    is_system_sink,
)

__all__ = [
    "FragmentGraph",
    "FragmentGraphNode",
    "FragmentGraphEdge",
    "FragmentFlow",
    "build_fragment_graph",
    "compute_levels",
    "is_exchange_consumer",
    "is_stream_data_sink",
    "producer_exchange_id",
    "consumer_exchange_id",
    "parse_number_like",
    "OperatorCategory",
    "OutlineRow",
    "build_outline",
    "build_parent_by_key",
    "cardinality_share",
    "classify_operator",
    "is_system_sink",
]
