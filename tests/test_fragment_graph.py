"""
Tests for the fragment data-flow graph.

These tests verify:
- Exchange producer / consumer classification
- Exchange id resolution and normalization
- Edge construction (no self-loops, sorted unique exchange ids)
- Per-fragment summaries
- Topological levels

Graph edges point from the fragment that produces rows to the one that
consumes them.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from planlens.graph import (
    FragmentGraph,
    FragmentGraphEdge,
    build_fragment_graph,
    compute_levels,
    consumer_exchange_id,
    is_exchange_consumer,
    is_stream_data_sink,
    parse_number_like,
    producer_exchange_id,
)
from planlens.graph.builder import normalize_exchange_id, sorted_unique_ids
from planlens.parser import PlanNode, parse_explain


# =============================================================================
# Fixtures
# =============================================================================

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_graph(name: str) -> FragmentGraph:
    result = parse_explain((FIXTURES_DIR / f"{name}.txt").read_text())
    assert result.ok, result
    return build_fragment_graph(result.nodes)


def make_node(
    key: str,
    operator: str,
    fragment_id: int | None,
    node_id: int | None = None,
    kv: dict[str, str] | None = None,
    segments: list[str] | None = None,
) -> PlanNode:
    """Build a PlanNode directly, without going through a grammar."""
    return PlanNode(
        key=key,
        depth=0,
        fragment_id=fragment_id,
        node_id=node_id,
        ids_raw="" if node_id is None else f"{node_id:02d}",
        operator=operator,
        kv=kv or {},
        segments=segments or [],
    )


# =============================================================================
# Classification
# =============================================================================


class TestExchangeClassification:
    """Which nodes take part in exchanges."""

    @pytest.mark.parametrize(
        "operator,expected",
        [
            ("VEXCHANGE", True),
            ("VMERGING-EXCHANGE", True),
            ("EXCHANGE", True),
            ("DataStreamSink", False),
            ("EXCHANGE SINK", False),
            ("STREAM DATA SINK", False),
            ("VOlapScanNode", False),
        ],
    )
    def test_consumer(self, operator: str, expected: bool) -> None:
        assert is_exchange_consumer(make_node("n0", operator, 0)) is expected

    def test_stream_sink_by_operator(self) -> None:
        assert is_stream_data_sink(make_node("n0", "DataStreamSink", 0))
        assert is_stream_data_sink(make_node("n0", "stream data sink", 0))

    def test_stream_sink_by_segment(self) -> None:
        node = make_node("n0", "VSINK", 0, segments=["STREAM DATA SINK", "EXCHANGE ID: 3"])

        assert is_stream_data_sink(node)

    def test_result_sink_is_not_stream_sink(self) -> None:
        node = make_node("n0", "ResultSink", 0, segments=["VRESULT SINK"])

        assert not is_stream_data_sink(node)


class TestExchangeIds:
    """Exchange id resolution and normalization."""

    def test_normalize(self) -> None:
        assert normalize_exchange_id("05") == "5"
        assert normalize_exchange_id(" 12 ") == "12"
        assert normalize_exchange_id(7) == "7"
        assert normalize_exchange_id("x1") == "x1"
        assert normalize_exchange_id("") is None
        assert normalize_exchange_id(None) is None

    def test_normalize_only_ascii_digits(self) -> None:
        """Digit-like characters int() would reject are kept as text."""
        assert normalize_exchange_id("²") == "²"
        assert normalize_exchange_id("0") == "0"
        assert normalize_exchange_id("000") == "0"

    def test_normalize_long_number(self) -> None:
        assert normalize_exchange_id("0" + "7" * 5000) == "7" * 5000

    def test_non_ascii_exchange_id_builds_graph(self) -> None:
        text = (
            "[00]:[0: VEXCHANGE]||[Fragment: 0]||\n"
            "[01]:[1: DataStreamSink]||[Fragment: 1]||STREAM DATA SINK||EXCHANGE ID: ²||\n"
        )
        result = parse_explain(text)
        assert result.ok, result

        graph = build_fragment_graph(result.nodes)

        assert [n.fragment_id for n in graph.nodes] == [0, 1]
        assert graph.edges == []

    def test_producer_from_attribute(self) -> None:
        node = make_node("n0", "STREAM DATA SINK", 1, kv={"EXCHANGE_ID": "05"})

        assert producer_exchange_id(node) == "5"

    def test_producer_repeated_attribute_uses_first(self) -> None:
        node = make_node("n0", "STREAM DATA SINK", 1, kv={"EXCHANGE_ID": "05; 06"})

        assert producer_exchange_id(node) == "5"

    def test_producer_from_text(self) -> None:
        node = make_node("n0", "STREAM DATA SINK", 1, segments=["EXCHANGE ID:07 HASH"])

        assert producer_exchange_id(node) == "7"

    def test_producer_has_no_node_id_fallback(self) -> None:
        node = make_node("n0", "STREAM DATA SINK", 1, node_id=9)

        assert producer_exchange_id(node) is None

    def test_consumer_falls_back_to_node_id(self) -> None:
        node = make_node("n0", "VEXCHANGE", 0, node_id=5)

        assert consumer_exchange_id(node) == "5"

    def test_consumer_prefers_attribute(self) -> None:
        node = make_node("n0", "VEXCHANGE", 0, node_id=5, kv={"EXCHANGE_ID": "8"})

        assert consumer_exchange_id(node) == "8"

    def test_numeric_aware_sort(self) -> None:
        assert sorted_unique_ids(["10", "2", "2", "1"]) == ["1", "2", "10"]
        assert sorted_unique_ids(["b", "a", "3"]) == ["3", "a", "b"]


# =============================================================================
# Graph Construction
# =============================================================================


class TestBuildFragmentGraph:
    """Edges and summaries built from real dumps."""

    def test_tree_multi_fragment_edges(self) -> None:
        graph = load_graph("tree_multi_fragment")

        assert [n.fragment_id for n in graph.nodes] == [0, 1, 2]
        assert graph.edges == [
            FragmentGraphEdge(from_fragment_id=1, to_fragment_id=0, exchange_ids=["5"]),
            FragmentGraphEdge(from_fragment_id=2, to_fragment_id=1, exchange_ids=["2"]),
        ]

    def test_tree_multi_fragment_levels(self) -> None:
        graph = load_graph("tree_multi_fragment")

        assert {n.fragment_id: n.level for n in graph.nodes} == {0: 2, 1: 1, 2: 0}

    def test_tree_fragment_summary(self) -> None:
        graph = load_graph("tree_multi_fragment")
        middle = graph.get(1)
        scan_fragment = graph.get(2)

        assert middle is not None and scan_fragment is not None
        assert middle.root_operator == "DataStreamSink"
        assert middle.node_count == 4
        assert middle.max_cardinality == 3
        assert middle.producer_exchange_ids == ["5"]
        assert middle.consumer_exchange_ids == ["2"]
        assert middle.partition is None
        assert middle.has_colocate_plan_node is None

        assert scan_fragment.scan_count == 1
        assert scan_fragment.join_count == 0
        assert scan_fragment.max_cardinality == 149_996_355
        assert scan_fragment.tables == ["tpch.lineitem(lineitem)"]

    def test_plan_simple_edge(self) -> None:
        graph = load_graph("plan_simple")

        assert graph.edges == [
            FragmentGraphEdge(from_fragment_id=1, to_fragment_id=0, exchange_ids=["1"]),
        ]

    def test_plan_header_attributes(self) -> None:
        """Partition and colocation come from the fragment header node."""
        graph = load_graph("plan_join")
        result_fragment, join_fragment, dim_fragment = graph.nodes

        assert result_fragment.partition == "UNPARTITIONED"
        assert result_fragment.has_colocate_plan_node is False
        assert join_fragment.partition == "HASH_PARTITIONED: k1[#0]"
        assert join_fragment.has_colocate_plan_node is True
        assert dim_fragment.partition == "RANDOM"
        assert dim_fragment.has_colocate_plan_node is None

    def test_plan_join_summary(self) -> None:
        """Header nodes are not counted as payload."""
        join_fragment = load_graph("plan_join").get(1)

        assert join_fragment is not None
        assert join_fragment.root_operator == "STREAM DATA SINK"
        assert join_fragment.node_count == 4
        assert join_fragment.join_count == 1
        assert join_fragment.scan_count == 1
        assert join_fragment.runtime_filter_count == 2
        assert join_fragment.max_cardinality == 1000
        assert join_fragment.tables == ["db.sales(mv_sales_daily)"]

    def test_plan_join_edges(self) -> None:
        graph = load_graph("plan_join")

        assert [(e.from_fragment_id, e.to_fragment_id, e.exchange_ids) for e in graph.edges] == [
            (1, 0, ["4"]),
            (2, 1, ["2"]),
        ]

    def test_single_fragment(self) -> None:
        graph = load_graph("tree_simple")

        assert len(graph.nodes) == 1
        assert graph.nodes[0].level == 0
        assert graph.edges == []

    def test_no_self_loops(self) -> None:
        """An exchange produced and consumed in one fragment adds no edge."""
        nodes = [
            make_node("n0", "STREAM DATA SINK", 0, kv={"EXCHANGE_ID": "1"}),
            make_node("n1", "VEXCHANGE", 0, node_id=1),
        ]

        assert build_fragment_graph(nodes).edges == []

    def test_parallel_exchanges_collapse(self) -> None:
        """Two exchanges between the same pair make one edge."""
        nodes = [
            make_node("n0", "VHASH JOIN", 0),
            make_node("n1", "VEXCHANGE", 0, node_id=10),
            make_node("n2", "VEXCHANGE", 0, node_id=2),
            make_node("n3", "STREAM DATA SINK", 1, kv={"EXCHANGE_ID": "02"}),
            make_node("n4", "STREAM DATA SINK", 1, kv={"EXCHANGE_ID": "10"}),
        ]
        graph = build_fragment_graph(nodes)

        assert len(graph.edges) == 1
        assert graph.edges[0].exchange_ids == ["2", "10"]

    def test_nodes_without_fragment_ignored(self) -> None:
        nodes = [
            make_node("n0", "STREAM DATA SINK", None, kv={"EXCHANGE_ID": "1"}),
            make_node("n1", "VEXCHANGE", 0, node_id=1),
        ]
        graph = build_fragment_graph(nodes)

        assert [n.fragment_id for n in graph.nodes] == [0]
        assert graph.edges == []

    def test_empty(self) -> None:
        graph = build_fragment_graph([])

        assert graph.nodes == []
        assert graph.edges == []


class TestFragmentGraphQueries:
    """Lookups used for highlighting and summaries."""

    def test_get_missing(self) -> None:
        assert load_graph("tree_simple").get(9) is None

    def test_edges_for_exchange(self) -> None:
        graph = load_graph("tree_multi_fragment")

        assert [e.from_fragment_id for e in graph.edges_for_exchange("2")] == [2]
        assert graph.edges_for_exchange("99") == []

    def test_flow(self) -> None:
        graph = load_graph("tree_multi_fragment")
        flow = graph.flow(1)

        assert flow.upstream_fragments == 1
        assert flow.downstream_fragments == 1
        assert graph.flow(2).upstream_fragments == 0
        assert graph.flow(0).downstream_fragments == 0


# =============================================================================
# Levels
# =============================================================================


def edge(a: int, b: int) -> FragmentGraphEdge:
    return FragmentGraphEdge(from_fragment_id=a, to_fragment_id=b, exchange_ids=["1"])


class TestComputeLevels:
    """Kahn layering with smallest-id-first order."""

    def test_chain(self) -> None:
        assert compute_levels([0, 1, 2], [edge(2, 1), edge(1, 0)]) == {0: 2, 1: 1, 2: 0}

    def test_diamond_takes_longest_path(self) -> None:
        edges = [edge(3, 1), edge(3, 2), edge(2, 1), edge(1, 0), edge(2, 0)]
        levels = compute_levels([0, 1, 2, 3], edges)

        assert levels == {3: 0, 2: 1, 1: 2, 0: 3}
        for e in edges:
            assert levels[e.to_fragment_id] >= levels[e.from_fragment_id] + 1

    def test_disconnected(self) -> None:
        assert compute_levels([0, 5, 7], []) == {0: 0, 5: 0, 7: 0}

    def test_unknown_endpoints_ignored(self) -> None:
        assert compute_levels([0, 1], [edge(9, 0), edge(1, 0)]) == {0: 1, 1: 0}

    def test_cycle_degrades(self) -> None:
        """Fragments in a cycle keep non-negative levels."""
        levels = compute_levels([0, 1, 2], [edge(2, 0), edge(0, 1), edge(1, 0)])

        assert set(levels) == {0, 1, 2}
        assert levels[2] == 0
        assert all(level >= 0 for level in levels.values())


# =============================================================================
# Numbers
# =============================================================================


class TestParseNumberLike:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("149,996,355", 149_996_355),
            ("1 000", 1000),
            ("1_000", 1000),
            ("3", 3),
            ("2.5", 2.5),
            ("", None),
            (None, None),
            ("n/a", None),
            ("inf", None),
        ],
    )
    def test_parse(self, text: str | None, expected: float | None) -> None:
        assert parse_number_like(text) == expected
