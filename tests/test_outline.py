"""Tests for outline and list helpers over the flat node list."""

from __future__ import annotations

from pathlib import Path

import pytest

from planlens.graph import (
    OperatorCategory,
    build_outline,
    build_parent_by_key,
    cardinality_share,
    classify_operator,
    is_system_sink,
)
from planlens.parser import PlanNode, parse_explain

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def node(key: str, depth: int, operator: str = "VUNION", segments: list[str] | None = None) -> PlanNode:
    return PlanNode(key=key, depth=depth, operator=operator, segments=segments or [])


# =============================================================================
# Classification
# =============================================================================


class TestClassifyOperator:
    @pytest.mark.parametrize(
        "operator,expected",
        [
            ("VOlapScanNode", OperatorCategory.SCAN),
            ("VHASH JOIN", OperatorCategory.JOIN),
            ("VAGGREGATE (update serialize)", OperatorCategory.AGG),
            ("VEXCHANGE", OperatorCategory.EXCHANGE),
            ("VRESULT SINK", OperatorCategory.SINK),
            ("DataStreamSink", OperatorCategory.SINK),
            ("VTOP-N", OperatorCategory.OTHER),
        ],
    )
    def test_categories(self, operator: str, expected: OperatorCategory) -> None:
        assert classify_operator(node("n0", 0, operator)) == expected

    def test_scan_checked_before_join(self) -> None:
        assert classify_operator(node("n0", 0, "JOIN SCAN")) == OperatorCategory.SCAN


class TestIsSystemSink:
    @pytest.mark.parametrize(
        "operator,expected",
        [
            ("VRESULT SINK", True),
            ("RESULT SINK", True),
            ("DataStreamSink", True),
            ("STREAM DATA SINK", True),
            ("OLAP TABLE SINK", False),
            ("VEXCHANGE", False),
        ],
    )
    def test_system_sinks(self, operator: str, expected: bool) -> None:
        assert is_system_sink(node("n0", 0, operator)) is expected


class TestCardinalityShare:
    def test_share(self) -> None:
        assert cardinality_share("50", 200) == 0.25

    def test_grouped_number(self) -> None:
        assert cardinality_share("1,000", 1000) == 1.0

    def test_clamped(self) -> None:
        assert cardinality_share("500", 100) == 1.0

    @pytest.mark.parametrize("cardinality,maximum", [(None, 10), ("x", 10), ("5", 0), ("5", None)])
    def test_unusable(self, cardinality: str | None, maximum: int | None) -> None:
        assert cardinality_share(cardinality, maximum) == 0.0


# =============================================================================
# Parent Relation and Outline
# =============================================================================


class TestBuildParentByKey:
    def test_simple_chain(self) -> None:
        nodes = [node("a", 0), node("b", 1), node("c", 2), node("d", 1)]

        assert build_parent_by_key(nodes) == {"a": None, "b": "a", "c": "b", "d": "a"}

    def test_depth_jump_attaches_to_last_open(self) -> None:
        nodes = [node("a", 0), node("b", 5)]

        assert build_parent_by_key(nodes) == {"a": None, "b": "a"}

    def test_multiple_roots(self) -> None:
        nodes = [node("a", 0), node("b", 0)]

        assert build_parent_by_key(nodes) == {"a": None, "b": None}

    def test_plan_fixture(self) -> None:
        nodes = parse_explain((FIXTURES_DIR / "plan_simple.txt").read_text()).nodes
        parents = build_parent_by_key(nodes)

        assert parents["n1"] == "n0"
        assert parents["n2"] == "n0"
        assert parents["n3"] is None
        assert parents["n5"] == "n3"


class TestBuildOutline:
    def test_rows(self) -> None:
        nodes = [node("a", 0), node("b", 1), node("c", 2), node("d", 1)]
        rows = build_outline(nodes)

        assert [r.depth for r in rows] == [0, 1, 2, 1]
        assert [r.has_children for r in rows] == [True, True, False, False]
        assert [r.descendant_count for r in rows] == [3, 1, 0, 0]

    def test_effective_depth_is_clamped(self) -> None:
        """Each row is at most one level deeper than the row above it."""
        rows = build_outline([node("a", 0), node("b", 4), node("c", 4), node("d", 0)])

        assert [r.depth for r in rows] == [0, 1, 2, 0]
        assert rows[0].descendant_count == 2
        assert rows[3].descendant_count == 0

    def test_empty(self) -> None:
        assert build_outline([]) == []

    def test_param_text_skips_dedicated_columns(self) -> None:
        nodes = parse_explain((FIXTURES_DIR / "tree_multi_fragment.txt").read_text()).nodes
        rows = build_outline(nodes)

        assert rows[0].param_text == "VRESULT SINK  MYSQL_PROTOCAL"
        assert rows[2].param_text == "STREAM DATA SINK  EXCHANGE ID: 05  UNPARTITIONED"
        assert rows[-1].param_text == ""
