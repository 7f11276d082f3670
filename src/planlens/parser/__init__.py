"""EXPLAIN text parsing module."""

from planlens.parser.config import DEFAULT_CONFIG, STRICT_CONFIG, ParserConfig
from planlens.parser.models import (
    ParseFailure,
    ParseResult,
    ParseSuccess,
    PlanFormat,
    PlanNode,
    lookup_kv,
)
from planlens.parser.parser import (
    parse_explain,
    parse_explain_file,
    read_explain_file,
    select_nodes_by_fragment,
)
from planlens.parser.plan import parse_explain_plan
from planlens.parser.tree import parse_explain_tree

__all__ = [
    "PlanNode",
    "PlanFormat",
    "ParseResult",
    "ParseSuccess",
    "ParseFailure",
    "lookup_kv",
    "parse_explain",
    "parse_explain_file",
    "read_explain_file",
    "parse_explain_tree",
    "parse_explain_plan",
    "select_nodes_by_fragment",
    "ParserConfig",
    "DEFAULT_CONFIG",
    "STRICT_CONFIG",
]
