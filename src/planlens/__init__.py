"""PlanLens - Parser and analyzer for distributed SQL EXPLAIN text."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from planlens.exceptions import (
    ConfigurationError,
    ParseError,
    PlanLensError,
)

from planlens.parser import (
    DEFAULT_CONFIG,
    STRICT_CONFIG,
    ParseFailure,
    ParseResult,
    ParserConfig,
    ParseSuccess,
    PlanFormat,
    PlanNode,
    lookup_kv,
    parse_explain,
    parse_explain_file,
    parse_explain_plan,
    parse_explain_tree,
    select_nodes_by_fragment,
)
from planlens.graph import (
    FragmentFlow,
    FragmentGraph,
    FragmentGraphEdge,
    FragmentGraphNode,
    build_fragment_graph,
    compute_levels,
)
from planlens.signals import (
    FragmentOptimizationSignals,
    MaterializationSummary,
    NodeOptimizationSignals,
    RewriteLevel,
    build_fragment_optimization_signals,
    build_node_optimization_signals,
    parse_materialization_summary,
)
from planlens.engine import PlanReport, analyze_plan

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "PlanLensError",
    "ParseError",
    "ConfigurationError",
    # Parsing
    "PlanNode",
    "PlanFormat",
    "ParseResult",
    "ParseSuccess",
    "ParseFailure",
    "ParserConfig",
    "DEFAULT_CONFIG",
    "STRICT_CONFIG",
    "lookup_kv",
    "parse_explain",
    "parse_explain_file",
    "parse_explain_tree",
    "parse_explain_plan",
    "select_nodes_by_fragment",
    # Fragment graph
    "FragmentGraph",
    "FragmentGraphNode",
    "FragmentGraphEdge",
    "FragmentFlow",
    "build_fragment_graph",
    "compute_levels",
    # Signals
    "NodeOptimizationSignals",
    "FragmentOptimizationSignals",
    "MaterializationSummary",
    "RewriteLevel",
    "build_node_optimization_signals",
    "build_fragment_optimization_signals",
    "parse_materialization_summary",
    # Orchestration
    "PlanReport",
    "analyze_plan",
]
