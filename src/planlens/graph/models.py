"""
Pydantic models for the fragment data-flow graph.

A fragment is a unit of distributed execution. Fragments exchange rows
through exchange operators: a stream data sink in the producing fragment
and an exchange node in the consuming fragment share an exchange id. The
graph has one node per fragment and one edge per (producer, consumer) pair.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FragmentGraphNode(BaseModel):
    """Summary of one fragment."""
    
    model_config = ConfigDict(frozen=True)
    
    fragment_id: int
    level: int = Field(default=0, ge=0, description="Topological layer for layout")
    
    partition: str | None = Field(
        default=None,
        description="Declared distribution scheme from the fragment header",
    )
    has_colocate_plan_node: bool | None = Field(
        default=None,
        description="HAS_COLO_PLAN_NODE from the header; None when not printed",
    )
    
    root_operator: str | None = None
    node_count: int = 0
    join_count: int = 0
    scan_count: int = 0
    runtime_filter_count: int = 0
    max_cardinality: int | float | None = None
    tables: list[str] = Field(default_factory=list)
    
    producer_exchange_ids: list[str] = Field(default_factory=list)
    consumer_exchange_ids: list[str] = Field(default_factory=list)


class FragmentGraphEdge(BaseModel):
    """
    Directed data flow from a producing fragment to a consuming one.
    
    Several exchanges between the same pair collapse into one edge;
    `exchange_ids` lists every id that justifies it.
    """
    
    model_config = ConfigDict(frozen=True)
    
    from_fragment_id: int
    to_fragment_id: int
    exchange_ids: list[str] = Field(..., min_length=1)


class FragmentFlow(BaseModel):
    """Number of distinct neighbouring fragments on each side."""
    
    model_config = ConfigDict(frozen=True)
    
    upstream_fragments: int
    downstream_fragments: int


class FragmentGraph(BaseModel):
    """Fragments sorted by id, edges sorted by (from, to)."""
    
    model_config = ConfigDict(frozen=True)
    
    nodes: list[FragmentGraphNode] = Field(default_factory=list)
    edges: list[FragmentGraphEdge] = Field(default_factory=list)
    
    def get(self, fragment_id: int) -> FragmentGraphNode | None:
        for node in self.nodes:
            if node.fragment_id == fragment_id:
                return node
        return None
    
    def edges_for_exchange(self, exchange_id: str) -> list[FragmentGraphEdge]:
        """Edges carrying a given exchange id, for path highlighting."""
        return [e for e in self.edges if exchange_id in e.exchange_ids]
    
    def flow(self, fragment_id: int) -> FragmentFlow:
        upstream = {e.from_fragment_id for e in self.edges if e.to_fragment_id == fragment_id}
        downstream = {e.to_fragment_id for e in self.edges if e.from_fragment_id == fragment_id}
        return FragmentFlow(
            upstream_fragments=len(upstream),
            downstream_fragments=len(downstream),
        )
