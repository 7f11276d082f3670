"""
Pydantic models for optimization signals.

Signals are advisory. Each one carries the text it was derived from so a
consumer can tell "confirmed active", "present but not parseable" (inactive
with evidence) and "absent" (inactive, no evidence) apart.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PredicatePushdownSignal(BaseModel):
    model_config = ConfigDict(frozen=True)
    
    active: bool = False
    evidence: str | None = None


class PruningSignal(BaseModel):
    """
    Partition or tablet pruning parsed from `<selected>/<total>`.
    
    Active only when both numbers parse, total > 0 and selected < total.
    """
    
    model_config = ConfigDict(frozen=True)
    
    active: bool = False
    selected: int | None = None
    total: int | None = None
    ratio: float | None = None
    evidence: str | None = None


class RewriteLevel(str, Enum):
    """How strongly a scan looks like it reads a materialized view."""
    
    HIT = "hit"
    CANDIDATE = "candidate"
    NONE = "none"


class TransparentRewriteSignal(BaseModel):
    model_config = ConfigDict(frozen=True)
    
    level: RewriteLevel = RewriteLevel.NONE
    index_name: str | None = None
    chosen_materializations: list[str] = Field(default_factory=list)


class NodeOptimizationSignals(BaseModel):
    """All signals for one node, keyed elsewhere by PlanNode.key."""
    
    model_config = ConfigDict(frozen=True)
    
    predicate_pushdown: PredicatePushdownSignal = Field(default_factory=PredicatePushdownSignal)
    partition_pruning: PruningSignal = Field(default_factory=PruningSignal)
    tablet_pruning: PruningSignal = Field(default_factory=PruningSignal)
    transparent_rewrite: TransparentRewriteSignal = Field(
        default_factory=TransparentRewriteSignal
    )
    runtime_filters: str | None = None
    
    @property
    def has_pruning(self) -> bool:
        return self.partition_pruning.active or self.tablet_pruning.active


class FragmentOptimizationSignals(BaseModel):
    """Per-fragment counts; each node counted at most once per category."""
    
    model_config = ConfigDict(frozen=True)
    
    predicate_pushdown_count: int = 0
    pruning_count: int = 0
    rewrite_count: int = 0
    scan_count: int = 0
    
    @property
    def pushdown_ratio(self) -> float | None:
        """Share of scan-like nodes with pushdown; None without scans."""
        if self.scan_count == 0:
            return None
        return self.predicate_pushdown_count / self.scan_count
    
    @property
    def pruning_ratio(self) -> float | None:
        if self.scan_count == 0:
            return None
        return self.pruning_count / self.scan_count


class MaterializationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)
    
    name: str
    reason: str | None = None


class MaterializationSummary(BaseModel):
    """Materialized-view rewrite outcomes listed at the end of a dump."""
    
    model_config = ConfigDict(frozen=True)
    
    chosen: list[str] = Field(default_factory=list)
    success_but_not_chosen: list[str] = Field(default_factory=list)
    failed: list[MaterializationFailure] = Field(default_factory=list)
