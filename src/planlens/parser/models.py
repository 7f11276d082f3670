"""
Pydantic models for parsed EXPLAIN text.

Both grammars (the dash-indented "tree" dump and the legacy fragment/plan
dump) produce the same structures:
- PlanNode: One operator instance, in emission order
- ParseSuccess / ParseFailure: The two outcomes of a parse

Node attributes have no fixed schema in either dump, so they are kept as a
string mapping (`kv`) with a fixed key-casing convention:

- `key=value` segments are stored under the lower-cased key
  (`cardinality=3` -> `kv["cardinality"]`)
- `key: value` segments are stored under the upper-cased key with runs of
  whitespace replaced by `_` (`EXCHANGE ID: 05` -> `kv["EXCHANGE_ID"]`)

Use PlanNode.lookup() (or lookup_kv) rather than indexing `kv` directly so
the caller does not need to know which syntax produced an attribute.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

_WHITESPACE_RE = re.compile(r"\s+")

FRAGMENT_HEADER_PREFIX = "PLAN FRAGMENT"


class PlanFormat(str, Enum):
    """Which EXPLAIN grammar produced a result."""
    
    TREE = "tree"
    PLAN = "plan"


def normalize_eq_key(key: str) -> str:
    """Key convention for `key=value` attributes."""
    return key.strip().lower()


def normalize_colon_key(key: str) -> str:
    """Key convention for `key: value` attributes."""
    return _WHITESPACE_RE.sub("_", key.strip().upper())


def parse_int(text: str) -> int | None:
    """Integer value of a printed digit run, or None when int() rejects it."""
    try:
        return int(text)
    except ValueError:
        return None


class PlanNode(BaseModel):
    """
    A single operator in the parsed plan.
    
    Nodes form a flat list; nesting is expressed by `depth` only. The
    synthetic `key` ("n0", "n1", ...) is unique within one parse result and
    is assigned in emission order, so re-parsing the same text yields the
    same keys. `node_id` and `ids_raw` are the engine's own identifiers and
    may repeat across fragments.
    """
    
    model_config = ConfigDict(frozen=True)
    
    key: str = Field(..., description="Synthetic identifier, unique per parse")
    
    depth: int = Field(..., ge=0, description="Indentation level")
    
    fragment_id: int | None = Field(
        default=None,
        description="Fragment owning this node, if any",
    )
    
    ids_raw: str = Field(
        default="",
        description="Engine identifier list as printed (tree format)",
    )
    
    node_id: int | None = Field(
        default=None,
        description="Engine node id, if printed",
    )
    
    operator: str = Field(..., description="Operator name, case preserved")
    
    segments: list[str] = Field(
        default_factory=list,
        description="Raw attribute strings in original order",
    )
    
    kv: dict[str, str] = Field(
        default_factory=dict,
        description="Normalized attribute mapping (see module docstring)",
    )
    
    table: str | None = Field(default=None, description="TABLE attribute")
    cardinality: str | None = Field(default=None, description="cardinality attribute")
    predicates: str | None = Field(default=None, description="PREDICATES attribute")
    
    raw_line: str = Field(default="", description="Source line used for raw display")
    
    def lookup(self, key: str) -> str | None:
        """Case-insensitive attribute lookup, see lookup_kv."""
        return lookup_kv(self.kv, key)
    
    @property
    def is_fragment_header(self) -> bool:
        """Synthetic `PLAN FRAGMENT <n>` node emitted by the plan grammar."""
        return self.operator.upper().startswith(FRAGMENT_HEADER_PREFIX)
    
    @property
    def is_scan_like(self) -> bool:
        return "SCAN" in self.operator.upper()


def lookup_kv(kv: dict[str, str] | PlanNode, key: str) -> str | None:
    """
    Look up an attribute regardless of which syntax produced it.
    
    Tries the literal key, then the `key=value` form (lower-case), then the
    `key: value` form (upper-snake). Returns None when absent.
    
    Example:
        >>> lookup_kv({"EXCHANGE_ID": "05"}, "exchange id")
        '05'
    """
    mapping = kv.kv if isinstance(kv, PlanNode) else kv
    for candidate in (key, normalize_eq_key(key), normalize_colon_key(key)):
        if candidate in mapping:
            return mapping[candidate]
    return None


class ParseSuccess(BaseModel):
    """
    A recognized EXPLAIN document.
    
    `raw_text` is the normalized text (line endings collapsed, boxed
    rendering removed). `fragments` is derived from the nodes and is always
    sorted ascending without duplicates.
    """
    
    model_config = ConfigDict(frozen=True)
    
    ok: Literal[True] = True
    format: PlanFormat
    raw_text: str
    nodes: list[PlanNode] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    
    @computed_field  # type: ignore[prop-decorator]
    @property
    def fragments(self) -> list[int]:
        return sorted({n.fragment_id for n in self.nodes if n.fragment_id is not None})


class ParseFailure(BaseModel):
    """Neither grammar recognized any node. Returned, never raised."""
    
    model_config = ConfigDict(frozen=True)
    
    ok: Literal[False] = False
    raw_text: str
    error: str


ParseResult = Union[ParseSuccess, ParseFailure]
