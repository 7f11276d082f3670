"""
Parser for the legacy fragment/plan EXPLAIN dump.

The dump is organized by fragment; operators are `<nodeId>:<operator>`
lines, sinks are bare upper-case lines ending in SINK, and every other line
belongs to the node above it:

    PLAN FRAGMENT 1
      PARTITION: HASH_PARTITIONED: k1[#0]

      STREAM DATA SINK
        EXCHANGE ID: 01
        UNPARTITIONED

      4:VHASH JOIN
      |  join op: INNER JOIN
      |
      |----1:VEXCHANGE
      |       offset: 0
      |
      0:VOlapScanNode(85)
         TABLE: test_db.t(t)
         partitions=1/3 (p202401)

Two indentation conventions are mixed: join children hang off `|` rails,
scan children off runs of dashes. Node depth is one level under the
fragment header, plus one per `|` and one per four dashes in the prefix.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from planlens.parser.kv import merge_kv, parse_segment, split_attribute_line
from planlens.parser.models import (
    FRAGMENT_HEADER_PREFIX,
    ParseFailure,
    ParseResult,
    ParseSuccess,
    PlanFormat,
    PlanNode,
    parse_int,
)
from planlens.parser.normalize import normalize_explain_text

logger = logging.getLogger(__name__)

PLAN_NO_NODES_ERROR = "No EXPLAIN PLAN nodes found in input."

FRAGMENT_LINE_RE = re.compile(r"^PLAN FRAGMENT\s+(?P<id>\d+)\b")
NODE_LINE_RE = re.compile(r"^(?P<id>\d+):(?P<op>\S.*)$")
SINK_LINE_RE = re.compile(r"^[A-Z][A-Z0-9_ ]*SINK$")
INDENT_PREFIX_RE = re.compile(r"^[\s|\-]*")

# Banner, separator and footer lines that carry no plan content
_BANNER_RE = re.compile(r"^Explain String\b", re.IGNORECASE)
_SEPARATOR_RE = re.compile(r"^(?:=+.*=+|-{3,})$")
_FOOTER_RE = re.compile(r"^plann?ed with\b", re.IGNORECASE)

_DASHES_PER_LEVEL = 4


@dataclass
class _NodeDraft:
    """Mutable node under construction; frozen into a PlanNode at the end."""

    depth: int
    fragment_id: int | None
    operator: str
    raw_line: str
    node_id: int | None = None
    ids_raw: str = ""
    segments: list[str] = field(default_factory=list)
    kv: dict[str, str] = field(default_factory=dict)
    table: str | None = None
    cardinality: str | None = None
    predicates: str | None = None

    def add_continuation(self, text: str) -> None:
        self.segments.append(text)
        for part in split_attribute_line(text):
            parsed = parse_segment(part)
            if parsed is not None:
                merge_kv(self.kv, *parsed)
        if self.table is None:
            self.table = self.kv.get("TABLE")
        if self.cardinality is None:
            self.cardinality = self.kv.get("cardinality")
        if self.predicates is None:
            self.predicates = self.kv.get("PREDICATES")

    def freeze(self, index: int) -> PlanNode:
        return PlanNode(
            key=f"n{index}",
            depth=self.depth,
            fragment_id=self.fragment_id,
            ids_raw=self.ids_raw,
            node_id=self.node_id,
            operator=self.operator,
            segments=self.segments,
            kv=self.kv,
            table=self.table,
            cardinality=self.cardinality,
            predicates=self.predicates,
            raw_line=self.raw_line,
        )


def _prefix_depth(prefix: str) -> int:
    return prefix.count("|") + prefix.count("-") // _DASHES_PER_LEVEL


def parse_explain_plan(raw_text: str) -> ParseResult:
    """
    Parse legacy EXPLAIN PLAN output into a flat node list.

    Returns ParseFailure only when no fragment header, operator or sink line
    is found.
    """
    normalized = normalize_explain_text(raw_text)
    drafts: list[_NodeDraft] = []
    current_fragment: int | None = None
    current: _NodeDraft | None = None
    dropped = 0

    for line in normalized.text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if _BANNER_RE.match(stripped) or _FOOTER_RE.match(stripped):
            continue
        if _SEPARATOR_RE.match(stripped):
            # Sections after a banner (statistics, materializations) are not
            # node attributes.
            current = None
            continue

        fragment = FRAGMENT_LINE_RE.match(stripped)
        fragment_id = parse_int(fragment.group("id")) if fragment else None
        if fragment_id is not None:
            current_fragment = fragment_id
            current = _NodeDraft(
                depth=0,
                fragment_id=current_fragment,
                operator=f"{FRAGMENT_HEADER_PREFIX} {current_fragment}",
                raw_line=line,
            )
            drafts.append(current)
            continue

        base_depth = 1 if current_fragment is not None else 0
        prefix = INDENT_PREFIX_RE.match(line).group()  # type: ignore[union-attr]
        node = NODE_LINE_RE.match(line[len(prefix):])
        node_id = parse_int(node.group("id")) if node else None
        if node is not None and node_id is not None:
            current = _NodeDraft(
                depth=base_depth + _prefix_depth(prefix),
                fragment_id=current_fragment,
                operator=node.group("op").strip(),
                raw_line=line,
                node_id=node_id,
                ids_raw=node.group("id"),
            )
            drafts.append(current)
            continue

        if ":" not in stripped and SINK_LINE_RE.match(stripped):
            current = _NodeDraft(
                depth=base_depth,
                fragment_id=current_fragment,
                operator=stripped,
                raw_line=line,
            )
            drafts.append(current)
            continue

        if current is None:
            dropped += 1
            continue

        text = stripped[1:].strip() if stripped.startswith("|") else stripped
        if text:
            current.add_continuation(text)

    if dropped:
        logger.debug("Dropped %d EXPLAIN PLAN lines outside any node", dropped)

    if not drafts:
        return ParseFailure(raw_text=normalized.text, error=PLAN_NO_NODES_ERROR)

    logger.debug("Parsed %d EXPLAIN PLAN nodes", len(drafts))
    return ParseSuccess(
        format=PlanFormat.PLAN,
        raw_text=normalized.text,
        nodes=[draft.freeze(i) for i, draft in enumerate(drafts)],
        warnings=list(normalized.warnings),
    )
