"""
Parser for the dash-indented EXPLAIN TREE dump.

Each node is one line; nesting is the number of leading dashes divided by
two, and the payload is a `||`-separated list of segments:

    [05]:[5: ResultSink]||[Fragment: 0]||VRESULT SINK||MYSQL_PROTOCAL||
    --[05]:[5: VMERGING-EXCHANGE]||[Fragment: 0]||offset: 0||
    ----[09]:[9: DataStreamSink]||[Fragment: 1]||STREAM DATA SINK||EXCHANGE ID: 05

The first segment is the header `[<ids>]:[<nodeId>: <operator>]`. Banner
lines (`Explain String(...)`, `== STATISTICS ==`) and blank lines are not
node lines and are ignored.
"""

from __future__ import annotations

import logging
import re

from planlens.parser.kv import extract_kv
from planlens.parser.models import (
    ParseFailure,
    ParseResult,
    ParseSuccess,
    PlanFormat,
    PlanNode,
    parse_int,
)
from planlens.parser.normalize import normalize_explain_text

logger = logging.getLogger(__name__)

TREE_NO_NODES_ERROR = "No EXPLAIN TREE nodes found in input."

HEADER_RE = re.compile(r"^\[(?P<ids>[^\]]*)\]:\[(?P<id>\d+)\s*:\s*(?P<op>.+)\]$")
FRAGMENT_RE = re.compile(r"^\[Fragment:\s*(?P<id>\d+)\]$")


def _count_leading_dashes(line: str) -> int:
    return len(line) - len(line.lstrip("-"))


def is_tree_node_line(line: str) -> bool:
    rest = line.lstrip("-").lstrip()
    return rest.startswith("[") and "]||" in rest


def _fragment_of(segments: list[str]) -> int | None:
    for segment in segments:
        match = FRAGMENT_RE.match(segment)
        if match is None:
            continue
        fragment_id = parse_int(match.group("id"))
        if fragment_id is not None:
            return fragment_id
        logger.debug("Ignoring unusable fragment id in segment: %.60s", segment)
    return None


def parse_explain_tree(raw_text: str) -> ParseResult:
    """
    Parse EXPLAIN TREE output into a flat node list.

    Lines whose header does not match the grammar are skipped and reported
    as warnings. Returns ParseFailure only when no node line is found.
    """
    normalized = normalize_explain_text(raw_text)
    warnings = list(normalized.warnings)
    nodes: list[PlanNode] = []

    for line in normalized.text.split("\n"):
        if not line.strip() or not is_tree_node_line(line):
            continue

        leading_dashes = _count_leading_dashes(line)
        rest = line[leading_dashes:].lstrip()
        segments = [s.strip() for s in rest.split("||") if s.strip()]
        if not segments:
            continue

        header = HEADER_RE.match(segments[0])
        node_id = parse_int(header.group("id")) if header else None
        if header is None or node_id is None:
            logger.debug("Skipping line with unrecognized header: %s", segments[0])
            warnings.append(f"unrecognized header: {segments[0]}")
            continue

        kv = extract_kv(segments)
        nodes.append(
            PlanNode(
                key=f"n{len(nodes)}",
                depth=leading_dashes // 2,
                fragment_id=_fragment_of(segments),
                ids_raw=header.group("ids"),
                node_id=node_id,
                operator=header.group("op").strip(),
                segments=segments,
                kv=kv,
                table=kv.get("TABLE"),
                cardinality=kv.get("cardinality"),
                predicates=kv.get("PREDICATES"),
                raw_line=line,
            )
        )

    if not nodes:
        return ParseFailure(raw_text=normalized.text, error=TREE_NO_NODES_ERROR)

    logger.debug("Parsed %d EXPLAIN TREE nodes", len(nodes))
    return ParseSuccess(
        format=PlanFormat.TREE,
        raw_text=normalized.text,
        nodes=nodes,
        warnings=warnings,
    )
