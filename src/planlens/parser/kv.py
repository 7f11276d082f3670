"""
Attribute extraction from node segments.

A segment is one atomic piece of a node's payload, e.g. `cardinality=3`,
`TABLE: tpch.lineitem(lineitem)` or `VRESULT SINK`. Two syntaxes are
recognized; anything else stays in the node's segments but not in `kv`.
"""

from __future__ import annotations

import re
from typing import Iterable

from planlens.parser.models import normalize_colon_key, normalize_eq_key

EQ_SEGMENT_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=(.+)$")
COLON_SEGMENT_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_ ]*):\s*(.+)$")

# Break only before something that itself starts a new attribute, so
# expression lists like `k1[#0], k2[#1]` stay in one piece.
_ATTRIBUTE_BOUNDARY_RE = re.compile(
    r",\s*(?=[A-Za-z_][A-Za-z0-9_]*=|[A-Za-z_][A-Za-z0-9_ ]*:\s*\S)"
)


def parse_segment(segment: str) -> tuple[str, str] | None:
    """Return the normalized (key, value) of one segment, or None."""
    text = segment.strip()
    match = EQ_SEGMENT_RE.match(text)
    if match:
        return normalize_eq_key(match.group(1)), match.group(2).strip()
    match = COLON_SEGMENT_RE.match(text)
    if match:
        return normalize_colon_key(match.group(1)), match.group(2).strip()
    return None


def merge_kv(kv: dict[str, str], key: str, value: str) -> None:
    """
    Merge one attribute into `kv` in place without losing earlier values.

    A differing value is appended with "; ". A value that is already present,
    either as the whole entry or as one of its "; " members, is skipped.
    """
    existing = kv.get(key)
    if existing is None:
        kv[key] = value
        return
    if existing == value:
        return
    if value in (part.strip() for part in existing.split(";")):
        return
    kv[key] = f"{existing}; {value}"


def extract_kv(segments: Iterable[str], into: dict[str, str] | None = None) -> dict[str, str]:
    """Build (or extend) an attribute mapping from segments."""
    kv: dict[str, str] = {} if into is None else into
    for segment in segments:
        parsed = parse_segment(segment)
        if parsed is None:
            continue
        merge_kv(kv, *parsed)
    return kv


def split_attribute_line(line: str) -> list[str]:
    """
    Split a continuation line into logical attribute segments.

    >>> split_attribute_line("tablets=1/1, tabletList=123")
    ['tablets=1/1', 'tabletList=123']
    >>> split_attribute_line("k1[#0], k2[#1]")
    ['k1[#0], k2[#1]']
    """
    parts = [p.strip() for p in _ATTRIBUTE_BOUNDARY_RE.split(line)]
    return [p for p in parts if p]
