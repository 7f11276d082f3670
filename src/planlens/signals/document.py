"""
Document-wide signals read from the free text around the plan.

The engine appends a materialization section listing every materialized
view it tried:

    ========== MATERIALIZATIONS ==========
    RBO.mv_sales chose
    CBO.mv_daily not chose
    RBO.mv_orders fail
    FailInfo: cost too high

A `FailInfo:` line belongs to the fail line directly above it; any other
line in between (including a blank one) breaks that association.
"""

from __future__ import annotations

import logging
import re

from planlens.signals.models import MaterializationFailure, MaterializationSummary

logger = logging.getLogger(__name__)

_MATERIALIZATION_TOKEN_RE = re.compile(r"MATERIALIZATION", re.IGNORECASE)
_CHOSE_RE = re.compile(r"^(?:RBO|CBO)\.(\S+)\s+chose$", re.IGNORECASE)
_NOT_CHOSE_RE = re.compile(r"^(?:RBO|CBO)\.(\S+)\s+not chose$", re.IGNORECASE)
_FAIL_RE = re.compile(r"^(?:RBO|CBO)\.(\S+)\s+fail$", re.IGNORECASE)
_FAIL_INFO_RE = re.compile(r"^FailInfo:\s*(.+)$", re.IGNORECASE)
_UNKNOWN_STATS_RE = re.compile(r"plann?ed\s+with\s+unknown\s+column\s+statistics", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def _unique_names(names: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for name in names:
        normalized = _WHITESPACE_RE.sub("", name)
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)


def parse_materialization_summary(raw_text: str) -> MaterializationSummary | None:
    """
    Collect chosen / not chosen / failed materializations.

    Returns None when the text has no materialization section or the section
    lists nothing.
    """
    if not _MATERIALIZATION_TOKEN_RE.search(raw_text):
        return None

    chosen: list[str] = []
    not_chosen: list[str] = []
    failed: list[tuple[str, str | None]] = []
    pending_failure: int | None = None

    for line in raw_text.split("\n"):
        text = line.strip()

        match = _CHOSE_RE.match(text)
        if match:
            chosen.append(match.group(1))
            pending_failure = None
            continue

        match = _NOT_CHOSE_RE.match(text)
        if match:
            not_chosen.append(match.group(1))
            pending_failure = None
            continue

        match = _FAIL_RE.match(text)
        if match:
            failed.append((match.group(1), None))
            pending_failure = len(failed) - 1
            continue

        match = _FAIL_INFO_RE.match(text)
        if match and pending_failure is not None:
            name, _ = failed[pending_failure]
            failed[pending_failure] = (name, match.group(1).strip())
            continue

        pending_failure = None

    summary = MaterializationSummary(
        chosen=_unique_names(chosen),
        success_but_not_chosen=_unique_names(not_chosen),
        failed=[MaterializationFailure(name=name, reason=reason) for name, reason in failed],
    )
    if not (summary.chosen or summary.success_but_not_chosen or summary.failed):
        return None

    logger.debug(
        "Materializations: %d chosen, %d not chosen, %d failed",
        len(summary.chosen),
        len(summary.success_but_not_chosen),
        len(summary.failed),
    )
    return summary


def has_unknown_column_stats(raw_text: str) -> bool:
    """True when the planner footer reports missing column statistics."""
    return bool(_UNKNOWN_STATS_RE.search(raw_text))
