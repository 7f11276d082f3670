"""
Input normalization shared by both EXPLAIN grammars.

Some SQL clients render query results as a box:

    +--------------------------------------+
    | Explain String(Nereids Planner)      |
    +--------------------------------------+
    | PLAN FRAGMENT 0                      |
    ...

Pasting that straight into the parser would hide every node behind a `|`.
normalize_explain_text() drops the `+---+` rules, unwraps the `| ... |` rows
and reports that it did so.
"""

from __future__ import annotations

import re
from typing import NamedTuple

_RULE_BODY_RE = re.compile(r"^[-+]+$")

BOXED_WARNING = "boxed table formatting detected and normalized"


class NormalizedText(NamedTuple):
    text: str
    warnings: list[str]


def _is_horizontal_rule(line: str) -> bool:
    if len(line) < 2 or not (line.startswith("+") and line.endswith("+")):
        return False
    middle = line[1:-1].strip()
    return bool(middle) and "-" in middle and bool(_RULE_BODY_RE.match(middle))


def _is_boxed_row(line: str) -> bool:
    return len(line) >= 2 and line.startswith("|") and line.endswith("|")


def normalize_explain_text(raw_text: str) -> NormalizedText:
    """
    Collapse line endings and undo boxed table rendering.

    Never fails. Emits at most one warning, and only when a rule or boxed
    row was actually found.
    """
    lines = raw_text.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    normalized: list[str] = []
    boxed_lines = 0

    for line in lines:
        value = line.rstrip()
        if not value:
            normalized.append("")
            continue
        if _is_horizontal_rule(value):
            boxed_lines += 1
            continue
        if _is_boxed_row(value):
            boxed_lines += 1
            normalized.append(value[1:-1].strip())
            continue
        normalized.append(value)

    warnings = [BOXED_WARNING] if boxed_lines else []
    return NormalizedText("\n".join(normalized), warnings)
