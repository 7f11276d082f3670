"""
Entry point for parsing EXPLAIN text of either grammar.

This module handles:
- Enforcing resource limits before and after parsing
- Trying the tree grammar, then the plan grammar
- Loading EXPLAIN text from files
- Selecting one fragment's nodes with fragment-relative depth

Error handling philosophy: text that matches no grammar is data, not an
exception. parse_explain() always returns either a ParseSuccess or a
ParseFailure whose message says why each grammar rejected the input.
Exceptions are raised only for unreadable files and programmer errors.
"""

from __future__ import annotations

import logging
from pathlib import Path

from planlens.exceptions import ParseError
from planlens.parser.config import DEFAULT_CONFIG, ParserConfig
from planlens.parser.models import ParseFailure, ParseResult, PlanNode
from planlens.parser.plan import parse_explain_plan
from planlens.parser.tree import parse_explain_tree

logger = logging.getLogger(__name__)


def parse_explain(raw_text: str, config: ParserConfig | None = None) -> ParseResult:
    """
    Parse EXPLAIN TREE or EXPLAIN PLAN text into a flat node list.

    Args:
        raw_text: The dump as returned by the engine or pasted by a user.
            May be wrapped in a client's boxed table rendering.
        config: Resource limits. Defaults to DEFAULT_CONFIG.

    Returns:
        ParseSuccess from the first grammar that recognizes any node, or a
        ParseFailure combining both grammars' errors with " | ".

    Example:
        >>> result = parse_explain(text)
        >>> if result.ok:
        ...     print(result.format, result.fragments)
        ... else:
        ...     print(result.error)
    """
    if not isinstance(raw_text, str):
        raise TypeError(f"raw_text must be str, got {type(raw_text).__name__}")

    config = config or DEFAULT_CONFIG

    size = len(raw_text.encode("utf-8"))
    if size > config.max_input_bytes:
        return ParseFailure(
            raw_text=raw_text,
            error=(
                f"Input too large: {size:,} bytes "
                f"(max {config.max_input_bytes:,} bytes)."
            ),
        )

    tree = parse_explain_tree(raw_text)
    if tree.ok:
        return _check_node_count(tree, config)

    plan = parse_explain_plan(raw_text)
    if plan.ok:
        return _check_node_count(plan, config)

    logger.debug("Input matched neither EXPLAIN grammar")
    return ParseFailure(
        raw_text=tree.raw_text,
        error=f"{tree.error} | {plan.error}",
    )


def _check_node_count(result: ParseResult, config: ParserConfig) -> ParseResult:
    if result.ok and len(result.nodes) > config.max_nodes:
        return ParseFailure(
            raw_text=result.raw_text,
            error=(
                f"Plan too large: {len(result.nodes):,} nodes "
                f"(max {config.max_nodes:,})."
            ),
        )
    if result.ok:
        logger.debug(
            "Parsed %s format: %d nodes, %d fragments",
            result.format.value,
            len(result.nodes),
            len(result.fragments),
        )
    return result


def parse_explain_file(path: str | Path, config: ParserConfig | None = None) -> ParseResult:
    """
    Read EXPLAIN text from a file and parse it.

    Raises:
        ParseError: If the file cannot be read or is empty. Unrecognized
            content is still returned as a ParseFailure.
    """
    return parse_explain(read_explain_file(path), config=config)


def read_explain_file(path: str | Path) -> str:
    """
    Load EXPLAIN text from a file.

    Raises:
        ParseError: If the file is missing, not a regular file, unreadable,
            not UTF-8, or empty.
    """
    filepath = Path(path)

    if not filepath.exists():
        raise ParseError(f"File not found: {filepath}", source=str(filepath))

    if not filepath.is_file():
        raise ParseError(f"Path is not a file: {filepath}", source=str(filepath))

    try:
        content = filepath.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"Cannot read file: {filepath}: {e}", source=str(filepath)) from e

    if not content.strip():
        raise ParseError(f"File is empty: {filepath}", source=str(filepath))

    return content


def select_nodes_by_fragment(
    nodes: list[PlanNode],
    fragment_id: int | None,
) -> list[PlanNode]:
    """
    Return one fragment's nodes with depth re-based to start at 0.

    None returns all nodes unchanged. A fragment with no nodes returns an
    empty list. The inputs are not modified; re-based nodes are copies.
    """
    if fragment_id is None:
        return nodes
    if isinstance(fragment_id, bool) or not isinstance(fragment_id, int):
        raise TypeError(f"fragment_id must be int or None, got {type(fragment_id).__name__}")

    filtered = [n for n in nodes if n.fragment_id == fragment_id]
    if not filtered:
        return []

    base_depth = min(n.depth for n in filtered)
    return [
        n.model_copy(update={"depth": max(0, n.depth - base_depth)})
        for n in filtered
    ]
