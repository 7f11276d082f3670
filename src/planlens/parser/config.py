"""
Parser configuration with resource limits.

Limits are enforced by returning a ParseFailure rather than raising, so a
pasted multi-megabyte dump shows a readable error instead of hanging the
caller. The defaults match the output cap the engine-side collector uses.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ParserConfig(BaseModel):
    """
    Configuration for the EXPLAIN text parsers.

    Attributes:
        max_input_bytes: Maximum size of the raw text (UTF-8 encoded).
        max_nodes: Maximum number of plan nodes a single parse may emit.

    Example:
        config = ParserConfig(max_input_bytes=1_000_000)
        result = parse_explain(text, config=config)
    """

    model_config = ConfigDict(frozen=True)

    max_input_bytes: int = Field(
        default=4_000_000,
        gt=0,
        description="Maximum raw text size in bytes",
    )

    max_nodes: int = Field(
        default=50_000,
        gt=0,
        description="Maximum number of plan nodes",
    )


DEFAULT_CONFIG = ParserConfig()

# Stricter limits for untrusted, pasted input
STRICT_CONFIG = ParserConfig(
    max_input_bytes=1_000_000,
    max_nodes=5_000,
)
