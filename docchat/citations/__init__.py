"""Citation extraction for answer text.

Responsibilities:
    - Scanning text for ``[n]`` citation markers
    - Resolving markers against a block's sources or the answer's sources
    - Producing render-agnostic token lists for the UI and API

Pure functions only. Safe to call on every partially streamed prefix.
"""

from docchat.citations.extractor import (
    CITATION_PATTERN,
    cited_ids,
    extract_block_citations,
    extract_citations,
    extract_table_citations,
    find_source,
    join_tokens,
    resolve_scope,
)

__all__ = [
    "CITATION_PATTERN",
    "cited_ids",
    "extract_block_citations",
    "extract_citations",
    "extract_table_citations",
    "find_source",
    "join_tokens",
    "resolve_scope",
]
