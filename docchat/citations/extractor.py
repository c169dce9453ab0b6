"""Citation marker extraction and source resolution.

Turns answer text containing ``[n]`` markers into an ordered list of
render tokens. Text between markers is preserved exactly; every marker
becomes a CitationToken, bound to its source when one exists in scope.
"""

import logging
import re
from collections.abc import Iterable, Sequence

from docchat.models.schemas import (
    CitationToken,
    MarkdownBlock,
    Source,
    TableBlock,
    TextToken,
)

logger = logging.getLogger(__name__)

# Wire format shared with the QA backend: "[", ASCII digits, "]"
CITATION_PATTERN = re.compile(r"\[([0-9]+)\]")

Token = TextToken | CitationToken


def _index_sources(sources: Iterable[Source]) -> dict[str, Source]:
    index: dict[str, Source] = {}
    for source in sources:
        index.setdefault(source.id, source)
    return index


def extract_citations(text: str, sources: Sequence[Source]) -> list[Token]:
    """Split text into text spans and citation tokens.

    Markers are matched leftmost-first without overlap. Ids are compared to
    ``Source.id`` by exact string equality, so ``[01]`` does not resolve
    to source ``"1"``. Unresolved markers still produce a token with
    ``source=None`` so the rendered layout stays stable.

    Args:
        text: Answer text, possibly a partially streamed prefix.
        sources: Sources in scope for this text.

    Returns:
        Tokens in left-to-right order. Empty text yields an empty list.
    """
    if not text:
        return []

    index = _index_sources(sources) if sources else {}
    tokens: list[Token] = []
    last = 0
    for match in CITATION_PATTERN.finditer(text):
        start, end = match.span()
        if start > last:
            tokens.append(TextToken(text=text[last:start]))
        citation_id = match.group(1)
        source = index.get(citation_id)
        if source is None:
            logger.debug(f"Citation [{citation_id}] has no source in scope")
        tokens.append(CitationToken(id=citation_id, source=source))
        last = end

    if last < len(text):
        tokens.append(TextToken(text=text[last:]))
    return tokens


def join_tokens(tokens: Iterable[Token]) -> str:
    """Rebuild the original text from extracted tokens."""
    return "".join(
        token.text if isinstance(token, TextToken) else token.marker for token in tokens
    )


def cited_ids(text: str) -> list[str]:
    """Return the ids referenced in text, in order of first appearance."""
    seen: dict[str, None] = {}
    for match in CITATION_PATTERN.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)


def resolve_scope(
    block: MarkdownBlock | TableBlock,
    answer_sources: Sequence[Source],
) -> Sequence[Source]:
    """Pick the sources a block's markers resolve against.

    A block's own ``block_sources`` win when non-empty; otherwise the
    answer-level sources apply.
    """
    if block.block_sources:
        return block.block_sources
    return answer_sources


def find_source(
    block: MarkdownBlock | TableBlock | None,
    answer_sources: Sequence[Source],
    citation_id: str,
) -> Source | None:
    """Look up the source a clicked citation refers to, within its block's scope."""
    scope = resolve_scope(block, answer_sources) if block is not None else answer_sources
    for source in scope:
        if source.id == citation_id:
            return source
    return None


def extract_block_citations(
    block: MarkdownBlock,
    answer_sources: Sequence[Source],
    body: str | None = None,
) -> list[Token]:
    """Extract citations from a markdown block using its source scope.

    Args:
        block: The block the text belongs to.
        answer_sources: Answer-level fallback sources.
        body: Text to scan instead of ``block.body`` (a streamed prefix).
    """
    text = block.body if body is None else body
    return extract_citations(text, resolve_scope(block, answer_sources))


def extract_table_citations(
    block: TableBlock,
    answer_sources: Sequence[Source],
) -> tuple[list[list[Token]], list[list[list[Token]]]]:
    """Extract citations from every header title and cell of a table.

    Returns:
        ``(headers, rows)`` where ``headers[c]`` are the tokens of column
        ``c``'s title and ``rows[r][c]`` the tokens of that cell. Missing
        cells yield an empty token list.
    """
    scope = resolve_scope(block, answer_sources)
    columns = block.data.headers
    headers = [extract_citations(column.title, scope) for column in columns]
    rows = [
        [extract_citations(row.get(column.key, ""), scope) for column in columns]
        for row in block.data.rows
    ]
    return headers, rows
