"""Conversion of QA backend answers into content blocks and sources.

The backend returns ``[{"text": ..., "file_citation": [file names]}]``.
Each item becomes one markdown block. A block's ``[n]`` markers refer to
the n-th file of its own ``file_citation`` list, so every block carries
its own ``block_sources``. The answer-level sources list every cited file
once, numbered in order of first citation.
"""

import logging
from urllib.parse import quote

from docchat.models.schemas import BackendAnswer, MarkdownBlock, Source
from docchat.providers.collections import CollectionStore

logger = logging.getLogger(__name__)


def _describe_file(
    file_name: str,
    collection_name: str | None,
    store: CollectionStore | None,
) -> tuple[str, int | None, str | None]:
    """Return ``(file_url, page_number, snippet)`` for a cited file."""
    stored = store.find_file(collection_name, file_name) if store is not None else None
    if stored is None:
        url = f"/api/files/by-name/{quote(file_name)}"
        if collection_name:
            url += f"?collection={quote(collection_name)}"
        return url, None, None
    page = stored.content.first_text_page()
    snippet = stored.content.snippet(page) if page is not None else None
    return stored.item.url, page, snippet


def transform_backend_answers(
    answers: list[BackendAnswer],
    collection_name: str | None = None,
    store: CollectionStore | None = None,
) -> tuple[list[MarkdownBlock], list[Source]]:
    """Build content blocks and answer-level sources from backend answers.

    Args:
        answers: Items returned by the QA backend.
        collection_name: Collection the question was asked against.
        store: Collection store used to attach page numbers and snippets.

    Returns:
        ``(blocks, sources)``.
    """
    blocks: list[MarkdownBlock] = []
    sources_by_file: dict[str, Source] = {}

    for answer in answers:
        block_sources: list[Source] = []
        for position, file_name in enumerate(answer.file_citation, start=1):
            if not file_name:
                continue
            if file_name not in sources_by_file:
                url, page, snippet = _describe_file(file_name, collection_name, store)
                sources_by_file[file_name] = Source(
                    id=str(len(sources_by_file) + 1),
                    file_name=file_name,
                    file_url=url,
                    page_number=page,
                    snippet=snippet,
                )
            block_sources.append(
                sources_by_file[file_name].model_copy(update={"id": str(position)})
            )
        blocks.append(MarkdownBlock(body=answer.text, block_sources=block_sources))

    logger.debug(f"Transformed {len(answers)} backend answers into {len(sources_by_file)} sources")
    return blocks, list(sources_by_file.values())
