"""HTML rendering of answers with citation badges.

Markdown is converted with a small regex renderer. Citation markers are
swapped for placeholders before conversion and for badges afterwards, so
markdown emphasis around a citation survives.
"""

import html
import json
import re
from collections.abc import Sequence

from docchat.citations import extract_block_citations, extract_table_citations
from docchat.models.schemas import CitationToken, MarkdownBlock, Source, TableBlock, TextToken

STREAMING_CURSOR = '<span class="stream-cursor">▊</span>'

_PLACEHOLDER = "\x00{}\x00"
_PLACEHOLDER_PATTERN = re.compile(r"\x00(\d+)\x00")


def markdown_to_html(text: str) -> str:
    """Convert markdown to HTML for chat display.

    Supports: headings, bold, italic, inline code, code blocks, links, lists.
    """
    # Escape HTML entities first
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

    # Code blocks (```code```)
    text = re.sub(
        r"```(\w*)\n?([\s\S]*?)```",
        r'<pre class="bg-gray-800 text-gray-100 rounded-lg p-3 my-2 overflow-x-auto text-xs"><code>\2</code></pre>',
        text,
    )

    # Inline code (`code`)
    text = re.sub(
        r"`([^`]+)`",
        r'<code class="bg-gray-200 text-pink-600 px-1.5 py-0.5 rounded text-xs">\1</code>',
        text,
    )

    # Headings (### title)
    text = re.sub(
        r"^(#{1,6})\s+(.+)$",
        lambda m: f'<div class="md-h{len(m.group(1))} font-semibold my-1">{m.group(2)}</div>',
        text,
        flags=re.MULTILINE,
    )

    # Bold (**text** or __text__)
    text = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", text)
    text = re.sub(r"__(.+?)__", r"<strong>\1</strong>", text)

    # Italic (*text* or _text_)
    text = re.sub(r"\*([^*]+)\*", r"<em>\1</em>", text)
    text = re.sub(r"(?<!\w)_([^_]+)_(?!\w)", r"<em>\1</em>", text)

    # Links [text](url)
    text = re.sub(
        r"\[([^\]]+)\]\(([^)]+)\)",
        r'<a href="\2" class="text-blue-600 underline" target="_blank">\1</a>',
        text,
    )

    text = _render_lists(text, r"^[-*]\s+", '<ul class="list-disc list-inside my-2 space-y-1">', "</ul>")
    text = _render_lists(text, r"^\d+\.\s+", '<ol class="list-decimal list-inside my-2 space-y-1">', "</ol>")

    # Line breaks (preserve newlines as <br>)
    return text.replace("\n", "<br>")


def _render_lists(text: str, item_pattern: str, open_tag: str, close_tag: str) -> str:
    in_list = False
    result = []
    for line in text.split("\n"):
        stripped = line.strip()
        if re.match(item_pattern, stripped):
            if not in_list:
                result.append(open_tag)
                in_list = True
            result.append(f"<li>{re.sub(item_pattern, '', stripped)}</li>")
        else:
            if in_list:
                result.append(close_tag)
                in_list = False
            result.append(line)
    if in_list:
        result.append(close_tag)
    return "\n".join(result)


def citation_badge(token: CitationToken, message_id: str, block_index: int) -> str:
    """Render one citation token as a badge.

    Resolved badges emit a ``citation`` event when clicked; unresolved
    ones are inert.
    """
    label = html.escape(token.marker)
    if token.source is None:
        return f'<span class="citation-badge citation-inert" title="Source not found">{label}</span>'
    payload = json.dumps({"message": message_id, "block": block_index, "id": token.id})
    title = html.escape(token.source.snippet or token.source.file_name, quote=True)
    onclick = html.escape(f"emitEvent('citation', {payload})", quote=True)
    return f'<button class="citation-badge" title="{title}" onclick="{onclick}">{label}</button>'


def tokens_to_html(
    tokens: Sequence[TextToken | CitationToken],
    message_id: str,
    block_index: int,
    markdown: bool = True,
) -> str:
    """Render extracted tokens, converting the text parts as markdown."""
    badges: list[str] = []
    parts: list[str] = []
    for token in tokens:
        if isinstance(token, TextToken):
            parts.append(token.text)
        else:
            parts.append(_PLACEHOLDER.format(len(badges)))
            badges.append(citation_badge(token, message_id, block_index))
    joined = "".join(parts)
    rendered = markdown_to_html(joined) if markdown else html.escape(joined)
    return _PLACEHOLDER_PATTERN.sub(lambda m: badges[int(m.group(1))], rendered)


def render_block_sources(block_sources: Sequence[Source]) -> str:
    if not block_sources:
        return ""
    chips = "".join(
        f'<span class="source-chip">📄 {html.escape(s.file_name)}</span>' for s in block_sources
    )
    return f'<div class="block-sources"><span class="text-xs text-gray-500">Cited:</span>{chips}</div>'


def render_markdown_block(
    block: MarkdownBlock,
    answer_sources: Sequence[Source],
    message_id: str,
    block_index: int,
) -> str:
    tokens = extract_block_citations(block, answer_sources)
    body = tokens_to_html(tokens, message_id, block_index)
    return f'<div class="markdown-block">{body}</div>{render_block_sources(block.block_sources)}'


def render_table_block(
    block: TableBlock,
    answer_sources: Sequence[Source],
    message_id: str,
    block_index: int,
) -> str:
    headers, rows = extract_table_citations(block, answer_sources)
    head = "".join(
        f"<th>{tokens_to_html(cell, message_id, block_index, markdown=False)}</th>"
        for cell in headers
    )
    body = "".join(
        "<tr>"
        + "".join(
            f"<td>{tokens_to_html(cell, message_id, block_index, markdown=False)}</td>"
            for cell in row
        )
        + "</tr>"
        for row in rows
    )
    table = f'<table class="answer-table"><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'
    return table + render_block_sources(block.block_sources)


def render_sources(sources: Sequence[Source]) -> str:
    """Render the answer-level references list."""
    if not sources:
        return ""
    items = "".join(
        f'<li><span class="font-semibold">[{html.escape(s.id)}]</span> '
        f"{html.escape(s.file_name)}"
        + (f" (p. {s.page_number})" if s.page_number else "")
        + "</li>"
        for s in sources
    )
    return f'<div class="answer-sources"><div class="text-xs text-gray-500">Sources</div><ul>{items}</ul></div>'


def render_answer(
    blocks: Sequence[MarkdownBlock | TableBlock],
    sources: Sequence[Source],
    message_id: str,
    streaming: bool = False,
) -> str:
    """Render revealed blocks, a cursor while streaming, sources once done."""
    parts: list[str] = []
    for index, block in enumerate(blocks):
        if isinstance(block, MarkdownBlock):
            parts.append(render_markdown_block(block, sources, message_id, index))
        elif isinstance(block, TableBlock):
            parts.append(render_table_block(block, sources, message_id, index))
    if streaming:
        parts.append(STREAMING_CURSOR)
    else:
        parts.append(render_sources(sources))
    return "".join(parts)
