"""Unit tests for citation marker extraction and source resolution."""

import pytest_check as check

from docchat.citations import (
    cited_ids,
    extract_block_citations,
    extract_citations,
    extract_table_citations,
    find_source,
    join_tokens,
    resolve_scope,
)
from docchat.models.schemas import (
    CitationToken,
    MarkdownBlock,
    Source,
    TableBlock,
    TableColumn,
    TableData,
    TextToken,
)


class TestExtractCitations:
    """Tests for extract_citations."""

    def test_text_without_markers(self, sources) -> None:
        assert extract_citations("No citations here.", sources) == [
            TextToken(text="No citations here.")
        ]

    def test_empty_text(self, sources) -> None:
        assert extract_citations("", sources) == []

    def test_resolved_marker(self, sources) -> None:
        tokens = extract_citations("Leave is 20 days [1].", sources)

        check.equal(len(tokens), 3)
        check.equal(tokens[0], TextToken(text="Leave is 20 days "))
        check.equal(tokens[1], CitationToken(id="1", source=sources[0]))
        check.equal(tokens[2], TextToken(text="."))
        check.is_true(tokens[1].resolved)

    def test_unresolved_marker_keeps_position(self, sources) -> None:
        tokens = extract_citations("See [99]", sources)

        check.equal(tokens, [TextToken(text="See "), CitationToken(id="99", source=None)])
        check.is_false(tokens[1].resolved)
        check.equal(tokens[1].marker, "[99]")

    def test_adjacent_markers(self, sources) -> None:
        tokens = extract_citations("[1][2]", sources)

        check.equal([t.kind for t in tokens], ["citation", "citation"])
        check.equal([t.source for t in tokens], sources)

    def test_ids_compared_as_strings(self, sources) -> None:
        tokens = extract_citations("[01]", sources)

        check.equal(tokens, [CitationToken(id="01", source=None)])

    def test_non_numeric_brackets_stay_text(self, sources) -> None:
        text = "[a] [] [1a] [ 1] [١]"

        assert extract_citations(text, sources) == [TextToken(text=text)]

    def test_no_sources_leaves_markers_unresolved(self) -> None:
        tokens = extract_citations("A [1] B", [])

        check.equal(len(tokens), 3)
        check.is_none(tokens[1].source)

    def test_round_trip_preserves_text(self, sources) -> None:
        text = "**Bold** [1], then\n\n- item [2]\n- [3] orphan [1]"

        tokens = extract_citations(text, sources)

        check.equal(join_tokens(tokens), text)
        check.equal(
            [t.id for t in tokens if isinstance(t, CitationToken)], ["1", "2", "3", "1"]
        )

    def test_partial_marker_in_streamed_prefix(self, sources) -> None:
        assert extract_citations("Half [1", sources) == [TextToken(text="Half [1")]

    def test_first_duplicate_source_wins(self) -> None:
        first = Source(id="1", file_name="first.pdf")
        second = Source(id="1", file_name="second.pdf")

        tokens = extract_citations("[1]", [first, second])

        assert tokens[0].source == first


class TestCitedIds:
    def test_order_of_first_appearance(self) -> None:
        assert cited_ids("[2] then [1] and [2] again [10]") == ["2", "1", "10"]


class TestScope:
    """Tests for block-level versus answer-level source scope."""

    def test_block_sources_win(self, sources) -> None:
        local = [Source(id="1", file_name="local.pdf")]
        block = MarkdownBlock(body="Fact [1]", block_sources=local)

        tokens = extract_block_citations(block, sources)

        check.equal(resolve_scope(block, sources), local)
        check.equal(tokens[1].source.file_name, "local.pdf")

    def test_empty_block_sources_fall_back(self, sources) -> None:
        block = MarkdownBlock(body="Fact [2]")

        tokens = extract_block_citations(block, sources)

        check.equal(tokens[1].source, sources[1])

    def test_block_scope_does_not_see_answer_sources(self, sources) -> None:
        block = MarkdownBlock(
            body="Fact [2]", block_sources=[Source(id="1", file_name="local.pdf")]
        )

        tokens = extract_block_citations(block, sources)

        check.is_none(tokens[1].source)

    def test_body_override_scans_prefix(self, sources) -> None:
        block = MarkdownBlock(body="Fact [1] and more [2]")

        tokens = extract_block_citations(block, sources, body="Fact [1] and")

        check.equal(join_tokens(tokens), "Fact [1] and")

    def test_find_source(self, sources) -> None:
        local = [Source(id="1", file_name="local.pdf")]
        block = MarkdownBlock(body="x", block_sources=local)

        check.equal(find_source(block, sources, "1"), local[0])
        check.equal(find_source(None, sources, "2"), sources[1])
        check.is_none(find_source(block, sources, "2"))


class TestTableCitations:
    """Tests for extract_table_citations."""

    def test_headers_and_cells(self, sources) -> None:
        block = TableBlock(
            data=TableData(
                headers=[
                    TableColumn(key="plan", title="Plan [1]"),
                    TableColumn(key="days", title="Days"),
                ],
                rows=[
                    {"plan": "Full-time", "days": "20 [1]"},
                    {"plan": "Part-time [2]"},
                ],
            )
        )

        headers, rows = extract_table_citations(block, sources)

        check.equal(join_tokens(headers[0]), "Plan [1]")
        check.equal(headers[0][1].source, sources[0])
        check.equal(join_tokens(rows[0][1]), "20 [1]")
        check.equal(rows[1][0][1].source, sources[1])
        check.equal(rows[1][1], [])
