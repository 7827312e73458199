"""Unit tests for the lexical context engine and its phases"""

import pytest

from flint.core.context_engine import assemble_context
from flint.core.models import AssembledContext, ContextChunk, ContextEngineOptions, FlintConfig
from flint.phases import (
    CompressionPolicy,
    compress_chunks,
    fingerprint,
    format_context_for_prompt,
    get_local_context,
    get_relevant_sections,
    keyword_overlap_score,
    remove_duplicates,
    split_into_sections,
)
from flint.phases.phase5_compression import RELATED_HEADER, truncate_at_word
from flint.utils import AssemblyMetrics

TOMATO_DOC = (
    "Tomatoes need full sun.\n\n"
    "Cats sleep all day long.\n\n"
    "Watering tomatoes in the morning helps tomatoes."
)


class TestLocalWindow:
    def test_centered_window(self):
        local = get_local_context("abcdefghij", 5, window=4)
        assert local.text == "defg"
        assert local.start == 3
        assert local.cursor_offset == 2

    def test_clamped_at_start(self):
        local = get_local_context("abcdefghij", 1, window=4)
        assert local.text == "abc"
        assert local.cursor_offset == 1

    @pytest.mark.parametrize("cursor", [-10, 0, 37, 250, 10**6])
    def test_window_contains_cursor(self, long_article, cursor):
        local = get_local_context(long_article, cursor, window=300)
        clamped = min(max(cursor, 0), len(long_article))
        assert len(local.text) <= 300
        assert local.start <= clamped <= local.end
        assert long_article[local.start:local.end] == local.text


class TestSectioning:
    def test_paragraph_offsets(self):
        text = "First para.\n\nSecond para.\n\n\nThird."
        sections = split_into_sections(text)
        assert [s.text for s in sections] == ["First para.", "Second para.", "Third."]
        assert [s.offset for s in sections] == [0, 13, 28]

    def test_code_block_stays_whole(self):
        text = "Intro\n\n```\na = 1\n\nb = 2\n```\n\nOutro"
        sections = split_into_sections(text)
        assert [s.is_code for s in sections] == [False, True, False]
        assert sections[1].text == "```\na = 1\n\nb = 2\n```"

    def test_unclosed_fence_runs_to_end(self):
        text = "Text\n\n```\ncode\n\nmore"
        sections = split_into_sections(text)
        assert sections[-1].is_code
        assert sections[-1].text.endswith("more")

    def test_long_paragraph_split_on_lines(self):
        lines = [f"line {i} " + "word " * 20 for i in range(12)]
        sections = split_into_sections("\n".join(lines))
        assert len(sections) == 12

    def test_offsets_point_into_text(self, long_article, sample_documents):
        for text in [long_article] + list(sample_documents.values()):
            for section in split_into_sections(text):
                assert text[section.offset:section.end] == section.text

    def test_empty(self):
        assert split_into_sections("") == []


class TestRelevance:
    def test_identical_strings_score_one(self):
        assert keyword_overlap_score("the and", "the and") == 1.0

    def test_symmetric_and_bounded(self):
        a, b = "solar panels on roofs", "roofs need solar inverters"
        assert keyword_overlap_score(a, b) == keyword_overlap_score(b, a)
        assert 0.0 <= keyword_overlap_score(a, b) <= 1.0

    def test_empty_scores_zero(self):
        assert keyword_overlap_score("", "anything here") == 0.0

    def test_ranked_by_score(self):
        text = "Tomatoes need water.\n\nCats sleep a lot.\n\nWatering tomatoes daily helps."
        chunks = get_relevant_sections(text, "watering tomatoes", max_sections=3, min_score=0.05)
        assert [c.text for c in chunks] == ["Watering tomatoes daily helps.", "Tomatoes need water."]
        assert chunks[0].score == pytest.approx(0.5)
        assert chunks[0].source_offset == text.index("Watering")

    def test_exclude_span(self):
        text = "Tomatoes need water.\n\nCats sleep a lot.\n\nWatering tomatoes daily helps."
        start = text.index("Watering")
        chunks = get_relevant_sections(
            text, "watering tomatoes", max_sections=3, min_score=0.05, exclude_span=(start, len(text))
        )
        assert [c.text for c in chunks] == ["Tomatoes need water."]


class TestDeduplication:
    def test_fingerprint_normalizes(self):
        assert fingerprint("Hello   World\nfoo") == "hello world foo"
        assert len(fingerprint("x" * 200)) == 60

    def test_keeps_best_of_each_group(self):
        chunks = [
            ContextChunk("Hello   World foo", 10, 0.5),
            ContextChunk("hello world foo", 50, 0.9),
            ContextChunk("Hello world foo", 5, 0.9),
            ContextChunk("Something else", 70, 0.3),
        ]
        unique = remove_duplicates(chunks)
        assert [(c.source_offset, c.score) for c in unique] == [(5, 0.9), (70, 0.3)]

    def test_idempotent(self):
        chunks = [ContextChunk("a b c", 1, 0.2), ContextChunk("A  B C", 2, 0.4)]
        once = remove_duplicates(chunks)
        assert remove_duplicates(once) == once


class ReversePolicy(CompressionPolicy):
    def rank(self, sentences, keywords):
        return list(reversed(range(len(sentences))))


class TestCompression:
    def test_short_chunk_unchanged(self):
        chunk = ContextChunk("Short text.", 3, 0.4)
        assert compress_chunks([chunk], max_chars=250) == [chunk]

    def test_keeps_dense_sentences_in_order(self):
        text = "Alpha tomatoes grow. Beta irrelevant filler words here now. Gamma tomatoes need sun."
        [compressed] = compress_chunks([ContextChunk(text, 0, 1.0)], max_chars=45, query="tomatoes sun")
        assert compressed.text == "Alpha tomatoes grow. Gamma tomatoes need sun."
        assert compressed.source_offset == 0

    def test_lone_long_sentence_is_cut_at_word(self):
        text = "word " * 100
        [compressed] = compress_chunks([ContextChunk(text, 0, 1.0)], max_chars=50)
        assert len(compressed.text) <= 50
        assert compressed.text.endswith("...")
        assert not compressed.text[:-3].endswith(" ")

    def test_policy_is_swappable(self):
        text = "One one. Two two. Three three."
        [compressed] = compress_chunks([ContextChunk(text, 0, 1.0)], max_chars=13, policy=ReversePolicy())
        assert compressed.text == "Three three."

    def test_truncate_at_word(self):
        assert truncate_at_word("hello brave new world", 14) == "hello brave..."
        assert truncate_at_word("short", 14) == "short"


class TestFormatting:
    def _context(self):
        return AssembledContext(
            local_context="Hello world",
            related_chunks=[ContextChunk("Related bit", 100, 0.5)],
            total_chars=22,
            cursor_offset=5,
        )

    def test_before_and_after_cursor(self):
        text = format_context_for_prompt(self._context())
        assert "CONTEXT BEFORE CURSOR:\nHello" in text
        assert "CONTEXT AFTER CURSOR:\n world" in text
        assert RELATED_HEADER in text
        assert "1. Related bit" in text

    def test_without_related(self):
        text = format_context_for_prompt(self._context(), include_related=False)
        assert RELATED_HEADER not in text

    def test_cursor_at_start(self):
        context = AssembledContext(local_context="Hello world", cursor_offset=0)
        assert "[Start of document]" in format_context_for_prompt(context)

    def test_drops_related_first(self):
        context = self._context()
        local_only = format_context_for_prompt(context, include_related=False)
        assert format_context_for_prompt(context, max_chars=len(local_only)) == local_only

    @pytest.mark.parametrize("limit", [0, 20, 60, 120])
    def test_never_exceeds_limit(self, long_article, limit):
        context = assemble_context(long_article, 400)
        assert len(format_context_for_prompt(context, max_chars=limit)) <= limit


class TestAssembleContext:
    def test_related_sections(self):
        config = FlintConfig(local_window=60)
        context = assemble_context(TOMATO_DOC, len(TOMATO_DOC), config=config)
        assert context.local_context == "in the morning helps tomatoes."
        assert context.related_sections == [
            "Watering tomatoes in the morning helps tomatoes.",
            "Tomatoes need full sun.",
        ]

    def test_empty_document(self):
        context = assemble_context("", 0)
        assert context.local_context == ""
        assert context.related_chunks == []
        assert context.total_chars == 0

    def test_single_section_document(self):
        context = assemble_context("Just one paragraph.", 5)
        assert context.related_chunks == []
        assert context.local_context == "Just one paragraph."

    def test_relevance_scoring_disabled(self):
        options = ContextEngineOptions(local_window=60, enable_relevance_scoring=False)
        context = assemble_context(TOMATO_DOC, len(TOMATO_DOC), options=options)
        assert context.related_chunks == []

    @pytest.mark.parametrize("cursor", [0, 200, 700, 2000, 10**6])
    def test_invariants(self, long_article, cursor):
        config = FlintConfig(local_window=300, context_char_budget=600, max_chars_per_chunk=120)
        context = assemble_context(long_article, cursor, config=config)

        assert context.total_chars <= 600
        assert context.total_chars == len(context.local_context) + sum(
            len(c.text) for c in context.related_chunks
        )
        assert len(context.related_chunks) <= config.max_related_sections
        fingerprints = [fingerprint(c.text) for c in context.related_chunks]
        assert len(fingerprints) == len(set(fingerprints))
        assert all(len(c.text) <= 120 for c in context.related_chunks)

    def test_budget_trims_local_window(self):
        config = FlintConfig(local_window=100, context_char_budget=30)
        context = assemble_context("x" * 500, 250, config=config)
        assert len(context.local_context) <= 30
        assert context.total_chars <= 30

    def test_deterministic(self, long_article):
        assert assemble_context(long_article, 500) == assemble_context(long_article, 500)

    def test_records_metrics(self):
        metrics = AssemblyMetrics()
        assemble_context(TOMATO_DOC, len(TOMATO_DOC), config=FlintConfig(local_window=60), metrics=metrics)
        assert metrics.sections_found == 3
        assert metrics.chunks_final == 2
        assert metrics.char_budget == 2250
        assert "local_window" in metrics.phase_times
        assert metrics.total_time > 0

    def test_sections_compressing_to_same_text_are_deduplicated(self):
        care = (
            "Tomato plants need deep watering every morning during summer. "
            "Mulch keeps tomato roots cool. Stake tomato vines early."
        )
        text = (
            f"Xylophone quartet rehearsed loudly. {care}\n\n"
            f"Violin orchestra tuned slowly. {care}\n\n"
            "Tomato watering every morning keeps tomato roots cool."
        )
        config = FlintConfig(local_window=110, max_chars_per_chunk=len(care))

        context = assemble_context(text, len(text), config=config)

        fingerprints = [fingerprint(c.text) for c in context.related_chunks]
        assert len(fingerprints) == len(set(fingerprints))
        [kept] = [c for c in context.related_chunks if c.text == care]
        assert kept.source_offset == 0
