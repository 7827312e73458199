"""
Lexical context assembly.

Runs the five lexical phases (local window, sectioning, relevance,
deduplication, compression) and fits the result into the configured
character budget.
"""

from typing import List, Optional

from flint.core.models import AssembledContext, ContextChunk, ContextEngineOptions, FlintConfig
from flint.phases.phase1_local_window import execute_phase_1, get_local_context
from flint.phases.phase2_sectioning import execute_phase_2
from flint.phases.phase3_relevance import execute_phase_3
from flint.phases.phase4_deduplication import execute_phase_4
from flint.phases.phase5_compression import execute_phase_5
from flint.utils import AssemblyMetrics, PerformanceTracker, get_logger

logger = get_logger(__name__)


def _fit_budget(
    local_text: str, cursor_offset: int, chunks: List[ContextChunk], budget: int
) -> AssembledContext:
    """Drop the lowest-ranked chunks, then trim the local window, until under budget."""
    if len(local_text) > budget:
        trimmed = get_local_context(local_text, cursor_offset, budget)
        logger.debug(f"Local window trimmed from {len(local_text)} to {len(trimmed.text)} chars")
        local_text, cursor_offset = trimmed.text, trimmed.cursor_offset

    kept = list(chunks)
    total = len(local_text) + sum(len(c.text) for c in kept)
    while kept and total > budget:
        dropped = kept.pop()
        total -= len(dropped.text)

    return AssembledContext(
        local_context=local_text,
        related_chunks=kept,
        total_chars=total,
        cursor_offset=cursor_offset,
    )


def assemble_context(
    full_text: str,
    cursor_pos: int,
    options: Optional[ContextEngineOptions] = None,
    config: Optional[FlintConfig] = None,
    metrics: Optional[AssemblyMetrics] = None,
) -> AssembledContext:
    """
    Assemble lexical context for a cursor position.

    Args:
        full_text: Full document text
        cursor_pos: Cursor offset; clamped into the document
        options: Per-call engine options; taken from ``config`` when omitted
        config: Thresholds and budgets; defaults when omitted
        metrics: Optional metrics object filled in place

    Returns:
        AssembledContext whose ``total_chars`` never exceeds the configured
        budget and whose related chunks have unique fingerprints
    """
    config = config or FlintConfig()
    options = options or config.engine_options()
    metrics = metrics if metrics is not None else AssemblyMetrics()
    full_text = full_text or ""
    metrics.cursor_pos = cursor_pos

    with PerformanceTracker(metrics):
        with PerformanceTracker(metrics, "local_window"):
            local = execute_phase_1(full_text, cursor_pos, options.local_window)

        chunks: List[ContextChunk] = []
        if options.enable_relevance_scoring and options.max_related_sections > 0:
            with PerformanceTracker(metrics, "sectioning"):
                sections = execute_phase_2(full_text)
            metrics.sections_found = len(sections)

            with PerformanceTracker(metrics, "relevance"):
                candidates = execute_phase_3(
                    full_text,
                    local.text,
                    sections,
                    max_sections=2 * options.max_related_sections,
                    min_score=config.min_relevance_score,
                    exclude_span=(local.start, local.end),
                )
            metrics.candidates_scored = len(candidates)

            with PerformanceTracker(metrics, "deduplication"):
                chunks = execute_phase_4(candidates, enabled=options.enable_deduplication)
            metrics.chunks_after_dedup = len(chunks)

            with PerformanceTracker(metrics, "compression"):
                chunks = execute_phase_5(chunks, config.max_chars_per_chunk, query=local.text)

            # Distinct sections can compress down to the same sentences
            with PerformanceTracker(metrics, "compressed_deduplication"):
                chunks = execute_phase_4(chunks, enabled=options.enable_deduplication)
            chunks = chunks[: options.max_related_sections]

        with PerformanceTracker(metrics, "budget"):
            context = _fit_budget(local.text, local.cursor_offset, chunks, config.context_char_budget)

    metrics.chunks_final = len(context.related_chunks)
    metrics.local_chars = len(context.local_context)
    metrics.related_chars = sum(len(c.text) for c in context.related_chunks)
    metrics.total_chars = context.total_chars
    metrics.char_budget = config.context_char_budget
    metrics.finalize()
    metrics.log_summary(logger)
    return context
