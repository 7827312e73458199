"""Flint lexical context phases"""

from flint.phases.phase1_local_window import execute_phase_1, get_local_context
from flint.phases.phase2_sectioning import execute_phase_2, split_into_sections
from flint.phases.phase3_relevance import (
    execute_phase_3,
    get_relevant_sections,
    keyword_overlap_score,
)
from flint.phases.phase4_deduplication import execute_phase_4, fingerprint, remove_duplicates
from flint.phases.phase5_compression import (
    CompressionPolicy,
    KeywordDensityPolicy,
    compress_chunks,
    execute_phase_5,
    format_context_for_prompt,
)

__all__ = [
    "execute_phase_1",
    "execute_phase_2",
    "execute_phase_3",
    "execute_phase_4",
    "execute_phase_5",
    "get_local_context",
    "split_into_sections",
    "get_relevant_sections",
    "keyword_overlap_score",
    "fingerprint",
    "remove_duplicates",
    "CompressionPolicy",
    "KeywordDensityPolicy",
    "compress_chunks",
    "format_context_for_prompt",
]
