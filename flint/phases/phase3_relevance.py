# flint/phases/phase3_relevance.py

from typing import List, Optional, Sequence, Tuple

from flint.core.models import ContextChunk, Section
from flint.phases.phase2_sectioning import split_into_sections
from flint.utils import DEFAULT_TOKENIZER, Tokenizer, get_logger, jaccard_similarity

logger = get_logger(__name__)


def keyword_overlap_score(a: str, b: str, tokenizer: Optional[Tokenizer] = None) -> float:
    """
    Lexical relevance of two strings: Jaccard similarity of their keyword sets.

    Symmetric, within [0, 1], and 1.0 for identical non-empty strings.
    """
    return jaccard_similarity(a, b, tokenizer or DEFAULT_TOKENIZER)


def _inside_span(section: Section, span: Optional[Tuple[int, int]]) -> bool:
    if span is None:
        return False
    return section.offset >= span[0] and section.end <= span[1]


def get_relevant_sections(
    text: str,
    query: str,
    max_sections: int = 3,
    min_score: float = 0.05,
    exclude_span: Optional[Tuple[int, int]] = None,
    sections: Optional[Sequence[Section]] = None,
) -> List[ContextChunk]:
    """
    Score every section of the document against the query.

    Args:
        text: Full document text
        query: Text to score against, usually the local window
        max_sections: Maximum number of sections returned
        min_score: Sections scoring below this are dropped
        exclude_span: ``(start, end)`` document span; sections lying entirely
            inside it are skipped
        sections: Pre-split sections of ``text``, to avoid splitting twice

    Returns:
        Chunks sorted by score descending, then by offset ascending
    """
    if max_sections <= 0:
        return []
    if sections is None:
        sections = split_into_sections(text)

    scored: List[ContextChunk] = []
    for section in sections:
        if _inside_span(section, exclude_span):
            continue
        score = keyword_overlap_score(section.text, query)
        if score < min_score:
            continue
        scored.append(ContextChunk(text=section.text, source_offset=section.offset, score=score))

    scored.sort(key=lambda c: (-c.score, c.source_offset))
    return scored[:max_sections]


def execute_phase_3(
    text: str,
    query: str,
    sections: Sequence[Section],
    max_sections: int,
    min_score: float,
    exclude_span: Optional[Tuple[int, int]] = None,
) -> List[ContextChunk]:
    """Phase 3: Relevance scoring against the local window."""
    chunks = get_relevant_sections(
        text,
        query,
        max_sections=max_sections,
        min_score=min_score,
        exclude_span=exclude_span,
        sections=sections,
    )
    logger.debug(f"Phase 3: {len(chunks)} of {len(sections)} sections passed min score {min_score}")
    return chunks
