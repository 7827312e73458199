# flint/phases/phase5_compression.py

import re
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Set

from flint.core.models import AssembledContext, ContextChunk
from flint.phases.phase1_local_window import get_local_context
from flint.utils import DEFAULT_TOKENIZER, Tokenizer, get_logger

logger = get_logger(__name__)

ELLIPSIS = "..."
_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")

START_PLACEHOLDER = "[Start of document]"
END_PLACEHOLDER = "[End of document]"
RELATED_HEADER = "RELATED SECTIONS FROM DOCUMENT (for context and consistency):"


def split_sentences(text: str) -> List[str]:
    """Split text into sentences on terminal punctuation."""
    return [s.strip() for s in _SENTENCE_RE.findall(text) if s.strip()]


def truncate_at_word(text: str, max_chars: int) -> str:
    """
    Cut ``text`` to at most ``max_chars`` characters at a word boundary,
    marking the cut with "...".
    """
    if len(text) <= max_chars:
        return text
    if max_chars <= len(ELLIPSIS):
        return text[:max_chars]

    head = text[: max_chars - len(ELLIPSIS)]
    if not text[len(head)].isspace():
        boundary = head.rfind(" ")
        if boundary > 0:
            head = head[:boundary]
    return head.rstrip() + ELLIPSIS


class CompressionPolicy(ABC):
    """Decides which sentences of an over-long chunk are worth keeping."""

    @abstractmethod
    def rank(self, sentences: Sequence[str], keywords: Set[str]) -> List[int]:
        """Return sentence indices, most valuable first."""


class KeywordDensityPolicy(CompressionPolicy):
    """Rank by keyword density, then by length (longer first), then position."""

    def __init__(self, tokenizer: Optional[Tokenizer] = None):
        self.tokenizer = tokenizer or DEFAULT_TOKENIZER

    def density(self, sentence: str, keywords: Set[str]) -> float:
        words = sentence.split()
        if not words or not keywords:
            return 0.0
        hits = sum(1 for token in self.tokenizer.tokenize(sentence) if token in keywords)
        return hits / len(words)

    def rank(self, sentences: Sequence[str], keywords: Set[str]) -> List[int]:
        return sorted(
            range(len(sentences)),
            key=lambda i: (-self.density(sentences[i], keywords), -len(sentences[i]), i),
        )


DEFAULT_POLICY = KeywordDensityPolicy()


def compress_text(
    text: str,
    max_chars: int,
    policy: Optional[CompressionPolicy] = None,
    keywords: Optional[Set[str]] = None,
) -> str:
    """
    Shorten ``text`` to at most ``max_chars`` characters.

    Sentences are picked greedily in the order the policy ranks them and
    emitted in their original order. When not even the best sentence fits,
    it is cut at a word boundary instead.
    """
    if len(text) <= max_chars:
        return text

    policy = policy or DEFAULT_POLICY
    sentences = split_sentences(text)
    if keywords is None:
        keywords = DEFAULT_TOKENIZER.token_set(text)

    ranked = policy.rank(sentences, keywords)
    chosen: List[int] = []
    used = 0
    for index in ranked:
        cost = len(sentences[index]) + (1 if chosen else 0)
        if used + cost <= max_chars:
            chosen.append(index)
            used += cost

    if not chosen:
        best = sentences[ranked[0]] if ranked else text
        return truncate_at_word(best, max_chars)

    return " ".join(sentences[i] for i in sorted(chosen))


def compress_chunks(
    chunks: List[ContextChunk],
    max_chars: int = 250,
    policy: Optional[CompressionPolicy] = None,
    query: Optional[str] = None,
) -> List[ContextChunk]:
    """
    Compress every chunk to at most ``max_chars`` characters.

    Args:
        chunks: Chunks to compress; order, offsets and scores are kept
        max_chars: Per-chunk character limit
        policy: Sentence ranking policy, KeywordDensityPolicy by default
        query: Text whose keywords drive the density ranking; each chunk's
            own keywords are used when omitted

    Returns:
        New chunk list with compressed text
    """
    keywords = DEFAULT_TOKENIZER.token_set(query) if query else None
    compressed = []
    for chunk in chunks:
        text = compress_text(chunk.text, max_chars, policy, keywords)
        compressed.append(ContextChunk(text=text, source_offset=chunk.source_offset, score=chunk.score))
    return compressed


def _cursor_hint(before: str, after: str) -> str:
    last_words = " ".join(before.split()[-5:])
    next_words = " ".join(after.split()[:5])
    if last_words and next_words:
        return (
            "Note: The cursor is between existing text. Generate new sentences that "
            "continue naturally from the context above."
        )
    if last_words:
        return f'CURSOR AT END: Your text will continue after "...{last_words}"'
    if next_words:
        return f'CURSOR AT START: Your text will come before "{next_words}..."'
    return ""


def _render(local: str, cursor_offset: int, related: Sequence[str]) -> str:
    parts = []
    if local.strip():
        before = local[:cursor_offset]
        after = local[cursor_offset:]
        parts.append(f"CONTEXT BEFORE CURSOR:\n{before or START_PLACEHOLDER}")
        parts.append(f"CONTEXT AFTER CURSOR:\n{after or END_PLACEHOLDER}")
        hint = _cursor_hint(before, after)
        if hint:
            parts.append(hint)

    if related:
        lines = [RELATED_HEADER]
        lines.extend(f"{i}. {section.strip()}" for i, section in enumerate(related, 1))
        parts.append("\n\n".join(lines))

    return "\n\n".join(parts).strip()


def format_context_for_prompt(
    context: AssembledContext, include_related: bool = True, max_chars: Optional[int] = None
) -> str:
    """
    Render assembled context as prompt text.

    The local window is split at the cursor into before/after blocks, with a
    hint about where the cursor sits, followed by numbered related sections.
    With ``max_chars`` set, related sections are dropped from the end first,
    then the local window is trimmed around the cursor.
    """
    related = list(context.related_sections) if include_related else []
    local = context.local_context
    cursor = min(max(context.cursor_offset, 0), len(local))

    formatted = _render(local, cursor, related)
    if max_chars is None or len(formatted) <= max_chars:
        return formatted

    while related and len(formatted) > max_chars:
        related.pop()
        formatted = _render(local, cursor, related)

    while len(formatted) > max_chars and local:
        excess = len(formatted) - max_chars
        trimmed = get_local_context(local, cursor, max(len(local) - excess - 1, 0))
        if len(trimmed.text) >= len(local):
            break
        local, cursor = trimmed.text, trimmed.cursor_offset
        formatted = _render(local, cursor, related)

    if len(formatted) > max_chars:
        logger.debug(f"Hard-truncating formatted context to {max_chars} chars")
        formatted = formatted[:max_chars]
    return formatted


def execute_phase_5(
    chunks: List[ContextChunk],
    max_chars_per_chunk: int,
    query: Optional[str] = None,
    policy: Optional[CompressionPolicy] = None,
) -> List[ContextChunk]:
    """Phase 5: Per-chunk compression."""
    compressed = compress_chunks(chunks, max_chars=max_chars_per_chunk, policy=policy, query=query)
    saved = sum(len(c.text) for c in chunks) - sum(len(c.text) for c in compressed)
    if saved:
        logger.debug(f"Phase 5: compression saved {saved} chars")
    return compressed
