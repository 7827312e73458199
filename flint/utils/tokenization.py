"""
Tokenization policy shared by the lexical scorer, the compressor and the
local embedder.

Words are lower-cased, split on runs of non-word characters, and filtered
by a minimum length and a small fixed stopword list. The policy is an
object so callers can swap it without touching the scoring code.
"""

import re
from typing import FrozenSet, Iterable, List, Optional, Set

_SPLIT_RE = re.compile(r"[^\w]+", re.UNICODE)

DEFAULT_STOPWORDS: FrozenSet[str] = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
        "had", "her", "was", "one", "our", "out", "has", "his", "how", "its",
        "may", "who", "did", "get", "him", "she", "too", "use", "that", "with",
        "this", "from", "they", "them", "then", "than", "there", "their",
        "have", "been", "were", "will", "would", "could", "should", "into",
        "about", "which", "what", "when", "where", "your", "also", "just",
        "some", "such", "very", "more", "most", "other", "these", "those",
    }
)


class Tokenizer:
    """Word tokenizer with a minimum token length and a stopword set."""

    def __init__(self, min_length: int = 3, stopwords: Optional[Iterable[str]] = None):
        self.min_length = min_length
        self.stopwords: FrozenSet[str] = (
            DEFAULT_STOPWORDS if stopwords is None else frozenset(w.lower() for w in stopwords)
        )

    def tokenize(self, text: str) -> List[str]:
        """Return the ordered list of kept tokens in ``text``."""
        if not text:
            return []
        return [
            word
            for word in _SPLIT_RE.split(text.lower())
            if len(word) >= self.min_length and word not in self.stopwords
        ]

    def token_set(self, text: str) -> Set[str]:
        return set(self.tokenize(text))


DEFAULT_TOKENIZER = Tokenizer()


def jaccard_similarity(a: str, b: str, tokenizer: Optional[Tokenizer] = None) -> float:
    """
    Jaccard similarity of the token sets of two strings.

    Symmetric and bounded to [0, 1]. Identical non-empty strings always
    score 1.0, even when every word is filtered out; otherwise two empty
    token sets score 0.0.
    """
    if a == b and a.strip():
        return 1.0

    tokenizer = tokenizer or DEFAULT_TOKENIZER
    tokens_a = tokenizer.token_set(a)
    tokens_b = tokenizer.token_set(b)
    if not tokens_a or not tokens_b:
        return 0.0

    overlap = len(tokens_a & tokens_b)
    union = len(tokens_a | tokens_b)
    return overlap / union if union else 0.0
