"""
Local TF-IDF embedder.

Fully offline: the vocabulary and inverse document frequencies are learned
from the memories themselves. Vectors are L2-normalized, so the cosine
similarity of two embeddings is their dot product.
"""

import math
from collections import Counter
from typing import Dict, Iterable, List, Optional

import numpy as np

from flint.utils import DEFAULT_TOKENIZER, Tokenizer, get_logger, jaccard_similarity

logger = get_logger(__name__)

__all__ = ["LocalEmbedder", "cosine_similarity", "jaccard_similarity"]


class LocalEmbedder:
    """TF-IDF embedder over a vocabulary fixed between ``train`` calls."""

    def __init__(self, tokenizer: Optional[Tokenizer] = None):
        self.tokenizer = tokenizer or DEFAULT_TOKENIZER
        self.vocabulary: Dict[str, int] = {}
        self.idf: np.ndarray = np.zeros(0)
        self.document_count = 0

    @property
    def vocabulary_size(self) -> int:
        return len(self.vocabulary)

    @property
    def is_trained(self) -> bool:
        return bool(self.vocabulary)

    def train(self, documents: Iterable[str]) -> None:
        """
        Rebuild the vocabulary and IDF table from ``documents``.

        IDF is smoothed as ``ln((1 + N) / (1 + df)) + 1`` so terms present
        in every document still carry weight.
        """
        documents = list(documents)
        doc_freq: Counter = Counter()
        for doc in documents:
            doc_freq.update(self.tokenizer.token_set(doc))

        terms = sorted(doc_freq)
        n = len(documents)
        self.vocabulary = {term: i for i, term in enumerate(terms)}
        self.idf = np.array(
            [math.log((1 + n) / (1 + doc_freq[term])) + 1 for term in terms], dtype=float
        )
        self.document_count = n
        logger.debug(f"Trained embedder on {n} documents, vocabulary size {len(terms)}")

    def reset(self) -> None:
        """Forget the vocabulary."""
        self.vocabulary = {}
        self.idf = np.zeros(0)
        self.document_count = 0

    def embed(self, text: str) -> List[float]:
        """
        Embed ``text`` as an L2-normalized TF-IDF vector.

        Terms outside the vocabulary are ignored; text with no known terms
        yields the zero vector.
        """
        vector = np.zeros(len(self.vocabulary), dtype=float)
        tokens = self.tokenizer.tokenize(text)
        if not tokens or not self.vocabulary:
            return vector.tolist()

        for term, count in Counter(tokens).items():
            index = self.vocabulary.get(term)
            if index is not None:
                vector[index] = (count / len(tokens)) * self.idf[index]

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        return vector.tolist()

    def embed_batch(self, texts: Iterable[str]) -> List[List[float]]:
        return [self.embed(text) for text in texts]


def cosine_similarity(a: List[float], b: List[float]) -> float:
    """
    Cosine similarity of two vectors.

    Raises:
        ValueError: if the vectors have different dimensions

    Returns 0.0 when either vector is all zeros.
    """
    if len(a) != len(b):
        raise ValueError(f"Vector dimensions differ: {len(a)} != {len(b)}")

    v1 = np.asarray(a, dtype=float)
    v2 = np.asarray(b, dtype=float)
    norm1 = np.linalg.norm(v1)
    norm2 = np.linalg.norm(v2)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    similarity = float(np.dot(v1, v2) / (norm1 * norm2))
    return max(-1.0, min(1.0, similarity))
