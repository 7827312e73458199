"""
In-memory semantic index.

SemanticMemoryManager keeps memory items keyed by id together with their
embeddings, and answers similarity searches with an optional Jaccard
filter that drops near-verbatim matches.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from flint.core.models import (
    MemoryStats,
    ScoredMemoryItem,
    SemanticMemoryItem,
    SemanticSearchOptions,
)
from flint.semantic.embedder import LocalEmbedder, cosine_similarity
from flint.utils import get_logger, jaccard_similarity

logger = get_logger(__name__)

FIND_SIMILAR_MIN_SCORE = 0.5


def _scored(item: SemanticMemoryItem, score: float, jaccard: Optional[float]) -> ScoredMemoryItem:
    return ScoredMemoryItem(
        id=item.id,
        text=item.text,
        embedding=item.embedding,
        metadata=item.metadata,
        score=score,
        jaccard_score=jaccard,
    )


def _rank(items: List[ScoredMemoryItem], top_k: int) -> List[ScoredMemoryItem]:
    items.sort(key=lambda item: (-item.score, item.id))
    return items[: max(top_k, 0)]


class SemanticMemoryManager:
    """Synchronous semantic memory index backed by a LocalEmbedder."""

    def __init__(self, embedder: Optional[LocalEmbedder] = None):
        self.embedder = embedder or LocalEmbedder()
        self.memories: Dict[str, SemanticMemoryItem] = {}

    def train(self) -> None:
        """Retrain the embedder on every stored text and re-embed all memories."""
        documents = [memory.text for memory in self.memories.values()]
        if not documents:
            return
        self.embedder.train(documents)
        for memory in self.memories.values():
            memory.embedding = self.embedder.embed(memory.text)

    def add_item(self, item: SemanticMemoryItem) -> SemanticMemoryItem:
        """Embed and store ``item``, replacing any memory with the same id."""
        item.embedding = self.embedder.embed(item.text)
        self.memories[item.id] = item
        return item

    def add_memory(
        self, id: str, text: str, metadata: Optional[Dict[str, Any]] = None
    ) -> SemanticMemoryItem:
        return self.add_item(SemanticMemoryItem(id=id, text=text, metadata=metadata))

    def remove_memory(self, id: str) -> bool:
        return self.memories.pop(id, None) is not None

    def get_memory(self, id: str) -> Optional[SemanticMemoryItem]:
        return self.memories.get(id)

    def get_all_memories(self) -> List[SemanticMemoryItem]:
        return list(self.memories.values())

    def clear_memories(self, reset_vocabulary: bool = False) -> None:
        self.memories.clear()
        if reset_vocabulary:
            self.embedder.reset()

    def search(
        self, query: str, options: Optional[SemanticSearchOptions] = None
    ) -> List[ScoredMemoryItem]:
        """
        Search memories by cosine similarity to ``query``.

        Args:
            query: Query text
            options: Search options (top_k, min score, Jaccard ceiling)

        Returns:
            At most ``top_k`` items with unique ids, sorted by score
            descending and then by id
        """
        options = options or SemanticSearchOptions()
        query_embedding = self.embedder.embed(query)

        results = []
        for memory in self.memories.values():
            score = cosine_similarity(query_embedding, memory.embedding)
            if score < options.min_semantic_score:
                continue
            jaccard = None
            if options.enable_jaccard_filter:
                jaccard = jaccard_similarity(query, memory.text)
                if jaccard > options.max_jaccard_score:
                    continue
            results.append(_scored(memory, score, jaccard))

        return _rank(results, options.top_k)

    def find_similar(
        self, id: str, options: Optional[SemanticSearchOptions] = None
    ) -> List[ScoredMemoryItem]:
        """Memories most similar to the memory ``id``, excluding itself."""
        memory = self.memories.get(id)
        if memory is None:
            return []

        options = options or SemanticSearchOptions(min_semantic_score=FIND_SIMILAR_MIN_SCORE)
        results = []
        for other in self.memories.values():
            if other.id == id:
                continue
            score = cosine_similarity(memory.embedding, other.embedding)
            if score >= options.min_semantic_score:
                results.append(_scored(other, score, jaccard_similarity(memory.text, other.text)))

        return _rank(results, options.top_k)

    def get_stats(self) -> MemoryStats:
        return MemoryStats(
            total_memories=len(self.memories),
            vocabulary_size=self.embedder.vocabulary_size,
        )

    def export(self) -> List[SemanticMemoryItem]:
        return list(self.memories.values())

    def import_memories(self, items: Iterable[SemanticMemoryItem]) -> None:
        """
        Replace the index contents with ``items``.

        Items whose embedding does not match the current vocabulary are
        re-embedded.
        """
        self.memories.clear()
        for item in items:
            if len(item.embedding) != self.embedder.vocabulary_size:
                item.embedding = self.embedder.embed(item.text)
            self.memories[item.id] = item


def create_semantic_filter(
    documents: Iterable[Mapping[str, Any]],
    query: str,
    options: Optional[SemanticSearchOptions] = None,
) -> List[ScoredMemoryItem]:
    """
    Rank ad-hoc documents against ``query`` with a throwaway index.

    Args:
        documents: Mappings with ``id``, ``text`` and optional ``metadata``
        query: Text to match against
        options: Search options

    Returns:
        Filtered and ranked documents
    """
    manager = SemanticMemoryManager()
    for doc in documents:
        manager.add_memory(doc["id"], doc["text"], doc.get("metadata"))
    manager.train()
    return manager.search(query, options)
