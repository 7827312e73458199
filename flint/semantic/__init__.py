"""Local semantic memory: TF-IDF embedder, index and persistent service"""

from flint.semantic.embedder import LocalEmbedder, cosine_similarity, jaccard_similarity
from flint.semantic.memory_manager import SemanticMemoryManager, create_semantic_filter
from flint.semantic.service import SemanticMemoryService

__all__ = [
    "LocalEmbedder",
    "cosine_similarity",
    "jaccard_similarity",
    "SemanticMemoryManager",
    "create_semantic_filter",
    "SemanticMemoryService",
]
