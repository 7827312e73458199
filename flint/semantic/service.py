"""
Persistent semantic memory service.

Owns a SemanticMemoryManager and mirrors it into a MemoryStore. The
in-memory index is the source of truth during a session; the store is
loaded once at initialization and written through afterwards. Store write
failures are logged and ignored.
"""

import asyncio
import math
import time
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from flint.core.errors import SemanticUnavailableError, StoreUnavailableError
from flint.core.models import (
    FlintConfig,
    MemoryStats,
    PersistentSemanticMemory,
    ScoredMemoryItem,
    SemanticSearchOptions,
)
from flint.semantic.embedder import LocalEmbedder
from flint.semantic.memory_manager import SemanticMemoryManager, create_semantic_filter
from flint.services.memory_store import InMemoryMemoryStore, MemoryStore
from flint.utils import get_logger

logger = get_logger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class SemanticMemoryService:
    """
    Capacity-bounded semantic memory with durable write-through.

    Writers (add, remove, clear, initialize) are serialized by a single
    asyncio lock. Searches read the index without taking it.
    """

    def __init__(
        self,
        store: Optional[MemoryStore] = None,
        config: Optional[FlintConfig] = None,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = _new_id,
    ):
        """
        Args:
            store: Durable collaborator; an InMemoryMemoryStore when omitted
            config: Capacity, eviction and retraining parameters
            clock: Returns the current time in seconds
            id_factory: Returns a fresh memory id
        """
        self.store = store if store is not None else InMemoryMemoryStore()
        self.config = config or FlintConfig()
        self.clock = clock
        self.id_factory = id_factory

        self.manager = SemanticMemoryManager(LocalEmbedder())
        self.semantic_available = True
        self._initialized = False
        self._inserts_since_train = 0
        self._write_lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Load memories from the store and train the embedder.

        Runs once; later calls return immediately.

        Raises:
            StoreUnavailableError: if the store cannot be read. The service is
                still usable afterwards, with an empty index.
        """
        async with self._write_lock:
            if self._initialized:
                return

            logger.info("Initializing semantic memory...")
            self.manager = SemanticMemoryManager(LocalEmbedder())
            self._initialized = True

            try:
                memories = await self.store.get_all()
            except Exception as e:
                logger.error("Failed to load memories, starting empty", error=e)
                raise StoreUnavailableError(f"Could not load memories: {e}") from e

            logger.info(f"Loaded {len(memories)} memories from storage")
            if memories:
                self.manager.import_memories(memories)
                self._train()
            logger.success("Semantic memory initialization complete")

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        try:
            await self.initialize()
        except StoreUnavailableError:
            logger.warn("Continuing with an empty semantic memory")

    def _train(self) -> None:
        try:
            self.manager.train()
        except Exception as e:
            self.semantic_available = False
            logger.error("Embedder training failed, semantic filtering disabled", error=e)
            return
        self.semantic_available = True
        self._inserts_since_train = 0

    async def _store_call(self, action: str, coro) -> Any:
        try:
            return await coro
        except Exception as e:
            logger.error(f"Memory store {action} failed", error=e)
            return None

    async def _evict(self) -> int:
        """Remove the least recently accessed share of memories."""
        memories = sorted(
            self.manager.get_all_memories(),
            key=lambda m: (m.last_accessed_at, m.created_at, m.id),
        )
        count = max(1, math.ceil(len(memories) * self.config.eviction_fraction))
        await self.drain()
        for memory in memories[:count]:
            self.manager.remove_memory(memory.id)
            await self._store_call("delete", self.store.delete(memory.id))
        logger.info(f"Evicted {count} least recently used memories")
        return count

    async def add_memory(
        self, text: str, metadata: Optional[Dict[str, Any]] = None
    ) -> PersistentSemanticMemory:
        """
        Remember ``text``.

        At capacity, the oldest memories by last access are evicted before
        the new one is inserted.

        Returns:
            The stored memory
        """
        await self._ensure_initialized()
        async with self._write_lock:
            if len(self.manager.memories) >= self.config.max_memories:
                await self._evict()

            now = self.clock()
            memory = PersistentSemanticMemory(
                id=self.id_factory(),
                text=text,
                metadata=metadata,
                created_at=now,
                last_accessed_at=now,
                access_count=0,
            )
            try:
                self.manager.add_item(memory)
            except Exception as e:
                # Keep the memory; it is re-embedded on the next training
                self.manager.memories[memory.id] = memory
                self.semantic_available = False
                logger.error("Embedding failed, semantic filtering disabled", error=e)

            await self._store_call("put", self.store.put(memory))

            self._inserts_since_train += 1
            if (
                not self.manager.embedder.is_trained
                or self._inserts_since_train >= self.config.retrain_interval
            ):
                self._train()

            return memory

    async def _persist_access(self, memory: PersistentSemanticMemory) -> None:
        # Removed or evicted since the search; writing it would resurrect it
        if memory.id not in self.manager.memories:
            return
        await self._store_call("access update", self.store.put(memory))

    def _touch(self, results: List[ScoredMemoryItem]) -> None:
        now = self.clock()
        for result in results:
            memory = self.manager.get_memory(result.id)
            if memory is None:
                continue
            memory.last_accessed_at = now
            memory.access_count += 1
            task = asyncio.ensure_future(self._persist_access(memory))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def search(
        self, query: str, options: Optional[SemanticSearchOptions] = None
    ) -> List[ScoredMemoryItem]:
        """
        Search stored memories.

        Access statistics of returned memories are updated immediately in
        memory and persisted in the background; see ``drain``.

        Raises:
            SemanticUnavailableError: if training or embedding has failed
        """
        await self._ensure_initialized()
        if not self.semantic_available:
            raise SemanticUnavailableError("Semantic search is unavailable")

        try:
            results = self.manager.search(query, options)
        except Exception as e:
            logger.error("Semantic search failed", error=e)
            raise SemanticUnavailableError(f"Semantic search failed: {e}") from e

        self._touch(results)
        return results

    async def drain(self) -> None:
        """
        Wait for pending background access-statistics writes.

        Writers call this before deleting, so a late access write can never
        bring a removed memory back into the store.
        """
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def remove_memory(self, memory_id: str) -> bool:
        await self._ensure_initialized()
        async with self._write_lock:
            await self.drain()
            removed = self.manager.remove_memory(memory_id)
            await self._store_call("delete", self.store.delete(memory_id))
            return removed

    async def clear_all_memories(self) -> None:
        """Forget every memory and the learned vocabulary."""
        await self._ensure_initialized()
        async with self._write_lock:
            await self.drain()
            self.manager.clear_memories(reset_vocabulary=True)
            self._inserts_since_train = 0
            self.semantic_available = True
            await self._store_call("clear", self.store.clear())
            logger.info("Cleared all semantic memories")

    async def get_stats(self) -> MemoryStats:
        await self._ensure_initialized()
        return self.manager.get_stats()

    async def filter_for_ai(
        self,
        documents: Iterable[Mapping[str, Any]],
        query: str,
        options: Optional[SemanticSearchOptions] = None,
    ) -> List[ScoredMemoryItem]:
        """
        Rank ad-hoc documents against ``query`` in a throwaway index.

        Args:
            documents: Mappings with ``id``, ``text`` and optional ``metadata``
            query: Context to match against
            options: Search options; defaults to top 10, min score 0.1,
                Jaccard ceiling 0.8

        Raises:
            SemanticUnavailableError: if the throwaway index cannot be built
        """
        await self._ensure_initialized()
        options = options or SemanticSearchOptions(
            top_k=10, min_semantic_score=0.1, max_jaccard_score=0.8
        )
        try:
            return create_semantic_filter(documents, query, options)
        except Exception as e:
            logger.error("Semantic filtering failed", error=e)
            raise SemanticUnavailableError(f"Semantic filtering failed: {e}") from e

    async def _filter_keeping(
        self,
        items: Iterable[Mapping[str, Any]],
        field: str,
        query: str,
        options: SemanticSearchOptions,
    ) -> List[ScoredMemoryItem]:
        documents = [
            {"id": item["id"], "text": item["text"], "metadata": {field: item.get(field)}}
            for item in items
        ]
        if not documents:
            return []
        return await self.filter_for_ai(documents, query, options)

    async def filter_document_sections(
        self,
        sections: Iterable[Mapping[str, Any]],
        query: str,
        options: Optional[SemanticSearchOptions] = None,
    ) -> List[ScoredMemoryItem]:
        """
        Keep the document sections most relevant to ``query``.

        Args:
            sections: Mappings with ``id``, ``text`` and optional ``heading``;
                the heading is returned under ``metadata["heading"]``
            query: Current query or context
            options: Defaults to top 5, min score 0.15, Jaccard ceiling 0.85
        """
        options = options or SemanticSearchOptions(
            top_k=5, min_semantic_score=0.15, max_jaccard_score=0.85
        )
        return await self._filter_keeping(sections, "heading", query, options)

    async def filter_history(
        self,
        history: Iterable[Mapping[str, Any]],
        query: str,
        options: Optional[SemanticSearchOptions] = None,
    ) -> List[ScoredMemoryItem]:
        """
        Keep the history entries most relevant to ``query``.

        Entries are mappings with ``id``, ``text`` and optional ``type``,
        returned under ``metadata["type"]``. Defaults to top 5, min score 0.2,
        Jaccard ceiling 0.8.
        """
        options = options or SemanticSearchOptions(
            top_k=5, min_semantic_score=0.2, max_jaccard_score=0.8
        )
        return await self._filter_keeping(history, "type", query, options)
