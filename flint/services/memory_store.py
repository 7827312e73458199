"""
Durable storage for semantic memories.

Provides an abstract async interface and two implementations: an in-memory
dict for tests and development, and a single JSON file for persistence.
"""

import asyncio
import json
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from flint.core.models import PersistentSemanticMemory
from flint.utils import get_logger

logger = get_logger(__name__)


class MemoryStore(ABC):
    """Abstract base class for memory storage implementations."""

    @abstractmethod
    async def get_all(self) -> List[PersistentSemanticMemory]:
        """
        Load every stored memory.

        Raises:
            Exception: when the backing storage cannot be read
        """

    @abstractmethod
    async def put(self, memory: PersistentSemanticMemory) -> None:
        """Insert or replace a memory by id."""

    @abstractmethod
    async def delete(self, memory_id: str) -> bool:
        """
        Delete a memory.

        Returns:
            True if deleted, False if not found
        """

    @abstractmethod
    async def clear(self) -> None:
        """Delete every memory."""


class InMemoryMemoryStore(MemoryStore):
    """In-memory implementation - good for testing and development."""

    def __init__(self, memories: Optional[List[PersistentSemanticMemory]] = None):
        self.store: Dict[str, Dict] = {}
        for memory in memories or []:
            self.store[memory.id] = memory.to_dict()

    async def get_all(self) -> List[PersistentSemanticMemory]:
        return [PersistentSemanticMemory.from_dict(data) for data in self.store.values()]

    async def put(self, memory: PersistentSemanticMemory) -> None:
        # Stored as a dict so later mutation of the live object is not visible
        self.store[memory.id] = memory.to_dict()

    async def delete(self, memory_id: str) -> bool:
        return self.store.pop(memory_id, None) is not None

    async def clear(self) -> None:
        self.store.clear()


class JsonFileMemoryStore(MemoryStore):
    """File-based implementation keeping all memories in one JSON document."""

    def __init__(self, path: Union[str, Path] = "data/semantic_memories.json"):
        """
        Args:
            path: JSON file holding the memories; created on first write
        """
        self.path = Path(path)
        self._records: Optional[Dict[str, Dict]] = None
        self._write_lock = threading.Lock()
        self._version = 0
        self._written_version = 0

    def _read(self) -> Dict[str, Dict]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        records = data.get("memories", []) if isinstance(data, dict) else data
        return {record["id"]: record for record in records}

    def _snapshot(self) -> Tuple[int, Dict]:
        self._version += 1
        return self._version, {"memories": list((self._records or {}).values())}

    def _write(self, snapshot: Tuple[int, Dict]) -> None:
        version, payload = snapshot
        with self._write_lock:
            # A newer snapshot already reached the disk
            if version < self._written_version:
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
            self._written_version = version

    async def _ensure_loaded(self) -> Dict[str, Dict]:
        if self._records is None:
            self._records = await asyncio.to_thread(self._read)
        return self._records

    async def get_all(self) -> List[PersistentSemanticMemory]:
        records = await self._ensure_loaded()
        return [PersistentSemanticMemory.from_dict(record) for record in records.values()]

    async def put(self, memory: PersistentSemanticMemory) -> None:
        records = await self._ensure_loaded()
        records[memory.id] = memory.to_dict()
        await asyncio.to_thread(self._write, self._snapshot())

    async def delete(self, memory_id: str) -> bool:
        records = await self._ensure_loaded()
        if records.pop(memory_id, None) is None:
            return False
        await asyncio.to_thread(self._write, self._snapshot())
        return True

    async def clear(self) -> None:
        self._records = {}
        await asyncio.to_thread(self._write, self._snapshot())
        logger.debug(f"Cleared memory file {self.path}")
