"""Collaborator adapters: memory store, generative backend and prompts"""

from flint.services.generation import (
    Availability,
    AvailabilityCache,
    CapabilityProvider,
    MockCapabilityProvider,
    generate_with_timeout,
)
from flint.services.memory_store import InMemoryMemoryStore, JsonFileMemoryStore, MemoryStore
from flint.services.prompts import (
    build_generate_prompt,
    build_insert_prompt,
    build_rewrite_prompt,
    build_standalone_prompt,
)

__all__ = [
    "Availability",
    "AvailabilityCache",
    "CapabilityProvider",
    "MockCapabilityProvider",
    "generate_with_timeout",
    "MemoryStore",
    "InMemoryMemoryStore",
    "JsonFileMemoryStore",
    "build_generate_prompt",
    "build_insert_prompt",
    "build_rewrite_prompt",
    "build_standalone_prompt",
]
