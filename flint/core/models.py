# flint/core/models.py

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class DocumentKind(str, Enum):
    EMAIL = "email"
    LETTER = "letter"
    ARTICLE = "article"
    LIST = "list"
    CODE = "code"
    GENERAL = "general"


class ListStyle(str, Enum):
    NONE = "none"
    BULLET = "bullet"
    NUMBERED = "numbered"


@dataclass(frozen=True)
class DocumentType:
    """Classification of a whole document."""

    kind: DocumentKind
    confidence: float  # 0-1
    indicators: List[str] = field(default_factory=list)  # patterns that were detected


@dataclass(frozen=True)
class CursorContext:
    """Structural position of the cursor inside a document."""

    is_in_subject_line: bool = False
    is_in_heading: bool = False
    is_in_list: bool = False
    is_in_code_block: bool = False
    is_after_salutation: bool = False
    is_before_signature: bool = False
    list_style: ListStyle = ListStyle.NONE
    indent_level: int = 0
    nearest_heading: Optional[str] = None

    @property
    def has_structure(self) -> bool:
        return any(
            (
                self.is_in_subject_line,
                self.is_in_heading,
                self.is_in_list,
                self.is_in_code_block,
                self.is_after_salutation,
                self.is_before_signature,
            )
        )


@dataclass(frozen=True)
class LocalContext:
    """The contiguous window around the cursor."""

    text: str
    cursor_offset: int  # cursor position inside ``text``
    start: int  # absolute offset of ``text`` in the document

    @property
    def end(self) -> int:
        return self.start + len(self.text)


@dataclass(frozen=True)
class Section:
    """A paragraph or fenced code block of the document."""

    text: str
    offset: int
    is_code: bool = False

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


@dataclass
class ContextChunk:
    """A scored section flowing through the lexical pipeline."""

    text: str
    source_offset: int
    score: float = 0.0

    def __repr__(self):
        return (
            f"Chunk(offset={self.source_offset}, score={self.score:.3f}, "
            f"text='{self.text[:30]}...')"
        )


@dataclass
class AssembledContext:
    """Local window plus the related sections selected for a prompt."""

    local_context: str
    related_chunks: List[ContextChunk] = field(default_factory=list)
    total_chars: int = 0
    cursor_offset: int = 0

    @property
    def related_sections(self) -> List[str]:
        return [chunk.text for chunk in self.related_chunks]


@dataclass
class SemanticMemoryItem:
    id: str
    text: str
    embedding: List[float] = field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class PersistentSemanticMemory(SemanticMemoryItem):
    """Memory item plus the bookkeeping mirrored into the durable store."""

    created_at: float = 0.0
    last_accessed_at: float = 0.0
    access_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "text": self.text,
            "embedding": list(self.embedding),
            "metadata": self.metadata,
            "created_at": self.created_at,
            "last_accessed_at": self.last_accessed_at,
            "access_count": self.access_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersistentSemanticMemory":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            text=data["text"],
            embedding=list(data.get("embedding") or []),
            metadata=data.get("metadata"),
            created_at=float(data.get("created_at", 0.0)),
            last_accessed_at=float(data.get("last_accessed_at", 0.0)),
            access_count=int(data.get("access_count", 0)),
        )


@dataclass
class ScoredMemoryItem(SemanticMemoryItem):
    score: float = 0.0
    jaccard_score: Optional[float] = None


@dataclass(frozen=True)
class MemoryStats:
    total_memories: int
    vocabulary_size: int


@dataclass
class ContextEngineOptions:
    """Per-call options of the lexical context engine."""

    local_window: int = 1500  # characters around the cursor, in total
    max_related_sections: int = 3
    enable_relevance_scoring: bool = True
    enable_deduplication: bool = True


@dataclass
class SemanticSearchOptions:
    top_k: int = 10
    min_semantic_score: float = 0.0
    max_jaccard_score: float = 0.8  # drop near-verbatim duplicates above this
    enable_jaccard_filter: bool = True


@dataclass
class PromptPayload:
    """Everything handed to the generative backend for one request."""

    prompt: str
    context: str
    instructions: str = ""
    notes: List[str] = field(default_factory=list)
    total_chars: int = 0
    degraded: bool = False
    metrics: Optional[Any] = None


class FlintConfig:
    """Tunable parameters for context assembly and semantic memory."""

    def __init__(
        self,
        local_window: int = 1500,  # lexical: characters kept around the cursor
        max_related_sections: int = 3,
        enable_relevance_scoring: bool = True,
        enable_deduplication: bool = True,
        min_relevance_score: float = 0.05,  # sections scoring below are dropped
        fingerprint_length: int = 60,
        max_chars_per_chunk: int = 250,
        context_char_budget: int = 2250,  # cap on AssembledContext.total_chars
        max_prompt_chars: int = 3000,  # cap on the whole prompt payload
        max_memories: int = 1000,  # semantic: capacity before eviction
        eviction_fraction: float = 0.2,
        retrain_interval: int = 10,  # retrain the embedder every N inserts
        semantic_top_k: int = 3,  # pinned notes kept after filtering
        semantic_min_score: float = 0.1,
        notes_max_jaccard: float = 0.9,
        generation_timeout: float = 30.0,  # seconds
        availability_ttl: float = 60.0,  # seconds
    ):
        self.local_window = local_window
        self.max_related_sections = max_related_sections
        self.enable_relevance_scoring = enable_relevance_scoring
        self.enable_deduplication = enable_deduplication
        self.min_relevance_score = min_relevance_score
        self.fingerprint_length = fingerprint_length
        self.max_chars_per_chunk = max_chars_per_chunk
        self.context_char_budget = context_char_budget
        self.max_prompt_chars = max_prompt_chars
        self.max_memories = max_memories
        self.eviction_fraction = eviction_fraction
        self.retrain_interval = retrain_interval
        self.semantic_top_k = semantic_top_k
        self.semantic_min_score = semantic_min_score
        self.notes_max_jaccard = notes_max_jaccard
        self.generation_timeout = generation_timeout
        self.availability_ttl = availability_ttl

    def engine_options(self) -> ContextEngineOptions:
        """The lexical-engine subset of this config."""
        return ContextEngineOptions(
            local_window=self.local_window,
            max_related_sections=self.max_related_sections,
            enable_relevance_scoring=self.enable_relevance_scoring,
            enable_deduplication=self.enable_deduplication,
        )

    def to_dict(self) -> Dict[str, Any]:
        return dict(vars(self))

    def __eq__(self, other):
        return isinstance(other, FlintConfig) and vars(self) == vars(other)

    def __repr__(self):
        return f"FlintConfig({', '.join(f'{k}={v!r}' for k, v in vars(self).items())})"

