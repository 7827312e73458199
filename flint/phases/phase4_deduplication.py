# flint/phases/phase4_deduplication.py

from typing import Dict, List

from flint.core.models import ContextChunk
from flint.utils import get_logger

logger = get_logger(__name__)

FINGERPRINT_LENGTH = 60


def fingerprint(text: str, length: int = FINGERPRINT_LENGTH) -> str:
    """Whitespace-collapsed, lower-cased prefix of ``text``."""
    return " ".join(text.lower().split())[:length]


def remove_duplicates(chunks: List[ContextChunk], length: int = FINGERPRINT_LENGTH) -> List[ContextChunk]:
    """
    Collapse chunks that share a fingerprint.

    The highest-scoring chunk of each group is kept; ties go to the earlier
    offset. Output is ordered by score descending, then offset ascending, so
    applying this twice changes nothing.
    """
    best: Dict[str, ContextChunk] = {}
    for chunk in chunks:
        key = fingerprint(chunk.text, length)
        current = best.get(key)
        if current is None or (chunk.score, -chunk.source_offset) > (
            current.score,
            -current.source_offset,
        ):
            best[key] = chunk

    unique = sorted(best.values(), key=lambda c: (-c.score, c.source_offset))
    if len(unique) < len(chunks):
        logger.debug(f"Removed {len(chunks) - len(unique)} duplicate chunks")
    return unique


def execute_phase_4(chunks: List[ContextChunk], enabled: bool = True) -> List[ContextChunk]:
    """Phase 4: Deduplication by fingerprint."""
    if not enabled:
        return list(chunks)
    return remove_duplicates(chunks)
