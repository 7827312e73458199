# flint/phases/phase1_local_window.py

from flint.core.models import LocalContext
from flint.utils import get_logger

logger = get_logger(__name__)


def get_local_context(text: str, cursor_pos: int, window: int = 1500) -> LocalContext:
    """
    Extract the window of text centered on the cursor.

    The slice is ``[cursor - window // 2, cursor + window // 2]`` clamped to
    the document, so it never exceeds ``window`` characters and always
    contains the cursor.

    Args:
        text: Full document text
        cursor_pos: Cursor offset; clamped into ``[0, len(text)]``
        window: Total window size in characters

    Returns:
        LocalContext with the window text, its absolute start and the cursor
        offset inside it
    """
    cursor = min(max(cursor_pos, 0), len(text))
    half = max(window, 0) // 2
    start = max(0, cursor - half)
    end = min(len(text), cursor + half)
    return LocalContext(text=text[start:end], cursor_offset=cursor - start, start=start)


def execute_phase_1(text: str, cursor_pos: int, window: int) -> LocalContext:
    """Phase 1: Local window around the cursor."""
    local = get_local_context(text, cursor_pos, window)
    logger.debug(
        f"Phase 1: local window [{local.start}, {local.end}) with cursor at {local.cursor_offset}"
    )
    return local
