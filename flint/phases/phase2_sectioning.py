# flint/phases/phase2_sectioning.py

import re
from typing import List, Tuple

from flint.core.models import Section
from flint.utils import get_logger

logger = get_logger(__name__)

FENCE = "```"
MAX_PARAGRAPH_CHARS = 1000
_BLANK_LINES_RE = re.compile(r"\n[ \t]*\n+")


def _split_code_blocks(text: str) -> List[Tuple[str, int, bool]]:
    """
    Cut ``text`` into alternating prose and fenced code segments.

    An unclosed fence runs to the end of the document.
    """
    segments = []
    pos = 0
    while pos < len(text):
        open_at = text.find(FENCE, pos)
        if open_at == -1:
            segments.append((text[pos:], pos, False))
            break
        if open_at > pos:
            segments.append((text[pos:open_at], pos, False))
        close_at = text.find(FENCE, open_at + len(FENCE))
        end = len(text) if close_at == -1 else close_at + len(FENCE)
        segments.append((text[open_at:end], open_at, True))
        pos = end
    return segments


def _split_paragraphs(text: str, base: int) -> List[Section]:
    sections = []
    pos = 0
    for match in list(_BLANK_LINES_RE.finditer(text)) + [None]:
        end = match.start() if match else len(text)
        _append_trimmed(sections, text[pos:end], base + pos)
        if match:
            pos = match.end()
    return sections


def _append_trimmed(sections: List[Section], chunk: str, offset: int) -> None:
    stripped = chunk.strip()
    if not stripped:
        return
    lead = len(chunk) - len(chunk.lstrip())
    start = offset + lead

    if len(stripped) <= MAX_PARAGRAPH_CHARS:
        sections.append(Section(text=stripped, offset=start))
        return

    # Long paragraph: fall back to line boundaries
    line_pos = 0
    for line in stripped.split("\n"):
        line_text = line.strip()
        if line_text:
            sections.append(
                Section(text=line_text, offset=start + line_pos + (len(line) - len(line.lstrip())))
            )
        line_pos += len(line) + 1


def split_into_sections(text: str) -> List[Section]:
    """
    Split a document into paragraphs and fenced code blocks.

    Paragraphs are separated by blank lines. A fenced code block is always a
    single section, blank lines included. Prose paragraphs longer than 1000
    characters are split again on single newlines.

    Returns:
        Sections in document order with absolute offsets
    """
    sections: List[Section] = []
    for segment, offset, is_code in _split_code_blocks(text or ""):
        if is_code:
            stripped = segment.rstrip()
            if stripped:
                sections.append(Section(text=stripped, offset=offset, is_code=True))
        else:
            sections.extend(_split_paragraphs(segment, offset))
    return sections


def execute_phase_2(text: str) -> List[Section]:
    """Phase 2: Sectioning."""
    sections = split_into_sections(text)
    logger.debug(f"Phase 2: {len(sections)} sections")
    return sections
