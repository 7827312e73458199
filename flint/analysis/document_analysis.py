# flint/analysis/document_analysis.py
"""
Document structure analysis.

Heuristic, regex-based classification of a document and of the cursor's
structural position. Every function here is total over strings and ints:
unrecognized structure resolves to the documented defaults instead of
raising.
"""

import re
from typing import List, Optional, Tuple

from flint.core.models import CursorContext, DocumentKind, DocumentType, ListStyle
from flint.utils import get_logger

logger = get_logger(__name__)

HEADER_RE = re.compile(r"^\s*(subject|to|from|cc|bcc):", re.IGNORECASE)
SUBJECT_RE = re.compile(r"^\s*subject:\s*", re.IGNORECASE)
EMAIL_ADDRESS_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[A-Za-z]{2,}")
SALUTATION_RE = re.compile(r"^\s*(dear|hi|hello|hey|greetings)\b", re.IGNORECASE)
VALEDICTION_RE = re.compile(
    r"^\s*(sincerely|regards|best|kind regards|warm regards|yours|cheers|thanks|thank you)\b",
    re.IGNORECASE,
)
MARKDOWN_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+\S")
MARKDOWN_HEADING_PREFIX_RE = re.compile(r"^\s{0,3}#{1,6}\s+")
BULLET_RE = re.compile(r"^\s*[•\-*]\s+")
NUMBERED_RE = re.compile(r"^\s*\d+\.\s+")
FENCE = "```"
CLOSED_FENCE_RE = re.compile(r"```[\s\S]*?```")
CODE_KEYWORD_RE = re.compile(r"^(function|const|let|var|class|import|export|def)\b")

# Category checks run in this order; the first category that matches wins.
PRIORITY = (
    DocumentKind.EMAIL,
    DocumentKind.LETTER,
    DocumentKind.ARTICLE,
    DocumentKind.LIST,
    DocumentKind.CODE,
)

TITLE_MAX_CHARS = 50
ELLIPSIS = "..."
SIGNATURE_LOOKAHEAD_LINES = 3
SUBJECT_CONTINUATION_MAX_CHARS = 100


def is_all_caps_line(line: str, min_length: int = 1) -> bool:
    """True for non-empty upper-case text that contains at least one letter."""
    stripped = line.strip()
    if len(stripped) < min_length:
        return False
    return any(ch.isalpha() for ch in stripped) and stripped == stripped.upper()


def is_heading_line(line: str) -> bool:
    return bool(MARKDOWN_HEADING_RE.match(line)) or is_all_caps_line(line)


def heading_text(line: str) -> str:
    """Strip markdown heading markers from a heading line."""
    return MARKDOWN_HEADING_PREFIX_RE.sub("", line).strip()


def _prose_lines(text: str) -> List[str]:
    """Lines outside fenced code blocks."""
    lines = []
    in_fence = False
    for line in text.split("\n"):
        if line.strip().startswith(FENCE):
            in_fence = not in_fence
            continue
        if not in_fence:
            lines.append(line)
    return lines


def detect_document_type(text: str) -> DocumentType:
    """
    Detect the type of a document from content patterns.

    Categories are checked in priority order (email, letter, article, list,
    code) and the first one with a match wins. Indicators list every signal
    found, in check order.

    Args:
        text: Full document text

    Returns:
        DocumentType; ``general`` with confidence 1 when nothing matches
    """
    text = text or ""
    prose = _prose_lines(text)
    indicators: List[str] = []
    scores = {kind: 0.0 for kind in PRIORITY}

    # Email
    if any(HEADER_RE.match(line) for line in prose):
        scores[DocumentKind.EMAIL] += 3
        indicators.append("email headers")
    if EMAIL_ADDRESS_RE.search(text):
        scores[DocumentKind.EMAIL] += 1
        indicators.append("email addresses")

    # Letter: the salutation is what makes it a letter, the closing adds weight
    first_lines = [line for line in prose if line.strip()][:10]
    has_salutation = any(SALUTATION_RE.match(line) for line in first_lines)
    if has_salutation:
        scores[DocumentKind.LETTER] += 2
        indicators.append("salutation")
    if any(VALEDICTION_RE.match(line) for line in prose):
        if has_salutation:
            scores[DocumentKind.LETTER] += 1
        indicators.append("closing")

    # Article
    heading_count = sum(1 for line in prose if MARKDOWN_HEADING_RE.match(line))
    if heading_count:
        scores[DocumentKind.ARTICLE] += heading_count
        indicators.append(f"{heading_count} markdown headings")
    caps_count = sum(
        1
        for line in prose
        if is_all_caps_line(line, min_length=4) and not HEADER_RE.match(line)
    )
    if caps_count:
        scores[DocumentKind.ARTICLE] += caps_count * 0.5
        indicators.append(f"{caps_count} all-caps headings")

    # List
    bullet_count = sum(1 for line in prose if BULLET_RE.match(line))
    numbered_count = sum(1 for line in prose if NUMBERED_RE.match(line))
    if bullet_count > 2:
        scores[DocumentKind.LIST] += bullet_count * 0.5
        indicators.append(f"{bullet_count} bullet points")
    if numbered_count > 2:
        scores[DocumentKind.LIST] += numbered_count * 0.5
        indicators.append(f"{numbered_count} numbered items")

    # Code
    if CLOSED_FENCE_RE.search(text):
        scores[DocumentKind.CODE] += 3
        indicators.append("code blocks")
    if any(CODE_KEYWORD_RE.match(line) for line in text.split("\n")):
        scores[DocumentKind.CODE] += 2
        indicators.append("code keywords")

    for kind in PRIORITY:
        if scores[kind] > 0:
            confidence = min(scores[kind] / 5, 1.0)
            logger.debug(f"Detected document type '{kind.value}' ({confidence:.2f})")
            return DocumentType(kind=kind, confidence=confidence, indicators=indicators)

    return DocumentType(kind=DocumentKind.GENERAL, confidence=1.0, indicators=["no specific patterns"])


def _locate_line(text: str, cursor_pos: int) -> Tuple[List[str], int]:
    """Split ``text`` into lines and return the index of the cursor's line."""
    cursor_pos = min(max(cursor_pos, 0), len(text))
    return text.split("\n"), text.count("\n", 0, cursor_pos)


def _nearest_heading(lines: List[str], line_index: int) -> Optional[str]:
    for i in range(line_index - 1, -1, -1):
        line = lines[i]
        if MARKDOWN_HEADING_RE.match(line):
            return heading_text(line)
        if is_all_caps_line(line):
            return line.strip()
    return None


def _previous_non_empty(lines: List[str], line_index: int) -> str:
    for i in range(line_index - 1, -1, -1):
        if lines[i].strip():
            return lines[i]
    return ""


def analyze_cursor_context(text: str, cursor_pos: int) -> CursorContext:
    """
    Analyze the structural context around the cursor position.

    Every flag is computed independently, so several may be true at once.

    Args:
        text: Full document text
        cursor_pos: Cursor offset; clamped into the document

    Returns:
        CursorContext for the line containing the cursor
    """
    text = text or ""
    lines, index = _locate_line(text, cursor_pos)
    line = lines[index]
    line_before = lines[index - 1] if index > 0 else ""

    is_in_subject_line = bool(SUBJECT_RE.match(line)) or (
        bool(SUBJECT_RE.match(line_before))
        and len(line.strip()) < SUBJECT_CONTINUATION_MAX_CHARS
    )

    is_in_heading = is_heading_line(line)

    if BULLET_RE.match(line):
        list_style = ListStyle.BULLET
    elif NUMBERED_RE.match(line):
        list_style = ListStyle.NUMBERED
    else:
        list_style = ListStyle.NONE

    # Odd number of fences before the cursor means an open block
    clamped = min(max(cursor_pos, 0), len(text))
    is_in_code_block = text[:clamped].count(FENCE) % 2 == 1

    is_after_salutation = bool(SALUTATION_RE.match(_previous_non_empty(lines, index)))

    lookahead = lines[index + 1 : index + 1 + SIGNATURE_LOOKAHEAD_LINES]
    is_before_signature = any(VALEDICTION_RE.match(following) for following in lookahead)

    indent_level = len(line) - len(line.lstrip())

    return CursorContext(
        is_in_subject_line=is_in_subject_line,
        is_in_heading=is_in_heading,
        is_in_list=list_style is not ListStyle.NONE,
        is_in_code_block=is_in_code_block,
        is_after_salutation=is_after_salutation,
        is_before_signature=is_before_signature,
        list_style=list_style,
        indent_level=indent_level,
        nearest_heading=_nearest_heading(lines, index),
    )


def get_nearest_heading(text: str, cursor_pos: int) -> Optional[str]:
    """Closest heading line above the cursor's line, or None."""
    lines, index = _locate_line(text or "", cursor_pos)
    return _nearest_heading(lines, index)


def extract_document_structure(text: str) -> List[str]:
    """Headings and subject lines of the document, in order."""
    headings = []
    for line in _prose_lines(text or ""):
        if MARKDOWN_HEADING_RE.match(line):
            headings.append(heading_text(line))
        elif SUBJECT_RE.match(line):
            subject = SUBJECT_RE.sub("", line).strip()
            if subject:
                headings.append(subject)
        elif is_all_caps_line(line, min_length=4) and not HEADER_RE.match(line):
            headings.append(line.strip())
    return headings


def _truncate_title(title: str) -> str:
    if len(title) > TITLE_MAX_CHARS:
        return title[:TITLE_MAX_CHARS] + ELLIPSIS
    return title


def generate_smart_title(text: str) -> str:
    """
    Generate a title from document content.

    Priority: subject line, heading (markdown or all-caps), first meaningful
    line, first 50 characters. Results over 50 characters are truncated and
    suffixed with "...".
    """
    if not text or not text.strip():
        return "Untitled"

    lines = [line for line in text.split("\n") if line.strip()]

    for line in lines:
        if SUBJECT_RE.match(line):
            subject = SUBJECT_RE.sub("", line).strip()
            if subject:
                return _truncate_title(subject)

    for line in lines:
        if MARKDOWN_HEADING_RE.match(line):
            return _truncate_title(heading_text(line))
    for line in lines:
        if is_all_caps_line(line, min_length=4) and not HEADER_RE.match(line):
            return _truncate_title(line.strip())

    for line in lines:
        if SALUTATION_RE.match(line):
            continue
        cleaned = NUMBERED_RE.sub("", BULLET_RE.sub("", line)).strip()
        if len(cleaned) > 10:
            return _truncate_title(cleaned)

    return _truncate_title(text.strip()[:TITLE_MAX_CHARS + 1])


_INSTRUCTION_VERB_RE = re.compile(
    r"^(write|create|generate|draft|compose|make)\s+((a|an|the|me|some)\s+)?", re.IGNORECASE
)
_INSTRUCTION_NOUN_RE = re.compile(
    r"^(document|article|email|letter|post|blog|essay|report|paper)\s+"
    r"((about|on|explaining|describing|discussing)\s+)?",
    re.IGNORECASE,
)
_INSTRUCTION_PREP_RE = re.compile(r"^(about|on|explaining|describing|discussing)\s+", re.IGNORECASE)


def generate_title_from_prompt(prompt: str) -> str:
    """Turn an instruction like "write an article about X" into a title for X."""
    if not prompt or not prompt.strip():
        return "Untitled"

    cleaned = prompt.strip().lower()
    cleaned = _INSTRUCTION_VERB_RE.sub("", cleaned)
    cleaned = _INSTRUCTION_NOUN_RE.sub("", cleaned)
    cleaned = _INSTRUCTION_PREP_RE.sub("", cleaned).strip()

    cleaned = " ".join(word[:1].upper() + word[1:] for word in cleaned.split())
    if len(cleaned) > TITLE_MAX_CHARS:
        cleaned = cleaned[: TITLE_MAX_CHARS - len(ELLIPSIS)] + ELLIPSIS
    return cleaned or "Untitled"


_DOC_NOUNS = {
    DocumentKind.EMAIL: "email",
    DocumentKind.LETTER: "letter",
    DocumentKind.ARTICLE: "article",
}


def build_context_instructions(doc_type: DocumentType, cursor_context: CursorContext) -> str:
    """
    Build generation constraints from the document type and cursor context.

    Cursor flags are checked in strict priority order; the first one set
    decides the instructions. Without any flag the document type supplies
    generic guidance, and a ``general`` document gets none at all.

    Returns:
        Instruction lines joined with "\\n- ", or "" when there is nothing to say
    """
    instructions: List[str] = []
    noun = _DOC_NOUNS.get(doc_type.kind, "document")

    if cursor_context.is_in_subject_line:
        instructions = [
            "Generate a VERY SHORT subject line (5-10 words maximum)",
            "Be concise and specific",
            "Do NOT write a full email or paragraph",
        ]
    elif cursor_context.is_in_heading:
        instructions = [
            "Generate a heading or title (one line only)",
            "Be concise and descriptive",
            "Do NOT write body text or paragraphs",
        ]
    elif cursor_context.is_in_list:
        kind = "numbered" if cursor_context.list_style is ListStyle.NUMBERED else "bullet point"
        instructions = [
            f"Continue the {kind} list",
            "Each item should be brief (one line)",
        ]
    elif cursor_context.is_in_code_block:
        instructions = [
            "Generate code only (no explanations)",
            "Match the coding style and language",
        ]
    elif cursor_context.is_after_salutation:
        instructions = [f"Write the {noun} body (2-3 paragraphs)"]
    elif cursor_context.is_before_signature:
        instructions = [
            "Write a closing paragraph",
            "Keep it brief and professional",
        ]
    elif doc_type.kind is DocumentKind.EMAIL:
        instructions = [
            "Match the tone of the email",
            "Keep it concise and to the point",
        ]
    elif doc_type.kind is DocumentKind.LETTER:
        instructions = [
            "Match formal letter style",
            "Use appropriate tone and structure",
        ]
    elif doc_type.kind is DocumentKind.ARTICLE:
        if cursor_context.nearest_heading:
            instructions.append(f'Continue writing about: "{cursor_context.nearest_heading}"')
        instructions.extend(["Write in article/blog style", "Use clear paragraphs"])
    elif doc_type.kind is DocumentKind.LIST:
        instructions = ["Keep entries short and parallel in structure"]
    elif doc_type.kind is DocumentKind.CODE:
        instructions = ["Match the technical style of the document"]

    return "\n- ".join(instructions)

