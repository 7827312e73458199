"""
Prompt templates for the generative backend.

Plain, natural prompts that keep instruction text from leaking into the
generated output.
"""

from typing import List, Optional

CONTEXT_PLACEHOLDER = "[INSERT HERE]"


def _preamble(
    date_time: Optional[str],
    project_title: Optional[str],
    notes: Optional[List[str]],
) -> List[str]:
    parts = []
    if date_time:
        parts.append(date_time)
    if project_title:
        parts.append(f'Document: "{project_title}"')
    if notes:
        parts.append("Writing guidelines:\n" + "\n".join(f"- {note}" for note in notes))
    return parts


def _instructions_block(instructions: str) -> List[str]:
    return [f"Instructions:\n- {instructions}"] if instructions else []


def build_generate_prompt(
    instruction: str,
    formatted_context: str = "",
    instructions: str = "",
    notes: Optional[List[str]] = None,
    nearest_heading: Optional[str] = None,
    project_title: Optional[str] = None,
    date_time: Optional[str] = None,
) -> str:
    """
    Build a generation prompt around assembled document context.

    Args:
        instruction: What the user asked for
        formatted_context: Output of ``format_context_for_prompt``
        instructions: Structural instructions joined with "\\n- "
        notes: Pinned notes, rendered as writing guidelines
        nearest_heading: Heading of the section being written
        project_title: Document title
        date_time: Current date and time as display text
    """
    parts = _preamble(date_time, project_title, notes)
    if nearest_heading:
        parts.append(f"Current section: {nearest_heading}")
    if formatted_context:
        parts.append(formatted_context)
    parts.extend(_instructions_block(instructions))
    parts.append(f"Task: {instruction}")
    parts.append("Write:")
    return "\n\n".join(parts)


def build_standalone_prompt(
    instruction: str,
    instructions: str = "",
    notes: Optional[List[str]] = None,
    project_title: Optional[str] = None,
    date_time: Optional[str] = None,
) -> str:
    """Generation prompt without document context."""
    parts = _preamble(date_time, project_title, notes)
    parts.extend(_instructions_block(instructions))
    parts.append(f"Task: {instruction}")
    parts.append("Write:")
    return "\n\n".join(parts)


def build_insert_prompt(
    instruction: str,
    before: str,
    after: str,
    instructions: str = "",
    notes: Optional[List[str]] = None,
    project_title: Optional[str] = None,
    date_time: Optional[str] = None,
) -> str:
    """Generation prompt that marks the insertion point between two text spans."""
    parts = _preamble(date_time, project_title, notes)
    if before or after:
        lines = ["Context:"]
        if before:
            lines.append(f"...{before}")
        lines.append(CONTEXT_PLACEHOLDER)
        if after:
            lines.append(f"{after}...")
        parts.append("\n".join(lines))
    parts.extend(_instructions_block(instructions))
    parts.append(f"Task: {instruction}")
    parts.append("Write the text to insert:")
    return "\n\n".join(parts)


def build_rewrite_prompt(
    text: str,
    instruction: str,
    notes: Optional[List[str]] = None,
    date_time: Optional[str] = None,
) -> str:
    """Rewrite prompt; pinned notes become audience and tone guidance."""
    parts = [date_time] if date_time else []
    if notes:
        parts.append("Audience and tone guidance:\n" + "\n".join(f"- {note}" for note in notes))
    parts.append(instruction)
    parts.append(f'Text to edit:\n"{text}"')
    parts.append("Edited version:")
    return "\n\n".join(parts)
