"""Document structure analysis"""

from flint.analysis.document_analysis import (
    analyze_cursor_context,
    build_context_instructions,
    detect_document_type,
    extract_document_structure,
    generate_smart_title,
    generate_title_from_prompt,
    get_nearest_heading,
)

__all__ = [
    "analyze_cursor_context",
    "build_context_instructions",
    "detect_document_type",
    "extract_document_structure",
    "generate_smart_title",
    "generate_title_from_prompt",
    "get_nearest_heading",
]
