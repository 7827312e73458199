"""
Flint - local-first context core for a writing assistant.
Document analysis, lexical context assembly and a local semantic memory.
"""

__version__ = "0.1.0"

from flint.core.config import load_config
from flint.core.context_engine import assemble_context
from flint.core.engine import ContextAssembler
from flint.core.models import AssembledContext, ContextChunk, FlintConfig, PromptPayload
from flint.semantic.service import SemanticMemoryService
from flint.utils.logger import get_logger, FlintLogger, Logger

__all__ = [
    "load_config",
    "assemble_context",
    "ContextAssembler",
    "AssembledContext",
    "ContextChunk",
    "FlintConfig",
    "PromptPayload",
    "SemanticMemoryService",
    "get_logger",
    "FlintLogger",
    "Logger",
]
