"""Core Flint components: data models, errors, config, context engine and assembler"""

from flint.core.models import (
    AssembledContext,
    ContextChunk,
    ContextEngineOptions,
    CursorContext,
    DocumentKind,
    DocumentType,
    FlintConfig,
    PromptPayload,
)
from flint.core.errors import (
    BackendUnavailableError,
    FlintError,
    GenerationError,
    GenerationTimeoutError,
    SemanticUnavailableError,
    StoreUnavailableError,
    UserActivationRequiredError,
)
from flint.core.config import load_config
from flint.core.context_engine import assemble_context
from flint.core.engine import ContextAssembler

__all__ = [
    "AssembledContext",
    "ContextChunk",
    "ContextEngineOptions",
    "CursorContext",
    "DocumentKind",
    "DocumentType",
    "FlintConfig",
    "PromptPayload",
    "BackendUnavailableError",
    "FlintError",
    "GenerationError",
    "GenerationTimeoutError",
    "SemanticUnavailableError",
    "StoreUnavailableError",
    "UserActivationRequiredError",
    "load_config",
    "assemble_context",
    "ContextAssembler",
]
