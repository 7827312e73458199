"""
Flint - Utilities Module

Logging, metrics and tokenization helpers shared across the package.
"""

from flint.utils.logger import get_logger, FlintLogger, Logger
from flint.utils.metrics import AssemblyMetrics, PerformanceTracker, SOFT_BUDGET_MS
from flint.utils.tokenization import (
    DEFAULT_STOPWORDS,
    DEFAULT_TOKENIZER,
    Tokenizer,
    jaccard_similarity,
)

__all__ = [
    "get_logger",
    "FlintLogger",
    "Logger",
    "AssemblyMetrics",
    "PerformanceTracker",
    "SOFT_BUDGET_MS",
    "DEFAULT_STOPWORDS",
    "DEFAULT_TOKENIZER",
    "Tokenizer",
    "jaccard_similarity",
]
