"""
Performance metrics for context assembly.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Optional

# Interactive budget for one assembly pass; exceeded budgets are only logged.
SOFT_BUDGET_MS = 20.0


@dataclass
class AssemblyMetrics:
    """Metrics for a single context assembly."""

    cursor_pos: int = 0

    # Timing
    total_time: float = 0.0
    phase_times: Dict[str, float] = field(default_factory=dict)

    # Selection stats
    sections_found: int = 0
    candidates_scored: int = 0
    chunks_after_dedup: int = 0
    chunks_final: int = 0

    # Context size
    local_chars: int = 0
    related_chars: int = 0
    total_chars: int = 0
    char_budget: Optional[int] = None
    budget_efficiency: float = 0.0  # % of budget used

    # Notes
    notes_total: int = 0
    notes_used: int = 0

    degraded: bool = False

    @property
    def total_ms(self) -> float:
        return self.total_time * 1000

    @property
    def over_soft_budget(self) -> bool:
        return self.total_ms > SOFT_BUDGET_MS

    def finalize(self) -> None:
        """Derive budget efficiency from the recorded sizes."""
        if self.char_budget:
            self.budget_efficiency = 100.0 * self.total_chars / self.char_budget

    def log_summary(self, logger) -> None:
        """Log a structured summary of metrics."""
        logger.debug(
            "Context assembly metrics",
            {
                "cursor_pos": self.cursor_pos,
                "total_ms": round(self.total_ms, 3),
                "phase_ms": {k: round(v * 1000, 3) for k, v in self.phase_times.items()},
                "sections": self.sections_found,
                "candidates": self.candidates_scored,
                "after_dedup": self.chunks_after_dedup,
                "final_chunks": self.chunks_final,
                "local_chars": self.local_chars,
                "related_chars": self.related_chars,
                "total_chars": self.total_chars,
                "budget": self.char_budget,
                "budget_efficiency": round(self.budget_efficiency, 1),
                "notes": f"{self.notes_used}/{self.notes_total}",
                "degraded": self.degraded,
            },
        )
        if self.over_soft_budget:
            logger.warn(
                f"Context assembly took {self.total_ms:.1f}ms "
                f"(soft budget {SOFT_BUDGET_MS:.0f}ms)"
            )


class PerformanceTracker:
    """Context manager for tracking assembly performance."""

    def __init__(self, metrics: AssemblyMetrics, phase_name: Optional[str] = None):
        self.metrics = metrics
        self.phase_name = phase_name
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.perf_counter() - self.start_time

        if self.phase_name:
            self.metrics.phase_times[self.phase_name] = elapsed
        else:
            self.metrics.total_time = elapsed
