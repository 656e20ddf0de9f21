"""
Processing statistics and timing models.

Tracks per-page outcomes, grouping decisions and model usage for a run.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Any
from datetime import datetime, timezone


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class AIUsage:
    """AI API usage tracking (thread-safe)."""
    provider: str = ""
    model: str = ""
    calls_count: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_call(
        self,
        input_tokens: int,
        output_tokens: int,
        cost_usd: Optional[float] = None
    ) -> None:
        """Add a single API call to the usage stats (thread-safe)."""
        with self._lock:
            self.calls_count += 1
            self.total_input_tokens += input_tokens
            self.total_output_tokens += output_tokens
            if cost_usd is not None:
                self.total_cost_usd += cost_usd

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "calls_count": self.calls_count,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cost_usd": self.total_cost_usd,
        }


@dataclass
class PageTiming:
    """Outcome of one page in a run."""
    page_id: str = ""
    page_number: int = 0

    # Grouping decision: "new_document", "snils_match", "name_match", "last_active"
    decision: str = ""
    document_id: str = ""
    is_start_page: bool = False
    extraction_failed: bool = False

    extraction_time_sec: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["extraction_time_sec"] = round(self.extraction_time_sec, 4)
        return data


@dataclass
class ProcessingStats:
    """
    Statistics for one processing run.
    """

    started_at: str = ""  # ISO format
    completed_at: str = ""  # ISO format

    # pending, processing, completed, aborted, failed
    status: str = "pending"
    error_message: str = ""

    total_pages: int = 0
    total_time_sec: float = 0.0

    ai_usage: AIUsage = field(default_factory=AIUsage)

    page_timings: List[PageTiming] = field(default_factory=list)

    def start(self) -> None:
        """Mark processing as started."""
        self.started_at = _utc_now()
        self.status = "processing"

    def complete(self) -> None:
        """Mark processing as completed."""
        self.completed_at = _utc_now()
        self.status = "completed"

    def abort(self, error: str) -> None:
        """Mark the run as aborted (partial results kept)."""
        self.completed_at = _utc_now()
        self.status = "aborted"
        self.error_message = error

    def fail(self, error: str) -> None:
        """Mark processing as failed."""
        self.completed_at = _utc_now()
        self.status = "failed"
        self.error_message = error

    def add_page_timing(self, page_timing: PageTiming) -> None:
        """Add the outcome of a processed page."""
        self.page_timings.append(page_timing)

    @property
    def pages_processed(self) -> int:
        return len(self.page_timings)

    @property
    def pages_failed(self) -> int:
        return sum(1 for pt in self.page_timings if pt.extraction_failed)

    @property
    def documents_created(self) -> int:
        return sum(1 for pt in self.page_timings if pt.decision == "new_document")

    @property
    def extraction_time_sec(self) -> float:
        return sum(pt.extraction_time_sec for pt in self.page_timings)

    @property
    def avg_time_per_page_sec(self) -> float:
        """Calculate average model time per page."""
        if self.pages_processed == 0:
            return 0.0
        return self.extraction_time_sec / self.pages_processed

    def decision_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for pt in self.page_timings:
            counts[pt.decision] = counts.get(pt.decision, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "status": self.status,
            "error_message": self.error_message,

            "counts": {
                "total_pages": self.total_pages,
                "pages_processed": self.pages_processed,
                "pages_failed": self.pages_failed,
                "documents_created": self.documents_created,
                "decisions": self.decision_counts(),
            },

            "timing": {
                "extraction_time_sec": round(self.extraction_time_sec, 4),
                "total_time_sec": round(self.total_time_sec, 4),
                "avg_time_per_page_sec": round(self.avg_time_per_page_sec, 4),
            },

            "ai_usage": self.ai_usage.to_dict(),

            "page_timings": [pt.to_dict() for pt in self.page_timings],
        }

    def summary_str(self) -> str:
        """Generate a human-readable summary string."""
        lines = [
            f"  Status: {self.status}",
            f"  Pages: {self.pages_processed}/{self.total_pages} (failed extractions: {self.pages_failed})",
            f"  Documents created: {self.documents_created}",
            f"  Total time: {self.total_time_sec:.2f}s",
            f"  Avg per page: {self.avg_time_per_page_sec:.2f}s",
        ]

        if self.ai_usage.calls_count > 0:
            lines.append(
                f"  AI cost: ${self.ai_usage.total_cost_usd:.4f} "
                f"({self.ai_usage.calls_count} calls)"
            )

        if self.error_message:
            lines.append(f"  Error: {self.error_message}")

        return "\n".join(lines)
