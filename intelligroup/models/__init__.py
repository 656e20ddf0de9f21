"""
Data models for the ballot grouping application.

These models represent the core data structures and are designed
to be easily serializable to JSON.
"""

from .ballot import (
    BallotRecord,
    VoteChoice,
    FieldState,
    ERROR_SENTINEL,
    field_state,
    usable,
)
from .document import Page, ExtractionResult, GroupedDocument, display_name_for
from .processing_stats import ProcessingStats, PageTiming, AIUsage

__all__ = [
    # Ballot models
    "BallotRecord",
    "VoteChoice",
    "FieldState",
    "ERROR_SENTINEL",
    "field_state",
    "usable",

    # Document models
    "Page",
    "ExtractionResult",
    "GroupedDocument",
    "display_name_for",

    # Processing stats
    "ProcessingStats",
    "PageTiming",
    "AIUsage",
]
