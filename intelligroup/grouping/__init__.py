"""
Page-to-document grouping and field reconciliation.
"""

from .field_merger import merge_records, merge_scalar, merge_question_texts
from .document_grouper import (
    DocumentGrouper,
    GroupingState,
    find_identity_match,
    merge_runs,
    NEW_DOCUMENT,
    SNILS_MATCH,
    NAME_MATCH,
    LAST_ACTIVE,
)

__all__ = [
    "merge_records",
    "merge_scalar",
    "merge_question_texts",
    "DocumentGrouper",
    "GroupingState",
    "find_identity_match",
    "merge_runs",
    "NEW_DOCUMENT",
    "SNILS_MATCH",
    "NAME_MATCH",
    "LAST_ACTIVE",
]
