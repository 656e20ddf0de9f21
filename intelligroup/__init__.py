"""
IntelliGroup: groups scanned owners' meeting ballots into per-owner
documents using a vision model, then exports a CSV registry and per-owner
PDFs.
"""

__version__ = "1.0.0"

from .grouping import DocumentGrouper, GroupingState, merge_records, merge_runs
from .models import BallotRecord, ExtractionResult, GroupedDocument, Page, VoteChoice
from .exceptions import AuthorizationExpiredError, IntelliGroupError

__all__ = [
    "__version__",
    "DocumentGrouper",
    "GroupingState",
    "merge_records",
    "merge_runs",
    "BallotRecord",
    "ExtractionResult",
    "GroupedDocument",
    "Page",
    "VoteChoice",
    "AuthorizationExpiredError",
    "IntelliGroupError",
]
