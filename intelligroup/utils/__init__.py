"""
Utility functions for the ballot grouping application.
"""

from .file_utils import (
    iter_input_files,
    safe_stem,
    ensure_dir,
    unique_path,
    is_pdf,
    is_image,
    IMAGE_EXTENSIONS,
    PDF_EXTENSIONS,
)

from .ai_parser import (
    extract_json,
    parse_extraction_response,
)

from .timing import (
    timed_operation,
    Timer,
    format_duration,
)

__all__ = [
    # File utilities
    "iter_input_files",
    "safe_stem",
    "ensure_dir",
    "unique_path",
    "is_pdf",
    "is_image",
    "IMAGE_EXTENSIONS",
    "PDF_EXTENSIONS",

    # Response parsing
    "extract_json",
    "parse_extraction_response",

    # Timing utilities
    "timed_operation",
    "Timer",
    "format_duration",
]
