"""
Processors for turning input scans into extracted pages.

- PageExtractor: PDFs and images -> ordered JPEG pages
- FieldExtractor: page -> (is_start_page, fields) via a vision model
"""

from .base import BaseProcessor, ProcessingContext
from .page_extractor import PageExtractor
from .field_extractor import FieldExtractor

__all__ = [
    "BaseProcessor",
    "ProcessingContext",
    "PageExtractor",
    "FieldExtractor",
]
