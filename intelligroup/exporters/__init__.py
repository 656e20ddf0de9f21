"""
Export adapters: CSV registry and per-document PDFs.
"""

from .csv_exporter import CsvExporter, HEADERS, STATUS_VERIFIED, STATUS_DRAFT, document_row
from .pdf_exporter import PdfExporter, pdf_filename

__all__ = [
    "CsvExporter",
    "HEADERS",
    "STATUS_VERIFIED",
    "STATUS_DRAFT",
    "document_row",
    "PdfExporter",
    "pdf_filename",
]
