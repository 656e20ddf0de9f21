"""
Per-document PDF export.

Each grouped document becomes one PDF: its page images in order, each on a
page of A4 width with the height following the image's aspect ratio.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Set

import fitz  # PyMuPDF

from ..exceptions import ExportError
from ..logger import get_logger
from ..models import GroupedDocument, Page, usable
from ..utils.file_utils import ensure_dir, safe_stem, unique_path


A4_WIDTH_PT = 595.28


def pdf_filename(doc: GroupedDocument) -> str:
    """``<last_name>_<snils>.pdf`` with ``document`` / ``no_snils`` fallbacks."""
    last_name = safe_stem(usable(doc.record.last_name) or "document")
    snils = safe_stem(usable(doc.record.snils) or "no_snils")
    return f"{last_name}_{snils}.pdf"


class PdfExporter:
    """Builds one PDF per document."""

    def __init__(self, page_width_pt: float = A4_WIDTH_PT):
        self.page_width_pt = page_width_pt
        self.logger = get_logger("PdfExporter")

    def export_document(self, doc: GroupedDocument, path: Path) -> Path:
        """Write ``doc`` to ``path``."""
        if not doc.pages:
            raise ExportError("Document has no pages", file_path=str(path), document_id=doc.id)

        pdf = fitz.open()
        try:
            for page in doc.pages:
                self._add_page(pdf, page, doc)
            pdf.save(str(path))
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"Failed to build PDF: {e}", file_path=str(path), document_id=doc.id)
        finally:
            pdf.close()

        return path

    def export(self, documents: Iterable[GroupedDocument], out_dir: Path) -> List[Path]:
        """
        Write every document into ``out_dir``.

        Names are de-duplicated within one export (``_2``, ``_3``...).

        Returns:
            Paths of the written files, in document order
        """
        out_dir = ensure_dir(out_dir)
        taken: Set[Path] = set()
        written: List[Path] = []

        for doc in documents:
            path = unique_path(out_dir / pdf_filename(doc), taken)
            written.append(self.export_document(doc, path))
            self.logger.debug(f"{doc.name}: {len(doc.pages)} page(s) -> {path.name}")

        self.logger.info(f"Exported {len(written)} PDF(s) to {out_dir}")
        return written

    def _add_page(self, pdf: "fitz.Document", page: Page, doc: GroupedDocument) -> None:
        width, height = page.width, page.height
        if not width or not height:
            pix = fitz.Pixmap(page.image)
            width, height = pix.width, pix.height

        if not width or not height:
            raise ExportError(f"Page {page.page_id} has no image", document_id=doc.id)

        page_height = self.page_width_pt * height / width
        pdf_page = pdf.new_page(width=self.page_width_pt, height=page_height)
        pdf_page.insert_image(pdf_page.rect, stream=page.image)
