"""
Page extractor.

Turns input files into an ordered list of page images. PDFs are rendered
with PyMuPDF; standalone images become one page each. Every page is
re-encoded as JPEG so the model and the exporters see a single format.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Iterable, List, Optional

import fitz  # PyMuPDF
from PIL import Image, ImageOps

from .base import BaseProcessor, ProcessingContext
from ..exceptions import PageExtractionError
from ..models import Page
from ..utils.file_utils import is_image, is_pdf
from ..utils.timing import timed_operation


class PageExtractor(BaseProcessor):
    """
    Extract page images from PDFs and image files.

    Pages are numbered from 1 within each file. The combined list keeps the
    order of the input files.
    """

    name = "PageExtractor"

    def __init__(
        self,
        context: ProcessingContext,
        scale: Optional[float] = None,
        jpeg_quality: Optional[int] = None,
    ):
        """
        Args:
            context: Processing context
            scale: PDF render zoom (default: RENDER_SCALE)
            jpeg_quality: JPEG quality 1-95 (default: JPEG_QUALITY)
        """
        super().__init__(context)
        self.scale = scale if scale is not None else self.config.render.scale
        self.jpeg_quality = jpeg_quality if jpeg_quality is not None else self.config.render.jpeg_quality
        self.pages: List[Page] = []

    def validate(self) -> bool:
        if not self.context.input_files:
            self.log_error("No input files")
            return False

        missing = [p for p in self.context.input_files if not p.exists()]
        for path in missing:
            self.log_error(f"Input file not found: {path}")
        return not missing

    def process(self) -> bool:
        self.pages = self.extract_files(self.context.input_files)
        return bool(self.pages)

    def extract_files(self, files: Iterable[Path]) -> List[Page]:
        """
        Extract all pages from ``files`` in order.

        Raises:
            PageExtractionError: a file is missing, unsupported or unreadable
        """
        pages: List[Page] = []
        for path in files:
            pages.extend(self.extract_file(Path(path)))

        self.context.stats.total_pages += len(pages)
        return pages

    def extract_file(self, path: Path) -> List[Page]:
        """Extract the pages of a single file."""
        if not path.exists():
            raise PageExtractionError(f"File not found: {path}", source_file=str(path))

        with timed_operation(f"Extract {path.name}", self.logger):
            if is_pdf(path):
                pages = self._extract_pdf(path)
            elif is_image(path):
                pages = [self._extract_image(path)]
            else:
                raise PageExtractionError(
                    f"Unsupported file type: {path.suffix or '(none)'}",
                    source_file=str(path),
                )

        self.log_info(f"{path.name}: {len(pages)} page(s)")
        return pages

    def _extract_pdf(self, path: Path) -> List[Page]:
        try:
            doc = fitz.open(path)
        except Exception as e:
            raise PageExtractionError(f"Failed to open PDF: {e}", source_file=str(path))

        try:
            matrix = fitz.Matrix(self.scale, self.scale)
            pages: List[Page] = []

            for page_index in range(doc.page_count):
                try:
                    pix = doc.load_page(page_index).get_pixmap(matrix=matrix, alpha=False)
                    image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
                except Exception as e:
                    raise PageExtractionError(
                        f"Failed to render page: {e}",
                        source_file=str(path),
                        page_number=page_index + 1,
                    )

                pages.append(self._to_page(path, page_index + 1, image))
                self.log_debug(f"Rendered page {page_index + 1}", size=f"{pix.width}x{pix.height}")

            return pages
        finally:
            doc.close()

    def _extract_image(self, path: Path) -> Page:
        try:
            with Image.open(path) as img:
                image = ImageOps.exif_transpose(img).convert("RGB")
        except Exception as e:
            raise PageExtractionError(f"Failed to read image: {e}", source_file=str(path), page_number=1)

        return self._to_page(path, 1, image)

    def _to_page(self, path: Path, page_number: int, image: Image.Image) -> Page:
        buf = io.BytesIO()
        image.save(buf, format="JPEG", quality=self.jpeg_quality)
        return Page(
            source_file=path.name,
            page_number=page_number,
            image=buf.getvalue(),
            mime_type="image/jpeg",
            width=image.width,
            height=image.height,
        )
