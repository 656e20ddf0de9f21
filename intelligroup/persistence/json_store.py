"""
JSON file-based storage for the grouped document set.

Layout under the workspace directory:
- documents.json: every document with its record and page metadata
- pages/<source>_p<NNNN>_<uid>.jpg: page images, written once
- stats/<timestamp>-stats.json: statistics of each processing run
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from ..exceptions import DataPersistenceError
from ..grouping import merge_runs
from ..logger import get_logger
from ..models import BallotRecord, ExtractionResult, GroupedDocument, Page, ProcessingStats, display_name_for
from ..models.ballot import WIRE_FIELDS
from ..utils.file_utils import ensure_dir, safe_stem


DOCUMENTS_FILE = "documents.json"
FORMAT_VERSION = 2


class JSONStore:
    """
    Persistent document set.

    Loads and saves whole sets; operator actions (verify, delete) and run
    merges are read-modify-write over ``documents.json``.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.logger = get_logger("JSONStore")

    @property
    def documents_path(self) -> Path:
        return self.base_dir / DOCUMENTS_FILE

    @property
    def pages_dir(self) -> Path:
        return self.base_dir / "pages"

    def image_path(self, page: Page) -> Path:
        ext = ".png" if page.mime_type == "image/png" else ".jpg"
        return self.pages_dir / f"{safe_stem(page.source_file)}_p{page.page_number:04d}_{page.uid}{ext}"

    def exists(self) -> bool:
        return self.documents_path.exists()

    def load(self) -> List[GroupedDocument]:
        """
        Load the persisted document set (empty if nothing saved yet).

        Raises:
            DataPersistenceError: unreadable or malformed JSON, or a missing page image
        """
        path = self.documents_path
        if not path.exists():
            return []

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise DataPersistenceError(f"Failed to read document set: {e}", str(path), "load")

        try:
            return [self._document_from_dict(d) for d in data.get("documents", [])]
        except KeyError as e:
            raise DataPersistenceError(f"Malformed document set, missing {e}", str(path), "load")

    def save(self, documents: Iterable[GroupedDocument]) -> Path:
        """
        Write the document set and any page images not yet on disk.

        Returns:
            Path to documents.json
        """
        documents = list(documents)
        ensure_dir(self.pages_dir)

        for doc in documents:
            for page in doc.pages:
                img_path = self.image_path(page)
                if img_path.exists():
                    continue
                try:
                    img_path.write_bytes(page.image)
                except OSError as e:
                    raise DataPersistenceError(f"Failed to write page image: {e}", str(img_path), "save")

        payload = {
            "version": FORMAT_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "documents": [doc.to_dict() for doc in documents],
        }

        path = self.documents_path
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise DataPersistenceError(f"Failed to write document set: {e}", str(path), "save")

        self.logger.debug(f"Saved {len(documents)} document(s) to {path}")
        return path

    def merge_run(self, documents: Iterable[GroupedDocument]) -> List[GroupedDocument]:
        """Fold a finished run into the persisted set and save it."""
        merged = merge_runs(self.load(), documents)
        self.save(merged)
        return merged

    def get(self, doc_id: str, documents: Optional[List[GroupedDocument]] = None) -> GroupedDocument:
        """
        Find a document by id (a unique id prefix is accepted).

        Raises:
            KeyError: no document, or more than one, matches
        """
        documents = documents if documents is not None else self.load()
        exact = [d for d in documents if d.id == doc_id]
        if exact:
            return exact[0]

        matches = [d for d in documents if d.id.startswith(doc_id)]
        if len(matches) == 1:
            return matches[0]
        if not matches:
            raise KeyError(f"Document not found: {doc_id}")
        raise KeyError(f"Ambiguous document id prefix: {doc_id}")

    def mark_verified(self, doc_id: str, verified: bool = True) -> GroupedDocument:
        """Set the operator verification flag of one document."""
        documents = self.load()
        doc = self.get(doc_id, documents)
        doc.is_verified = verified
        self.save(documents)
        self.logger.info(f"{'Verified' if verified else 'Unverified'}: {doc.name}")
        return doc

    def delete_document(self, doc_id: str) -> GroupedDocument:
        """Remove one document and the page images only it referenced."""
        documents = self.load()
        doc = self.get(doc_id, documents)
        documents.remove(doc)

        still_used = {self.image_path(p) for d in documents for p in d.pages}
        for page in doc.pages:
            img_path = self.image_path(page)
            if img_path not in still_used and img_path.exists():
                img_path.unlink()

        self.save(documents)
        self.logger.info(f"Deleted: {doc.name}")
        return doc

    def update_fields(self, doc_id: str, changes: Mapping[str, Any]) -> GroupedDocument:
        """
        Apply operator corrections to one document's record.

        Keys are field names (``lastName`` or ``last_name``) or
        ``votes.<n>`` / ``questionTexts.<n>``. Values replace what the model
        read; an empty vote removes it. The display name follows the new
        owner name.

        Raises:
            KeyError: unknown document or field name
        """
        documents = self.load()
        doc = self.get(doc_id, documents)
        data = doc.record.to_dict()
        snake_to_wire = {attr: wire for wire, attr in WIRE_FIELDS.items()}

        for key, value in changes.items():
            category, _, question = key.partition(".")
            if question and category in ("votes", "questionTexts"):
                data[category][question] = value
            elif key in WIRE_FIELDS or key in snake_to_wire:
                data[snake_to_wire.get(key, key)] = value
            else:
                raise KeyError(f"Unknown field: {key}")

        doc.record = BallotRecord.from_dict(data)
        doc.name = display_name_for(doc.record, documents.index(doc) + 1)
        self.save(documents)
        self.logger.info(f"Updated {doc.name}: {', '.join(changes)}")
        return doc

    def save_stats(self, stats: ProcessingStats) -> Path:
        """Save statistics of one run."""
        stats_dir = ensure_dir(self.base_dir / "stats")
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = stats_dir / f"{stamp}-stats.json"
        path.write_text(json.dumps(stats.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        return path

    def _document_from_dict(self, data: dict[str, Any]) -> GroupedDocument:
        return GroupedDocument(
            id=data["id"],
            name=data.get("name", ""),
            pages=[self._page_from_dict(p) for p in data.get("pages", [])],
            record=BallotRecord.from_dict(data.get("record")),
            is_verified=bool(data.get("is_verified", False)),
        )

    def _page_from_dict(self, data: dict[str, Any]) -> Page:
        page = Page(
            source_file=data["source_file"],
            page_number=int(data["page_number"]),
            mime_type=data.get("mime_type", "image/jpeg"),
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
            uid=data["uid"],
        )

        img_path = self.image_path(page)
        try:
            image = img_path.read_bytes()
        except OSError as e:
            raise DataPersistenceError(f"Missing page image for {page.page_id}: {e}", str(img_path), "load")

        extraction = None
        raw = data.get("extraction")
        if raw is not None:
            parsed = ExtractionResult.from_dict(raw)
            extraction = ExtractionResult(
                is_start_page=parsed.is_start_page,
                fields=parsed.fields,
                failed=bool(raw.get("failed", False)),
                error=raw.get("error", ""),
            )

        return Page(
            source_file=page.source_file,
            page_number=page.page_number,
            image=image,
            mime_type=page.mime_type,
            width=page.width,
            height=page.height,
            extraction=extraction,
            uid=page.uid,
        )
