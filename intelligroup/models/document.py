"""
Page and grouped document models.

A Page is produced once per physical page of an input file and never
changes afterwards. A GroupedDocument is one owner's ballot: the pages
assigned to it in arrival order plus the record merged from them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, List, Mapping, Optional

from .ballot import BallotRecord, usable


@dataclass(frozen=True)
class ExtractionResult:
    """What the vision model reported for one page."""

    is_start_page: bool = False
    fields: BallotRecord = field(default_factory=BallotRecord)

    # Set when the model call failed and this is a substituted empty result
    failed: bool = False
    error: str = ""

    @classmethod
    def empty(cls, error: str = "") -> "ExtractionResult":
        """Degraded result used when the model call fails."""
        return cls(is_start_page=False, fields=BallotRecord(), failed=bool(error), error=error)

    @classmethod
    def from_dict(cls, data: Any) -> "ExtractionResult":
        """
        Build from the model's JSON shape.

        Accepts ``{"isStartPage": bool, "data": {...}}`` (the field map may
        also be under ``"fields"``). Malformed input yields an empty result.
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            return cls.empty()

        is_start = data.get("isStartPage", data.get("is_start_page", False))
        raw_fields = data.get("data", data.get("fields"))
        return cls(
            is_start_page=is_start is True or str(is_start).strip().lower() == "true",
            fields=BallotRecord.from_dict(raw_fields),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "isStartPage": self.is_start_page,
            "data": self.fields.to_dict(),
        }
        if self.failed:
            data["failed"] = True
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class Page:
    """
    One rasterized page of a source file.

    ``image`` holds the encoded image bytes (JPEG unless ``mime_type`` says
    otherwise). ``extraction`` is attached by the grouping engine once the
    model has seen the page. ``page_id`` is a readable label; ``uid`` is
    what storage and run merges key on. Neither ``extraction`` nor ``uid``
    takes part in equality.
    """

    source_file: str
    page_number: int  # 1-based, physical order within source_file
    image: bytes = field(default=b"", repr=False)
    mime_type: str = "image/jpeg"
    width: int = 0
    height: int = 0
    extraction: Optional[ExtractionResult] = field(default=None, compare=False, repr=False)

    # Unique per scanned page, even when file names repeat across uploads
    uid: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False, repr=False)

    @property
    def page_id(self) -> str:
        return f"{self.source_file}#{self.page_number}"

    def with_extraction(self, extraction: ExtractionResult) -> "Page":
        return replace(self, extraction=extraction)

    def to_dict(self) -> dict[str, Any]:
        """Metadata only; image bytes are stored separately."""
        data: dict[str, Any] = {
            "uid": self.uid,
            "page_id": self.page_id,
            "source_file": self.source_file,
            "page_number": self.page_number,
            "mime_type": self.mime_type,
            "width": self.width,
            "height": self.height,
        }
        if self.extraction is not None:
            data["extraction"] = self.extraction.to_dict()
        return data


def display_name_for(record: BallotRecord, position: int) -> str:
    """
    Card title for a document: "Ivanov I.I.", "Ivanov I.", "Ivanov" or "Document N".

    Args:
        record: The document's accumulated record
        position: 1-based creation position of the document in its run
    """
    last_name = usable(record.last_name)
    if not last_name:
        return f"Document {position}"
    initials = "".join(
        f"{part[:1]}." for part in (usable(record.first_name), usable(record.middle_name)) if part
    )
    return f"{last_name} {initials}" if initials else last_name


@dataclass
class GroupedDocument:
    """
    One owner's ballot assembled from one or more pages.

    Pages keep arrival order; they are only ever appended.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    pages: List[Page] = field(default_factory=list)
    record: BallotRecord = field(default_factory=BallotRecord)

    # Set by explicit operator confirmation only
    is_verified: bool = False

    @property
    def snils(self) -> str:
        return self.record.snils

    @property
    def page_ids(self) -> List[str]:
        return [p.page_id for p in self.pages]

    def has_page(self, page: Page) -> bool:
        return any(p.uid == page.uid for p in self.pages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_verified": self.is_verified,
            "record": self.record.to_dict(),
            "pages": [p.to_dict() for p in self.pages],
        }
