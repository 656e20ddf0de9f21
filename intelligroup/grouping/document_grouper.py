"""
Document grouping engine.

Walks pages strictly in source order and decides for each one whether it
opens a new ballot or continues an existing one. The decision for page k
depends on everything pages 1..k-1 left in the GroupingState, so pages are
never processed concurrently or out of order.

Per page:
1. Ask the extraction oracle for ``(is_start_page, fields)``.
2. Look for an existing document with the same SNILS, then the same full
   name (documents scanned in creation order, first hit wins).
3. A start page, or a page with no match while nothing is active yet,
   opens a new document. Anything else is appended to the matched document,
   or to the last active one, and its fields are merged in.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, Tuple

from ..exceptions import AuthorizationExpiredError
from ..logger import get_logger
from ..models import (
    BallotRecord,
    ExtractionResult,
    GroupedDocument,
    Page,
    PageTiming,
    ProcessingStats,
    display_name_for,
    usable,
)
from .field_merger import merge_records


ExtractFn = Callable[[Page], Any]
AsyncExtractFn = Callable[[Page], Awaitable[Any]]
PageCallback = Callable[[int, int, PageTiming], None]

NEW_DOCUMENT = "new_document"
SNILS_MATCH = "snils_match"
NAME_MATCH = "name_match"
LAST_ACTIVE = "last_active"


def find_identity_match(
    documents: Iterable[GroupedDocument],
    record: BallotRecord,
) -> Tuple[Optional[GroupedDocument], Optional[str]]:
    """
    Find the first document whose owner matches ``record``.

    SNILS equality is checked across all documents before any name
    comparison. An ``ERROR`` SNILS never matches; a full name with any
    ``ERROR`` part never matches.

    Returns:
        (document, SNILS_MATCH | NAME_MATCH) or (None, None)
    """
    documents = list(documents)

    snils = usable(record.snils)
    if snils:
        for doc in documents:
            if usable(doc.record.snils) == snils:
                return doc, SNILS_MATCH

    full_name = record.full_name
    if full_name and record.name_is_legible:
        for doc in documents:
            if doc.record.name_is_legible and doc.record.full_name == full_name:
                return doc, NAME_MATCH

    return None, None


@dataclass
class GroupingState:
    """
    Grouping state owned by the caller.

    Pass the same instance to successive ``process`` calls to keep grouping
    across upload batches. One state must not be shared by concurrent runs.
    """

    documents: List[GroupedDocument] = field(default_factory=list)

    # Most recently created or updated document
    last_active: Optional[GroupedDocument] = None

    pages_seen: int = 0


def _coerce_extraction(raw: Any) -> ExtractionResult:
    if isinstance(raw, ExtractionResult):
        return raw
    if isinstance(raw, Mapping):
        return ExtractionResult.from_dict(raw)
    return ExtractionResult.empty(f"malformed extraction result: {type(raw).__name__}")


class DocumentGrouper:
    """
    Assigns pages to grouped documents.

    Args:
        stats: Optional run statistics; one PageTiming is added per page
        on_page_grouped: Optional callback ``(current, total, timing)``
            invoked after each page has been assigned
    """

    name = "DocumentGrouper"

    def __init__(
        self,
        stats: Optional[ProcessingStats] = None,
        on_page_grouped: Optional[PageCallback] = None,
    ):
        self.stats = stats
        self.on_page_grouped = on_page_grouped
        self.logger = get_logger(self.name)

    def process(
        self,
        pages: Iterable[Page],
        extract: ExtractFn,
        state: Optional[GroupingState] = None,
    ) -> GroupingState:
        """
        Group ``pages`` in order, calling ``extract`` once per page.

        Raises:
            AuthorizationExpiredError: the oracle's credential was rejected.
                ``error.state`` holds the documents grouped so far.
        """
        state = state if state is not None else GroupingState()
        pages = list(pages)

        for index, page in enumerate(pages, 1):
            start = time.perf_counter()
            try:
                raw = extract(page)
            except AuthorizationExpiredError as e:
                self._abort(state, page, e)
                raise
            except Exception as e:
                self.logger.warning(f"Extraction failed for {page.page_id}, continuing with empty fields: {e}")
                raw = ExtractionResult.empty(str(e) or type(e).__name__)

            self._finish_page(state, page, raw, index, len(pages), time.perf_counter() - start)

        return state

    async def aprocess(
        self,
        pages: Iterable[Page],
        extract: AsyncExtractFn,
        state: Optional[GroupingState] = None,
    ) -> GroupingState:
        """
        Same as ``process`` with an awaitable oracle.

        Each page's call is awaited before the next page is considered.
        """
        state = state if state is not None else GroupingState()
        pages = list(pages)

        for index, page in enumerate(pages, 1):
            start = time.perf_counter()
            try:
                raw = await extract(page)
            except AuthorizationExpiredError as e:
                self._abort(state, page, e)
                raise
            except Exception as e:
                self.logger.warning(f"Extraction failed for {page.page_id}, continuing with empty fields: {e}")
                raw = ExtractionResult.empty(str(e) or type(e).__name__)

            self._finish_page(state, page, raw, index, len(pages), time.perf_counter() - start)

        return state

    def assign(self, state: GroupingState, page: Page, extraction: ExtractionResult) -> Tuple[GroupedDocument, str]:
        """
        Place one already-extracted page into ``state``.

        Returns:
            (target document, decision)
        """
        fields = extraction.fields
        page = page.with_extraction(extraction)
        state.pages_seen += 1

        match, match_kind = find_identity_match(state.documents, fields)

        if extraction.is_start_page or (match is None and state.last_active is None):
            doc = GroupedDocument(
                name=display_name_for(fields, len(state.documents) + 1),
                pages=[page],
                record=fields.copy(),
            )
            state.documents.append(doc)
            state.last_active = doc
            reason = "start page" if extraction.is_start_page else "first page of run"
            self.logger.info(f"New document ({reason}): {doc.name} <- {page.page_id}")
            return doc, NEW_DOCUMENT

        if match is not None:
            target, decision = match, match_kind
        else:
            target, decision = state.last_active, LAST_ACTIVE

        had_last_name = bool(usable(target.record.last_name))
        target.pages.append(page)
        target.record = merge_records(target.record, fields)
        if not had_last_name and usable(target.record.last_name):
            position = state.documents.index(target) + 1
            target.name = display_name_for(target.record, position)
            self.logger.debug(f"Renamed document {target.id} to {target.name}")

        state.last_active = target
        self.logger.info(f"Attached {page.page_id} to {target.name} ({decision})")
        return target, decision

    def _finish_page(
        self,
        state: GroupingState,
        page: Page,
        raw: Any,
        index: int,
        total: int,
        elapsed: float,
    ) -> None:
        extraction = _coerce_extraction(raw)
        if extraction.failed:
            self.logger.warning(f"Page {page.page_id}: using empty extraction ({extraction.error})")

        doc, decision = self.assign(state, page, extraction)

        timing = PageTiming(
            page_id=page.page_id,
            page_number=page.page_number,
            decision=decision,
            document_id=doc.id,
            is_start_page=extraction.is_start_page,
            extraction_failed=extraction.failed,
            extraction_time_sec=elapsed,
        )
        if self.stats is not None:
            self.stats.add_page_timing(timing)
        if self.on_page_grouped:
            self.on_page_grouped(index, total, timing)

    def _abort(self, state: GroupingState, page: Page, error: AuthorizationExpiredError) -> None:
        error.state = state
        self.logger.error(
            f"Authorization rejected at {page.page_id}; stopping with "
            f"{len(state.documents)} document(s) grouped"
        )


def merge_runs(
    existing: List[GroupedDocument],
    incoming: Iterable[GroupedDocument],
) -> List[GroupedDocument]:
    """
    Fold a finished run into a previously persisted document set.

    Each incoming document joins the existing document with the same id or
    the same owner (``find_identity_match``); its record is merged and its
    pages appended unless already present. Unmatched documents are appended.
    Merging the same run twice changes nothing the second time.

    Returns:
        The combined list (``existing`` is updated in place and returned)
    """
    logger = get_logger("DocumentGrouper")

    for doc in incoming:
        target = next((d for d in existing if d.id == doc.id), None)
        kind = "same_id"
        if target is None:
            target, kind = find_identity_match(existing, doc.record)

        if target is None:
            existing.append(doc)
            logger.info(f"Added new document: {doc.name}")
            continue

        had_last_name = bool(usable(target.record.last_name))
        new_pages = [p for p in doc.pages if not target.has_page(p)]
        target.pages.extend(new_pages)
        target.record = merge_records(target.record, doc.record)
        if not had_last_name and usable(target.record.last_name):
            target.name = display_name_for(target.record, existing.index(target) + 1)
        logger.info(f"Merged {doc.name} into {target.name} ({kind}, +{len(new_pages)} pages)")

    return existing
