"""
Processing pipeline: input files -> pages -> grouped documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .config import Config, get_config
from .exceptions import AuthorizationExpiredError
from .grouping import DocumentGrouper, GroupingState
from .logger import get_logger, log_progress, log_timing
from .models import GroupedDocument, PageTiming, ProcessingStats
from .processors import FieldExtractor, PageExtractor, ProcessingContext
from .grouping.document_grouper import ExtractFn
from .utils.file_utils import iter_input_files
from .utils.timing import Timer


# (current, total, status)
ProgressCallback = Callable[[int, int, str], None]


@dataclass
class RunResult:
    """Outcome of one ``process_files`` call."""

    documents: List[GroupedDocument] = field(default_factory=list)
    stats: ProcessingStats = field(default_factory=ProcessingStats)

    # Set when the run stopped early on a rejected API key
    error: Optional[AuthorizationExpiredError] = None

    @property
    def aborted(self) -> bool:
        return self.error is not None


class GroupingPipeline:
    """
    Runs page extraction and grouping for a batch of files.

    Args:
        config: Application config (default: global config)
        extract: Extraction oracle override; defaults to a FieldExtractor
            bound to this run's context
    """

    def __init__(self, config: Optional[Config] = None, extract: Optional[ExtractFn] = None):
        self.config = config or get_config()
        self.extract = extract
        self.logger = get_logger("GroupingPipeline")

    def process_files(
        self,
        files: Iterable[Path],
        on_progress: Optional[ProgressCallback] = None,
        state: Optional[GroupingState] = None,
    ) -> RunResult:
        """
        Extract pages from ``files`` and group them.

        A rejected API key stops the run; the documents grouped so far are
        returned with ``result.error`` set.

        Raises:
            PageExtractionError: an input file could not be read
        """
        files = list(iter_input_files(files))
        context = ProcessingContext(config=self.config, input_files=files)
        stats = context.stats
        stats.start()

        def notify(current: int, total: int, status: str) -> None:
            if on_progress:
                on_progress(current, total, status)

        page_extractor = PageExtractor(context)
        pages = []
        timer = Timer()
        timer.start("page_extraction")
        for index, path in enumerate(files, 1):
            notify(0, 0, f"Reading {path.name} ({index}/{len(files)})")
            pages.extend(page_extractor.extract_files([path]))

        log_timing(self.logger, "Page extraction", timer.stop("page_extraction"))
        self.logger.info(f"Extracted {len(pages)} page(s) from {len(files)} file(s)")

        def on_page_grouped(current: int, total: int, timing: PageTiming) -> None:
            status = f"Page {current}/{total}: {timing.page_id} ({timing.decision})"
            if on_progress:
                on_progress(current, total, status)
            else:
                log_progress(self.logger, current, total, timing.page_id)

        extract = self.extract or FieldExtractor(context)
        grouper = DocumentGrouper(stats=stats, on_page_grouped=on_page_grouped)
        state = state if state is not None else GroupingState()

        result = RunResult(stats=stats)
        timer.start("grouping")
        try:
            grouper.process(pages, extract, state)
            stats.complete()
        except AuthorizationExpiredError as e:
            stats.abort(str(e))
            result.error = e
            self.logger.error(f"Run aborted: {e.message}")
        except Exception as e:
            stats.fail(str(e))
            raise
        finally:
            timer.stop("grouping")
            stats.total_time_sec = timer.elapsed
            self.logger.debug(timer.summary())

        result.documents = list(state.documents)
        self.logger.info(f"Run finished:\n{stats.summary_str()}")
        return result
