"""
Base processor class and processing context.

Provides common functionality for the run's processors: logging, timing,
error handling and configuration access.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from ..config import Config
from ..logger import get_logger
from ..models import ProcessingStats
from ..utils.timing import Timer


@dataclass
class ProcessingContext:
    """
    Shared context passed between processors of one run.

    Contains:
    - Configuration
    - Input files and working directories
    - Accumulated statistics (including model usage)
    """

    config: Config
    input_files: List[Path] = field(default_factory=list)
    workspace_dir: Optional[Path] = None
    output_dir: Optional[Path] = None

    stats: ProcessingStats = field(default_factory=ProcessingStats)

    def __post_init__(self):
        if self.workspace_dir is None:
            self.workspace_dir = self.config.workspace_dir
        if self.output_dir is None:
            self.output_dir = self.config.output_dir
        self.input_files = [Path(p) for p in self.input_files]


class BaseProcessor(ABC):
    """
    Abstract base class for processors.

    Provides:
    - Consistent logging
    - Timing instrumentation
    - Error handling around ``process``
    """

    # Processor name for logging (override in subclass)
    name: str = "BaseProcessor"

    def __init__(self, context: ProcessingContext):
        self.context = context
        self.config = context.config
        self.logger = get_logger(self.name)
        self._timer = Timer()

    @property
    def debug_mode(self) -> bool:
        return self.config.debug

    def log_debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message (only in debug mode)."""
        if self.debug_mode:
            extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
            self.logger.debug(f"{message} {extra}".strip())

    def log_info(self, message: str, **kwargs: Any) -> None:
        extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.info(f"{message} {extra}".strip())

    def log_warning(self, message: str, **kwargs: Any) -> None:
        extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.warning(f"{message} {extra}".strip())

    def log_error(self, message: str, error: Optional[Exception] = None) -> None:
        if error:
            self.logger.error(f"{message}: {error}", exc_info=self.debug_mode)
        else:
            self.logger.error(message)

    @abstractmethod
    def process(self) -> bool:
        """
        Execute the processor's main task.

        Returns:
            True if processing succeeded, False otherwise
        """

    def validate(self) -> bool:
        """Check prerequisites. Override in subclass."""
        return True

    def run(self) -> bool:
        """
        Run processor with timing and error handling.

        Returns:
            True if processing succeeded
        """
        self.log_info(f"Starting {self.name}")
        self._timer = Timer()

        try:
            if not self.validate():
                self.log_error("Validation failed")
                return False

            result = self.process()
            self.log_info(f"Completed {self.name}", duration=f"{self._timer.elapsed:.2f}s")
            return result

        except Exception as e:
            self.log_error(f"Failed after {self._timer.elapsed:.2f}s", error=e)
            return False
