"""Progress reporting for the Document Upload Pipeline.

The pipeline pushes progress events to a reporter that is injected by the
caller; there is no global registry. Three events exist: beginning a task,
a textual status update and a percent-complete update (0..100).

This module provides the reporter interface and three implementations:
a tqdm progress bar for terminals, a logging reporter for non-interactive
runs, and a null reporter that discards all events.
"""

from abc import ABC, abstractmethod
import logging

from tqdm import tqdm

from .logging import _supports_unicode

logger = logging.getLogger(__name__)


class ProgressReporter(ABC):
    """Sink for progress events of a single pipeline run."""

    @abstractmethod
    def begin_task(self, description: str, total_units: int = 100) -> None:
        """Announce the start of a task measured in total_units."""
        pass

    @abstractmethod
    def update_status(self, status: str | int) -> None:
        """Report a status text (str) or percent complete (int)."""
        pass

    def close(self) -> None:
        """Release any resources held by the reporter."""


class NullProgressReporter(ProgressReporter):
    """Reporter that discards all events."""

    def begin_task(self, description: str, total_units: int = 100) -> None:
        pass

    def update_status(self, status: str | int) -> None:
        pass


class LoggingProgressReporter(ProgressReporter):
    """Reporter that writes all events to a logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger

    def begin_task(self, description: str, total_units: int = 100) -> None:
        self._logger.info(description)

    def update_status(self, status: str | int) -> None:
        if isinstance(status, int):
            self._logger.info(f"Progress: {status}%")
        else:
            self._logger.info(status)


class TqdmProgressReporter(ProgressReporter):
    """Progress bar wrapper around tqdm for consistent styling.

    Percent updates move the bar to an absolute position, status texts are
    shown as postfix. Provides a context manager interface with automatic
    cleanup and graceful unicode handling.

    Example:
        >>> with TqdmProgressReporter(unit="%") as reporter:
        ...     pipeline = DocUploadPipeline(..., reporter=reporter)
        ...     pipeline.run()
    """

    def __init__(self, unit: str = "%") -> None:
        self.unit = unit
        self._pbar: tqdm | None = None

    def __enter__(self) -> "TqdmProgressReporter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def begin_task(self, description: str, total_units: int = 100) -> None:
        self.close()
        self._pbar = tqdm(
            total=total_units,
            desc=description,
            unit=self.unit,
            ncols=80,
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]",
            ascii=not _supports_unicode(),
        )

    def update_status(self, status: str | int) -> None:
        if self._pbar is None:
            return
        if isinstance(status, int):
            self._pbar.n = status
            self._pbar.refresh()
        else:
            self._pbar.set_postfix_str(status)

    def close(self) -> None:
        """Manually close and cleanup progress bar."""
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None
