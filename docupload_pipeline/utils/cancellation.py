"""Cooperative cancellation of a running upload.

The caller keeps a CancellationToken and passes it into the pipeline. The
pipeline polls the token at defined boundaries only; an in-flight request is
never interrupted.
"""

import threading

from ..clients.exceptions import UploadCanceledError


class CancellationToken:
    """Thread-safe flag that a caller sets to request cancellation."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Calling it again keeps the first reason."""
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    @property
    def is_canceled(self) -> bool:
        return self._event.is_set()

    def raise_if_canceled(self, page_nr: int | None = None) -> None:
        """Raise UploadCanceledError if cancellation was requested.

        Args:
            page_nr: Page number about to be processed, for error reporting.
        """
        if self._event.is_set():
            raise UploadCanceledError(
                self.reason or "Upload canceled", page_nr=page_nr
            )
