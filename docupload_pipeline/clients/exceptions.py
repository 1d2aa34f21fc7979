"""
Custom exception classes for document upload operations.

This module defines domain-specific exceptions that provide clear error context
for interactions with the ingestion service and the local staging folder, making
error handling in the orchestration layer explicit.

Exception Hierarchy:
- UploadClientError (base for all remote service errors)
  ├── UploadAPIError
  ├── UploadAuthError
  ├── UploadSessionError
  └── PageUploadError
- ResourceResolutionError
- UploadCanceledError
"""


class UploadClientError(Exception):
    """Base exception for all upload client errors.

    All errors raised while talking to the ingestion service inherit from this
    class, allowing for broad exception catching when needed while maintaining
    specific error types for precise error handling.
    """

    def __init__(self, message: str, original_exception: Exception | None = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message describing what went wrong.
            original_exception: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception

    def __str__(self) -> str:
        """Return string representation with context."""
        if self.original_exception:
            orig_type = type(self.original_exception).__name__
            orig_msg = str(self.original_exception)
            return f"{self.message} (Original: {orig_type}: {orig_msg})"
        return self.message


class UploadAPIError(UploadClientError):
    """Exception raised for ingestion service communication failures.

    This exception is raised when there are network errors, server errors (5xx),
    unexpected client errors (4xx) or unparseable responses.
    """

    pass


class UploadAuthError(UploadAPIError):
    """Exception raised for authentication/authorization failures.

    Raised on 401 Unauthorized and 403 Forbidden responses, e.g. when the
    session has expired or the user may not upload into the collection.
    """

    pass


class UploadSessionError(UploadClientError):
    """Exception raised when an upload session cannot be opened.

    Session-open failures are treated as structural or authorization problems
    and are never retried.
    """

    pass


class PageUploadError(UploadClientError):
    """Exception raised when a single page PUT request fails.

    Carries the page number so callers can tell how far the upload got.
    """

    def __init__(
        self,
        message: str,
        page_nr: int | None = None,
        original_exception: Exception | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message describing what went wrong.
            page_nr: Page number of the page that failed to upload.
            original_exception: Optional original exception that caused this error.
        """
        super().__init__(message, original_exception)
        self.page_nr = page_nr


class ResourceResolutionError(Exception):
    """Exception raised when a page resource cannot be turned into a local file.

    This is fatal for the page: a page that claims a transcript whose file
    cannot be located is surfaced rather than uploaded without it.
    """

    def __init__(
        self,
        message: str,
        page_nr: int,
        resource: str | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.page_nr = page_nr
        self.resource = resource
        self.original_exception = original_exception

    def __str__(self) -> str:
        """Return string representation with context."""
        error_msg = f"{self.message} [Page: {self.page_nr}, Resource: {self.resource}]"
        if self.original_exception:
            error_msg += (
                f" (Original: {type(self.original_exception).__name__}: "
                f"{str(self.original_exception)})"
            )
        return error_msg


class UploadCanceledError(Exception):
    """Exception raised when the upload was canceled by the user.

    Not part of the UploadClientError hierarchy. Callers report a cancellation
    as a benign stop, not as a failure.
    """

    def __init__(self, message: str = "Upload canceled", page_nr: int | None = None):
        """Initialize the exception.

        Args:
            message: Human-readable description of the cancellation.
            page_nr: Page number before which the cancellation was observed, or
                None if it was observed before the page loop started.
        """
        super().__init__(message)
        self.message = message
        self.page_nr = page_nr
