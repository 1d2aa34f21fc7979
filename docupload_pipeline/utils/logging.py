"""Logging utilities for the Document Upload Pipeline.

This module provides structured logging functions that integrate with Hydra's
logging system and support unicode/emoji for user-friendly terminal output.
"""

import logging
import os
import sys

from tabulate import tabulate

from docupload_pipeline.domain.models import Document, UploadResult


def _supports_unicode() -> bool:
    """Detect if terminal supports unicode/emoji.

    Checks system encoding and environment variables to determine if the
    terminal can display unicode characters and emoji.

    Returns:
        True if terminal supports unicode, False otherwise
    """
    # Check for explicit ASCII-only mode
    if os.environ.get("FORCE_ASCII") == "1":
        return False

    encoding = getattr(sys.stdout, "encoding", None)
    if encoding is None:
        return False

    unicode_encodings = {"utf-8", "utf-16", "utf-32", "utf-8-sig"}
    return encoding.lower() in unicode_encodings


def _format_with_emoji(message: str, emoji: str, fallback: str) -> str:
    """Format message with emoji or fallback text.

    Args:
        message: The message text to format
        emoji: Unicode emoji character to prepend
        fallback: ASCII fallback text to use if unicode not supported

    Returns:
        Formatted message with emoji or fallback
    """
    if _supports_unicode():
        return f"{emoji} {message}"
    else:
        return f"{fallback} {message}"


def setup_logging() -> logging.Logger:
    """Initialize logging configuration for the pipeline.

    Hydra configures handlers and formatters when @hydra.main() is used, so this
    function returns the package logger for use throughout the pipeline.

    Returns:
        Configured logger instance ready for use
    """
    return logging.getLogger("docupload_pipeline")


def log_startup(logger: logging.Logger, message: str) -> None:
    """Log pipeline startup message.

    Example:
        >>> log_startup(logger, "Uploading document at /data/doc")
        # Output: "🚀 Uploading document at /data/doc" or "[START] ..."
    """
    logger.info(_format_with_emoji(message, "🚀", "[START]"))


def log_page_upload(
    logger: logging.Logger, page_nr: int, n_pages: int, file_name: str
) -> None:
    """Log the start of a page upload with progress information.

    Example:
        >>> log_page_upload(logger, 3, 10, "0003.jpg")
        # Output: "📄 Uploading page [3/10]: 0003.jpg"
    """
    message = f"Uploading page [{page_nr}/{n_pages}]: {file_name}"
    logger.info(_format_with_emoji(message, "📄", "[*]"))


def log_retry(
    logger: logging.Logger,
    page_nr: int,
    attempt: int,
    max_attempts: int,
    delay: float,
    error: Exception,
) -> None:
    """Log a failed page upload attempt that will be retried.

    Args:
        logger: Logger instance to use for logging
        page_nr: Page number of the failed upload
        attempt: Number of the failed attempt (1-indexed)
        max_attempts: Total number of attempts allowed
        delay: Delay in seconds before the next attempt
        error: Exception raised by the failed attempt
    """
    message = (
        f"Page {page_nr}: attempt {attempt}/{max_attempts} failed "
        f"({type(error).__name__}: {error}), retrying"
    )
    if delay > 0:
        message += f" in {delay:.1f}s"
    logger.warning(_format_with_emoji(message, "🔁", "[RETRY]"))


def log_snapshot_saved(logger: logging.Logger, path: str) -> None:
    """Log that a recovery snapshot was written.

    Example:
        >>> log_snapshot_saved(logger, "/data/doc/upload.xml")
        # Output: "💾 Saved upload state: /data/doc/upload.xml"
    """
    message = f"Saved upload state: {path}"
    logger.info(_format_with_emoji(message, "💾", "[SAVE]"))


def log_upload_complete(logger: logging.Logger, job_id: str | None) -> None:
    """Log successful completion of all page uploads."""
    message = f"Upload completed. Ingest-job ID = {job_id}"
    logger.info(_format_with_emoji(message, "✅", "[DONE]"))


def log_canceled(logger: logging.Logger, reason: str) -> None:
    """Log a user-initiated cancellation."""
    message = f"Upload canceled: {reason}"
    logger.info(_format_with_emoji(message, "⏹️", "[CANCEL]"))


def log_error(logger: logging.Logger, error: Exception, context: dict) -> None:
    """Log an error with structured context information.

    Formats a detailed error message including the exception details and
    relevant context for debugging.

    Args:
        logger: Logger instance to use for logging
        error: Exception that was raised
        context: Dictionary containing context information such as:
            - document: Local folder or title of the document
            - step: Pipeline step where the error occurred
            - page_nr: Page number, if the error is page-specific

    Example:
        >>> context = {"document": "/data/doc", "step": "page upload", "page_nr": 3}
        >>> log_error(logger, UploadAPIError("Server error: 503"), context)
    """
    document = context.get("document", "Unknown")
    step = context.get("step", "Unknown")
    error_type = type(error).__name__

    header = _format_with_emoji(f'Upload failed for "{document}"', "❌", "[ERROR]")
    message = f"{header}\n   Step: {step}"
    if context.get("page_nr") is not None:
        message += f"\n   Page: {context['page_nr']}"
    message += f"\n   Error: {error_type}: {error}"

    logger.error(message)
    # Include full traceback only when in an active exception context
    if sys.exc_info()[0] is not None:
        logger.debug("Full traceback:", exc_info=True)


def get_error_suggestion(error_message: str) -> str:
    """Get actionable suggestion based on error message pattern.

    Args:
        error_message: Error message string to analyze

    Returns:
        Actionable suggestion string based on error pattern
    """
    error_lower = error_message.lower()

    if "authentication" in error_lower or "401" in error_lower or "403" in error_lower:
        return "Check api_token/session_id and upload permissions on the collection"
    elif (
        "network" in error_lower
        or "connection" in error_lower
        or "timeout" in error_lower
    ):
        return "Check internet connection and retry"
    elif "not found" in error_lower or "404" in error_lower:
        return "Verify the collection id and server.base_url"
    elif "does not exist" in error_lower or "download" in error_lower:
        return "Verify that all page images and transcripts are present"
    elif "server error" in error_lower:
        return "The ingestion service is unavailable, retry later"
    else:
        return "Review error details and check logs for more information"


def log_document_table(logger: logging.Logger, document: Document) -> None:
    """Log the pages of a document as a table.

    Example:
        >>> log_document_table(logger, document)
        # Output: table of page number, image and transcript per page
    """
    table_data = []
    for page in document.pages:
        transcript = page.current_transcript
        table_data.append(
            [
                page.page_nr,
                page.image_file_name,
                transcript.file_name if transcript else "-",
            ]
        )

    tablefmt = "grid" if _supports_unicode() else "simple"
    logger.info(f'Document "{document.metadata.title}" ({document.n_pages} pages)')
    if table_data:
        table_str = tabulate(
            table_data, headers=["Page", "Image", "Transcript"], tablefmt=tablefmt
        )
        logger.info(table_str)
    else:
        logger.info("No pages found")


def log_upload_summary(logger: logging.Logger, result: UploadResult) -> None:
    """Log a summary table of an upload run.

    Includes status, pages uploaded, retries, upload and job ids, snapshot
    path and duration. For failed runs an actionable suggestion is appended.
    """
    session = result.session
    minutes = int(result.upload_time // 60)
    seconds = int(result.upload_time % 60)
    time_str = f"{minutes}m {seconds}s" if minutes > 0 else f"{seconds}s"

    table_data = [
        ["Status", result.status],
        ["Pages uploaded", f"{result.pages_uploaded}/{result.pages_total}"],
        ["Retries", result.retries],
        ["Upload ID", session.upload_id if session else "-"],
        ["Job ID", session.job_id if session and session.job_id else "-"],
        ["Recovery file", str(result.snapshot_path) if result.snapshot_path else "-"],
        ["Time", time_str],
    ]

    tablefmt = "grid" if _supports_unicode() else "simple"
    logger.info("")
    logger.info("Summary:")
    logger.info(tabulate(table_data, tablefmt=tablefmt))

    if result.status == "failed" and result.error:
        logger.info("")
        logger.info(f"Error: {result.error}")
        logger.info(f"Suggestion: {get_error_suggestion(result.error)}")
