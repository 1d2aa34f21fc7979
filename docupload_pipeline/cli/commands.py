"""Command implementations for the Document Upload Pipeline CLI.

This module contains the command functions that implement the upload, status
and dry-run workflows. These commands are called from the main entry point
after configuration validation and client initialization.
"""

from collections.abc import Iterator
from contextlib import contextmanager
import logging
from pathlib import Path
import signal
import threading

from tabulate import tabulate

from docupload_pipeline.clients.exceptions import UploadCanceledError
from docupload_pipeline.clients.http_upload_client import HttpUploadClient
from docupload_pipeline.clients.upload_client import UploadClient
from docupload_pipeline.domain.config import AppConfig, ConfigError
from docupload_pipeline.domain.local_loader import load_local_document
from docupload_pipeline.domain.models import UploadResult
from docupload_pipeline.domain.recovery import read_snapshot
from docupload_pipeline.orchestration.pipeline import DocUploadPipeline
from docupload_pipeline.utils.cancellation import CancellationToken
from docupload_pipeline.utils.logging import (
    _supports_unicode,
    log_document_table,
    log_upload_summary,
)
from docupload_pipeline.utils.progress import (
    LoggingProgressReporter,
    ProgressReporter,
    TqdmProgressReporter,
)
from docupload_pipeline.utils.retry import RetryPolicy

EXIT_SUCCESS = 0
EXIT_CANCELED = 1
EXIT_FAILED = 2


@contextmanager
def cancel_on_interrupt(
    token: CancellationToken, logger: logging.Logger
) -> Iterator[CancellationToken]:
    """Set the cancellation token on Ctrl+C instead of raising KeyboardInterrupt.

    The page currently in flight finishes; the upload stops before the next
    page. Signal handlers can only be installed from the main thread, so in
    any other thread the token is yielded unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield token
        return

    def handler(signum, frame) -> None:
        logger.warning("Interrupt received, canceling after the current page...")
        token.cancel("Interrupted by user")

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def _determine_exit_code(result: UploadResult | None) -> int:
    """Determine the appropriate exit code based on the upload result.

    Returns:
        Exit code: 0 for success, 1 for cancellation, 2 for failure
    """
    if result is None:
        return EXIT_FAILED
    if result.status == "success":
        return EXIT_SUCCESS
    if result.status == "canceled":
        return EXIT_CANCELED
    return EXIT_FAILED


def dry_run_command(cfg: AppConfig, logger: logging.Logger) -> int:
    """Load the document and preview its pages without any network access.

    Args:
        cfg: Application configuration object
        logger: Logger instance for logging messages

    Returns:
        Exit code: 0 for success
    """
    logger.info("Dry-run mode enabled - previewing document without uploading")
    document = load_local_document(cfg.upload.document_dir)
    log_document_table(logger, document)
    logger.info(
        f"Would upload {document.n_pages} pages to collection "
        f"{cfg.upload.collection_id} ({cfg.upload.upload_type})"
    )
    return EXIT_SUCCESS


def upload_command(
    cfg: AppConfig,
    logger: logging.Logger,
    client: UploadClient,
    reporter: ProgressReporter | None = None,
) -> int:
    """Upload the configured document.

    Loads the document from the staging folder, runs the pipeline with a
    progress reporter and Ctrl+C cancellation, and displays a summary.

    Args:
        cfg: Application configuration object
        logger: Logger instance for logging messages
        client: Initialized upload client
        reporter: Optional reporter. Defaults to a tqdm progress bar if
            upload.show_progress is set, otherwise to a logging reporter.

    Returns:
        Exit code: 0 for success, 1 for cancellation, 2 for failure
    """
    document = load_local_document(cfg.upload.document_dir)

    if reporter is None:
        if cfg.upload.show_progress:
            reporter = TqdmProgressReporter()
        else:
            reporter = LoggingProgressReporter(logger)

    http_session = client.http_session if isinstance(client, HttpUploadClient) else None

    token = CancellationToken()
    pipeline = DocUploadPipeline(
        client=client,
        collection_id=cfg.upload.collection_id,
        document=document,
        upload_type=cfg.upload.upload_type,
        compute_checksums=cfg.upload.compute_checksums,
        reporter=reporter,
        cancel_token=token,
        retry_policy=RetryPolicy.from_config(cfg.retry),
        http_session=http_session,
    )

    try:
        with cancel_on_interrupt(token, logger):
            pipeline.run()
    except UploadCanceledError:
        logger.info("Upload stopped by user")
    except Exception as e:
        # run() records a result for every failure it has logged
        if pipeline.result is None:
            raise
        logger.debug(f"Upload aborted: {e}")
    finally:
        reporter.close()

    log_upload_summary(logger, pipeline.result)
    return _determine_exit_code(pipeline.result)


def status_command(cfg: AppConfig, logger: logging.Logger, client: UploadClient) -> int:
    """Query the state of an upload session.

    The upload id is taken from upload.upload_id or, if unset, from the
    upload.xml recovery snapshot in the document folder.

    Returns:
        Exit code: 0 for success

    Raises:
        ConfigError: If no upload id is configured and no snapshot exists.
    """
    upload_id = cfg.upload.upload_id
    if upload_id is None:
        snapshot = read_snapshot(Path(cfg.upload.document_dir).expanduser())
        if snapshot is None:
            raise ConfigError(
                "No upload id given and no upload.xml found in "
                f"{cfg.upload.document_dir}. Set upload.upload_id."
            )
        upload_id = snapshot.upload_id
        logger.info(f"Using upload id {upload_id} from upload.xml")

    session = client.get_upload_status(upload_id)

    table_data = [
        ["Upload ID", session.upload_id],
        ["Title", session.title or "-"],
        ["Created", session.created or "-"],
        ["Complete", session.upload_complete],
        ["Pages uploaded", f"{session.pages_uploaded}/{len(session.pages)}"],
        ["Job ID", session.job_id or "-"],
    ]
    tablefmt = "grid" if _supports_unicode() else "simple"
    logger.info(tabulate(table_data, tablefmt=tablefmt))

    missing = [p for p in session.pages if not p.page_uploaded]
    if missing:
        logger.info(
            "Pages not yet received: "
            + ", ".join(str(p.page_nr) for p in missing)
        )
    return EXIT_SUCCESS
