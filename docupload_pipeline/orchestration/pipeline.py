"""
DocUploadPipeline orchestrates the upload of one locally staged document.

This module provides the DocUploadPipeline class which coordinates the complete
upload workflow:

1. Precondition phase: validates the upload type and the page count and, if
   requested, computes checksums of all page files. Its outcome is a typed
   PreconditionResult; nothing has touched the network yet.
2. Opens an upload session with the selected structural encoding.
3. Uploads every page through the PageUploadLoop.
4. On failure or cancellation, writes the last known upload session to
   ``upload.xml`` in the document's staging folder and re-raises the error.

Errors are never downgraded to success. The last observed session and an
UploadResult summary remain available on the pipeline after a failure.

Example usage:
    >>> from docupload_pipeline.clients.http_upload_client import HttpUploadClient
    >>> from docupload_pipeline.domain.local_loader import load_local_document
    >>> from docupload_pipeline.orchestration.pipeline import DocUploadPipeline
    >>>
    >>> document = load_local_document("/data/my_doc")
    >>> pipeline = DocUploadPipeline(
    ...     client=HttpUploadClient(server_config),
    ...     collection_id=42,
    ...     document=document,
    ...     upload_type=UploadType.METS,
    ...     compute_checksums=True,
    ... )
    >>> session = pipeline.run()
    >>> print(f"Ingest job {session.job_id}")
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
import logging
import time

import requests

from docupload_pipeline.clients.exceptions import UploadCanceledError
from docupload_pipeline.clients.upload_client import UploadClient
from docupload_pipeline.domain.checksum import ChecksumComputer
from docupload_pipeline.domain.config import ConfigError
from docupload_pipeline.domain.models import (
    Document,
    UploadResult,
    UploadSession,
    UploadType,
)
from docupload_pipeline.domain.recovery import RecoverySnapshotWriter
from docupload_pipeline.orchestration.page_uploader import (
    EmptyDocumentError,
    PageUploadLoop,
)
from docupload_pipeline.orchestration.session import open_upload_session
from docupload_pipeline.utils.cancellation import CancellationToken
from docupload_pipeline.utils.logging import (
    log_canceled,
    log_error,
    log_snapshot_saved,
    log_startup,
    log_upload_complete,
)
from docupload_pipeline.utils.progress import NullProgressReporter, ProgressReporter
from docupload_pipeline.utils.retry import RetryPolicy


@dataclass
class PreconditionResult:
    """Outcome of the precondition phase.

    Either ``ok`` is True and ``document`` is ready for upload, or ``ok`` is
    False and ``error`` holds the exception that aborts the pipeline.
    """

    ok: bool
    document: Document | None = None
    error: Exception | None = None
    step: str | None = None

    @classmethod
    def success(cls, document: Document) -> "PreconditionResult":
        return cls(ok=True, document=document)

    @classmethod
    def failure(cls, error: Exception, step: str) -> "PreconditionResult":
        return cls(ok=False, error=error, step=step)


class DocUploadPipeline:
    """Uploads a locally staged document to the ingestion service, page by page.

    Each pipeline instance runs one upload of one document. The reporter and
    cancellation token are owned by the caller and injected here; the caller may
    run the pipeline in a worker thread via run_in_background() and cancel it
    from its own thread.

    Attributes:
        client: Client of the ingestion service.
        collection_id: Target collection id.
        document: Document to upload.
        upload_type: Structural encoding used to open the session.
        compute_checksums: Whether the checksum stage runs before upload.
        reporter: Sink for status and percent-complete updates.
        cancel_token: Token polled at page boundaries.
        retry_policy: Policy for repeating failed page requests.
        last_session: Last upload session observed, None before a session was
            opened.
        result: Summary of the last run, None before run() was called.
    """

    def __init__(
        self,
        client: UploadClient,
        collection_id: int,
        document: Document,
        upload_type: UploadType | str | None = UploadType.METS,
        compute_checksums: bool = False,
        reporter: ProgressReporter | None = None,
        cancel_token: CancellationToken | None = None,
        retry_policy: RetryPolicy | None = None,
        snapshot_writer: RecoverySnapshotWriter | None = None,
        checksum_computer: ChecksumComputer | None = None,
        http_session: requests.Session | None = None,
    ) -> None:
        """Initialize the pipeline.

        Raises:
            ConfigError: If client is None, or upload_type is None or does not
                name an upload type.
        """
        if client is None:
            raise ConfigError("Upload client (server connection) is None.")
        try:
            parsed_type = UploadType.parse(upload_type)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        if parsed_type is None:
            raise ConfigError("Upload type is None.")

        self.client = client
        self.collection_id = collection_id
        self.document = document
        self.upload_type: UploadType = parsed_type
        self.compute_checksums = compute_checksums
        self.reporter = reporter or NullProgressReporter()
        self.cancel_token = cancel_token or CancellationToken()
        self.retry_policy = retry_policy or RetryPolicy.immediate()
        self.snapshot_writer = snapshot_writer or RecoverySnapshotWriter()
        self.checksum_computer = checksum_computer or ChecksumComputer()
        self.http_session = http_session
        self.logger = logging.getLogger(__name__)

        self.last_session: UploadSession | None = None
        self.result: UploadResult | None = None

    def check_preconditions(self) -> PreconditionResult:
        """Validate the upload and compute checksums, without network access.

        Returns:
            PreconditionResult carrying the prepared document, or the error that
            prevents the upload: NotImplementedError for NoStructure,
            EmptyDocumentError for a document without pages, OSError when a
            page file cannot be read for checksumming.
        """
        if self.upload_type == UploadType.NoStructure:
            return PreconditionResult.failure(
                NotImplementedError("Upload type NoStructure is not implemented"),
                step="validation",
            )
        if self.document.n_pages == 0:
            return PreconditionResult.failure(
                EmptyDocumentError("Document has no pages to upload"),
                step="validation",
            )

        document = self.document
        if self.compute_checksums:
            self.reporter.update_status("Computing checksums...")
            observer = self.reporter.update_status
            self.checksum_computer.add_observer(observer)
            try:
                document = self.checksum_computer.compute_and_set(document)
            except OSError as e:
                return PreconditionResult.failure(e, step="checksums")
            finally:
                self.checksum_computer.remove_observer(observer)

        return PreconditionResult.success(document)

    def run(self) -> UploadSession:
        """Execute the upload.

        Returns:
            The final upload session, carrying the ingest job id if the service
            assigned one.

        Raises:
            ConfigError, NotImplementedError, EmptyDocumentError, OSError:
                If a precondition fails. No request was sent.
            UploadCanceledError: If cancellation was requested. The recovery
                snapshot has been written.
            Exception: Any failure while opening the session or uploading a
                page. The recovery snapshot has been written.
        """
        start_time = time.time()
        local_folder = self.document.local_folder
        self.last_session = None

        description = f"Uploading document at {local_folder}"
        log_startup(self.logger, description)
        self.reporter.begin_task(description, 100)

        preconditions = self.check_preconditions()
        if not preconditions.ok:
            error = preconditions.error
            log_error(
                self.logger,
                error,
                {"document": local_folder, "step": preconditions.step},
            )
            self.result = self._build_result("failed", 0, 0, start_time, error=error)
            raise error
        document = preconditions.document

        loop = PageUploadLoop(
            self.client,
            reporter=self.reporter,
            cancel_token=self.cancel_token,
            retry_policy=self.retry_policy,
            http_session=self.http_session,
        )

        def remember(page, session: UploadSession) -> None:
            self.last_session = session

        step = "session"
        try:
            self.cancel_token.raise_if_canceled()
            self.reporter.update_status("Initiating upload...")
            self.last_session = open_upload_session(
                self.client, document, self.collection_id, self.upload_type
            )

            step = "page upload"
            self.last_session = loop.run(
                document, self.last_session, on_page_uploaded=remember
            )
        except UploadCanceledError as e:
            log_canceled(self.logger, e.message)
            snapshot = self._store_snapshot()
            self.result = self._build_result(
                "canceled", loop.pages_uploaded, loop.retries, start_time, e, snapshot
            )
            raise
        except Exception as e:
            log_error(
                self.logger,
                e,
                {
                    "document": local_folder,
                    "step": step,
                    "page_nr": getattr(e, "page_nr", None),
                },
            )
            snapshot = self._store_snapshot()
            self.result = self._build_result(
                "failed", loop.pages_uploaded, loop.retries, start_time, e, snapshot
            )
            raise

        log_upload_complete(self.logger, self.last_session.job_id)
        self.reporter.update_status("Upload done.")
        self.result = self._build_result(
            "success", loop.pages_uploaded, loop.retries, start_time
        )
        return self.last_session

    def run_in_background(self) -> Future:
        """Run the upload in a worker thread.

        Returns:
            Future resolving to the final upload session, or raising the error
            run() raised. Cancel through the pipeline's cancel_token.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="docupload")
        try:
            return executor.submit(self.run)
        finally:
            executor.shutdown(wait=False)

    def _store_snapshot(self):
        """Write the recovery snapshot; never raises."""
        try:
            path = self.snapshot_writer.write(
                self.last_session, self.document.local_folder
            )
        except Exception as e:
            self.logger.error(f"Could not store recovery snapshot: {e}", exc_info=True)
            return None
        if path is not None:
            log_snapshot_saved(self.logger, str(path))
        return path

    def _build_result(
        self,
        status: str,
        pages_uploaded: int,
        retries: int,
        start_time: float,
        error: Exception | None = None,
        snapshot_path=None,
    ) -> UploadResult:
        return UploadResult(
            status=status,
            pages_total=self.document.n_pages,
            pages_uploaded=pages_uploaded,
            retries=retries,
            session=self.last_session,
            error=str(error) if error is not None else None,
            snapshot_path=snapshot_path,
            upload_time=time.time() - start_time,
        )
