"""
Sequential per-page upload of a document into an open upload session.

This module provides the PageUploadLoop, which sends one PUT request per page
in increasing page-number order, with one request in flight at a time. Each
page's image and current transcript are resolved into local files for the
duration of the page only. Failed requests are repeated according to the
injected RetryPolicy; once the attempts of a page are exhausted the last error
propagates and the loop stops.

Progress is reported after every page as ``floor(100 / n_pages * page_nr)``,
computed in integer arithmetic so the last of N contiguous pages reports 100.
The declared page number is used rather than the position in the document, so
documents with non-contiguous page numbers report non-monotonic percentages.

Cancellation is checked before each page. A request that is already in flight
is never interrupted.
"""

from collections.abc import Callable
import logging

import requests

from docupload_pipeline.clients.exceptions import PageUploadError
from docupload_pipeline.clients.temp_file_utils import resolved_page_files
from docupload_pipeline.clients.upload_client import UploadClient
from docupload_pipeline.domain.models import Document, Page, UploadSession
from docupload_pipeline.utils.cancellation import CancellationToken
from docupload_pipeline.utils.logging import log_page_upload, log_retry
from docupload_pipeline.utils.progress import NullProgressReporter, ProgressReporter
from docupload_pipeline.utils.retry import RetryPolicy


class EmptyDocumentError(ValueError):
    """Raised when a document without pages is passed to the upload loop."""


class PageUploadLoop:
    """Uploads all pages of a document into an open upload session.

    Attributes:
        session: Last upload session returned by the service. Starts as the
            session passed to run() and is replaced after every successful
            page. Readable after a failure to inspect partial progress.
        pages_uploaded: Number of pages uploaded successfully in this run.
        retries: Number of retried attempts in this run.

    Example:
        >>> loop = PageUploadLoop(client, reporter, token, RetryPolicy.immediate())
        >>> session = loop.run(document, session)
        >>> print(session.job_id)
    """

    def __init__(
        self,
        client: UploadClient,
        reporter: ProgressReporter | None = None,
        cancel_token: CancellationToken | None = None,
        retry_policy: RetryPolicy | None = None,
        http_session: requests.Session | None = None,
    ) -> None:
        """Initialize the loop.

        Args:
            client: Client of the ingestion service.
            reporter: Sink for percent-complete updates.
            cancel_token: Token polled before each page.
            retry_policy: Policy for repeating failed page requests. Defaults to
                three immediate retries.
            http_session: Optional requests session for downloading remote
                page resources.
        """
        self.client = client
        self.reporter = reporter or NullProgressReporter()
        self.cancel_token = cancel_token or CancellationToken()
        self.retry_policy = retry_policy or RetryPolicy.immediate()
        self.http_session = http_session
        self.logger = logging.getLogger(__name__)

        self.session: UploadSession | None = None
        self.pages_uploaded = 0
        self.retries = 0

    def run(
        self,
        document: Document,
        session: UploadSession,
        on_page_uploaded: Callable[[Page, UploadSession], None] | None = None,
    ) -> UploadSession:
        """Upload all pages of the document.

        Args:
            document: Document whose pages are uploaded.
            session: Open upload session the pages are associated with.
            on_page_uploaded: Optional callback invoked after each successful
                page with the page and the updated session.

        Returns:
            The session returned for the last page, carrying the job id if the
            service assigned one.

        Raises:
            EmptyDocumentError: If the document has no pages.
            UploadCanceledError: If cancellation was requested before a page.
            ResourceResolutionError: If a page's files cannot be resolved.
            Exception: The error of the last attempt if a page could not be
                uploaded within the retry budget.
        """
        n_pages = document.n_pages
        if n_pages == 0:
            raise EmptyDocumentError("Document has no pages to upload")

        self.session = session
        upload_id = session.upload_id

        for page in document.ordered_pages:
            self.cancel_token.raise_if_canceled(page.page_nr)
            log_page_upload(self.logger, page.page_nr, n_pages, page.image_file_name)

            self.session = self._upload_page(upload_id, page)
            self.pages_uploaded += 1
            if on_page_uploaded is not None:
                on_page_uploaded(page, self.session)

            percent = 100 * page.page_nr // n_pages
            self.logger.debug(f"Page nr.: {page.page_nr} | percent = {percent}")
            self.reporter.update_status(percent)

        return self.session

    def _upload_page(self, upload_id: int, page: Page) -> UploadSession:
        """Resolve the files of a page and send them under the retry policy."""

        def on_retry(attempt: int, delay: float, error: Exception) -> None:
            self.retries += 1
            log_retry(
                self.logger,
                page.page_nr,
                attempt,
                self.retry_policy.max_attempts,
                delay,
                error,
            )

        with resolved_page_files(page, self.http_session) as (image, transcript):
            try:
                return self.retry_policy.call(
                    self.client.put_page,
                    upload_id,
                    image,
                    transcript,
                    on_retry=on_retry,
                )
            except Exception as e:
                if isinstance(e, PageUploadError) and e.page_nr is None:
                    e.page_nr = page.page_nr
                self.logger.error(
                    f"Could not post image: {page.image_file_name} "
                    f"(giving up after {self.retry_policy.max_attempts} attempts)"
                )
                raise
