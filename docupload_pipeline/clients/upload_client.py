"""
Abstract base class for ingestion service clients.

This module defines the interface the upload pipeline consumes. The interface
follows an open-then-put workflow: an upload session is opened with the
structural encoding of the document, then every page is sent with a separate
request that references the session.

Example workflow:
    # 1. session = client.create_upload(col_id, mets=mets_xml)
    # 2. for each page: session = client.put_page(session.upload_id, img, xml)
    # 3. session.job_id is set once all pages are received

Authentication and session handling are the concern of the concrete client.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..domain.models import UploadSession


class UploadClient(ABC):
    """Abstract base class for all ingestion service clients."""

    @abstractmethod
    def create_upload(
        self,
        collection_id: int,
        *,
        mets: str | None = None,
        descriptor: dict[str, Any] | None = None,
    ) -> UploadSession:
        """Open a new upload session in a collection.

        Exactly one of ``mets`` and ``descriptor`` must be given.

        Args:
            collection_id: Target collection id.
            mets: METS XML document describing the upload.
            descriptor: JSON upload descriptor describing the upload.

        Returns:
            Fresh UploadSession with upload_id set and no job id.

        Raises:
            UploadClientError: If the session cannot be opened.
        """
        pass

    @abstractmethod
    def put_page(
        self, upload_id: int, image_path: Path, transcript_path: Path | None = None
    ) -> UploadSession:
        """Upload the image and optional transcript of a single page.

        The server contract does not guarantee idempotency: sending the same
        page twice may register it twice unless the server deduplicates.

        Args:
            upload_id: Id of the open upload session.
            image_path: Local image file of the page.
            transcript_path: Local transcript file of the page, if any.

        Returns:
            Updated UploadSession. The job id is attached once the service has
            received all pages.

        Raises:
            UploadClientError: If the request fails.
        """
        pass

    @abstractmethod
    def get_upload_status(self, upload_id: int) -> UploadSession:
        """Return the current state of an upload session.

        Not used during a normal upload; reserved for polling the ingest job
        and for inspecting interrupted uploads.

        Raises:
            UploadClientError: If the request fails.
        """
        pass
