"""Shared fixtures for the upload pipeline test suite.

Documents are staged in pytest's tmp_path with small fake image and PAGE-XML
files; the ingestion service is replaced by an in-memory FakeUploadClient.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from docupload_pipeline.clients.exceptions import PageUploadError, UploadSessionError
from docupload_pipeline.clients.upload_client import UploadClient
from docupload_pipeline.domain.models import (
    Document,
    DocumentMetadata,
    Page,
    PageUploadState,
    Transcript,
    UploadSession,
)
from docupload_pipeline.utils.progress import ProgressReporter


class FakeUploadClient(UploadClient):
    """In-memory stand-in for the ingestion service.

    Args:
        n_pages: Number of pages after which the job id is attached.
        failures: Mapping of page number to the number of PUT requests for that
            page that fail before one succeeds.
        fail_create: Whether opening the session fails.
        on_put: Hook called with the page number after every successful PUT.
    """

    def __init__(
        self,
        n_pages: int,
        failures: dict[int, int] | None = None,
        fail_create: bool = False,
        on_put: Callable[[int], None] | None = None,
        upload_id: int = 4711,
    ) -> None:
        self.n_pages = n_pages
        self.failures = dict(failures or {})
        self.fail_create = fail_create
        self.on_put = on_put
        self.upload_id = upload_id
        self.create_calls: list[dict] = []
        self.put_calls: list[tuple[int, str, str | None]] = []
        self.status_calls: list[int] = []
        self.uploaded: list[int] = []
        self.errors: list[Exception] = []

    def _session(self) -> UploadSession:
        pages = [
            PageUploadState(page_nr=nr, file_name=f"{nr:04d}.jpg", page_uploaded=True)
            for nr in self.uploaded
        ]
        complete = len(self.uploaded) >= self.n_pages
        return UploadSession(
            upload_id=self.upload_id,
            job_id="job-99" if complete else None,
            upload_complete=complete,
            pages=pages,
        )

    def create_upload(self, collection_id, *, mets=None, descriptor=None):
        self.create_calls.append(
            {"collection_id": collection_id, "mets": mets, "descriptor": descriptor}
        )
        if self.fail_create:
            raise UploadSessionError("Could not open upload session")
        return self._session()

    def put_page(self, upload_id, image_path, transcript_path=None):
        page_nr = int(Path(image_path).stem)
        self.put_calls.append(
            (page_nr, Path(image_path).name, transcript_path and transcript_path.name)
        )
        if self.failures.get(page_nr, 0) > 0:
            self.failures[page_nr] -= 1
            error = PageUploadError(f"Server error on page {page_nr}")
            self.errors.append(error)
            raise error
        self.uploaded.append(page_nr)
        if self.on_put is not None:
            self.on_put(page_nr)
        return self._session()

    def get_upload_status(self, upload_id):
        self.status_calls.append(upload_id)
        return self._session()


class RecordingReporter(ProgressReporter):
    """Reporter that records all events for assertions."""

    def __init__(self) -> None:
        self.tasks: list[tuple[str, int]] = []
        self.events: list[str | int] = []

    def begin_task(self, description, total_units=100):
        self.tasks.append((description, total_units))

    def update_status(self, status):
        self.events.append(status)

    @property
    def percents(self) -> list[int]:
        return [e for e in self.events if isinstance(e, int)]

    @property
    def texts(self) -> list[str]:
        return [e for e in self.events if isinstance(e, str)]


@pytest.fixture
def make_document(tmp_path) -> Callable[..., Document]:
    """Factory staging a document with n pages in tmp_path.

    Page images are named after their page number (0001.jpg, ...), transcripts
    live in the page/ subfolder under the same stem.
    """

    def _make(
        n_pages: int = 4,
        with_transcripts: bool = True,
        page_numbers: list[int] | None = None,
    ) -> Document:
        folder = tmp_path / "doc"
        (folder / "page").mkdir(parents=True, exist_ok=True)
        numbers = page_numbers or list(range(1, n_pages + 1))
        pages = []
        for nr in numbers:
            image = folder / f"{nr:04d}.jpg"
            image.write_bytes(b"\xff\xd8fake-jpeg-" + str(nr).encode())
            transcripts = []
            if with_transcripts:
                xml = folder / "page" / f"{nr:04d}.xml"
                xml.write_text(f"<PcGts><Page nr='{nr}'/></PcGts>", encoding="utf-8")
                transcripts.append(Transcript(url=str(xml), is_current=True))
            pages.append(Page(page_nr=nr, image=str(image), transcripts=transcripts))
        metadata = DocumentMetadata(title="Test document", local_folder=folder)
        return Document(metadata=metadata, pages=pages)

    return _make


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()
