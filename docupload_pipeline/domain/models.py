"""
Domain models for the Document Upload Pipeline.

This module defines the core data structures that flow through the upload
pipeline: the locally staged document with its pages and transcripts, the
server-side upload session that tracks the ingest, and the result summary that
is reported back to the user.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class UploadType(Enum):
    """Structural encoding sent when opening an upload session.

    Values:
        METS: METS XML document describing the file groups and page order
        JSON: Flat JSON upload descriptor with metadata and page list
        NoStructure: Declared by the service but not implemented by the pipeline
    """

    METS = "METS"
    JSON = "JSON"
    NoStructure = "NoStructure"

    @classmethod
    def parse(cls, value: str | UploadType | None) -> UploadType | None:
        """Resolve a configuration value into an UploadType.

        Matching is case-insensitive so 'mets' and 'METS' are equivalent.
        Returns None for None so callers can decide how to treat a missing type.

        Raises:
            ValueError: If the value does not name an upload type.
        """
        if value is None or isinstance(value, UploadType):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"Unknown upload type: {value}")


@dataclass
class Transcript:
    """A transcript version of a page (e.g. a PAGE-XML file)."""

    url: str
    """Local file path or URL of the transcript file."""

    timestamp: float = 0.0
    """Unix timestamp of the transcript version. The newest one is current when
    no version is explicitly flagged."""

    is_current: bool = False
    """Whether this is the version to upload."""

    checksum: str | None = None
    """MD5 checksum of the transcript file, set by the checksum stage."""

    @property
    def file_name(self) -> str:
        return Path(self.url.split("?", 1)[0]).name


@dataclass
class Page:
    """A single page of a document: one image plus optional transcripts."""

    page_nr: int
    """1-based page number. Defines upload order and the percent reported after
    the page was uploaded."""

    image: str
    """Local file path or URL of the page image."""

    transcripts: list[Transcript] = field(default_factory=list)
    """Transcript versions of this page. May be empty."""

    image_checksum: str | None = None
    """MD5 checksum of the image file, set by the checksum stage."""

    width: int | None = None
    """Image width in pixels, announced in the upload descriptor when known."""

    height: int | None = None

    @property
    def image_file_name(self) -> str:
        return Path(self.image.split("?", 1)[0]).name

    @property
    def current_transcript(self) -> Transcript | None:
        """Return the transcript version that is uploaded with this page.

        The version flagged as current wins; otherwise the newest version by
        timestamp. None if the page has no transcripts.
        """
        if not self.transcripts:
            return None
        for transcript in self.transcripts:
            if transcript.is_current:
                return transcript
        return max(self.transcripts, key=lambda t: t.timestamp)


@dataclass
class DocumentMetadata:
    """Document-level metadata sent along with the structural encoding."""

    title: str
    """Document title shown in the target collection."""

    local_folder: Path
    """Local staging directory. The recovery snapshot is written here."""

    author: str | None = None
    description: str | None = None
    language: str | None = None

    collection_ids: list[int] = field(default_factory=list)
    """Collections the document is already a member of, if known. Announced in
    the metadata of both structural encodings."""


@dataclass
class Document:
    """A locally staged multi-page document.

    Pages are uploaded and announced in increasing page number; pages with
    equal numbers keep their stored order.
    """

    metadata: DocumentMetadata
    pages: list[Page] = field(default_factory=list)

    @property
    def n_pages(self) -> int:
        return len(self.pages)

    @property
    def local_folder(self) -> Path:
        return self.metadata.local_folder

    @property
    def ordered_pages(self) -> list[Page]:
        return sorted(self.pages, key=lambda p: p.page_nr)


@dataclass
class PageUploadState:
    """Server-side state of one page within an upload session."""

    page_nr: int
    file_name: str
    page_xml_name: str | None = None
    page_uploaded: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PageUploadState:
        return cls(
            page_nr=int(data.get("pageNr", 0)),
            file_name=str(data.get("fileName", "")),
            page_xml_name=data.get("pageXmlName") or None,
            page_uploaded=_as_bool(data.get("pageUploaded", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "pageNr": self.page_nr,
            "fileName": self.file_name,
            "pageUploaded": self.page_uploaded,
        }
        if self.page_xml_name is not None:
            result["pageXmlName"] = self.page_xml_name
        return result


@dataclass
class UploadSession:
    """Represents one in-progress document ingest on the remote service.

    Created when the upload session is opened (upload_id known, job_id absent)
    and replaced by the response of every successful page PUT. The service
    attaches the job id once all pages have been received, typically on the
    response to the last page.
    """

    upload_id: int
    """Server-assigned upload session id."""

    job_id: str | None = None
    """Id of the ingest job started once all pages are accepted."""

    upload_complete: bool = False
    """Whether the service has received every page of the document."""

    collection_id: int | None = None
    title: str | None = None
    created: str | None = None
    user_name: str | None = None

    pages: list[PageUploadState] = field(default_factory=list)
    """Per-page state as reported by the service."""

    @property
    def pages_uploaded(self) -> int:
        return sum(1 for page in self.pages if page.page_uploaded)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UploadSession:
        """Build an UploadSession from a service response payload.

        Accepts the camelCase field names used by the REST API. The page list
        is read from either ``pageList.pages`` or a flat ``pages`` list.

        Raises:
            ValueError: If the payload carries no upload id.
        """
        if "uploadId" not in data or data["uploadId"] in (None, ""):
            raise ValueError(f"Upload response carries no uploadId: {data}")

        page_list = data.get("pageList")
        if isinstance(page_list, dict):
            raw_pages = page_list.get("pages", [])
        else:
            raw_pages = data.get("pages", [])
        if isinstance(raw_pages, dict):
            raw_pages = [raw_pages]
        pages = [PageUploadState.from_dict(p) for p in raw_pages or []]

        if "uploadComplete" in data:
            upload_complete = _as_bool(data["uploadComplete"])
        elif "finished" in data and data["finished"] not in (None, ""):
            upload_complete = True
        else:
            upload_complete = bool(pages) and all(p.page_uploaded for p in pages)

        job_id = data.get("jobId")
        md = data.get("md") if isinstance(data.get("md"), dict) else {}
        collection_id = data.get("colId")

        return cls(
            upload_id=int(data["uploadId"]),
            job_id=str(job_id) if job_id not in (None, "") else None,
            upload_complete=upload_complete,
            collection_id=int(collection_id) if collection_id is not None else None,
            title=data.get("title") or md.get("title"),
            created=data.get("created"),
            user_name=data.get("userName"),
            pages=pages,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert this session to the camelCase structure used by the service."""
        result: dict[str, Any] = {
            "uploadId": self.upload_id,
            "uploadComplete": self.upload_complete,
        }
        if self.job_id is not None:
            result["jobId"] = self.job_id
        if self.collection_id is not None:
            result["colId"] = self.collection_id
        if self.title is not None:
            result["title"] = self.title
        if self.created is not None:
            result["created"] = self.created
        if self.user_name is not None:
            result["userName"] = self.user_name
        if self.pages:
            result["pageList"] = {"pages": [page.to_dict() for page in self.pages]}
        return result


@dataclass
class UploadResult:
    """Outcome of a single pipeline run, used for summary reporting."""

    status: str
    """One of 'success', 'failed' or 'canceled'."""

    pages_total: int
    """Number of pages in the document."""

    pages_uploaded: int = 0
    """Number of pages whose PUT request succeeded in this run."""

    retries: int = 0
    """Number of retried page upload attempts in this run."""

    session: UploadSession | None = None
    """Last upload session state observed by the pipeline."""

    error: str | None = None
    """Error message for failed or canceled runs."""

    snapshot_path: Path | None = None
    """Path of the recovery snapshot, if one was written."""

    upload_time: float = 0.0
    """Duration of the run in seconds."""

    @property
    def success(self) -> bool:
        return self.status == "success"


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)
