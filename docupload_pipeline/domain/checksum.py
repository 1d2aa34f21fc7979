"""Checksum computation for locally staged documents.

The checksum stage runs before an upload session is opened. It computes an MD5
checksum over every page image and every current transcript and stores it on
the page, so the service can verify the files it receives. Checksums are a
precondition: any I/O error aborts the pipeline before the first network call.
"""

from collections.abc import Callable
import hashlib
import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

from .models import Document

logger = logging.getLogger(__name__)

ChecksumObserver = Callable[[str | int], None]

CHUNK_SIZE = 1024 * 1024


def md5sum(path: Path) -> str:
    """Return the hex MD5 digest of a file, read in chunks.

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def local_path(resource: str) -> Path | None:
    """Return the local path of a resource, or None for remote URLs."""
    parsed = urlparse(resource)
    if parsed.scheme in ("http", "https"):
        return None
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(resource)


class ChecksumComputer:
    """Computes and attaches MD5 checksums to all pages of a document.

    Progress is pushed to registered observers: a status message when the
    stage starts and a percent value after each page.

    Example:
        >>> computer = ChecksumComputer()
        >>> computer.add_observer(reporter.update_status)
        >>> document = computer.compute_and_set(document)
    """

    def __init__(self) -> None:
        self._observers: list[ChecksumObserver] = []

    def add_observer(self, observer: ChecksumObserver) -> None:
        """Register a callback that receives status texts and percent values."""
        self._observers.append(observer)

    def remove_observer(self, observer: ChecksumObserver) -> None:
        """Unregister a callback; unknown callbacks are ignored."""
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, event: str | int) -> None:
        for observer in self._observers:
            observer(event)

    def compute_and_set(self, document: Document) -> Document:
        """Compute checksums for every page and store them on the document.

        Remote (http/https) resources are skipped: only content present in the
        local staging folder is checksummed.

        Args:
            document: Document whose pages are checksummed in place.

        Returns:
            The same document, with image_checksum and transcript checksums set.

        Raises:
            OSError: If a page image or transcript cannot be read.
        """
        n_pages = document.n_pages
        self._notify(f"Computing checksums for {n_pages} pages...")

        for index, page in enumerate(document.pages, start=1):
            image_path = local_path(page.image)
            if image_path is None:
                logger.debug(f"Skipping checksum of remote image: {page.image}")
            else:
                page.image_checksum = md5sum(image_path)

            transcript = page.current_transcript
            if transcript is not None:
                xml_path = local_path(transcript.url)
                if xml_path is None:
                    logger.debug(
                        f"Skipping checksum of remote transcript: {transcript.url}"
                    )
                else:
                    transcript.checksum = md5sum(xml_path)

            logger.debug(
                f"Page {page.page_nr}: image md5={page.image_checksum}, "
                f"xml md5={transcript.checksum if transcript else None}"
            )
            self._notify(int(100 * index / n_pages))

        return document
