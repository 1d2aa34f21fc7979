"""Loading of locally staged documents.

A staging folder holds the page images of one document, sorted by file name,
and an optional ``page/`` subfolder with one PAGE-XML transcript per image
named after the image stem (``0001.jpg`` -> ``page/0001.xml``).
"""

import logging
from pathlib import Path

from .models import Document, DocumentMetadata, Page, Transcript

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".tif", ".tiff", ".jp2"}
PAGE_XML_DIR = "page"


def load_local_document(folder: str | Path, title: str | None = None) -> Document:
    """Load a document from a local staging folder.

    Args:
        folder: Staging folder containing the page images.
        title: Document title. Defaults to the folder name.

    Returns:
        Document with one page per image, numbered 1..N in file name order.

    Raises:
        FileNotFoundError: If the folder does not exist.
        NotADirectoryError: If the path is not a directory.
    """
    folder = Path(folder).expanduser().resolve()
    if not folder.exists():
        raise FileNotFoundError(f"Document folder does not exist: {folder}")
    if not folder.is_dir():
        raise NotADirectoryError(f"Document path is not a directory: {folder}")

    images = sorted(
        p
        for p in folder.iterdir()
        if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
    )
    xml_dir = folder / PAGE_XML_DIR

    pages = []
    for page_nr, image in enumerate(images, start=1):
        transcripts = []
        xml_path = xml_dir / f"{image.stem}.xml"
        if xml_path.is_file():
            transcripts.append(
                Transcript(
                    url=str(xml_path),
                    timestamp=xml_path.stat().st_mtime,
                    is_current=True,
                )
            )
        pages.append(Page(page_nr=page_nr, image=str(image), transcripts=transcripts))

    with_xml = sum(1 for p in pages if p.transcripts)
    logger.info(
        f"Loaded document from {folder}: {len(pages)} pages, "
        f"{with_xml} with transcripts"
    )

    metadata = DocumentMetadata(title=title or folder.name, local_folder=folder)
    return Document(metadata=metadata, pages=pages)
