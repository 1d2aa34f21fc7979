"""Opening of remote upload sessions.

An upload session is opened once per document, before the first page is sent.
The structural encoding selected by the UploadType tells the service which
files to expect. Session-open failures are never retried: they are treated as
authorization or structural problems rather than transient ones.
"""

import logging

from docupload_pipeline.clients.upload_client import UploadClient
from docupload_pipeline.domain.config import ConfigError
from docupload_pipeline.domain.models import Document, UploadSession, UploadType
from docupload_pipeline.domain.structure import build_mets, build_upload_descriptor

logger = logging.getLogger(__name__)


def open_upload_session(
    client: UploadClient,
    document: Document,
    collection_id: int,
    upload_type: UploadType | None,
) -> UploadSession:
    """Build the structural encoding of a document and open an upload session.

    Args:
        client: Client of the ingestion service.
        document: Document to upload. Checksums are included in the encoding
            when the checksum stage has run.
        collection_id: Target collection id.
        upload_type: Structural encoding to send.

    Returns:
        Fresh UploadSession with upload_id set and no job id.

    Raises:
        NotImplementedError: If upload_type is UploadType.NoStructure.
        ConfigError: If upload_type is None or not an UploadType.
        UploadClientError: If the service rejects the session.
    """
    if upload_type == UploadType.METS:
        mets = build_mets(document)
        logger.debug(f"Built METS for {document.n_pages} pages ({len(mets)} chars)")
        return client.create_upload(collection_id, mets=mets)
    elif upload_type == UploadType.JSON:
        descriptor = build_upload_descriptor(document)
        logger.debug(f"Built upload descriptor for {document.n_pages} pages")
        return client.create_upload(collection_id, descriptor=descriptor)
    elif upload_type == UploadType.NoStructure:
        raise NotImplementedError("Upload type NoStructure is not implemented")
    else:
        raise ConfigError(f"Invalid upload type: {upload_type!r}")
