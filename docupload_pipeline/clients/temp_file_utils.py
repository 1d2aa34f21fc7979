"""Resolution of page resources into local files.

Page images and transcripts are referenced by local path, ``file://`` URL or
http(s) URL. The transport only sends local files, so remote resources are
downloaded into temporary files for the duration of a single page. All
utilities ensure cleanup even when the upload of the page fails.
"""

from collections.abc import Generator
from contextlib import ExitStack, contextmanager
import logging
import os
from pathlib import Path
import tempfile
from urllib.parse import urlparse

import requests

from ..domain.checksum import local_path
from ..domain.models import Page
from .exceptions import ResourceResolutionError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 60
DOWNLOAD_CHUNK_SIZE = 64 * 1024


@contextmanager
def temporary_download(
    url: str, page_nr: int, session: requests.Session | None = None
) -> Generator[Path, None, None]:
    """Context manager that downloads a remote resource into a temporary file.

    The temporary file keeps the suffix of the remote file name so the service
    can detect the file type. It is removed when the context exits, even if an
    exception occurs. Cleanup errors are logged as warnings but do not raise
    exceptions to avoid masking original errors.

    Args:
        url: http(s) URL of the resource.
        page_nr: Page number, used in error messages.
        session: Optional requests session to reuse connections and cookies.

    Yields:
        Path: Path object pointing to the downloaded file.

    Raises:
        ResourceResolutionError: If the download fails.
    """
    suffix = Path(urlparse(url).path).suffix
    temp_path_str = None
    http = session or requests

    try:
        with http.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT) as response:
            response.raise_for_status()
            with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as temp_file:
                temp_path_str = temp_file.name
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    temp_file.write(chunk)
        logger.debug(f"Downloaded {url} for page {page_nr} to {temp_path_str}")
    except Exception as e:
        # Attempt to unlink partially created file
        if temp_path_str is not None:
            try:
                os.unlink(temp_path_str)
            except Exception as unlink_error:
                logger.warning(
                    f"Failed to cleanup partially created temporary file "
                    f"{temp_path_str}: {str(unlink_error)}"
                )
        raise ResourceResolutionError(
            "Could not download page resource",
            page_nr=page_nr,
            resource=url,
            original_exception=e,
        ) from e

    temp_path = Path(temp_path_str)
    try:
        yield temp_path
    finally:
        if temp_path.exists():
            try:
                os.unlink(temp_path)
                logger.debug(
                    f"Cleaned up temporary file for page {page_nr}: {temp_path}"
                )
            except Exception as e:
                logger.warning(
                    f"Failed to cleanup temporary file {temp_path}: {str(e)}"
                )


@contextmanager
def _resolved_file(
    resource: str, page_nr: int, session: requests.Session | None
) -> Generator[Path, None, None]:
    path = local_path(resource)
    if path is None:
        with temporary_download(resource, page_nr, session) as temp_path:
            yield temp_path
        return

    if not path.is_file():
        raise ResourceResolutionError(
            "Page resource does not exist", page_nr=page_nr, resource=resource
        )
    yield path


@contextmanager
def resolved_page_files(
    page: Page, session: requests.Session | None = None
) -> Generator[tuple[Path, Path | None], None, None]:
    """Resolve the image and current transcript of a page into local files.

    Args:
        page: Page to resolve.
        session: Optional requests session used for remote resources.

    Yields:
        Tuple of (image_path, transcript_path). transcript_path is None if the
        page has no transcript.

    Raises:
        ResourceResolutionError: If the image or the current transcript cannot
            be located or downloaded.
    """
    with ExitStack() as stack:
        image_path = stack.enter_context(
            _resolved_file(page.image, page.page_nr, session)
        )
        transcript_path = None
        transcript = page.current_transcript
        if transcript is not None:
            transcript_path = stack.enter_context(
                _resolved_file(transcript.url, page.page_nr, session)
            )
        yield image_path, transcript_path
