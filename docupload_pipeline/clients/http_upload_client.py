"""HTTP client for the document ingestion REST API.

This module provides a high-level interface for the upload endpoints of the
ingestion service, handling session creation, per-page multipart uploads and
status queries, and parsing responses into domain models.
"""

import json
import logging
from pathlib import Path
from typing import Any

import requests

from ..domain.config import ServerConfig
from ..domain.models import UploadSession
from .exceptions import (
    PageUploadError,
    UploadAPIError,
    UploadAuthError,
    UploadSessionError,
)
from .upload_client import UploadClient

logger = logging.getLogger(__name__)


class HttpUploadClient(UploadClient):
    """Client for the upload endpoints of the ingestion REST API.

    Endpoints:
        POST /uploads?collId={id}   open a session (METS XML or JSON body)
        PUT  /uploads/{uploadId}    send one page (multipart: img, xml)
        GET  /uploads/{uploadId}    query the session state

    Example:
        >>> config = ServerConfig(base_url="https://example.org/rest", api_token="...")
        >>> client = HttpUploadClient(config)
        >>> session = client.create_upload(42, mets=mets_xml)
        >>> session = client.put_page(session.upload_id, Path("0001.jpg"), None)
    """

    UPLOADS_ENDPOINT = "/uploads"

    def __init__(self, config: ServerConfig) -> None:
        """Initialize the client.

        Args:
            config: Server configuration containing base URL and credentials.

        Raises:
            UploadAPIError: If client initialization fails.
        """
        try:
            self.config = config
            self.base_url = config.base_url.rstrip("/")
            self._session = requests.Session()
            self._session.headers.update({"Accept": "application/json"})

            if config.api_token:
                self._session.headers.update(
                    {"Authorization": f"Bearer {config.api_token}"}
                )
            elif config.session_id:
                self._session.cookies.set("JSESSIONID", config.session_id)
            else:
                logger.warning(
                    "No api_token or session_id configured, requests are sent "
                    "without credentials"
                )

            logger.info(f"HttpUploadClient initialized (base_url: {self.base_url})")
        except Exception as e:
            error_msg = f"Failed to initialize upload client: {str(e)}"
            logger.error(error_msg)
            raise UploadAPIError(error_msg, original_exception=e) from e

    @property
    def http_session(self) -> requests.Session:
        """The underlying requests session, shared for resource downloads."""
        return self._session

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Centralized API request handler.

        Constructs the full URL, makes the request, handles common errors,
        and returns the response object.

        Args:
            method: HTTP method (GET, POST, PUT).
            endpoint: API endpoint path (e.g., "/uploads").
            **kwargs: Additional arguments to pass to requests.Session.request().

        Returns:
            Response object from the API request.

        Raises:
            UploadAuthError: On 401/403 responses.
            UploadAPIError: If the request fails or returns another error status.
        """
        url = f"{self.base_url}{endpoint}"
        kwargs.setdefault("timeout", self.config.timeout)

        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            error_msg = f"Request failed: {method} {endpoint} - {str(e)}"
            logger.error(error_msg)
            raise UploadAPIError(error_msg, original_exception=e) from e

        logger.debug(f"API request: {method} {endpoint} -> {response.status_code}")

        if response.status_code in (401, 403):
            error_msg = (
                f"Authentication failed: {response.status_code} {response.reason}"
            )
            logger.error(error_msg)
            raise UploadAuthError(error_msg)
        elif response.status_code == 404:
            error_msg = f"Resource not found: {response.status_code} {response.reason}"
            logger.error(error_msg)
            raise UploadAPIError(error_msg)
        elif 400 <= response.status_code < 500:
            error_msg = f"Client error: {response.status_code} {response.reason}"
            if response.text:
                error_msg += f" - {response.text[:200]}"
            logger.error(error_msg)
            raise UploadAPIError(error_msg)
        elif response.status_code >= 500:
            error_msg = f"Server error: {response.status_code} {response.reason}"
            logger.error(error_msg)
            raise UploadAPIError(error_msg)

        return response

    @staticmethod
    def _parse_session(response: requests.Response) -> UploadSession:
        """Parse an upload session from a JSON response.

        Raises:
            UploadAPIError: If the body is not JSON or carries no upload id.
        """
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            error_msg = f"Failed to parse upload response: {str(e)}"
            logger.error(error_msg)
            raise UploadAPIError(error_msg, original_exception=e) from e

        # Some deployments wrap the bean in its root element name
        if isinstance(data, dict) and "trpUpload" in data:
            data = data["trpUpload"]

        if not isinstance(data, dict):
            raise UploadAPIError(f"Unexpected upload response: {data!r}")
        try:
            return UploadSession.from_dict(data)
        except (TypeError, ValueError) as e:
            error_msg = f"Invalid upload response: {str(e)}"
            logger.error(error_msg)
            raise UploadAPIError(error_msg, original_exception=e) from e

    def create_upload(
        self,
        collection_id: int,
        *,
        mets: str | None = None,
        descriptor: dict[str, Any] | None = None,
    ) -> UploadSession:
        """Open a new upload session in a collection.

        Args:
            collection_id: Target collection id.
            mets: METS XML document describing the upload.
            descriptor: JSON upload descriptor describing the upload.

        Returns:
            Fresh UploadSession.

        Raises:
            ValueError: If not exactly one of mets and descriptor is given.
            UploadSessionError: If the service rejects the session.
        """
        if (mets is None) == (descriptor is None):
            raise ValueError("Exactly one of mets and descriptor must be given")

        kwargs: dict[str, Any] = {"params": {"collId": collection_id}}
        if mets is not None:
            kwargs["data"] = mets.encode("utf-8")
            kwargs["headers"] = {"Content-Type": "application/xml"}
            encoding = "METS"
        else:
            kwargs["json"] = descriptor
            encoding = "JSON"

        logger.info(
            f"Opening upload session in collection {collection_id} ({encoding})"
        )
        try:
            response = self._make_request("POST", self.UPLOADS_ENDPOINT, **kwargs)
            session = self._parse_session(response)
        except UploadAPIError as e:
            raise UploadSessionError(
                f"Could not open upload session in collection {collection_id}",
                original_exception=e,
            ) from e

        logger.info(f"Upload session opened (upload_id: {session.upload_id})")
        return session

    def put_page(
        self, upload_id: int, image_path: Path, transcript_path: Path | None = None
    ) -> UploadSession:
        """Upload the image and optional transcript of a single page.

        Args:
            upload_id: Id of the open upload session.
            image_path: Local image file of the page.
            transcript_path: Local transcript file of the page, if any.

        Returns:
            Updated UploadSession.

        Raises:
            PageUploadError: If the request fails or a file cannot be read.
        """
        endpoint = f"{self.UPLOADS_ENDPOINT}/{upload_id}"
        try:
            with open(image_path, "rb") as img:
                files = {"img": (image_path.name, img, "application/octet-stream")}
                if transcript_path is None:
                    response = self._make_request("PUT", endpoint, files=files)
                else:
                    with open(transcript_path, "rb") as xml:
                        files["xml"] = (transcript_path.name, xml, "application/xml")
                        response = self._make_request("PUT", endpoint, files=files)
            return self._parse_session(response)
        except (UploadAPIError, OSError) as e:
            raise PageUploadError(
                f"Could not upload page image {image_path.name}",
                original_exception=e,
            ) from e

    def get_upload_status(self, upload_id: int) -> UploadSession:
        """Return the current state of an upload session.

        Raises:
            UploadAPIError: If the request fails.
        """
        response = self._make_request("GET", f"{self.UPLOADS_ENDPOINT}/{upload_id}")
        return self._parse_session(response)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()
