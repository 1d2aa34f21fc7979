"""Ingestion service clients.

This module provides the client interface consumed by the upload pipeline, the
HTTP implementation for the ingestion REST API, resolution of page resources
into local files, and custom exception classes for error handling.
"""

from .exceptions import (
    PageUploadError,
    ResourceResolutionError,
    UploadAPIError,
    UploadAuthError,
    UploadCanceledError,
    UploadClientError,
    UploadSessionError,
)
from .http_upload_client import HttpUploadClient
from .temp_file_utils import resolved_page_files, temporary_download
from .upload_client import UploadClient

__all__ = [
    "UploadClient",
    "HttpUploadClient",
    "UploadClientError",
    "UploadAPIError",
    "UploadAuthError",
    "UploadSessionError",
    "PageUploadError",
    "ResourceResolutionError",
    "UploadCanceledError",
    "resolved_page_files",
    "temporary_download",
]
