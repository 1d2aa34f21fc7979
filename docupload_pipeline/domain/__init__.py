"""Domain models, configuration schemas and document-level operations

This module provides the domain layer for the Document Upload Pipeline,
including type-safe configuration schemas, domain models, checksum computation,
structural encodings and the recovery snapshot.
"""

from .checksum import ChecksumComputer
from .config import (
    AppConfig,
    ConfigError,
    RetryConfig,
    ServerConfig,
    UploadConfig,
    register_configs,
)
from .local_loader import load_local_document
from .models import (
    Document,
    DocumentMetadata,
    Page,
    PageUploadState,
    Transcript,
    UploadResult,
    UploadSession,
    UploadType,
)
from .recovery import RecoverySnapshotWriter, read_snapshot
from .structure import build_mets, build_upload_descriptor

__all__ = [
    "AppConfig",
    "ConfigError",
    "RetryConfig",
    "ServerConfig",
    "UploadConfig",
    "register_configs",
    "Document",
    "DocumentMetadata",
    "Page",
    "PageUploadState",
    "Transcript",
    "UploadResult",
    "UploadSession",
    "UploadType",
    "ChecksumComputer",
    "build_mets",
    "build_upload_descriptor",
    "RecoverySnapshotWriter",
    "read_snapshot",
    "load_local_document",
]
