"""Command-line interface components for the Document Upload Pipeline.

This package provides command implementations that handle the upload, status
and dry-run workflows. Commands are called from the main entry point after
configuration validation and client initialization.
"""

from .commands import dry_run_command, status_command, upload_command

__all__ = ["dry_run_command", "status_command", "upload_command"]
