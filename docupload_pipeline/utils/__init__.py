"""Utility functions and helpers for the Document Upload Pipeline.

This package provides logging, progress reporting, cancellation and retry
utilities that integrate with Hydra's configuration system and support
unicode/emoji for user-friendly terminal output.
"""

from .cancellation import CancellationToken
from .logging import log_error, log_startup, setup_logging
from .progress import (
    LoggingProgressReporter,
    NullProgressReporter,
    ProgressReporter,
    TqdmProgressReporter,
)
from .retry import NR_OF_RETRIES_ON_FAIL, RetryPolicy

__all__ = [
    "setup_logging",
    "log_startup",
    "log_error",
    "CancellationToken",
    "ProgressReporter",
    "NullProgressReporter",
    "LoggingProgressReporter",
    "TqdmProgressReporter",
    "NR_OF_RETRIES_ON_FAIL",
    "RetryPolicy",
]
