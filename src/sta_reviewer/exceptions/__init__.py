"""Custom exceptions for the STA reviewer application.

This module contains all custom exception classes used throughout
the review pipeline.
"""

from .exceptions import (
    DenialReason,
    ReviewError,
    NoFileSelectedError,
    UnsupportedModelError,
    DocumentUnreadableError,
    EligibilityDeniedError,
    ModelCallFailedError,
    ResultUnparseableError,
    PersistenceError,
    LedgerWriteError,
    InsufficientCreditsError,
)

__all__ = [
    "DenialReason",
    "ReviewError",
    "NoFileSelectedError",
    "UnsupportedModelError",
    "DocumentUnreadableError",
    "EligibilityDeniedError",
    "ModelCallFailedError",
    "ResultUnparseableError",
    "PersistenceError",
    "LedgerWriteError",
    "InsufficientCreditsError",
]
