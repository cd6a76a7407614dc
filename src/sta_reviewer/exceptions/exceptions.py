"""Custom exceptions for the STA reviewer application.

This module contains all custom exception classes used throughout
the review pipeline. Errors raised before the model has answered are
user-facing and end the request; errors raised after it are logged and
absorbed by the review processor.
"""

from enum import Enum

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


class DenialReason(Enum):
    """Reasons a paid model tier may be refused."""
    UNCONFIGURED = "unconfigured"
    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    STALE_PERIOD = "stale_period"
    INSUFFICIENT_BALANCE = "insufficient_balance"

    @property
    def message(self) -> str:
        return _DENIAL_MESSAGES[self]


_DENIAL_MESSAGES = {
    DenialReason.UNCONFIGURED: "Paid models are not configured.",
    DenialReason.UNAUTHENTICATED: "Please log in to use paid models.",
    DenialReason.LOADING: "Credit information is still loading. Please try again shortly.",
    DenialReason.STALE_PERIOD: (
        "A new monthly allowance has started and credits are being refreshed. "
        "Please try again shortly."
    ),
    DenialReason.INSUFFICIENT_BALANCE: "Not enough credits remaining.",
}


class ReviewError(Exception):
    """Base class for all review pipeline errors."""
    pass


class NoFileSelectedError(ReviewError):
    """Raised when a review is requested without a PDF file."""

    def __init__(self, message: str = "Please select a PDF file.") -> None:
        super().__init__(message)


class UnsupportedModelError(ReviewError):
    """Raised when the requested model identifier is not a configured tier."""

    def __init__(self, model_id: object) -> None:
        self.model_id = model_id
        super().__init__(f"Unsupported model selection: {model_id}")


class DocumentUnreadableError(ReviewError):
    """Exception raised when the uploaded bytes are not a readable PDF.

    Extraction is deterministic, so this error is never retried.
    """
    pass


class EligibilityDeniedError(ReviewError):
    """Raised when the credit eligibility gate refuses a paid tier.

    Attributes:
        reason: The DenialReason explaining the refusal
    """

    def __init__(self, reason: DenialReason) -> None:
        self.reason: DenialReason = reason
        super().__init__(reason.message)


class ModelCallFailedError(ReviewError):
    """Exception raised when the model provider call fails.

    Attributes:
        provider_message: Message reported by the provider, shown verbatim
    """

    def __init__(self, provider_message: str) -> None:
        self.provider_message: str = provider_message
        super().__init__(provider_message)


class ResultUnparseableError(ReviewError):
    """Raised when model output is not a JSON object.

    Never shown to the user; the raw text is displayed instead.
    """

    def __init__(self, message: str, raw_text: str = "") -> None:
        self.raw_text: str = raw_text
        super().__init__(message)


class PersistenceError(ReviewError):
    """Exception raised during database operations.

    This exception is raised when there are issues with database
    connectivity, queries, or data persistence.
    """
    pass


class LedgerWriteError(PersistenceError):
    """Raised when a credit debit could not be written."""
    pass


class InsufficientCreditsError(LedgerWriteError):
    """Raised when a conditional debit finds the balance below the cost.

    The balance is left unchanged.
    """

    def __init__(self, balance: int, cost: int) -> None:
        self.balance: int = balance
        self.cost: int = cost
        super().__init__(f"Balance {balance} is below the required {cost} credits")
