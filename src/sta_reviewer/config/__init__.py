"""Configuration module for the STA reviewer application.

This module contains all configuration parameters including
model tiers and their credit costs, file size limits, database
configuration and the monthly credit allowance.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

__all__ = ["Config", "ModelOption", "MODEL_OPTIONS", "get_model_option"]

FAST_COST: int = 50
PRO_COST: int = 100


@dataclass(frozen=True)
class ModelOption:
    """A selectable model tier.

    Attributes:
        identifier: Provider model name sent with the request
        label: Short display label
        cost: Credits debited per successful analysis (0 means unmetered)
        helper: Help text shown under the selector
    """
    identifier: str
    label: str
    cost: int
    helper: str

    @property
    def is_paid(self) -> bool:
        return self.cost > 0


MODEL_OPTIONS: Tuple[ModelOption, ...] = (
    ModelOption(
        identifier="gpt-4o-mini",
        label="Superfast",
        cost=0,
        helper="No credits required",
    ),
    ModelOption(
        identifier="gpt-4.1-mini",
        label="Fast",
        cost=FAST_COST,
        helper=f"Consumes {FAST_COST} credits per analysis",
    ),
    ModelOption(
        identifier="gpt-4.1",
        label="Pro",
        cost=PRO_COST,
        helper=f"Consumes {PRO_COST} credits per analysis",
    ),
)


def get_model_option(identifier: Optional[str]) -> Optional[ModelOption]:
    """Return the model option with the given identifier, if any."""
    for option in MODEL_OPTIONS:
        if option.identifier == identifier:
            return option
    return None


class Config:
    """Configuration class containing application settings and constants.

    This class centralizes all configuration parameters. Values that
    operators change per deployment (database URL, monthly credit
    allowance) are read from the environment.
    """

    # Tier selected when the UI starts
    DEFAULT_MODEL: str = MODEL_OPTIONS[1].identifier

    # File validation limits
    MAX_FILE_SIZE: int = 50 * 1024 * 1024  # 50MB maximum file size
    MIN_FILE_SIZE: int = 100  # 100 bytes minimum file size

    # Database configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///sta_reviewer.db")

    MONTHLY_CREDIT_ENV: str = "MONTHLY_CREDIT"

    @classmethod
    def monthly_credit_limit(cls) -> int:
        """Read the monthly credit allowance from the environment.

        Returns:
            Positive credit limit, or 0 when unset or invalid (paid
            tiers disabled)
        """
        raw: str = os.getenv(cls.MONTHLY_CREDIT_ENV, "0").strip()
        try:
            value = int(float(raw))
        except (ValueError, OverflowError):
            return 0
        return value if value > 0 else 0
