"""Database module for the STA reviewer application.

This module contains database management classes including connection
management, session creation, and repositories for the credit ledger
and the analysis history.
"""

from .database_manager import DatabaseManager
from .credit_repository import CreditRepository
from .history_repository import HistoryRepository

__all__ = ["DatabaseManager", "CreditRepository", "HistoryRepository"]
