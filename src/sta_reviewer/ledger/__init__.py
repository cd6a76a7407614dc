"""Ledger module for the STA reviewer application.

This module contains the monthly credit ledger and its eligibility gate.
"""

from .credit_ledger import CreditLedger, CreditSnapshot, period_key

__all__ = ["CreditLedger", "CreditSnapshot", "period_key"]
