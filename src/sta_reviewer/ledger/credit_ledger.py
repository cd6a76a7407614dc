"""Monthly credit ledger for the STA reviewer application.

This module contains the CreditLedger class that owns the per-user,
per-calendar-month credit balance: lazy materialization at the monthly
limit, the eligibility gate evaluated before paid model calls, and the
debit applied after a successful paid analysis.

Debits happen after the model call has succeeded. A crash between the
model answer and the debit write leaves the balance unchanged; callers
always re-fetch instead of trusting a cached balance.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from loguru import logger

from ..config import Config, ModelOption
from ..database import CreditRepository
from ..exceptions import DenialReason, EligibilityDeniedError

__all__ = ["CreditLedger", "CreditSnapshot", "period_key"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def period_key(moment: datetime) -> str:
    """Return the ``YYYY-MM`` key of the UTC calendar month of ``moment``."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return f"{moment.year:04d}-{moment.month:02d}"


@dataclass(frozen=True)
class CreditSnapshot:
    """Balance of one account as read at a point in time.

    Attributes:
        user_id: Account owner
        period: Month key the balance belongs to
        balance: Credits remaining when the snapshot was taken
    """
    user_id: str
    period: str
    balance: int


class CreditLedger:
    """Per-user monthly credit balance with atomic debits.

    Attributes:
        repository: Storage for credit accounts
        monthly_limit: Credits granted per user per month (0 disables paid tiers)
        clock: Returns the current time; the period is derived from it on demand
    """

    def __init__(self, repository: CreditRepository,
                 monthly_limit: Optional[int] = None,
                 clock: Callable[[], datetime] = _utcnow) -> None:
        """Initialize the ledger.

        Args:
            repository: CreditRepository used for all reads and writes
            monthly_limit: Monthly allowance; read from the environment when None
            clock: Time source, injectable for tests
        """
        self.repository: CreditRepository = repository
        limit = Config.monthly_credit_limit() if monthly_limit is None else monthly_limit
        self.monthly_limit: int = max(int(limit), 0)
        self.clock: Callable[[], datetime] = clock

    @property
    def is_configured(self) -> bool:
        return self.monthly_limit > 0

    def current_period(self) -> str:
        return period_key(self.clock())

    def fetch(self, user_id: str, period: Optional[str] = None) -> CreditSnapshot:
        """Read a user's balance, creating the account on first read.

        A missing account is materialized at the full monthly limit. If a
        concurrent reader creates it first, that row is used as is.

        Args:
            user_id: Account owner
            period: Month key; defaults to the current period

        Returns:
            CreditSnapshot for the requested period

        Raises:
            PersistenceError: If the account cannot be read or created
        """
        period = period or self.current_period()
        balance: Optional[int] = self.repository.get_balance(user_id, period)
        if balance is None:
            balance = self.repository.insert_if_absent(user_id, period, self.monthly_limit)
            logger.info("Initialized credits for {} in {}: {}", user_id, period, balance)
        return CreditSnapshot(user_id=user_id, period=period, balance=balance)

    def reconcile(self, user_id: str, period: Optional[str] = None) -> CreditSnapshot:
        """Re-fetch the balance from storage after a failed write."""
        snapshot = self.fetch(user_id, period)
        logger.info("Reconciled credits for {} in {}: {}", user_id, snapshot.period, snapshot.balance)
        return snapshot

    def denial_reason(self, option: ModelOption, user_id: Optional[str],
                      snapshot: Optional[CreditSnapshot]) -> Optional[DenialReason]:
        """Evaluate the eligibility gate for a model option.

        Zero-cost options are always eligible. For paid options the checks
        run in order: configured limit, identity, loaded balance, current
        period, sufficient balance.

        Args:
            option: Selected model tier
            user_id: Current identity, None when signed out
            snapshot: Balance fetched for this request, None while loading

        Returns:
            The first failing reason, or None when the option may be used
        """
        if not option.is_paid:
            return None
        if not self.is_configured:
            return DenialReason.UNCONFIGURED
        if not user_id:
            return DenialReason.UNAUTHENTICATED
        if snapshot is None or snapshot.user_id != user_id:
            return DenialReason.LOADING
        if snapshot.period != self.current_period():
            return DenialReason.STALE_PERIOD
        if snapshot.balance < option.cost:
            return DenialReason.INSUFFICIENT_BALANCE
        return None

    def ensure_eligible(self, option: ModelOption, user_id: Optional[str],
                        snapshot: Optional[CreditSnapshot]) -> None:
        """Raise EligibilityDeniedError unless the option may be used."""
        reason = self.denial_reason(option, user_id, snapshot)
        if reason is not None:
            raise EligibilityDeniedError(reason)

    def debit(self, snapshot: CreditSnapshot, cost: int) -> int:
        """Subtract ``cost`` from the account the snapshot was taken from.

        The decrement is conditional on the stored balance covering the
        cost, so concurrent debits cannot overdraw the account.

        Args:
            snapshot: Snapshot that passed the eligibility gate
            cost: Credits to subtract

        Returns:
            Balance after the debit

        Raises:
            InsufficientCreditsError: If the stored balance is below ``cost``
            LedgerWriteError: If the write fails
        """
        if cost <= 0:
            return snapshot.balance
        balance = self.repository.debit_if_sufficient(snapshot.user_id, snapshot.period, cost)
        logger.info("Debited {} credits from {} in {}, {} left",
                    cost, snapshot.user_id, snapshot.period, balance)
        return balance
