"""Credit repository for the STA reviewer application.

This module contains the CreditRepository class, the storage side of
the monthly credit ledger. Balance changes go through a single
conditional UPDATE so concurrent debits can never overdraw an account.
"""

from typing import Optional

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import CreditAccount
from ..exceptions import InsufficientCreditsError, LedgerWriteError, PersistenceError
from .database_manager import DatabaseManager

__all__ = ["CreditRepository"]


class CreditRepository:
    """Repository for per-user, per-period credit accounts.

    Attributes:
        db_manager: DatabaseManager instance for database operations
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        """Initialize repository with database manager.

        Args:
            db_manager: DatabaseManager instance for database operations
        """
        self.db_manager: DatabaseManager = db_manager

    @staticmethod
    def _balance_query(user_id: str, period: str):
        return select(CreditAccount.balance).where(
            CreditAccount.user_id == user_id,
            CreditAccount.period == period,
        )

    def get_balance(self, user_id: str, period: str) -> Optional[int]:
        """Look up the balance for a (user, period) key.

        Args:
            user_id: Account owner
            period: Month key in ``YYYY-MM`` form

        Returns:
            The stored balance, or None when no account exists yet

        Raises:
            PersistenceError: If the query fails
        """
        session: Session = self.db_manager.create_session()
        try:
            return session.execute(self._balance_query(user_id, period)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Credit lookup error: {str(e)}")
        finally:
            session.close()

    def insert_if_absent(self, user_id: str, period: str, balance: int) -> int:
        """Create the account for a (user, period) key unless it exists.

        When another writer creates the same account first, the unique
        constraint rejects this insert and the winner's row is returned
        untouched.

        Args:
            user_id: Account owner
            period: Month key in ``YYYY-MM`` form
            balance: Initial balance for a newly created account

        Returns:
            Balance of the account that exists after the call

        Raises:
            PersistenceError: If the insert fails for any other reason
        """
        session: Session = self.db_manager.create_session()
        try:
            session.add(CreditAccount(user_id=user_id, period=period, balance=max(balance, 0)))
            session.commit()
            return max(balance, 0)
        except IntegrityError:
            session.rollback()
            logger.debug("Credit account {}/{} already created by another writer", user_id, period)
            existing: Optional[int] = session.execute(
                self._balance_query(user_id, period)
            ).scalar_one_or_none()
            if existing is None:
                raise PersistenceError(f"Credit account {user_id}/{period} could not be created")
            return existing
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Credit initialization error: {str(e)}")
        finally:
            session.close()

    def debit_if_sufficient(self, user_id: str, period: str, cost: int) -> int:
        """Atomically subtract ``cost`` if the balance covers it.

        Args:
            user_id: Account owner
            period: Month key in ``YYYY-MM`` form
            cost: Credits to subtract

        Returns:
            The balance after the debit

        Raises:
            InsufficientCreditsError: If the balance is below ``cost`` (unchanged)
            LedgerWriteError: If the account is missing or the write fails
        """
        session: Session = self.db_manager.create_session()
        try:
            stmt = (
                update(CreditAccount)
                .where(
                    CreditAccount.user_id == user_id,
                    CreditAccount.period == period,
                    CreditAccount.balance >= cost,
                )
                .values(balance=CreditAccount.balance - cost)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            current: Optional[int] = session.execute(
                self._balance_query(user_id, period)
            ).scalar_one_or_none()

            if result.rowcount != 1:
                session.rollback()
                if current is None:
                    raise LedgerWriteError(f"No credit account for {user_id}/{period}")
                raise InsufficientCreditsError(current, cost)

            session.commit()
            return current
        except SQLAlchemyError as e:
            session.rollback()
            raise LedgerWriteError(f"Credit debit error: {str(e)}")
        finally:
            session.close()

    def set_balance(self, user_id: str, period: str, balance: int) -> None:
        """Overwrite the balance for an existing account, clamped at 0.

        Raises:
            LedgerWriteError: If the account is missing or the write fails
        """
        session: Session = self.db_manager.create_session()
        try:
            result = session.execute(
                update(CreditAccount)
                .where(CreditAccount.user_id == user_id, CreditAccount.period == period)
                .values(balance=max(balance, 0))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                raise LedgerWriteError(f"No credit account for {user_id}/{period}")
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise LedgerWriteError(f"Credit update error: {str(e)}")
        finally:
            session.close()
