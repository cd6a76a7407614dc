"""History repository for the STA reviewer application.

This module contains the HistoryRepository class for persisting
analysis results and listing a user's past analyses.
"""

from typing import Any, Dict, List, Optional
import json

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..models import HistoryRecord
from ..exceptions import PersistenceError
from .database_manager import DatabaseManager

__all__ = ["HistoryRepository"]


class HistoryRepository:
    """Repository pattern implementation for analysis history.

    Records are insert-only; this class never updates or deletes them.

    Attributes:
        db_manager: DatabaseManager instance for database operations
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        """Initialize repository with database manager.

        Args:
            db_manager: DatabaseManager instance for database operations
        """
        self.db_manager: DatabaseManager = db_manager

    def save_record(self, user_id: str, title: str, summary: Optional[str],
                    score: Optional[str], ai_score: Optional[str],
                    full_result: Dict[str, Any]) -> int:
        """Save an analysis result to the database.

        Args:
            user_id: Owner identity
            title: Paper title or filename
            summary: Model summary
            score: Canonical STA score string, or the raw model value
            ai_score: Canonical suspicion percentage string, or the raw model value
            full_result: The whole analysis result, serialized as JSON

        Returns:
            Database ID of the created history record

        Raises:
            PersistenceError: If database operation fails
        """
        session: Session = self.db_manager.create_session()
        try:
            record = HistoryRecord(
                user_id=user_id,
                title=title,
                summary=summary,
                score=score,
                ai_score=ai_score,
                full_result=json.dumps(full_result, ensure_ascii=False)
            )
            session.add(record)
            session.commit()
            return record.id
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Database save error: {str(e)}")
        finally:
            session.close()

    def list_for_owner(self, user_id: str, limit: Optional[int] = None) -> List[HistoryRecord]:
        """Return a user's history records, newest first.

        Args:
            user_id: Owner identity
            limit: Optional maximum number of records

        Returns:
            Detached HistoryRecord instances

        Raises:
            PersistenceError: If the query fails
        """
        session: Session = self.db_manager.create_session()
        try:
            stmt = (
                select(HistoryRecord)
                .where(HistoryRecord.user_id == user_id)
                .order_by(HistoryRecord.created_at.desc(), HistoryRecord.id.desc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"History query error: {str(e)}")
        finally:
            session.close()
