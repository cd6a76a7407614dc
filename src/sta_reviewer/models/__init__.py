"""Database models for the STA reviewer application.

This module contains SQLAlchemy model definitions for the monthly
credit ledger and the persisted analysis history.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import declarative_base

__all__ = ["Base", "CreditAccount", "HistoryRecord"]

Base = declarative_base()


class CreditAccount(Base):
    """SQLAlchemy model for a user's credit balance in one calendar month.

    A missing row for the current period means the full monthly limit,
    not yet materialized. Rows of past periods are kept as history.

    Attributes:
        id: Primary key
        user_id: Identity from the session provider
        period: Calendar month key in ``YYYY-MM`` form
        balance: Remaining credits, never negative
    """
    __tablename__ = "user_credits"
    __table_args__ = (
        UniqueConstraint("user_id", "period", name="uq_user_credits_user_period"),
    )

    id: int = Column(Integer, primary_key=True)
    user_id: str = Column(String(255), nullable=False, index=True)
    period: str = Column(String(7), nullable=False)
    balance: int = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class HistoryRecord(Base):
    """SQLAlchemy model for one persisted analysis.

    Written once per successful, parsed analysis and never updated.

    Attributes:
        id: Primary key
        user_id: Owner identity
        title: Paper title, or the uploaded filename
        summary: Model summary
        score: Canonical STA score when available, raw text otherwise
        ai_score: Canonical suspicion percentage such as "85%" when available, raw text otherwise
        full_result: JSON serialization of the whole analysis result
        created_at: Timestamp of the analysis
    """
    __tablename__ = "analyses"

    id: int = Column(Integer, primary_key=True)
    user_id: str = Column(String(255), nullable=False, index=True)
    title: str = Column(String(512), nullable=False)
    summary: str = Column(Text, nullable=True)
    score: str = Column(String(64), nullable=True)
    ai_score: str = Column(String(64), nullable=True)
    full_result: str = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
