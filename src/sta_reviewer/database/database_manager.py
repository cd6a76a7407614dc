"""Database manager for the STA reviewer application.

This module contains the DatabaseManager class for handling database
connections, session creation, and database initialization.
"""

from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config import Config
from ..models import Base
from ..exceptions import PersistenceError

__all__ = ["DatabaseManager"]


class DatabaseManager:
    """Manages database connections and session creation.

    This class handles SQLAlchemy engine creation, database initialization,
    and provides methods for creating database sessions. The engine is
    created lazily on first use.

    Attributes:
        database_url: SQLAlchemy database URL
        _engine: Cached SQLAlchemy engine instance
        _session_factory: Cached sessionmaker factory
    """

    def __init__(self, database_url: str = Config.DATABASE_URL) -> None:
        """Initialize DatabaseManager with database URL.

        Args:
            database_url: SQLAlchemy database URL string
        """
        self.database_url: str = database_url
        self._engine: Optional[Any] = None
        self._session_factory: Optional[Any] = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_in_memory(self) -> bool:
        return self.is_sqlite and (
            self.database_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in self.database_url
        )

    def _engine_options(self) -> Dict[str, Any]:
        if self.is_sqlite:
            options: Dict[str, Any] = {
                "connect_args": {
                    "check_same_thread": False,
                    "timeout": 20
                },
                "echo": False,
            }
            if self.is_in_memory:
                # Every new connection would open its own empty database
                options["poolclass"] = StaticPool
            return options
        return {"pool_pre_ping": True, "echo": False}

    @property
    def engine(self) -> Any:
        """Get or create SQLAlchemy engine with lazy initialization.

        In-memory SQLite URLs get a single static connection shared across
        threads; server databases use the default pool with pre-ping.

        Returns:
            SQLAlchemy engine instance

        Raises:
            PersistenceError: If engine creation or database initialization fails
        """
        if self._engine is None:
            try:
                engine = create_engine(self.database_url, **self._engine_options())
                Base.metadata.create_all(engine)
            except Exception as e:
                raise PersistenceError(f"Database initialization error: {str(e)}")
            self._engine = engine
        return self._engine

    def create_session(self) -> Session:
        """Create a new database session.

        Returns:
            SQLAlchemy Session instance
        """
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory()
