"""Store client handing out query builders per collection table."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsdesk.infrastructure.persistence import models  # noqa: F401
from opsdesk.infrastructure.persistence.database import Base
from opsdesk.infrastructure.persistence.query_builder import QueryBuilder


class StoreClient:
    """Entry point for building queries against collection tables.

    Args:
        session_factory: Factory for async sessions.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def table(self, name: str) -> QueryBuilder:
        """Start a query on a table.

        Unknown names still produce a builder; its ``execute()`` reports the
        missing relation as a query error.
        """
        return QueryBuilder(self._session_factory, Base.metadata.tables.get(name), name)
