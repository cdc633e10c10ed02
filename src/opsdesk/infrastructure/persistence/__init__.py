"""Persistence layer: database engine, collection tables and query execution."""

from opsdesk.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    close_database,
    get_db_manager,
    init_database,
)
from opsdesk.infrastructure.persistence.query_builder import QueryBuilder, QueryCompileError
from opsdesk.infrastructure.persistence.store_client import StoreClient

__all__ = [
    "Base",
    "DatabaseManager",
    "QueryBuilder",
    "QueryCompileError",
    "StoreClient",
    "close_database",
    "get_db_manager",
    "init_database",
]
