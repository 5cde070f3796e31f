"""PostgreSQL connection handling and store errors."""

from nodevec.db.errors import (
    ConfigError,
    ConnectionError,
    PersistError,
    QueryError,
    SchemaError,
    StoreError,
)
from nodevec.db.pool import ConnectionState, PostgresPool

__all__ = [
    "ConfigError",
    "ConnectionError",
    "ConnectionState",
    "PersistError",
    "PostgresPool",
    "QueryError",
    "SchemaError",
    "StoreError",
]
