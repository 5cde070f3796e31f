"""Store error hierarchy.

Every failure surfaced by nodevec is one of the StoreError subclasses below.
Backend-specific exceptions are kept on ``cause``.
"""


class StoreError(Exception):
    """Base exception for all store errors.

    Carries the table and statement class involved, when known, so callers
    can log a failure without parsing the message.
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        *,
        table: str | None = None,
        statement: str | None = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.table = table
        self.statement = statement


class ConfigError(StoreError):
    """Raised when the field model or store configuration is malformed.

    Examples:
        - Two fields normalizing to the same column name
        - Vector field without a resolvable dimension
        - Duplicate identity or content field
    """

    pass


class ConnectionError(StoreError):
    """Raised when no initialized connection handle is available.

    Examples:
        - Pool used before connect()
        - Database unreachable while creating the pool
    """

    pass


class SchemaError(StoreError):
    """Raised when a DDL statement fails during setup.

    Examples:
        - Insufficient privilege to create the vector extension
        - Conflicting existing table shape
    """

    pass


class PersistError(StoreError):
    """Raised when writing nodes fails.

    The whole batch is reported as failed; nothing is partially committed.
    """

    pass


class QueryError(StoreError):
    """Raised on malformed retrieval input or a failed similarity query.

    Examples:
        - Pending query without an embedding
        - Filter that is not exactly ``key = value``
        - top_k outside the row-limit range
        - Unknown vector name
    """

    pass
