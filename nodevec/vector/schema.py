"""DDL compilation and setup for pgvector tables.

Every statement is idempotent, so setup can run any number of times against
the same table. Concurrent setups are serialized by a transaction-scoped
advisory lock, since two uncommitted ``IF NOT EXISTS`` creations of the same
catalog object conflict at commit.
"""

import hashlib
import re
from dataclasses import dataclass

import asyncpg

from nodevec.db.errors import ConfigError, SchemaError
from nodevec.db.pool import PostgresPool
from nodevec.observability.logging import get_logger
from nodevec.vector.fields import ID_COLUMN, MAX_IDENTIFIER_LENGTH, FieldModel

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

COSINE_INDEX_OPS = "vector_cosine_ops"

# Shared by every nodevec setup, so extension creation is serialized across tables too
SETUP_LOCK_NAMESPACE = "nodevec:setup"

# PostgreSQL keywords that cannot be used as an unquoted table name
RESERVED_WORDS: frozenset[str] = frozenset({
    "all", "analyse", "analyze", "and", "any", "array", "as", "asc",
    "asymmetric", "authorization", "binary", "both", "case", "cast", "check",
    "collate", "collation", "column", "concurrently", "constraint", "create",
    "cross", "current_catalog", "current_date", "current_role",
    "current_schema", "current_time", "current_timestamp", "current_user",
    "default", "deferrable", "desc", "distinct", "do", "else", "end",
    "except", "false", "fetch", "for", "foreign", "freeze", "from", "full",
    "grant", "group", "having", "ilike", "in", "initially", "inner",
    "intersect", "into", "is", "isnull", "join", "lateral", "leading", "left",
    "like", "limit", "localtime", "localtimestamp", "natural", "not",
    "notnull", "null", "offset", "on", "only", "or", "order", "outer",
    "overlaps", "placing", "primary", "references", "returning", "right",
    "select", "session_user", "similar", "some", "symmetric", "system_user",
    "table", "tablesample", "then", "to", "trailing", "true", "union",
    "unique", "user", "using", "variadic", "verbose", "when", "where",
    "window", "with",
})


@dataclass(frozen=True)
class Statement:
    """A compiled DDL statement tagged with its class for error reporting."""

    kind: str
    sql: str


def validate_table_name(table: str) -> str:
    """Check a table name is a plain identifier safe to interpolate.

    Raises:
        ConfigError: If the name is empty, too long, a reserved word or has
            other characters.
    """
    if not table or not _IDENTIFIER.match(table):
        raise ConfigError(f"Invalid table name '{table}'")
    if len(table) > MAX_IDENTIFIER_LENGTH:
        raise ConfigError(f"Table name '{table}' exceeds {MAX_IDENTIFIER_LENGTH} characters")
    if table.lower() in RESERVED_WORDS:
        raise ConfigError(f"Table name '{table}' is a reserved SQL keyword")
    return table


def setup_lock_key() -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock."""
    digest = hashlib.sha1(SETUP_LOCK_NAMESPACE.encode()).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


def index_name(table: str, column: str) -> str:
    """Deterministic index name, shortened with a hash when too long."""
    name = f"{table}_{column}_idx"
    if len(name) <= MAX_IDENTIFIER_LENGTH:
        return name
    digest = hashlib.sha1(name.encode()).hexdigest()[:8]
    return f"{name[: MAX_IDENTIFIER_LENGTH - 9]}_{digest}"


def prepare_lock_sql() -> Statement:
    return Statement("lock", f"SELECT pg_advisory_xact_lock({setup_lock_key()})")


def prepare_extension_sql() -> Statement:
    return Statement("extension", "CREATE EXTENSION IF NOT EXISTS vector")


def compile_create_table(model: FieldModel, table: str) -> Statement:
    """Compile the CREATE TABLE statement for a field model."""
    validate_table_name(table)
    definitions = [f"{column.name} {column.sql_type}" for column in model.columns]
    definitions.append(f"PRIMARY KEY ({ID_COLUMN})")
    body = ",\n    ".join(definitions)
    return Statement("table", f"CREATE TABLE IF NOT EXISTS {table} (\n    {body}\n)")


def compile_indexes(model: FieldModel, table: str) -> list[Statement]:
    """Compile one cosine HNSW index statement per vector column."""
    validate_table_name(table)
    return [
        Statement(
            "index",
            f"CREATE INDEX IF NOT EXISTS {index_name(table, vector.column)} "
            f"ON {table} USING hnsw ({vector.column} {COSINE_INDEX_OPS})",
        )
        for vector in model.vector_columns
    ]


def compile_setup(model: FieldModel, table: str) -> list[Statement]:
    """All statements needed to make ``table`` ready, in execution order.

    The advisory lock comes first and is held until the transaction ends.
    """
    return [
        prepare_lock_sql(),
        prepare_extension_sql(),
        compile_create_table(model, table),
        *compile_indexes(model, table),
    ]


async def run_setup(pool: PostgresPool, model: FieldModel, table: str) -> None:
    """Create the extension, table and indexes in a single transaction.

    Raises:
        ConnectionError: If the pool is not initialized or no connection
            can be acquired.
        SchemaError: If any statement fails; nothing is committed.
    """
    statements = compile_setup(model, table)

    async with pool.acquire() as conn:
        statement = statements[0]
        try:
            async with conn.transaction():
                for statement in statements:
                    logger.debug("pgvector_setup_statement", table=table, kind=statement.kind, sql=statement.sql)
                    await conn.execute(statement.sql)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(
                "pgvector_setup_failed",
                table=table,
                statement=statement.kind,
                error=str(e),
            )
            raise SchemaError(
                f"Setup of '{table}' failed at {statement.kind} statement: {e}",
                cause=e,
                table=table,
                statement=statement.kind,
            ) from e

    logger.info(
        "pgvector_setup_complete",
        table=table,
        columns=model.column_names,
        indexes=sum(s.kind == "index" for s in statements),
    )
