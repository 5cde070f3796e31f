"""Similarity query compilation and execution.

Queries order rows by cosine distance between a vector column and the bound
query embedding. An optional filter restricts rows to one metadata value:

    filter = "true"    ->  WHERE meta_filter ->> $3::text = $4

Only that single equality form is accepted. Anything else is rejected
rather than interpreted loosely.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import asyncpg

from nodevec.db.errors import QueryError
from nodevec.db.pool import PostgresPool
from nodevec.observability.logging import get_logger
from nodevec.vector.fields import CHUNK_COLUMN, ID_COLUMN, FieldModel
from nodevec.vector.persist import vector_literal
from nodevec.vector.schema import validate_table_name

logger = get_logger(__name__)

# LIMIT is bound as a signed 32-bit integer
MAX_TOP_K = 2**31 - 1

COSINE_DISTANCE = "<=>"


@dataclass(frozen=True)
class MetadataFilter:
    key: str
    value: str


def parse_filter(expression: str) -> MetadataFilter:
    """Parse ``key = "value"`` into a MetadataFilter.

    Raises:
        QueryError: If the expression does not have exactly one ``=`` or
            the key is empty.
    """
    parts = expression.split("=")
    if len(parts) != 2:
        raise QueryError(f"Invalid filter format: {expression!r}")

    key = parts[0].strip()
    value = parts[1].strip().strip('"')
    if not key:
        raise QueryError(f"Invalid filter format: {expression!r}")

    return MetadataFilter(key=key, value=value)


def check_top_k(top_k: int) -> int:
    """Validate that top_k fits the LIMIT parameter type."""
    if isinstance(top_k, bool) or not isinstance(top_k, int):
        raise QueryError(f"top_k must be an integer, got {type(top_k).__name__}")
    if top_k < 0 or top_k > MAX_TOP_K:
        raise QueryError(f"top_k {top_k} is outside the range 0..{MAX_TOP_K}")
    return top_k


def compile_similarity_query(
    model: FieldModel,
    table: str,
    vector_name: str | None = None,
    metadata_filter: MetadataFilter | None = None,
) -> str:
    """Compile the similarity SELECT.

    Parameters: $1 query embedding, $2 limit, and when filtered $3 metadata
    key and $4 expected value.

    Raises:
        QueryError: For an unknown vector name or unconfigured filter key.
    """
    validate_table_name(table)
    vector = model.vector_column(vector_name)

    sql = f"SELECT {ID_COLUMN}, {CHUNK_COLUMN} FROM {table}"

    if metadata_filter is not None:
        meta = model.metadata_column(metadata_filter.key)
        sql += f" WHERE {meta.column} ->> $3::text = $4"

    sql += f" ORDER BY {vector.column} {COSINE_DISTANCE} $1::vector LIMIT $2"
    return sql


async def retrieve_contents(
    pool: PostgresPool,
    model: FieldModel,
    table: str,
    vector_name: str | None,
    embedding: Sequence[float],
    top_k: int,
    filter: str | None = None,
) -> Iterator[str]:
    """Fetch the contents of the ``top_k`` nearest rows, nearest first.

    Raises:
        ConnectionError: If the pool is not initialized.
        QueryError: On malformed input or a failed query.
    """
    check_top_k(top_k)
    metadata_filter = parse_filter(filter) if filter is not None else None

    vector = model.vector_column(vector_name)
    if len(embedding) != vector.dimension:
        raise QueryError(
            f"Query embedding has {len(embedding)} dimensions, expected {vector.dimension}",
            table=table,
            statement="select",
        )

    sql = compile_similarity_query(model, table, vector.name, metadata_filter)
    params: list[Any] = [vector_literal(embedding), top_k]
    if metadata_filter is not None:
        # Stored JSON is keyed by the declared key, not the filter's spelling
        meta = model.metadata_column(metadata_filter.key)
        params.extend([meta.key, metadata_filter.value])
        logger.debug(
            "pgvector_filter_applied",
            table=table,
            key=meta.key,
            column=meta.column,
        )

    logger.debug("pgvector_retrieve_statement", table=table, sql=sql)

    async with pool.acquire() as conn:
        try:
            rows = await conn.fetch(sql, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error("pgvector_retrieve_failed", table=table, error=str(e))
            raise QueryError(
                f"Similarity query on '{table}' failed: {e}",
                cause=e,
                table=table,
                statement="select",
            ) from e

    logger.debug(
        "pgvector_retrieve_success",
        table=table,
        vector=vector.column,
        results=len(rows),
    )

    return iter([row[CHUNK_COLUMN] for row in rows])
