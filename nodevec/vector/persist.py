"""Batched upsert of nodes into a pgvector table."""

import json
from collections.abc import Iterator, Sequence
from typing import Any

import asyncpg

from nodevec.db.errors import PersistError
from nodevec.db.pool import PostgresPool
from nodevec.node import Node
from nodevec.observability.logging import get_logger
from nodevec.vector.fields import (
    ID_COLUMN,
    ContentField,
    FieldModel,
    IdentityField,
    MetadataField,
    VectorField,
)
from nodevec.vector.schema import validate_table_name

logger = get_logger(__name__)


def vector_literal(values: Sequence[float]) -> str:
    """Text form pgvector accepts for a vector parameter."""
    return "[" + ",".join(str(float(v)) for v in values) + "]"


def node_row(node: Node, model: FieldModel, table: str | None = None) -> list[Any]:
    """Convert a node into one row of bound parameters, in column order.

    Declared columns the node has no value for are NULL. Vectors and
    metadata the model does not declare are ignored.

    Raises:
        PersistError: If a vector length differs from its column dimension.
    """
    row: list[Any] = []
    vectors = {v.name: v for v in model.vector_columns}

    for column in model.columns:
        field = column.field
        if isinstance(field, IdentityField):
            row.append(node.resolved_id())
        elif isinstance(field, ContentField):
            row.append(node.chunk)
        elif isinstance(field, VectorField):
            values = node.vectors.get(field.name)
            if values is None:
                row.append(None)
                continue
            expected = vectors[field.name].dimension
            if len(values) != expected:
                raise PersistError(
                    f"Vector '{field.name}' has {len(values)} dimensions, expected {expected}",
                    table=table,
                    statement="insert",
                )
            row.append(vector_literal(values))
        elif isinstance(field, MetadataField):
            if field.key in node.metadata:
                row.append(json.dumps({field.key: node.metadata[field.key]}, default=str))
            else:
                row.append(None)

    return row


def _placeholder(index: int, field: Any) -> str:
    if isinstance(field, IdentityField):
        return f"${index}::uuid"
    if isinstance(field, VectorField):
        return f"${index}::vector"
    if isinstance(field, MetadataField):
        return f"${index}::jsonb"
    return f"${index}"


def compile_upsert(model: FieldModel, table: str, row_count: int) -> str:
    """Compile a multi-row INSERT ... ON CONFLICT (id) DO UPDATE statement.

    Parameters are numbered row by row, so the flattened rows from
    :func:`node_row` bind in order.
    """
    validate_table_name(table)
    width = len(model.columns)

    values = []
    for row in range(row_count):
        base = row * width
        placeholders = (
            _placeholder(base + offset + 1, column.field)
            for offset, column in enumerate(model.columns)
        )
        values.append(f"({', '.join(placeholders)})")

    updates = ", ".join(
        f"{name} = EXCLUDED.{name}" for name in model.column_names if name != ID_COLUMN
    )

    return (
        f"INSERT INTO {table} ({', '.join(model.column_names)})\n"
        f"VALUES {', '.join(values)}\n"
        f"ON CONFLICT ({ID_COLUMN}) DO UPDATE SET {updates}"
    )


def chunked(nodes: Sequence[Node], size: int) -> Iterator[Sequence[Node]]:
    for start in range(0, len(nodes), size):
        yield nodes[start : start + size]


def _last_per_id(nodes: Sequence[Node]) -> list[Node]:
    """Keep the last node for each identifier, in order of last occurrence.

    A single upsert statement may not touch the same row twice.
    """
    latest: dict[Any, Node] = {}
    for node in nodes:
        latest.pop(node.id, None)
        latest[node.id] = node
    return list(latest.values())


async def store_nodes(
    pool: PostgresPool,
    model: FieldModel,
    table: str,
    nodes: Sequence[Node],
    batch_size: int,
) -> list[Node]:
    """Upsert nodes in chunks of ``batch_size`` inside one transaction.

    Returns:
        The stored nodes with identifiers resolved, in input order.

    Raises:
        ConnectionError: If the pool is not initialized.
        PersistError: If validation or any write fails; nothing is committed.
    """
    stored = [node.with_id() for node in nodes]
    if not stored:
        return stored

    batches = []
    for batch in chunked(stored, batch_size):
        unique = _last_per_id(batch)
        params = [value for node in unique for value in node_row(node, model, table)]
        batches.append((compile_upsert(model, table, len(unique)), params))

    async with pool.acquire() as conn:
        try:
            async with conn.transaction():
                for sql, params in batches:
                    logger.debug("pgvector_upsert_statement", table=table, sql=sql)
                    await conn.execute(sql, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(
                "pgvector_store_failed",
                table=table,
                count=len(stored),
                error=str(e),
            )
            raise PersistError(
                f"Storing {len(stored)} nodes in '{table}' failed: {e}",
                cause=e,
                table=table,
                statement="insert",
            ) from e

    logger.debug(
        "pgvector_store_success",
        table=table,
        count=len(stored),
        statements=len(batches),
    )

    return stored
