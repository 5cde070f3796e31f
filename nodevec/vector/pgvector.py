"""PostgreSQL with pgvector extension as a node store.

PgVector ties a VectorStoreConfig, its compiled field model and a shared
connection pool together, and exposes the pipeline-facing operations:

- setup(): create the extension, table and HNSW indexes
- store() / store_batch(): upsert nodes keyed by identifier
- retrieve(): top-k cosine similarity with an optional metadata filter

Instances are cheap to clone; clones share the same pool.
"""

import copy
from collections.abc import Iterator
from typing import TYPE_CHECKING

from nodevec.db.errors import QueryError
from nodevec.db.pool import ConnectionState, PostgresPool
from nodevec.node import Node
from nodevec.observability.logging import get_logger
from nodevec.query import Query, QueryState, SimilaritySingleEmbedding
from nodevec.vector.config import VectorStoreConfig
from nodevec.vector.fields import FieldModel
from nodevec.vector.interface import Persist, Retrieve
from nodevec.vector.persist import store_nodes
from nodevec.vector.retrieve import retrieve_contents
from nodevec.vector.schema import run_setup

if TYPE_CHECKING:
    from nodevec.config.settings import Settings

logger = get_logger(__name__)


class PgVector(Persist, Retrieve):
    """Node store backed by a pgvector table.

    The table layout comes from the configured fields: an ``id`` primary
    key, a ``chunk`` text column, one ``vector_<name>`` column per vector
    field and one ``meta_<key>`` JSONB column per metadata field.
    """

    def __init__(self, config: VectorStoreConfig, pool: PostgresPool) -> None:
        """Initialize the store.

        Args:
            config: Store configuration
            pool: Connection pool, shared with any clones

        Raises:
            ConfigError: If the configuration is invalid.
        """
        self._config = config
        self._model: FieldModel = config.field_model()
        self._pool = pool

        logger.info(
            "pgvector_store_initialized",
            table=config.table_name,
            columns=self._model.column_names,
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PgVector":
        """Build an unconnected store from application settings.

        Call ``await store.pool.connect()`` before use.
        """
        pgvector = settings.pgvector
        pool = PostgresPool(
            dsn=pgvector.database_url,
            min_size=pgvector.min_pool_size,
            max_size=pgvector.max_pool_size,
            command_timeout=pgvector.command_timeout,
        )
        return cls(pgvector.to_store_config(), pool)

    @property
    def provider_name(self) -> str:
        return "pgvector"

    @property
    def config(self) -> VectorStoreConfig:
        return self._config

    @property
    def field_model(self) -> FieldModel:
        return self._model

    @property
    def pool(self) -> PostgresPool:
        return self._pool

    @property
    def table_name(self) -> str:
        return self._config.table_name

    @property
    def batch_size(self) -> int:
        return self._config.batch_size

    @property
    def connection_status(self) -> ConnectionState:
        """Last known pool state. Never touches the database."""
        return self._pool.connection_status

    def clone(self) -> "PgVector":
        """A new store sharing this one's configuration and pool."""
        return copy.copy(self)

    def __repr__(self) -> str:
        return (
            f"PgVector(table_name={self._config.table_name!r}, "
            f"vector_size={self._config.vector_size!r}, "
            f"batch_size={self._config.batch_size!r}, "
            f"connection_status={self.connection_status.value!r})"
        )

    async def setup(self) -> None:
        """Create the vector extension, table and indexes if missing."""
        await run_setup(self._pool, self._model, self.table_name)

    async def store(self, node: Node) -> Node:
        """Upsert one node and return it with its identifier resolved."""
        stored = await store_nodes(self._pool, self._model, self.table_name, [node], self.batch_size)
        return stored[0]

    async def store_batch(self, nodes: list[Node]) -> Iterator[Node]:
        """Upsert nodes in one transaction.

        Returns:
            A one-shot iterator over the stored nodes, in input order.
        """
        stored = await store_nodes(self._pool, self._model, self.table_name, nodes, self.batch_size)

        logger.info("pgvector_store_batch_success", table=self.table_name, count=len(stored))

        return iter(stored)

    async def retrieve(
        self,
        strategy: SimilaritySingleEmbedding,
        query: Query,
    ) -> Query:
        """Fetch the nearest stored chunks for a pending query.

        Raises:
            QueryError: If the query is not pending, has no embedding, or the
                strategy is malformed.
        """
        if query.state is not QueryState.PENDING:
            raise QueryError("Query has already been retrieved", table=self.table_name)
        if query.embedding is None:
            raise QueryError("No embedding for query", table=self.table_name)

        contents = await retrieve_contents(
            self._pool,
            self._model,
            self.table_name,
            strategy.vector_name,
            query.embedding,
            strategy.top_k,
            strategy.filter,
        )
        return query.retrieved_documents(list(contents))

    async def retrieve_unfiltered(
        self,
        strategy: SimilaritySingleEmbedding,
        query: Query,
    ) -> Query:
        """Retrieve ignoring any filter the strategy carries."""
        return await self.retrieve(strategy.without_filter(), query)
