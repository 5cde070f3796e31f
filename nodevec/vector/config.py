"""Immutable configuration for a pgvector-backed store.

Construction is two-phase. A VectorStoreConfig is a plain value that can be
built, copied and validated without a database; attaching a connection pool
turns it into a ready PgVector:

    config = (
        VectorStoreConfig(table_name="docs", vector_size=384)
        .with_vector(EmbeddedField.COMBINED)
        .with_metadata("filter")
    )
    store = await config.connect("postgresql://...", max_connections=10)
    await store.setup()
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from nodevec.db.pool import PostgresPool
from nodevec.vector.fields import (
    FieldConfig,
    FieldModel,
    MetadataField,
    VectorField,
    default_fields,
)
from nodevec.vector.schema import validate_table_name

if TYPE_CHECKING:
    from nodevec.vector.pgvector import PgVector

DEFAULT_TABLE_NAME = "nodevec_store"
DEFAULT_BATCH_SIZE = 50


class VectorStoreConfig(BaseModel):
    """Table name, vector defaults, batch size and field declarations."""

    model_config = ConfigDict(frozen=True)

    table_name: str = Field(default=DEFAULT_TABLE_NAME, min_length=1, description="Table to store nodes in")
    vector_size: int | None = Field(
        default=None,
        gt=0,
        description="Dimension for vector fields that do not set their own",
    )
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0, description="Nodes per insert statement")
    fields: tuple[FieldConfig, ...] = Field(
        default_factory=lambda: tuple(default_fields()),
        description="Ordered field declarations",
    )

    def with_vector(self, name: str | VectorField, dimension: int | None = None) -> "VectorStoreConfig":
        """Copy with one more vector field."""
        field = name if isinstance(name, VectorField) else VectorField(name=str(_value(name)), dimension=dimension)
        return self.model_copy(update={"fields": (*self.fields, field)})

    def with_metadata(self, key: str | MetadataField) -> "VectorStoreConfig":
        """Copy with one more metadata field."""
        field = key if isinstance(key, MetadataField) else MetadataField(key=key)
        return self.model_copy(update={"fields": (*self.fields, field)})

    def with_table_name(self, table_name: str) -> "VectorStoreConfig":
        return self.model_copy(update={"table_name": table_name})

    def with_vector_size(self, vector_size: int) -> "VectorStoreConfig":
        return self.model_validate({**self.model_dump(), "vector_size": vector_size})

    def with_batch_size(self, batch_size: int) -> "VectorStoreConfig":
        return self.model_validate({**self.model_dump(), "batch_size": batch_size})

    def field_model(self) -> FieldModel:
        """Validate the table name and compile the field declarations.

        Raises:
            ConfigError: If the configuration cannot produce a valid table.
        """
        validate_table_name(self.table_name)
        return FieldModel.compile(self.fields, self.vector_size)

    def attach(self, pool: PostgresPool) -> "PgVector":
        """Build a store over an existing pool. Performs no I/O.

        Raises:
            ConfigError: If the configuration is invalid.
        """
        from nodevec.vector.pgvector import PgVector

        return PgVector(self, pool)

    async def connect(self, url: str, max_connections: int | None = None) -> "PgVector":
        """Validate the configuration, then open a pool and build a store.

        Raises:
            ConfigError: If the configuration is invalid (no connection is made).
            ConnectionError: If the database cannot be reached.
        """
        self.field_model()

        pool = PostgresPool(dsn=url) if max_connections is None else PostgresPool(
            dsn=url, max_size=max_connections
        )
        await pool.connect()
        return self.attach(pool)


def _value(name: object) -> object:
    """Plain value of a str enum member, or the input unchanged."""
    return getattr(name, "value", name)
