"""pgvector store configuration model."""

from pydantic import BaseModel, Field

from nodevec.vector.config import DEFAULT_BATCH_SIZE, DEFAULT_TABLE_NAME, VectorStoreConfig
from nodevec.vector.fields import FieldConfig


class PgVectorSettings(BaseModel):
    """Connection and table settings for the pgvector store.

    ``fields`` uses the same declarations as VectorStoreConfig, e.g. in TOML:

        [[pgvector.fields]]
        kind = "vector"
        name = "combined"
    """

    database_url: str | None = Field(
        default=None,
        description="Connection URL; falls back to NODEVEC_DATABASE_URL/DATABASE_URL",
    )
    min_pool_size: int = Field(default=1, gt=0, description="Minimum connections to keep open")
    max_pool_size: int = Field(default=10, gt=0, description="Maximum connections in pool")
    command_timeout: float = Field(default=60.0, gt=0, description="Query timeout (seconds)")
    table_name: str = Field(default=DEFAULT_TABLE_NAME, description="Table to store nodes in")
    vector_size: int | None = Field(default=None, gt=0, description="Default vector dimension")
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0, description="Nodes per insert statement")
    fields: list[FieldConfig] = Field(
        default_factory=list,
        description="Field declarations; empty means id + chunk",
    )

    def to_store_config(self) -> VectorStoreConfig:
        """Build the immutable store configuration from these settings."""
        config = VectorStoreConfig(
            table_name=self.table_name,
            vector_size=self.vector_size,
            batch_size=self.batch_size,
        )
        if self.fields:
            config = config.model_copy(update={"fields": tuple(self.fields)})
        return config
