"""Node model: the unit of content stored by nodevec."""

from typing import Any
from uuid import NAMESPACE_OID, UUID, uuid3

from pydantic import BaseModel, Field


class Node(BaseModel):
    """A chunk of ingested content with its embeddings and metadata.

    Nodes are produced upstream by an ingestion pipeline. Storage never
    mutates a node; it hands back a copy carrying the resolved identifier.
    """

    id: UUID | None = Field(default=None, description="Node identifier, derived when unset")
    path: str = Field(default="", description="Source the chunk came from")
    chunk: str = Field(..., description="Raw text content")
    vectors: dict[str, list[float]] = Field(
        default_factory=dict,
        description="Embeddings keyed by vector name",
    )
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form metadata")

    def resolved_id(self) -> UUID:
        """Return the explicit id, or a stable one derived from path and chunk."""
        if self.id is not None:
            return self.id
        return uuid3(NAMESPACE_OID, f"{self.path}{self.chunk}")

    def with_id(self) -> "Node":
        """Copy of this node with its identifier filled in."""
        if self.id is not None:
            return self
        return self.model_copy(update={"id": self.resolved_id()})

    def with_metadata(self, key: str, value: Any) -> "Node":
        return self.model_copy(update={"metadata": {**self.metadata, key: value}})

    def with_vectors(self, vectors: dict[str, list[float]]) -> "Node":
        return self.model_copy(update={"vectors": {**self.vectors, **vectors}})
