"""Similarity query lifecycle and search strategy."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from nodevec.db.errors import QueryError


class QueryState(str, Enum):
    """Lifecycle of a similarity query. Transitions only go forward."""

    PENDING = "pending"
    RETRIEVED = "retrieved"


class Query(BaseModel):
    """A similarity query, pending until documents are retrieved for it."""

    model_config = ConfigDict(frozen=True)

    original: str = Field(..., description="Query text as asked")
    embedding: list[float] | None = Field(default=None, description="Query embedding")
    documents: tuple[str, ...] = Field(default=(), description="Retrieved contents")
    state: QueryState = Field(default=QueryState.PENDING)

    @classmethod
    def pending(cls, original: str, embedding: list[float] | None = None) -> "Query":
        return cls(original=original, embedding=embedding)

    def retrieved_documents(self, documents: list[str] | tuple[str, ...]) -> "Query":
        """Move a pending query to the retrieved state.

        Raises:
            QueryError: If the query is not pending.
        """
        if self.state is not QueryState.PENDING:
            raise QueryError(f"Cannot retrieve documents for a query in state '{self.state.value}'")
        return self.model_copy(
            update={"documents": tuple(documents), "state": QueryState.RETRIEVED}
        )


class SimilaritySingleEmbedding(BaseModel):
    """Search with one query embedding against one vector field.

    ``filter`` is a single metadata equality predicate: ``key = "value"``.
    ``vector_name`` defaults to the first configured vector field.
    """

    model_config = ConfigDict(frozen=True)

    top_k: int = Field(default=10, description="Maximum number of documents to return")
    filter: str | None = Field(default=None, description="Metadata predicate, key = \"value\"")
    vector_name: str | None = Field(default=None, description="Vector field to search")

    @classmethod
    def from_filter(cls, filter: str, **kwargs: object) -> "SimilaritySingleEmbedding":
        return cls(filter=filter, **kwargs)

    def without_filter(self) -> "SimilaritySingleEmbedding":
        if self.filter is None:
            return self
        return self.model_copy(update={"filter": None})
