"""Storage and retrieval capabilities expected by an indexing pipeline.

An indexing pipeline persists nodes through :class:`Persist`; a query
pipeline fetches documents through :class:`Retrieve`. Backends implement
one or both.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from nodevec.node import Node
from nodevec.query import Query, SimilaritySingleEmbedding


class Persist(ABC):
    """Abstract interface for node storage."""

    @abstractmethod
    async def setup(self) -> None:
        """Prepare the backend. Must be safe to call repeatedly."""
        pass

    @abstractmethod
    async def store(self, node: Node) -> Node:
        """Store a single node and return it with its identifier resolved."""
        pass

    @abstractmethod
    async def store_batch(self, nodes: list[Node]) -> Iterator[Node]:
        """Store nodes atomically and return them in input order."""
        pass

    @property
    @abstractmethod
    def batch_size(self) -> int | None:
        """Preferred number of nodes per store_batch call, if any."""
        pass


class Retrieve(ABC):
    """Abstract interface for similarity retrieval."""

    @abstractmethod
    async def retrieve(
        self,
        strategy: SimilaritySingleEmbedding,
        query: Query,
    ) -> Query:
        """Move a pending query to retrieved, attaching matching documents."""
        pass
