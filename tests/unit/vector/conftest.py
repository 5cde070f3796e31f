"""Fake connection pool for exercising stores without PostgreSQL."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest

from nodevec.db.pool import ConnectionState
from nodevec.vector import EmbeddedField, VectorStoreConfig


class FakeTransaction:
    """Records whether the transaction block committed or rolled back."""

    def __init__(self, connection: "FakeConnection") -> None:
        self._connection = connection

    async def __aenter__(self) -> "FakeTransaction":
        self._connection.transactions_started += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self._connection.commits += 1
        else:
            self._connection.rollbacks += 1
        return False


class FakeConnection:
    """Stand-in for asyncpg.Connection with mocked execute/fetch."""

    def __init__(self) -> None:
        self.execute = AsyncMock(return_value="OK")
        self.fetch = AsyncMock(return_value=[])
        self.transactions_started = 0
        self.commits = 0
        self.rollbacks = 0

    def transaction(self) -> FakeTransaction:
        return FakeTransaction(self)

    @property
    def executed_sql(self) -> list[str]:
        return [call.args[0] for call in self.execute.await_args_list]


class FakePool:
    """Duck-typed PostgresPool handing out a single FakeConnection."""

    def __init__(self) -> None:
        self.connection = FakeConnection()
        self.acquired = 0
        self.released = 0

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[FakeConnection]:
        self.acquired += 1
        try:
            yield self.connection
        finally:
            self.released += 1

    @property
    def connection_status(self) -> ConnectionState:
        return ConnectionState.CONNECTED


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture
def store_config() -> VectorStoreConfig:
    """Three-dimensional store with a combined vector and a filter key."""
    return (
        VectorStoreConfig(table_name="nodevec_test", vector_size=3)
        .with_vector(EmbeddedField.COMBINED)
        .with_metadata("filter")
    )


@pytest.fixture
def field_model(store_config):
    return store_config.field_model()
