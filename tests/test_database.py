"""Tests for Cassandra schema setup helpers."""

from unittest.mock import AsyncMock, Mock

import pytest

from campus.config.settings import Settings
from campus.core.database.async_cassandra import (
    SCHEMA_GROUPS,
    AsyncCassandraConnection,
    init_async_keyspace,
    init_async_tables,
    replication_options,
)


@pytest.fixture
def mock_session():
    session = Mock()
    session.aexecute = AsyncMock(return_value=Mock())
    return session


def test_replication_outside_production() -> None:
    options = replication_options(Settings(environment="staging"))
    assert options == {"class": "SimpleStrategy", "replication_factor": 1}


def test_replication_in_production() -> None:
    settings = Settings(
        environment="production",
        cassandra_datacenter="sa-east",
        cassandra_replication_factor=3,
    )
    assert replication_options(settings) == {
        "class": "NetworkTopologyStrategy",
        "sa-east": 3,
    }


@pytest.mark.asyncio
async def test_keyspace_statement(mock_session) -> None:
    await init_async_keyspace(mock_session, "campus_test")

    cql = mock_session.aexecute.await_args.args[0]
    assert cql.startswith("CREATE KEYSPACE IF NOT EXISTS campus_test")
    assert "'class': 'SimpleStrategy'" in cql
    assert "'replication_factor': 1" in cql


@pytest.mark.asyncio
async def test_tables_created_in_keyspace(mock_session) -> None:
    executed = await init_async_tables(mock_session, "campus_test")

    assert executed == sum(len(tables) for _, tables in SCHEMA_GROUPS)
    statements = [c.args[0] for c in mock_session.aexecute.await_args_list]
    assert all("campus_test." in s for s in statements)
    assert any("campus_test.module_progress" in s for s in statements)
    assert any("campus_test.certificates" in s for s in statements)


@pytest.mark.asyncio
async def test_ping_without_session() -> None:
    assert await AsyncCassandraConnection.ping() is False
