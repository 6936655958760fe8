"""Async Cassandra session for the campus API (cassandra-asyncio-driver).

Provides:
- One shared session whose ``aexecute()`` is awaited by every service
- Keyspace and table creation for the progress and certificate schema
- A cheap ping used by the readiness probe
"""

from typing import Any

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from campus.certificates.models import CERTIFICATES_TABLES_CQL
from campus.config.settings import Settings, get_settings
from campus.courses.models import COURSES_TABLES_CQL
from campus.exams.models import EXAMS_TABLES_CQL
from campus.progress.models import PROGRESS_TABLES_CQL
from campus.users.models import USERS_TABLES_CQL


logger = structlog.get_logger(__name__)

# (group name, table definitions); directories first, derived data last
SCHEMA_GROUPS: list[tuple[str, list[str]]] = [
    ("users", USERS_TABLES_CQL),
    ("courses", COURSES_TABLES_CQL),
    ("exams", EXAMS_TABLES_CQL),
    ("progress", PROGRESS_TABLES_CQL),
    ("certificates", CERTIFICATES_TABLES_CQL),
]

PING_CQL = "SELECT release_version FROM system.local"


class AsyncCassandraConnection:
    """Process-wide Cassandra cluster and session."""

    _cluster: Cluster | None = None
    _session = None  # cassandra_asyncio session

    @classmethod
    def connect(cls):
        """Connect once and return the shared session.

        Raises:
            ConnectionError: If no contact point answers
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(
                DCAwareRoundRobinPolicy(local_dc=settings.cassandra_datacenter)
            ),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            cls._cluster.shutdown()
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        cls._session.default_timeout = settings.cassandra_request_timeout
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
            datacenter=settings.cassandra_datacenter,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        """Shut the session and cluster down; safe to call when not connected."""
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        """Check if connection is active."""
        return cls._session is not None and not cls._session.is_shutdown

    @classmethod
    async def ping(cls) -> bool:
        """Round-trip a trivial query; False when not connected or failing."""
        if not cls.is_connected():
            return False
        try:
            await cls._session.aexecute(PING_CQL)
        except Exception as e:
            logger.warning("cassandra_ping_failed", error=str(e))
            return False
        return True


def replication_options(settings: Settings) -> dict[str, Any]:
    """Keyspace replication: per-datacenter in production, single copy elsewhere."""
    if settings.is_production:
        return {
            "class": "NetworkTopologyStrategy",
            settings.cassandra_datacenter: settings.cassandra_replication_factor,
        }
    return {"class": "SimpleStrategy", "replication_factor": 1}


def _cql_map(options: dict[str, Any]) -> str:
    items = ", ".join(
        f"'{key}': {value}" if isinstance(value, int) else f"'{key}': '{value}'"
        for key, value in options.items()
    )
    return "{" + items + "}"


async def init_async_keyspace(session, keyspace: str) -> None:
    """Create the keyspace if it does not exist."""
    replication = replication_options(get_settings())
    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {_cql_map(replication)} AND durable_writes = true"
    )
    logger.info("keyspace_ready", keyspace=keyspace, replication=replication["class"])


async def init_async_tables(
    session, keyspace: str, groups: list[tuple[str, list[str]]] | None = None
) -> int:
    """Create every table of the schema groups.

    Returns:
        Number of CREATE TABLE statements executed
    """
    executed = 0
    for group, templates in groups or SCHEMA_GROUPS:
        for cql_template in templates:
            await session.aexecute(cql_template.format(keyspace=keyspace))
            executed += 1
        logger.debug("tables_ready", group=group, keyspace=keyspace)
    return executed


async def init_async_cassandra():
    """Connect and make sure the keyspace and tables exist.

    Returns:
        Session bound to the configured keyspace
    """
    settings = get_settings()
    keyspace = settings.cassandra_keyspace

    session = AsyncCassandraConnection.connect()
    await init_async_keyspace(session, keyspace)
    session.set_keyspace(keyspace)
    tables = await init_async_tables(session, keyspace)

    logger.info("cassandra_schema_ready", keyspace=keyspace, tables=tables)
    return session


async def shutdown_async_cassandra() -> None:
    """Shutdown async Cassandra connection."""
    AsyncCassandraConnection.disconnect()
