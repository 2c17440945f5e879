"""Pytest fixtures for integration tests.

These fixtures connect to a real PostgreSQL instance. Tests are skipped
when the database is not reachable.
"""

import os
from typing import AsyncGenerator

import psycopg2
import pytest
import pytest_asyncio
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

from election_services.vote_api.database import SCHEMA_SQL, PostgresElectionStore


def postgres_params() -> dict:
    return {
        "host": os.getenv("POSTGRES_HOST", "localhost"),
        "port": int(os.getenv("POSTGRES_PORT", "5432")),
        "dbname": os.getenv("POSTGRES_DB", "election_db"),
        "user": os.getenv("POSTGRES_USER", "election_user"),
        "password": os.getenv("POSTGRES_PASSWORD", "election_pass"),
    }


@pytest.fixture(scope="session")
def postgres_dsn() -> str:
    params = postgres_params()
    return (
        f"postgresql://{params['user']}:{params['password']}"
        f"@{params['host']}:{params['port']}/{params['dbname']}"
    )


@pytest.fixture(scope="session")
def postgres_connection():
    """PostgreSQL connection for direct database operations.

    Yields a psycopg2 connection for test assertions and setup.
    """
    try:
        conn = psycopg2.connect(connect_timeout=3, **postgres_params())
    except psycopg2.OperationalError:
        pytest.skip("PostgreSQL not available")
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)

    with conn.cursor() as cursor:
        cursor.execute(SCHEMA_SQL)

    yield conn

    conn.close()


@pytest.fixture
def postgres_client(postgres_connection):
    """PostgreSQL cursor for executing queries."""
    cursor = postgres_connection.cursor()
    yield cursor
    cursor.close()


@pytest.fixture
def clear_databases(postgres_client):
    """Remove all elections; candidates and Vote Records cascade."""
    postgres_client.execute("TRUNCATE TABLE vote_records, candidates, elections")
    yield


@pytest_asyncio.fixture
async def pg_store(postgres_dsn, clear_databases) -> AsyncGenerator[PostgresElectionStore, None]:
    """Initialized PostgresElectionStore over an empty database."""
    store = PostgresElectionStore(postgres_dsn)
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def pg_election(pg_store: PostgresElectionStore) -> dict:
    """Election e1 with candidates A and B."""
    return await pg_store.create_election("Class President", ["A", "B"], election_id="e1")
