"""PostgreSQL election store connection and queries."""
import asyncio
import logging
import uuid
from typing import Dict, List, Optional

import asyncpg

from ..shared.errors import (
    DuplicateVote,
    ElectionClosed,
    InvalidCandidate,
    NotFound,
    TransientStoreFailure,
)
from ..shared.models import ElectionStatus
from .config import settings

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS elections (
        id          TEXT PRIMARY KEY,
        title       TEXT NOT NULL,
        status      TEXT NOT NULL DEFAULT 'open'
                    CHECK (status IN ('open', 'closed')),
        created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE TABLE IF NOT EXISTS candidates (
        election_id TEXT NOT NULL REFERENCES elections(id) ON DELETE CASCADE,
        position    INTEGER NOT NULL,
        name        TEXT NOT NULL,
        votes       INTEGER NOT NULL DEFAULT 0 CHECK (votes >= 0),
        PRIMARY KEY (election_id, name)
    );

    CREATE TABLE IF NOT EXISTS vote_records (
        voter_id       TEXT NOT NULL,
        election_id    TEXT NOT NULL REFERENCES elections(id) ON DELETE CASCADE,
        candidate_name TEXT NOT NULL,
        cast_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (voter_id, election_id)
    );
"""

# Failures that mean the database could not be reached, not that the
# request was wrong.
TRANSIENT_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.DeadlockDetectedError,
    asyncio.TimeoutError,
    OSError,
)


class PostgresElectionStore:
    """Async PostgreSQL election store."""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn or settings.postgres_dsn
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """Initialize database connection pool and create tables."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=settings.POSTGRES_POOL_MIN_SIZE,
                max_size=settings.POSTGRES_POOL_MAX_SIZE,
                command_timeout=settings.POSTGRES_COMMAND_TIMEOUT
            )
            logger.info("PostgreSQL connection pool initialized successfully")

            async with self.pool.acquire() as conn:
                await conn.execute(SCHEMA_SQL)
                logger.info("PostgreSQL schema verified")

        except Exception as e:
            logger.error(f"Failed to initialize PostgreSQL connection pool: {e}")
            raise

    async def close(self):
        """Close database connection pool."""
        try:
            if self.pool:
                await self.pool.close()
                logger.info("PostgreSQL connection pool closed successfully")
        except Exception as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")

    async def check_health(self) -> bool:
        """
        Check PostgreSQL connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        try:
            if not self.pool:
                return False
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    @staticmethod
    def _build_documents(election_rows, candidate_rows) -> List[Dict]:
        """Fold election and candidate rows into election documents."""
        documents = {}
        for row in election_rows:
            documents[row["id"]] = {
                "id": row["id"],
                "title": row["title"],
                "status": row["status"],
                "candidates": [],
                "created_at": row["created_at"].isoformat(),
            }
        for row in candidate_rows:
            doc = documents.get(row["election_id"])
            if doc is not None:
                doc["candidates"].append({"name": row["name"], "votes": row["votes"]})
        return list(documents.values())

    async def list_elections(self) -> List[Dict]:
        """Get all elections with their candidates, oldest first."""
        try:
            async with self.pool.acquire() as conn:
                # Both reads share one snapshot
                async with conn.transaction(isolation="repeatable_read", readonly=True):
                    elections = await conn.fetch(
                        """
                        SELECT id, title, status, created_at
                        FROM elections
                        ORDER BY created_at, id
                        """
                    )
                    candidates = await conn.fetch(
                        """
                        SELECT election_id, name, votes
                        FROM candidates
                        ORDER BY election_id, position
                        """
                    )
                return self._build_documents(elections, candidates)

        except TRANSIENT_ERRORS as e:
            logger.error(f"Error listing elections: {e}")
            raise TransientStoreFailure() from e

    async def get_election(self, election_id: str) -> Optional[Dict]:
        """Get one election document or None if not found."""
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction(isolation="repeatable_read", readonly=True):
                    election = await conn.fetchrow(
                        "SELECT id, title, status, created_at FROM elections WHERE id = $1",
                        election_id
                    )
                    if election is None:
                        return None
                    candidates = await conn.fetch(
                        """
                        SELECT election_id, name, votes
                        FROM candidates
                        WHERE election_id = $1
                        ORDER BY position
                        """,
                        election_id
                    )
                return self._build_documents([election], candidates)[0]

        except TRANSIENT_ERRORS as e:
            logger.error(f"Error getting election {election_id}: {e}")
            raise TransientStoreFailure() from e

    async def create_election(self, title: str, candidate_names: List[str],
                              election_id: Optional[str] = None) -> Dict:
        """Insert an open election with zeroed candidate counters."""
        election_id = election_id or uuid.uuid4().hex
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        "INSERT INTO elections (id, title, status) VALUES ($1, $2, $3)",
                        election_id, title, ElectionStatus.OPEN.value
                    )
                    await conn.executemany(
                        """
                        INSERT INTO candidates (election_id, position, name, votes)
                        VALUES ($1, $2, $3, 0)
                        """,
                        [(election_id, position, name) for position, name in enumerate(candidate_names)]
                    )

        except asyncpg.UniqueViolationError as e:
            raise ValueError(f"Duplicate election id or candidate name: {e}") from e
        except TRANSIENT_ERRORS as e:
            logger.error(f"Error creating election: {e}")
            raise TransientStoreFailure() from e

        logger.info(f"Election created: id={election_id}, candidates={len(candidate_names)}")
        return await self.get_election(election_id)

    async def delete_election(self, election_id: str) -> bool:
        """Delete an election; candidates and Vote Records cascade."""
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute("DELETE FROM elections WHERE id = $1", election_id)
                return result != "DELETE 0"

        except TRANSIENT_ERRORS as e:
            logger.error(f"Error deleting election {election_id}: {e}")
            raise TransientStoreFailure() from e

    async def set_election_status(self, election_id: str, status: str) -> Optional[Dict]:
        status = ElectionStatus(status).value
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "UPDATE elections SET status = $2 WHERE id = $1",
                    election_id, status
                )
                if result == "UPDATE 0":
                    return None

        except TRANSIENT_ERRORS as e:
            logger.error(f"Error updating election {election_id}: {e}")
            raise TransientStoreFailure() from e

        return await self.get_election(election_id)

    async def record_vote(self, voter_id: str, election_id: str, candidate_name: str) -> int:
        """
        Insert the Vote Record and increment the candidate counter.

        Both writes share one transaction. The election row is locked
        FOR SHARE so it cannot be closed or deleted mid-vote, and the
        (voter_id, election_id) primary key makes a concurrent second
        insert wait and then do nothing.

        Returns:
            int: Candidate vote count after the increment
        """
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    status = await conn.fetchval(
                        "SELECT status FROM elections WHERE id = $1 FOR SHARE",
                        election_id
                    )
                    if status is None:
                        raise NotFound(f"Election {election_id} not found", election_id=election_id)

                    known = await conn.fetchval(
                        "SELECT 1 FROM candidates WHERE election_id = $1 AND name = $2",
                        election_id, candidate_name
                    )
                    if not known:
                        raise InvalidCandidate(
                            f"Candidate '{candidate_name}' is not part of this election",
                            election_id=election_id, candidate_name=candidate_name
                        )

                    if status != ElectionStatus.OPEN.value:
                        raise ElectionClosed(election_id=election_id)

                    inserted = await conn.fetchval(
                        """
                        INSERT INTO vote_records (voter_id, election_id, candidate_name, cast_at)
                        VALUES ($1, $2, $3, NOW())
                        ON CONFLICT (voter_id, election_id) DO NOTHING
                        RETURNING voter_id
                        """,
                        voter_id, election_id, candidate_name
                    )
                    if inserted is None:
                        raise DuplicateVote(election_id=election_id)

                    return await conn.fetchval(
                        """
                        UPDATE candidates
                        SET votes = votes + 1
                        WHERE election_id = $1 AND name = $2
                        RETURNING votes
                        """,
                        election_id, candidate_name
                    )

        except asyncpg.UniqueViolationError as e:
            raise DuplicateVote(election_id=election_id) from e
        except TRANSIENT_ERRORS as e:
            logger.error(f"Error recording vote for election {election_id}: {e}")
            raise TransientStoreFailure() from e

    async def count_vote_records(self, election_id: str) -> int:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT COUNT(*) FROM vote_records WHERE election_id = $1",
                    election_id
                )

        except TRANSIENT_ERRORS as e:
            logger.error(f"Error counting vote records for election {election_id}: {e}")
            raise TransientStoreFailure() from e

    async def read_tally(self, election_id: str) -> Optional[Dict]:
        """
        Read the Vote Record count and the counter sum in one statement.

        Returns:
            dict: recorded_votes and tallied_votes, or None if the election
            does not exist
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    SELECT
                        EXISTS (SELECT 1 FROM elections WHERE id = $1) AS found,
                        (SELECT COUNT(*) FROM vote_records WHERE election_id = $1) AS recorded_votes,
                        (SELECT COALESCE(SUM(votes), 0) FROM candidates WHERE election_id = $1) AS tallied_votes
                    """,
                    election_id
                )

        except TRANSIENT_ERRORS as e:
            logger.error(f"Error reading tally for election {election_id}: {e}")
            raise TransientStoreFailure() from e

        if not row["found"]:
            return None
        return {
            "recorded_votes": int(row["recorded_votes"]),
            "tallied_votes": int(row["tallied_votes"]),
        }
