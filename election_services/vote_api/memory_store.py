"""In-process election store for development and tests."""
import asyncio
import copy
import logging
import uuid
from typing import Dict, List, Optional

from ..shared.errors import DuplicateVote, ElectionClosed, InvalidCandidate, NotFound
from ..shared.models import ElectionStatus, VoteRecord, get_current_timestamp

logger = logging.getLogger(__name__)


class InMemoryElectionStore:
    """
    Election store kept in dictionaries.

    A single asyncio.Lock guards every mutation, so record_vote is one
    atomic unit with respect to concurrent coroutines. Documents are
    copied on the way out so callers never hold live state.
    """

    def __init__(self):
        self._elections: Dict[str, dict] = {}
        self._votes: Dict[tuple, VoteRecord] = {}
        self._lock = asyncio.Lock()

    async def initialize(self):
        logger.info("In-memory election store initialized")

    async def close(self):
        logger.info("In-memory election store closed")

    async def check_health(self) -> bool:
        return True

    async def list_elections(self) -> List[dict]:
        """Get all elections in creation order."""
        return [copy.deepcopy(doc) for doc in self._elections.values()]

    async def get_election(self, election_id: str) -> Optional[dict]:
        doc = self._elections.get(election_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def create_election(self, title: str, candidate_names: List[str],
                              election_id: Optional[str] = None) -> dict:
        """Insert a new open election with zeroed counters."""
        if len(set(candidate_names)) != len(candidate_names):
            raise ValueError("Candidate names must be unique within an election")

        async with self._lock:
            election_id = election_id or uuid.uuid4().hex
            if election_id in self._elections:
                raise ValueError(f"Election {election_id} already exists")

            self._elections[election_id] = {
                "id": election_id,
                "title": title,
                "status": ElectionStatus.OPEN.value,
                "candidates": [{"name": name, "votes": 0} for name in candidate_names],
                "created_at": get_current_timestamp(),
            }
            return copy.deepcopy(self._elections[election_id])

    async def delete_election(self, election_id: str) -> bool:
        """Remove an election and its Vote Records."""
        async with self._lock:
            if self._elections.pop(election_id, None) is None:
                return False
            for key in [k for k in self._votes if k[1] == election_id]:
                del self._votes[key]
            return True

    async def set_election_status(self, election_id: str, status: str) -> Optional[dict]:
        async with self._lock:
            doc = self._elections.get(election_id)
            if doc is None:
                return None
            doc["status"] = ElectionStatus(status).value
            return copy.deepcopy(doc)

    async def record_vote(self, voter_id: str, election_id: str, candidate_name: str) -> int:
        """
        Create the Vote Record and bump the candidate counter as one unit.

        Returns:
            int: Candidate vote count after the increment
        """
        async with self._lock:
            doc = self._elections.get(election_id)
            if doc is None:
                raise NotFound(f"Election {election_id} not found", election_id=election_id)

            candidate = next((c for c in doc["candidates"] if c["name"] == candidate_name), None)
            if candidate is None:
                raise InvalidCandidate(
                    f"Candidate '{candidate_name}' is not part of this election",
                    election_id=election_id, candidate_name=candidate_name
                )

            if doc["status"] != ElectionStatus.OPEN.value:
                raise ElectionClosed(election_id=election_id)

            key = (voter_id, election_id)
            if key in self._votes:
                raise DuplicateVote(election_id=election_id)

            await self._before_insert(key)
            self._votes[key] = VoteRecord(voter_id, election_id, candidate_name)
            candidate["votes"] += 1
            return candidate["votes"]

    async def count_vote_records(self, election_id: str) -> int:
        return sum(1 for key in self._votes if key[1] == election_id)

    async def read_tally(self, election_id: str) -> Optional[dict]:
        """Vote Record count and counter sum taken under the lock."""
        async with self._lock:
            doc = self._elections.get(election_id)
            if doc is None:
                return None
            return {
                "recorded_votes": sum(1 for key in self._votes if key[1] == election_id),
                "tallied_votes": sum(c["votes"] for c in doc["candidates"]),
            }

    async def _before_insert(self, key: tuple):
        """Runs inside the locked section, after the duplicate check."""
