"""
Vote Service: election listing, vote casting and tally reads.

The service sits between the HTTP layer and a store backend. It never
touches counters itself; every accepted vote goes through the store's
record_vote, which creates the Vote Record and increments the candidate
in one atomic unit.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from prometheus_client import Counter

from ..shared.errors import NotFound, Unauthorized, VotingError
from ..shared.models import Election, ElectionStatus, normalize_elections

logger = logging.getLogger(__name__)

# Prometheus metrics
votes_cast = Counter(
    "votes_cast_total",
    "Total number of accepted votes"
)
vote_rejections = Counter(
    "vote_rejections_total",
    "Total number of rejected vote attempts",
    ["reason"]
)


class ElectionStore(Protocol):
    """Operations every store backend provides."""

    async def initialize(self): ...

    async def close(self): ...

    async def check_health(self) -> bool: ...

    async def list_elections(self) -> List[dict]: ...

    async def get_election(self, election_id: str) -> Optional[dict]: ...

    async def create_election(self, title: str, candidate_names: List[str],
                              election_id: Optional[str] = None) -> dict: ...

    async def delete_election(self, election_id: str) -> bool: ...

    async def set_election_status(self, election_id: str, status: str) -> Optional[dict]: ...

    async def record_vote(self, voter_id: str, election_id: str, candidate_name: str) -> int: ...

    async def count_vote_records(self, election_id: str) -> int: ...

    async def read_tally(self, election_id: str) -> Optional[dict]: ...


@dataclass
class VoteReceipt:
    """Acknowledgement of an accepted vote."""
    message: str
    updated_vote_count: int


@dataclass
class TallyCheck:
    """Vote Records versus candidate counters for one election."""
    election_id: str
    recorded_votes: int
    tallied_votes: int

    @property
    def consistent(self) -> bool:
        return self.recorded_votes == self.tallied_votes


class VoteService:
    """Vote casting and election administration on top of a store."""

    def __init__(self, store: ElectionStore):
        self.store = store

    async def list_elections(self) -> List[Election]:
        """All elections with current candidate names and vote counts."""
        return normalize_elections(await self.store.list_elections())

    async def get_results(self) -> List[Election]:
        """
        All elections with full tallies.

        Always a list: an empty store or a malformed payload gives [].
        """
        return normalize_elections(await self.store.list_elections())

    async def cast_vote(self, voter_id: str, election_id: str, candidate_name: str) -> VoteReceipt:
        """
        Cast one vote for a candidate.

        Args:
            voter_id: Identity taken from a validated bearer token
            election_id: Election to vote in
            candidate_name: Exact candidate name

        Returns:
            VoteReceipt: Message and the candidate's updated count

        Raises:
            Unauthorized: No voter identity
            NotFound: Unknown election
            InvalidCandidate: Candidate not in the election
            ElectionClosed: Election no longer accepts votes
            DuplicateVote: Voter already voted in this election
            TransientStoreFailure: Store unreachable
        """
        if not voter_id:
            vote_rejections.labels(reason=Unauthorized.__name__).inc()
            raise Unauthorized("Voter identity missing")

        try:
            count = await self.store.record_vote(voter_id, election_id, candidate_name)
        except VotingError as e:
            vote_rejections.labels(reason=e.error).inc()
            logger.info(
                f"Vote rejected: voter={voter_id}, election={election_id}, "
                f"candidate={candidate_name}, reason={e.error}"
            )
            raise

        votes_cast.inc()
        logger.info(
            f"Vote recorded: voter={voter_id}, election={election_id}, "
            f"candidate={candidate_name}, votes={count}"
        )
        return VoteReceipt(message="Vote recorded successfully", updated_vote_count=count)

    # Administration

    async def create_election(self, title: str, candidate_names: List[str]) -> Election:
        doc = await self.store.create_election(title, candidate_names)
        logger.info(f"Election created: id={doc['id']}, title={title}")
        return Election.from_dict(doc)

    async def delete_election(self, election_id: str) -> None:
        if not await self.store.delete_election(election_id):
            raise NotFound(f"Election {election_id} not found", election_id=election_id)
        logger.info(f"Election deleted: id={election_id}")

    async def close_election(self, election_id: str) -> Election:
        return await self._set_status(election_id, ElectionStatus.CLOSED)

    async def open_election(self, election_id: str) -> Election:
        return await self._set_status(election_id, ElectionStatus.OPEN)

    async def _set_status(self, election_id: str, status: ElectionStatus) -> Election:
        doc = await self.store.set_election_status(election_id, status.value)
        if doc is None:
            raise NotFound(f"Election {election_id} not found", election_id=election_id)
        logger.info(f"Election {election_id} is now {status.value}")
        return Election.from_dict(doc)

    async def check_tally(self, election_id: str) -> TallyCheck:
        """Compare Vote Record count with the sum of candidate counters."""
        # Both numbers come from one consistent read
        tally = await self.store.read_tally(election_id)
        if tally is None:
            raise NotFound(f"Election {election_id} not found", election_id=election_id)

        check = TallyCheck(
            election_id=election_id,
            recorded_votes=tally["recorded_votes"],
            tallied_votes=tally["tallied_votes"],
        )
        if not check.consistent:
            logger.warning(
                f"Tally mismatch for election {election_id}: "
                f"records={check.recorded_votes}, counters={check.tallied_votes}"
            )
        return check
