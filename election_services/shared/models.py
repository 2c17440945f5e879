"""
Shared data models and utilities for the election voting system.

This module contains:
- Election, Candidate, VoteRecord: domain records exchanged between the
  store backends, the Vote Service and the client
- normalize_elections: coerces any results payload into a list of elections
- Timestamp helpers
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ElectionStatus(str, Enum):
    """Lifecycle state of an election."""
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class Candidate:
    """
    A named option inside an election.

    Attributes:
        name: Candidate name, unique within its election
        votes: Number of accepted votes (never negative)
    """
    name: str
    votes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class Election:
    """
    An election document with its embedded candidates.

    Attributes:
        id: Unique election identifier
        title: Display title
        candidates: Ordered candidate list
        status: open or closed
    """
    id: str
    title: str
    candidates: List[Candidate] = field(default_factory=list)
    status: str = ElectionStatus.OPEN.value

    @property
    def total_votes(self) -> int:
        return sum(c.votes for c in self.candidates)

    def candidate(self, name: str) -> Optional[Candidate]:
        """Find a candidate by exact name."""
        for candidate in self.candidates:
            if candidate.name == name:
                return candidate
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "candidates": [c.to_dict() for c in self.candidates],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Election':
        """
        Create an Election from a store document or an API payload.

        Accepts `_id` as an alias of `id`. Candidate entries that are not
        mappings are dropped and missing vote counts read as 0.

        Raises:
            ValueError: If the document has no identifier or an unknown status
        """
        election_id = data.get("id", data.get("_id"))
        if election_id is None:
            raise ValueError("Election document has no id")

        raw_candidates = data.get("candidates")
        if not isinstance(raw_candidates, list):
            raw_candidates = []

        candidates = [
            Candidate(name=str(c.get("name", "")), votes=max(int(c.get("votes") or 0), 0))
            for c in raw_candidates
            if isinstance(c, dict)
        ]

        # Unknown states raise ValueError
        status = ElectionStatus(data.get("status") or ElectionStatus.OPEN.value).value

        return cls(
            id=str(election_id),
            title=str(data.get("title") or ""),
            candidates=candidates,
            status=status,
        )


@dataclass
class VoteRecord:
    """
    Durable proof that a voter voted once in an election.

    Attributes:
        voter_id: Authenticated voter identity
        election_id: Election voted in
        candidate_name: Candidate chosen
        cast_at: UTC time the vote was accepted
    """
    voter_id: str
    election_id: str
    candidate_name: str
    cast_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> tuple:
        return (self.voter_id, self.election_id)


def normalize_elections(payload: Any) -> List[Election]:
    """
    Coerce a results payload into a list of elections.

    Accepts a list of election documents, or a mapping wrapping one under
    `data` or `elections`. Anything else yields an empty list. Entries
    that cannot be read as an election are skipped.

    Args:
        payload: Raw payload from a store or an HTTP response

    Returns:
        list: Election objects, possibly empty
    """
    if isinstance(payload, dict):
        payload = payload.get("data", payload.get("elections"))

    if not isinstance(payload, (list, tuple)):
        if payload is not None:
            logger.warning(f"Discarding non-sequence results payload: {type(payload).__name__}")
        return []

    elections = []
    for entry in payload:
        if isinstance(entry, Election):
            elections.append(entry)
            continue
        if not isinstance(entry, dict):
            logger.warning(f"Skipping malformed election entry: {entry!r}")
            continue
        try:
            elections.append(Election.from_dict(entry))
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Skipping malformed election entry: {e}")

    return elections


def get_current_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        str: ISO format timestamp with Z suffix
    """
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + 'Z'
