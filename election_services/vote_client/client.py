"""Async client for the election Vote API."""
import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from ..shared.errors import TransientStoreFailure, error_from_response
from ..shared.models import Election, normalize_elections

logger = logging.getLogger(__name__)

VOTE_API_URL = os.getenv('VOTE_API_URL', 'http://localhost:8000')
MAX_RETRIES = int(os.getenv('VOTE_API_MAX_RETRIES', '3'))
RETRY_DELAY = float(os.getenv('VOTE_API_RETRY_DELAY', '0.5'))


class VoteClient:
    """
    Client for the voter endpoints.

    Failures come back as the typed errors from election_services.shared.
    Only TransientStoreFailure is retried; everything else needs a new
    action from the user.
    """

    def __init__(
        self,
        token: str,
        base_url: str = VOTE_API_URL,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport
        )

    async def __aenter__(self) -> 'VoteClient':
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        attempt = 0
        while True:
            response = await self._client.request(method, path, **kwargs)
            if response.is_success:
                return response.json()

            try:
                body = response.json()
            except ValueError:
                body = None
            error = error_from_response(response.status_code, body)

            if isinstance(error, TransientStoreFailure) and attempt < self.max_retries:
                attempt += 1
                logger.warning(
                    f"{method} {path} failed with {error.error}, "
                    f"retry {attempt}/{self.max_retries} in {self.retry_delay}s"
                )
                await asyncio.sleep(self.retry_delay)
                continue

            raise error

    async def list_elections(self) -> List[Election]:
        """Get all elections with current vote counts."""
        return normalize_elections(await self._request("GET", "/api/vote/elections"))

    async def cast_vote(self, election_id: str, candidate_name: str) -> Dict[str, Any]:
        """
        Cast a vote.

        Returns:
            dict: {"message", "updatedVoteCount"}

        Raises:
            VotingError: Typed failure reported by the API
        """
        return await self._request(
            "POST",
            "/api/vote/cast",
            json={"electionId": election_id, "candidateName": candidate_name}
        )

    async def get_results(self) -> List[Election]:
        """Get tallies for all elections, always as a list."""
        return normalize_elections(await self._request("GET", "/api/vote/results"))


__all__ = ['VoteClient']
