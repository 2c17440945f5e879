"""
Shared utilities and models for the election voting system.

This package contains common code used by the API and the client:
- Data models (Election, Candidate, VoteRecord, ElectionStatus)
- Results normalization
- Typed error taxonomy
"""

from .errors import (
    VotingError,
    Unauthorized,
    Forbidden,
    NotFound,
    InvalidCandidate,
    DuplicateVote,
    ElectionClosed,
    TransientStoreFailure,
    ERROR_TYPES,
    error_from_response,
)
from .models import (
    Election,
    Candidate,
    VoteRecord,
    ElectionStatus,
    normalize_elections,
    get_current_timestamp,
)

__all__ = [
    'VotingError',
    'Unauthorized',
    'Forbidden',
    'NotFound',
    'InvalidCandidate',
    'DuplicateVote',
    'ElectionClosed',
    'TransientStoreFailure',
    'ERROR_TYPES',
    'error_from_response',
    'Election',
    'Candidate',
    'VoteRecord',
    'ElectionStatus',
    'normalize_elections',
    'get_current_timestamp',
]
