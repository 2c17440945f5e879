"""Pydantic models for request/response validation."""
from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..shared.models import Election


class CandidateOut(BaseModel):
    """Candidate with its current tally."""

    name: str
    votes: int = Field(..., ge=0)


class ElectionOut(BaseModel):
    """Election representation returned to clients."""

    id: str
    title: str
    status: Literal["open", "closed"] = "open"
    candidates: List[CandidateOut] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "e1",
                "title": "Student Council 2025",
                "status": "open",
                "candidates": [
                    {"name": "Alice", "votes": 12},
                    {"name": "Bob", "votes": 9}
                ]
            }
        }
    )

    @classmethod
    def from_election(cls, election: Election) -> 'ElectionOut':
        return cls(**election.to_dict())


class CastVoteRequest(BaseModel):
    """Vote submission request model."""

    election_id: str = Field(..., alias="electionId", description="Election identifier")
    candidate_name: str = Field(..., alias="candidateName", description="Candidate name")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "electionId": "e1",
                "candidateName": "Alice"
            }
        }
    )


class CastVoteResponse(BaseModel):
    """Vote submission response model."""

    message: str = Field(default="Vote recorded successfully", description="Response message")
    updated_vote_count: int = Field(..., alias="updatedVoteCount", description="Candidate tally after the vote")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "Vote recorded successfully",
                "updatedVoteCount": 13
            }
        }
    )


class ElectionCreateRequest(BaseModel):
    """Election creation request model."""

    title: str = Field(..., description="Election title")
    candidates: List[str] = Field(..., min_length=1, description="Candidate names, in ballot order")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        """Validate title is not blank."""
        if not v or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @field_validator("candidates")
    @classmethod
    def validate_candidates(cls, v):
        """Validate candidate names are non-blank and unique."""
        names = [name.strip() for name in v]
        if any(not name for name in names):
            raise ValueError("Candidate names cannot be empty")
        if len(set(names)) != len(names):
            raise ValueError("Candidate names must be unique within an election")
        return names

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Student Council 2025",
                "candidates": ["Alice", "Bob"]
            }
        }
    )


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class TallyCheckResponse(BaseModel):
    """Comparison of Vote Records against candidate counters."""

    election_id: str = Field(..., alias="electionId")
    recorded_votes: int = Field(..., alias="recordedVotes", description="Vote Records referencing the election")
    tallied_votes: int = Field(..., alias="talliedVotes", description="Sum of candidate counters")
    consistent: bool

    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Health check timestamp"
    )


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict = Field(default_factory=dict, description="Additional error details")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "DuplicateVote",
                "message": "You have already voted in this election",
                "details": {"election_id": "e1"}
            }
        }
    )
