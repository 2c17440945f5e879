"""
FastAPI application for the election Vote API.

Voters list elections, cast one vote per election and read results.
Administrators create, close, reopen and delete elections.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import redis.asyncio as redis
from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Histogram, generate_latest
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from ..shared.errors import Unauthorized, VotingError
from .auth import Principal, get_current_principal, require_admin
from .config import settings
from .database import PostgresElectionStore
from .memory_store import InMemoryElectionStore
from .models import (
    CastVoteRequest,
    CastVoteResponse,
    ElectionCreateRequest,
    ElectionOut,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    TallyCheckResponse,
)
from .service import ElectionStore, VoteService

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.RATE_LIMIT_ENABLED
)

ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    503: {"model": ErrorResponse, "description": "Election store unavailable"},
}


def build_store() -> ElectionStore:
    """Create the configured store backend."""
    if settings.STORE_BACKEND == "memory":
        return InMemoryElectionStore()
    return PostgresElectionStore()


def get_vote_service(request: Request) -> VoteService:
    return request.app.state.vote_service


# ═══════════════════════════════════════════════════════════════════
# VOTER ENDPOINTS
# ═══════════════════════════════════════════════════════════════════

vote_router = APIRouter(prefix="/api/vote", tags=["Vote"])


@vote_router.get(
    "/elections",
    response_model=List[ElectionOut],
    responses=ERROR_RESPONSES
)
async def list_elections(
    principal: Principal = Depends(get_current_principal),
    service: VoteService = Depends(get_vote_service)
) -> List[ElectionOut]:
    """Get all elections with candidate names and current vote counts."""
    elections = await service.list_elections()
    return [ElectionOut.from_election(e) for e in elections]


@vote_router.post(
    "/cast",
    response_model=CastVoteResponse,
    responses={
        **ERROR_RESPONSES,
        400: {"model": ErrorResponse, "description": "Invalid candidate or duplicate vote"},
        404: {"model": ErrorResponse, "description": "Election not found"},
        409: {"model": ErrorResponse, "description": "Election closed"},
        429: {"description": "Rate limit exceeded"},
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def cast_vote(
    request: Request,
    vote: CastVoteRequest,
    principal: Principal = Depends(get_current_principal),
    service: VoteService = Depends(get_vote_service)
) -> CastVoteResponse:
    """
    Cast a vote for a candidate.

    - **electionId**: Election identifier
    - **candidateName**: Exact candidate name

    A voter may vote once per election. Returns the candidate's updated count.
    """
    receipt = await service.cast_vote(principal.subject, vote.election_id, vote.candidate_name)
    return CastVoteResponse(message=receipt.message, updated_vote_count=receipt.updated_vote_count)


@vote_router.get(
    "/results",
    response_model=List[ElectionOut],
    responses=ERROR_RESPONSES
)
async def get_results(
    principal: Principal = Depends(get_current_principal),
    service: VoteService = Depends(get_vote_service)
) -> List[ElectionOut]:
    """Get full tallies for all elections. Always a JSON array."""
    results = await service.get_results()
    return [ElectionOut.from_election(e) for e in results]


# ═══════════════════════════════════════════════════════════════════
# ADMIN ENDPOINTS
# ═══════════════════════════════════════════════════════════════════

admin_router = APIRouter(
    prefix="/api/admin/elections",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={
        **ERROR_RESPONSES,
        403: {"model": ErrorResponse, "description": "Administrator role required"},
    }
)


@admin_router.get("", response_model=List[ElectionOut])
async def admin_list_elections(service: VoteService = Depends(get_vote_service)):
    elections = await service.list_elections()
    return [ElectionOut.from_election(e) for e in elections]


@admin_router.post("", response_model=ElectionOut, status_code=status.HTTP_201_CREATED)
async def create_election(
    election: ElectionCreateRequest,
    service: VoteService = Depends(get_vote_service)
) -> ElectionOut:
    """Create an open election with zeroed candidate tallies."""
    created = await service.create_election(election.title, election.candidates)
    return ElectionOut.from_election(created)


@admin_router.delete(
    "/{election_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Election not found"}}
)
async def delete_election(election_id: str, service: VoteService = Depends(get_vote_service)):
    await service.delete_election(election_id)
    return MessageResponse(message="Election deleted successfully")


@admin_router.post(
    "/{election_id}/close",
    response_model=ElectionOut,
    responses={404: {"model": ErrorResponse, "description": "Election not found"}}
)
async def close_election(election_id: str, service: VoteService = Depends(get_vote_service)):
    """Stop accepting votes for an election."""
    return ElectionOut.from_election(await service.close_election(election_id))


@admin_router.post(
    "/{election_id}/open",
    response_model=ElectionOut,
    responses={404: {"model": ErrorResponse, "description": "Election not found"}}
)
async def open_election(election_id: str, service: VoteService = Depends(get_vote_service)):
    return ElectionOut.from_election(await service.open_election(election_id))


@admin_router.get(
    "/{election_id}/tally",
    response_model=TallyCheckResponse,
    responses={404: {"model": ErrorResponse, "description": "Election not found"}}
)
async def check_tally(election_id: str, service: VoteService = Depends(get_vote_service)):
    """Compare accepted Vote Records with the candidate counters."""
    check = await service.check_tally(election_id)
    return TallyCheckResponse(
        election_id=check.election_id,
        recorded_votes=check.recorded_votes,
        tallied_votes=check.tallied_votes,
        consistent=check.consistent
    )


# ═══════════════════════════════════════════════════════════════════
# SERVICE ENDPOINTS
# ═══════════════════════════════════════════════════════════════════

service_router = APIRouter()


@service_router.get(
    "/api/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse, "description": "Service unhealthy"}}
)
async def health_check(request: Request) -> JSONResponse:
    """
    Check health of the service and its dependencies.

    Reports the election store and, when configured, Redis.
    """
    services = {}

    store: ElectionStore = request.app.state.store
    services["store"] = "connected" if await store.check_health() else "disconnected"

    redis_client: Optional[redis.Redis] = request.app.state.redis
    if redis_client is None:
        services["redis"] = "disabled"
    else:
        try:
            await redis_client.ping()
            services["redis"] = "connected"
        except Exception as e:
            logger.error(f"Redis health check error: {e}")
            services["redis"] = "disconnected"

    all_healthy = all(state in ("connected", "disabled") for state in services.values())

    response = HealthResponse(
        status="healthy" if all_healthy else "unhealthy",
        services=services,
        timestamp=datetime.now(timezone.utc)
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json")
    )


@service_router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@service_router.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.API_VERSION,
        "status": "running",
        "endpoints": {
            "list_elections": "/api/vote/elections",
            "cast_vote": "/api/vote/cast",
            "get_results": "/api/vote/results",
            "admin_elections": "/api/admin/elections",
            "health": "/api/health",
            "metrics": "/metrics"
        }
    }


# ═══════════════════════════════════════════════════════════════════
# APPLICATION
# ═══════════════════════════════════════════════════════════════════

async def voting_error_handler(request: Request, exc: VotingError) -> JSONResponse:
    """Render typed failures as ErrorResponse bodies."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(**exc.to_dict()).model_dump(),
        headers=headers
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="InternalError", message="Internal server error").model_dump()
    )


def create_app(store: Optional[ElectionStore] = None) -> FastAPI:
    """
    Build the Vote API application.

    Args:
        store: Store backend to use; defaults to the configured one
    """
    store = store or build_store()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        logger.info(f"Starting {settings.SERVICE_NAME} service...")

        try:
            if settings.REDIS_URL:
                app.state.redis = redis.from_url(
                    settings.REDIS_URL,
                    encoding="utf-8",
                    decode_responses=True
                )
                await app.state.redis.ping()
                logger.info("Redis connection established")

            await store.initialize()

            logger.info(f"{settings.SERVICE_NAME} started successfully")

        except Exception as e:
            logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
            raise

        yield

        logger.info(f"Shutting down {settings.SERVICE_NAME} service...")

        try:
            if app.state.redis is not None:
                await app.state.redis.aclose()
            await store.close()
            logger.info(f"{settings.SERVICE_NAME} shut down successfully")

        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    app = FastAPI(
        title="Election Vote API",
        description="API for listing elections, casting votes and reading results",
        version=settings.API_VERSION,
        lifespan=lifespan
    )
    app.state.store = store
    app.state.vote_service = VoteService(store)
    app.state.redis = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(VotingError, voting_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.middleware("http")
    async def prometheus_middleware(request: Request, call_next):
        """Middleware to track request duration."""
        started = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        request_duration.labels(
            method=request.method,
            endpoint=getattr(route, "path", request.url.path),
            status=response.status_code
        ).observe(time.perf_counter() - started)
        return response

    app.include_router(vote_router)
    app.include_router(admin_router)
    app.include_router(service_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "election_services.vote_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
