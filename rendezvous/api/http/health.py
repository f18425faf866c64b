"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from rendezvous.managers.signaling_relay import signaling_relay

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    connections: int
    rooms: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check() -> HealthResponse:
    """
    Report relay liveness with its current in-memory load.

    The relay has no external dependencies, so answering at all means it is
    healthy.

    Returns:
        HealthResponse: status plus open connection and room counts.
    """
    return HealthResponse(
        status="healthy",
        connections=len(signaling_relay.connections),
        rooms=signaling_relay.rooms.room_count,
    )
