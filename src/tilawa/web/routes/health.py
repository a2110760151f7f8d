"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from tilawa.web.schemas import API_VERSION, HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check API health status."""
    return HealthResponse(
        status="ok",
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
