"""Health check endpoint."""

from fastapi import APIRouter, Request

from multisig_custody.api.models.health import HealthResponse

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Return health status and the configured network."""
    return HealthResponse(
        status="healthy", network=request.app.state.container.settings.network
    )
