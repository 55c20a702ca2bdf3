"""
Health check endpoints for the idpflows host adapter.

Provides /health (liveness) and /ready (readiness) endpoints.
"""

from fastapi import APIRouter, Request, Response, status

from idpflows.config import settings
from idpflows.logging_config import get_logger

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    """Liveness probe endpoint.

    Returns 200 if the server is running.
    """
    return {"status": "healthy"}


@router.get("/ready", status_code=status.HTTP_200_OK)
async def ready(request: Request, response: Response) -> dict[str, str | dict[str, str]]:
    """Readiness probe endpoint.

    Checks that workflows are registered and the management API is configured.
    """
    checks: dict[str, str] = {}

    workflows = getattr(request.app.state, "workflows", {})
    checks["workflows"] = "healthy" if workflows else "unhealthy"

    api = settings.management_api
    checks["management_api"] = (
        "healthy" if api.domain and api.client_id and api.client_secret else "unconfigured"
    )

    all_healthy = all(v == "healthy" for v in checks.values())

    if not all_healthy:
        logger.warning("Readiness check failed", checks=checks)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not ready", "checks": checks}

    return {"status": "ready", "checks": checks}
