"""Read-only HTTP view of the supervisor's process table."""

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from zypin.contracts import HEALTH_ENDPOINT
from zypin.supervisor.models import StatusPayload

logger = logging.getLogger("zypin.server.app")


def create_app(supervisor) -> FastAPI:
    """Build the status app bound to one supervisor instance."""
    app = FastAPI(title="Zypin Controller")

    @app.get(HEALTH_ENDPOINT, response_model=StatusPayload)
    async def health():
        try:
            return supervisor.get_status()
        except Exception as e:
            logger.error("Health endpoint error: %s", e)
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Failed to get health status"},
            )

    return app
