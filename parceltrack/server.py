"""
HTTP entry point for tracking lookups.

Endpoints:
1. POST /api/track - Normalized tracking result for {carrier, trackingNumber}
2. GET /api/carriers - Supported carriers
3. GET /health - Health check

Validation failures return 400 {"error": ...}. Once a request is valid the
answer is always 200; upstream problems travel in the payload's error field.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from parceltrack import __version__
from parceltrack.carriers import CARRIERS
from parceltrack.models import parse_tracking_request
from parceltrack.tracking.chain import supports_realtime
from parceltrack.tracking.errors import RequestValidationError
from parceltrack.tracking.orchestrator import DeadlineOrchestrator


def create_app(orchestrator: Optional[DeadlineOrchestrator] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        orchestrator: Tracking orchestrator (default built from global config)
    """
    app = FastAPI(title="Parcel Tracker API", version=__version__)
    app.state.orchestrator = orchestrator

    def get_orchestrator() -> DeadlineOrchestrator:
        if app.state.orchestrator is None:
            app.state.orchestrator = DeadlineOrchestrator()
        return app.state.orchestrator

    @app.post("/api/track")
    async def track(request: Request):
        """Track one parcel."""
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Request body must be valid JSON"})

        try:
            identifier = parse_tracking_request(payload)
        except RequestValidationError as e:
            logger.info(f"Rejected tracking request: {e}")
            return JSONResponse(status_code=400, content={"error": str(e)})

        outcome = await get_orchestrator().lookup(identifier)
        return JSONResponse(content=outcome.result.to_payload())

    @app.get("/api/carriers")
    async def list_carriers():
        """List supported carriers."""
        carriers = [
            {
                "id": info.carrier_id.value,
                "name": info.name,
                "code": info.code,
                "realtime": supports_realtime(info.carrier_id),
            }
            for info in CARRIERS.values()
        ]
        return {"carriers": carriers}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


def run_server(host: str = "127.0.0.1", port: int = 8000):
    """Serve the API with uvicorn."""
    import uvicorn
    uvicorn.run(create_app(), host=host, port=port)
