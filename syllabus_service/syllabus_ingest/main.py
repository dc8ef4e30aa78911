"""
Artifact: syllabus_service/syllabus_ingest/main.py
Purpose: Builds the FastAPI application, mounts versioned routes and keeps the un-versioned legacy endpoints.
Preconditions:
- Dependencies from pyproject.toml are installed.
Inputs:
- Acceptable: HTTP requests routed by FastAPI.
- Unacceptable: N/A.
Postconditions:
- Logging is configured and `/api/v1/*`, `/health` and `/ingest-syllabus` are registered.
Returns:
- Module-level `app` ASGI application.
Errors/Exceptions:
- Route-level HTTPException mapping lives in the route modules.
"""

from fastapi import FastAPI

from .api.v1.router import api_v1_router
from .api.v1.routes.health import get_health_status
from .api.v1.routes.syllabi import handle_ingest_request
from .core.config import settings
from .core.logging import configure_logging
from .schemas.requests import SyllabusIngestRequest

configure_logging()

app = FastAPI(title=settings.app_title)
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
def health_legacy():
    return get_health_status("/health")


@app.post("/ingest-syllabus")
async def ingest_syllabus_legacy(req: SyllabusIngestRequest):
    return await handle_ingest_request(req, route_path="/ingest-syllabus")
