"""
Artifact: syllabus_service/syllabus_ingest/api/v1/routes/syllabi.py
Purpose: Defines syllabus ingestion and text-extraction route handlers and maps runtime failures to HTTP responses.
Preconditions:
- Incoming request body conforms to SyllabusIngestRequest or ExtractTextRequest.
Inputs:
- Acceptable: POST body with user/class identifiers and one base64 PDF, or raw syllabus text.
- Unacceptable: Invalid schema payloads, malformed JSON bodies or undecodable file data.
Postconditions:
- Runs the ingestion pipeline and returns its final snapshot, completion summary and extraction result.
Returns:
- Dictionary responses, or a server-sent event stream.
Errors/Exceptions:
- HTTPException(400) for undecodable uploads.
- HTTPException(500) when the workflow fails unexpectedly.
"""

import json
import traceback

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from ....core.logging import get_logger
from ....schemas.requests import ExtractTextRequest, SyllabusIngestRequest
from ....services.ingestion_service import (
    extract_text_workflow,
    run_ingestion_workflow,
    stream_ingestion_workflow,
)

logger = get_logger("syllabus_ingest.api")
router = APIRouter(tags=["syllabi"])


async def handle_ingest_request(req: SyllabusIngestRequest, route_path: str):
    """Shared ingestion handler body used by v1 and legacy routes."""
    try:
        return await run_ingestion_workflow(req, route_path=route_path)
    except ValueError as e:
        logger.warning("Rejected upload: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Ingestion error: %s", repr(e))
        logger.debug("Traceback:\n%s", traceback.format_exc())
        raise HTTPException(status_code=500, detail=str(e))


def handle_extract_request(req: ExtractTextRequest, route_path: str):
    try:
        return extract_text_workflow(req, route_path=route_path)
    except Exception as e:
        logger.error("Extraction error: %s", repr(e))
        logger.debug("Traceback:\n%s", traceback.format_exc())
        raise HTTPException(status_code=500, detail=str(e))


def _format_sse(event: str, data: dict, event_id: int) -> str:
    payload = json.dumps(data, ensure_ascii=False)
    lines = [f"id: {event_id}", f"event: {event}"]
    for line in payload.splitlines() or [""]:
        lines.append(f"data: {line}")
    lines.append("")
    return "\n".join(lines) + "\n"


def handle_ingest_stream_request(req: SyllabusIngestRequest, route_path: str):
    """Shared streaming ingestion handler body."""

    async def event_stream():
        event_id = 0
        try:
            async for event in stream_ingestion_workflow(req, route_path=route_path):
                event_id += 1
                event_name = str(event.get("event", "message"))
                event_data = event.get("data", {})
                if not isinstance(event_data, dict):
                    event_data = {"value": event_data}
                yield _format_sse(event_name, event_data, event_id)
        except Exception as e:
            logger.error("Ingestion stream error: %s", repr(e))
            logger.debug("Traceback:\n%s", traceback.format_exc())
            yield _format_sse(
                "pipeline.error",
                {
                    "stage": "select",
                    "progress_percent": 0,
                    "status_message": "Syllabus ingestion failed",
                    "message": str(e),
                },
                event_id=999999,
            )

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/syllabi/ingest")
async def ingest_syllabus(req: SyllabusIngestRequest):
    return await handle_ingest_request(req, route_path="/api/v1/syllabi/ingest")


@router.post("/syllabi/ingest/stream")
def ingest_syllabus_stream(req: SyllabusIngestRequest):
    return handle_ingest_stream_request(req, route_path="/api/v1/syllabi/ingest/stream")


@router.post("/syllabi/extract")
def extract_syllabus_text(req: ExtractTextRequest):
    return handle_extract_request(req, route_path="/api/v1/syllabi/extract")
