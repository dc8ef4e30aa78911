"""
Artifact: syllabus_service/syllabus_ingest/services/ingestion_service.py
Purpose: Coordinates request-level syllabus ingestion for API handlers: decodes the upload, wires the pipeline and converts its snapshots into response payloads or stream events.
Preconditions:
- Incoming request is validated as SyllabusIngestRequest or ExtractTextRequest.
Inputs:
- Acceptable: Base64 or data-URL encoded PDF payloads with user/class identifiers; raw syllabus text.
- Unacceptable: Payloads that are not valid base64.
Postconditions:
- Requests for the same user share one live pipeline session; a newer upload replaces the run in progress.
- A session is closed and dropped once its last request ends.
- Collaborators (storage, task store, similarity) are shared across requests.
Returns:
- Response dictionaries, or typed stream events for SSE transport.
Errors/Exceptions:
- `ValueError` for undecodable payloads.
- Unexpected exceptions propagate to the API layer for HTTP error mapping.
"""

import asyncio
import base64
import binascii
from dataclasses import dataclass
from functools import lru_cache
from typing import AsyncGenerator

from ..clients.memory_stores import InMemoryDocumentStore, InMemoryTaskStore
from ..core.config import settings
from ..core.logging import get_logger
from ..extraction.pattern_engine import PatternExtractionEngine
from ..orchestrators.pipeline_orchestrator import PipelineStage, SyllabusIngestionPipeline
from ..schemas.documents import ClassContext, Document
from ..schemas.requests import ExtractTextRequest, SyllabusIngestRequest
from ..schemas.responses import PipelineSnapshot
from .augmentation_service import AugmentationStage
from .similarity_service import build_similarity_capability
from .task_generation_service import TaskGenerator
from .text_extraction_service import TextExtractionAdapter
from .validation_service import ValidationGate

logger = get_logger("syllabus_ingest.ingestion")

STATUS_MESSAGES = {
    PipelineStage.SELECT.value: "Waiting for a syllabus",
    PipelineStage.VALIDATE.value: "Validating document",
    PipelineStage.UPLOAD.value: "Uploading and reading document",
    PipelineStage.GENERATE.value: "Generating tasks",
    PipelineStage.COMPLETE.value: "Tasks created",
}


def _decode_pdf_base64(base64_data: str) -> bytes:
    """Decode raw base64 or data-URL style PDF payloads."""
    data = base64_data.strip()
    if "," in data and data.lower().startswith("data:"):
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"File payload is not valid base64: {exc}") from exc


def build_document(req: SyllabusIngestRequest) -> Document:
    payload = _decode_pdf_base64(req.file.base64_data)
    logger.debug("Decoded upload %r – %d bytes", req.file.filename, len(payload))
    return Document(
        payload=payload,
        filename=req.file.filename,
        media_type=req.media_type,
        user_id=req.user_id,
        class_id=req.class_id,
    )


def build_class_context(req: SyllabusIngestRequest) -> ClassContext:
    return ClassContext(class_id=req.class_id, class_name=req.class_name or "", term_year=req.term_year)


@lru_cache(maxsize=1)
def _default_collaborators():
    """Process-wide collaborators; a deployment replaces these with real stores."""
    return InMemoryDocumentStore(), InMemoryTaskStore(), build_similarity_capability()


@lru_cache(maxsize=1)
def _default_engine() -> PatternExtractionEngine:
    return PatternExtractionEngine()


def build_pipeline() -> SyllabusIngestionPipeline:
    documents, tasks, similarity = _default_collaborators()
    return SyllabusIngestionPipeline(
        validation_gate=ValidationGate(settings.validation_config(), documents),
        storage=documents,
        text_adapter=TextExtractionAdapter(
            documents,
            min_chars=settings.min_text_chars(),
            enable_ocr=settings.ocr_enabled(),
        ),
        engine=_default_engine(),
        augmenter=AugmentationStage(similarity),
        generator=TaskGenerator(
            tasks,
            max_tasks=settings.max_tasks_per_syllabus(),
            min_confidence=settings.min_task_confidence(),
        ),
        augmentation_timeout=settings.augmentation_timeout_seconds(),
    )


@dataclass
class _UserSession:
    pipeline: SyllabusIngestionPipeline
    active_requests: int = 0


_sessions: dict[str, _UserSession] = {}


def get_pipeline(user_id: str) -> SyllabusIngestionPipeline:
    """Live pipeline for the user's session, created on first use. Pair with `release_pipeline`."""
    session = _sessions.get(user_id)
    if session is None:
        session = _sessions[user_id] = _UserSession(build_pipeline())
    elif session.active_requests:
        logger.info("User %s already has an ingestion in progress; the newer upload replaces it", user_id)
    session.active_requests += 1
    return session.pipeline


def release_pipeline(user_id: str, pipeline: SyllabusIngestionPipeline) -> None:
    session = _sessions.get(user_id)
    if session is None or session.pipeline is not pipeline:
        pipeline.close()
        return
    session.active_requests -= 1
    if session.active_requests <= 0:
        del _sessions[user_id]
        pipeline.close()


def _log_request(req: SyllabusIngestRequest, route_path: str, streaming: bool = False) -> None:
    logger.info(
        "POST %s%s | user=%s | classId=%s | file=%r | b64_len=%d",
        route_path,
        " [stream]" if streaming else "",
        req.user_id,
        req.class_id,
        req.file.filename,
        len(req.file.base64_data or ""),
    )


async def run_ingestion_workflow(req: SyllabusIngestRequest, route_path: str) -> dict:
    """Execute the full ingestion workflow for a validated request."""
    _log_request(req, route_path)
    document = build_document(req)
    pipeline = get_pipeline(req.user_id)
    try:
        response = await pipeline.run(document, build_class_context(req))
    finally:
        release_pipeline(req.user_id, pipeline)

    logger.info(
        "Ingestion finished | stage=%s | tasks=%s | errors=%d",
        response.snapshot.stage,
        response.summary.tasksCreated if response.summary else 0,
        len(response.snapshot.errors),
    )
    return response.model_dump()


def extract_text_workflow(req: ExtractTextRequest, route_path: str) -> dict:
    """Run only the rule engine over posted text."""
    logger.info("POST %s | text_len=%d", route_path, len(req.text or ""))
    return _default_engine().extract(req.text).model_dump()


def _build_event(event: str, data: dict) -> dict:
    return {
        "event": event,
        "data": data,
    }


def _snapshot_event_data(snapshot: PipelineSnapshot) -> dict:
    return {
        "stage": snapshot.stage,
        "progress_percent": snapshot.progressPercent,
        "status_message": STATUS_MESSAGES.get(snapshot.stage, snapshot.stage),
        "errors": list(snapshot.errors),
        "warnings": list(snapshot.warnings),
    }


async def stream_ingestion_workflow(req: SyllabusIngestRequest, route_path: str) -> AsyncGenerator[dict, None]:
    """
    Execute the ingestion workflow and emit typed stream events for SSE clients.

    Event sequence:
      pipeline.started -> pipeline.stage* -> pipeline.completed
      or pipeline.error when validation fails or the run resets to select.
    """
    _log_request(req, route_path, streaming=True)

    queue: asyncio.Queue = asyncio.Queue()
    pipeline = get_pipeline(req.user_id)
    unsubscribe = pipeline.subscribe(queue.put_nowait)
    run_task = None

    try:
        yield _build_event(
            "pipeline.started",
            {
                "stage": PipelineStage.SELECT.value,
                "progress_percent": 0,
                "status_message": "Ingestion started",
            },
        )

        document = build_document(req)
        run_task = asyncio.create_task(pipeline.run(document, build_class_context(req)))
        run_task.add_done_callback(lambda _: queue.put_nowait(None))

        while True:
            snapshot = await queue.get()
            if snapshot is None:
                break
            yield _build_event("pipeline.stage", _snapshot_event_data(snapshot))

        response = run_task.result()
        if response.summary is not None:
            logger.info("Streaming ingestion completed | tasks=%d", response.summary.tasksCreated)
            yield _build_event(
                "pipeline.completed",
                {
                    **response.summary.model_dump(),
                    "stage": PipelineStage.COMPLETE.value,
                    "progress_percent": 100,
                    "status_message": STATUS_MESSAGES[PipelineStage.COMPLETE.value],
                    "extraction": response.extraction.model_dump() if response.extraction else None,
                },
            )
        else:
            snapshot = response.snapshot
            yield _build_event(
                "pipeline.error",
                {
                    **_snapshot_event_data(snapshot),
                    "status_message": "Syllabus ingestion failed",
                    "message": "; ".join(snapshot.errors) or "Syllabus ingestion failed",
                },
            )
    except Exception as exc:
        logger.exception("Streaming ingestion failed")
        yield _build_event(
            "pipeline.error",
            {
                "stage": PipelineStage.SELECT.value,
                "progress_percent": 0,
                "status_message": "Syllabus ingestion failed",
                "message": str(exc),
            },
        )
    finally:
        unsubscribe()
        if run_task is not None and not run_task.done():
            run_task.cancel()
        release_pipeline(req.user_id, pipeline)
