"""
Artifact: syllabus_service/syllabus_ingest/orchestrators/pipeline_orchestrator.py
Purpose: Sequences validation, storage, text extraction, pattern extraction, augmentation and task materialization as a five-state machine that publishes progress snapshots.
Preconditions:
- All stage objects and the file-storage collaborator are injected at construction.
- One pipeline instance serves one user session.
Inputs:
- Acceptable: A `Document` plus its `ClassContext` on file selection; explicit upload, retry, start-over and close calls.
- Unacceptable: Upload calls before a document passed validation.
Postconditions:
- At most one `PipelineRun` is current; selecting a new file replaces it.
- `complete` is reached whenever generation finishes, even with per-task failures.
- Extraction and transport failures reset the run to `select` with a user-facing error.
Returns:
- `ValidationReport` from selection, `CompletionSummary` from upload, `IngestionResponse` from `run`.
Errors/Exceptions:
- `ValidationError` when uploading an invalid document (state stays `validate`).
- `ExtractionError`/`TransportError` re-raised after the reset to `select`.
- `PipelineStateError` for calls that are illegal in the current state.
"""

import asyncio
import itertools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..clients.collaborators import FileStorage
from ..core.errors import (
    AugmentationError,
    ExtractionError,
    IngestionError,
    PipelineStateError,
    TransportError,
    ValidationError,
)
from ..core.logging import get_logger
from ..extraction.pattern_engine import PatternExtractionEngine
from ..schemas.documents import ClassContext, Document, NormalizedText, StoredDocument
from ..schemas.responses import CompletionSummary, IngestionResponse, PipelineSnapshot, ValidationReport
from ..schemas.shared import ExtractionResult
from ..services.augmentation_service import AugmentationStage
from ..services.task_generation_service import GenerationResult, TaskGenerator
from ..services.text_extraction_service import TextExtractionAdapter
from ..services.validation_service import ValidationGate, sanitize_filename

logger = get_logger("syllabus_ingest.pipeline")

USER_PREFIX_CHARS = 8
SUPERSEDED_MESSAGE = "This upload was replaced by a newer one before it finished."

SnapshotListener = Callable[[PipelineSnapshot], None]


class PipelineStage(str, Enum):
    SELECT = "select"
    VALIDATE = "validate"
    UPLOAD = "upload"
    GENERATE = "generate"
    COMPLETE = "complete"


class StageProgress:
    SELECTED = 0
    UPLOADING = 10
    TEXT_READY = 40
    GENERATING = 60
    MATERIALIZING = 80
    COMPLETE = 100


@dataclass
class PipelineRun:
    run_id: int
    stage: PipelineStage = PipelineStage.SELECT
    progress_percent: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    document: Optional[Document] = None
    class_context: Optional[ClassContext] = None
    report: Optional[ValidationReport] = None
    stored: Optional[StoredDocument] = None
    extraction: Optional[ExtractionResult] = None
    generation: Optional[GenerationResult] = None
    tasks_created: int = 0
    summary: Optional[CompletionSummary] = None

    def snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            stage=self.stage.value,
            progressPercent=self.progress_percent,
            errors=list(self.errors),
            warnings=list(self.warnings),
        )


class _RunDiscarded(Exception):
    """The run was replaced or closed while a stage was awaiting."""


def secure_storage_path(document: Document, timestamp_ms: int) -> str:
    user_prefix = (document.user_id or "anon")[:USER_PREFIX_CHARS]
    return f"{user_prefix}/{document.class_id}/syllabi/{timestamp_ms}_{sanitize_filename(document.filename)}"


class SyllabusIngestionPipeline:
    def __init__(
        self,
        validation_gate: ValidationGate,
        storage: FileStorage,
        text_adapter: TextExtractionAdapter,
        engine: PatternExtractionEngine,
        augmenter: AugmentationStage,
        generator: TaskGenerator,
        augmentation_timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ):
        self.validation_gate = validation_gate
        self.storage = storage
        self.text_adapter = text_adapter
        self.engine = engine
        self.augmenter = augmenter
        self.generator = generator
        self.augmentation_timeout = augmentation_timeout
        self._clock = clock
        self._run_ids = itertools.count(1)
        self._run: Optional[PipelineRun] = None
        self._listeners: list[SnapshotListener] = []

    # Subscription

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> PipelineSnapshot:
        if self._run is None:
            return PipelineSnapshot(stage=PipelineStage.SELECT.value, progressPercent=0)
        return self._run.snapshot()

    @property
    def current_run(self) -> Optional[PipelineRun]:
        return self._run

    def _emit(self, run: PipelineRun) -> None:
        if run is not self._run:
            return
        snapshot = run.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                logger.warning("Snapshot listener failed: %s", exc)

    def _transition(self, run: PipelineRun, stage: PipelineStage, progress: int) -> None:
        self._ensure_current(run)
        run.stage = stage
        run.progress_percent = progress
        logger.info("Run %d -> %s (%d%%)", run.run_id, stage.value, progress)
        self._emit(run)

    def _ensure_current(self, run: PipelineRun) -> None:
        if run is not self._run:
            raise _RunDiscarded()

    def _reset_to_select(self, run: PipelineRun, message: str) -> None:
        if run is not self._run:
            return
        fresh = PipelineRun(run_id=run.run_id, errors=[message])
        self._run = fresh
        logger.info("Run %d reset to select: %s", run.run_id, message)
        self._emit(fresh)

    # Transitions

    async def select_file(self, document: Document, class_context: ClassContext) -> Optional[ValidationReport]:
        """Start a new run for the document; any previous run is replaced, not queued."""
        run = PipelineRun(run_id=next(self._run_ids), document=document, class_context=class_context)
        self._run = run
        self._emit(run)
        try:
            self._transition(run, PipelineStage.VALIDATE, StageProgress.SELECTED)
            return await self._validate(run)
        except _RunDiscarded:
            logger.info("Run %d discarded during validation", run.run_id)
            return None

    async def retry_validation(self) -> Optional[ValidationReport]:
        run = self._run
        if run is None or run.document is None or run.stage is not PipelineStage.VALIDATE:
            raise PipelineStateError("Nothing to validate; select a file first")
        try:
            return await self._validate(run)
        except _RunDiscarded:
            logger.info("Run %d discarded during validation", run.run_id)
            return None

    async def _validate(self, run: PipelineRun) -> ValidationReport:
        report = await self.validation_gate.validate(run.document, run.document.user_id)
        self._ensure_current(run)
        run.report = report
        run.errors = list(report.errors)
        run.warnings = list(report.warnings)
        self._emit(run)
        return report

    async def upload_and_generate(self) -> Optional[CompletionSummary]:
        run = self._run
        if run is None or run.stage is not PipelineStage.VALIDATE or run.report is None:
            raise PipelineStateError("No validated document to upload")
        if not run.report.ok:
            raise ValidationError(run.report.errors)

        try:
            return await self._upload_and_generate(run)
        except _RunDiscarded:
            logger.info("Run %d discarded; stopping without further changes", run.run_id)
            return None
        except (ExtractionError, TransportError) as exc:
            logger.warning("Run %d failed at %s: %s", run.run_id, run.stage.value, exc)
            self._reset_to_select(run, exc.user_message)
            raise
        except IngestionError:
            raise
        except Exception as exc:
            failure = TransportError.from_exception(exc)
            logger.warning("Run %d collaborator failure at %s: %s", run.run_id, run.stage.value, exc)
            self._reset_to_select(run, failure.user_message)
            raise failure from exc

    async def _upload_and_generate(self, run: PipelineRun) -> CompletionSummary:
        document = run.document
        context = run.class_context
        run.errors = []
        self._transition(run, PipelineStage.UPLOAD, StageProgress.UPLOADING)

        metadata = {
            "path": secure_storage_path(document, int(self._clock() * 1000)),
            "user_id": document.user_id,
            "class_id": document.class_id,
            "filename": document.filename,
            "media_type": document.media_type,
            "size": document.size,
        }
        try:
            stored = await self.storage.upload_document(document.payload, metadata)
        except Exception as exc:
            raise TransportError.from_exception(exc) from exc
        self._ensure_current(run)
        run.stored = stored

        text = await self.text_adapter.extract_text(document, stored)
        self._ensure_current(run)
        run.progress_percent = StageProgress.TEXT_READY
        self._emit(run)

        extraction = self.engine.extract(text)
        extraction = await self._augment(extraction, text)
        self._ensure_current(run)
        run.extraction = extraction
        run.warnings.extend(extraction.warnings)
        self._transition(run, PipelineStage.GENERATE, StageProgress.GENERATING)

        generation = self.generator.generate(extraction, context, text)
        run.generation = generation
        run.warnings.extend(generation.warnings)
        run.progress_percent = StageProgress.MATERIALIZING
        self._emit(run)

        outcome = await self.generator.materialize(generation.tasks, context.class_id)
        # Tasks already persisted are kept even if the run was discarded meanwhile.
        self._ensure_current(run)
        run.tasks_created = len(outcome.created)
        run.warnings.extend(outcome.warnings)
        run.summary = CompletionSummary(
            tasksCreated=run.tasks_created,
            averageConfidence=generation.averageConfidence,
            warnings=list(run.warnings),
        )
        self._transition(run, PipelineStage.COMPLETE, StageProgress.COMPLETE)
        return run.summary

    async def _augment(self, extraction: ExtractionResult, text: NormalizedText) -> ExtractionResult:
        try:
            return await asyncio.wait_for(self.augmenter.augment(extraction, text), timeout=self.augmentation_timeout)
        except asyncio.TimeoutError:
            logger.warning("Augmentation timed out after %.1fs; using pattern results", self.augmentation_timeout)
        except AugmentationError as exc:
            logger.warning("Augmentation skipped: %s", exc)
        except Exception as exc:
            logger.warning("Augmentation failed (%s): %s; using pattern results", type(exc).__name__, exc)
        return extraction

    def start_over(self) -> None:
        previous = self._run
        self._run = PipelineRun(run_id=next(self._run_ids))
        if previous is not None:
            logger.info("Run %d abandoned; starting over", previous.run_id)
        self._emit(self._run)

    def close(self) -> None:
        if self._run is not None:
            logger.info("Run %d closed", self._run.run_id)
        self._run = None

    async def run(self, document: Document, class_context: ClassContext) -> IngestionResponse:
        """Drive one document from selection to completion without user interaction."""
        report = await self.select_file(document, class_context)
        if report is None:
            return _superseded_response()
        if not report.ok:
            return IngestionResponse(snapshot=self.snapshot())
        try:
            summary = await self.upload_and_generate()
        except (ExtractionError, TransportError):
            return IngestionResponse(snapshot=self.snapshot())
        if summary is None:
            return _superseded_response()
        run = self._run
        return IngestionResponse(
            snapshot=self.snapshot(),
            summary=summary,
            extraction=run.extraction if run is not None else None,
        )


def _superseded_response() -> IngestionResponse:
    return IngestionResponse(
        snapshot=PipelineSnapshot(stage=PipelineStage.SELECT.value, progressPercent=0, errors=[SUPERSEDED_MESSAGE])
    )
