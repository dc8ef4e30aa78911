"""Schema package exports for syllabus ingestion contracts."""

from .documents import ClassContext, Document, NormalizedText, StoredDocument
from .requests import ExtractTextRequest, SyllabusIngestRequest
from .responses import CompletionSummary, IngestionResponse, PipelineSnapshot, ValidationReport
from .shared import (
    AssessmentRecord,
    AssignmentRecord,
    CandidateTask,
    ContactRecord,
    ExtractionResult,
    PdfFile,
    PersistedTask,
    WeeklyScheduleEntry,
)

__all__ = [
    "AssessmentRecord",
    "AssignmentRecord",
    "CandidateTask",
    "ClassContext",
    "CompletionSummary",
    "ContactRecord",
    "Document",
    "ExtractTextRequest",
    "ExtractionResult",
    "IngestionResponse",
    "NormalizedText",
    "PdfFile",
    "PersistedTask",
    "PipelineSnapshot",
    "StoredDocument",
    "SyllabusIngestRequest",
    "ValidationReport",
    "WeeklyScheduleEntry",
]
