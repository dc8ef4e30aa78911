"""
Artifact: syllabus_service/syllabus_ingest/schemas/responses.py
Purpose: Defines typed payloads the pipeline emits to its callers: gate reports, stage snapshots and the completion summary.
Preconditions:
- Pydantic BaseModel and shared schema models are available.
Inputs:
- Acceptable: Stage names, progress integers and string lists.
- Unacceptable: Progress outside 0..100 or unknown stage names.
Postconditions:
- Response objects can be validated for contract-compliant output.
Returns:
- `ValidationReport`, `PipelineSnapshot`, `CompletionSummary`, `IngestionResponse` model instances.
Errors/Exceptions:
- Pydantic validation errors for malformed values.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .shared import ExtractionResult


class ValidationReport(BaseModel):
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_payload(self) -> dict:
        return {"errors": list(self.errors), "warnings": list(self.warnings), "ok": self.ok}


class PipelineSnapshot(BaseModel):
    stage: str
    progressPercent: int = Field(ge=0, le=100)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class CompletionSummary(BaseModel):
    tasksCreated: int
    averageConfidence: float
    warnings: List[str] = Field(default_factory=list)


class IngestionResponse(BaseModel):
    snapshot: PipelineSnapshot
    summary: Optional[CompletionSummary] = None
    extraction: Optional[ExtractionResult] = None
