"""
Artifact: syllabus_service/syllabus_ingest/schemas/shared.py
Purpose: Defines the structured syllabus records and task models shared by extraction, augmentation and task generation.
Preconditions:
- Pydantic BaseModel is installed and importable.
Inputs:
- Acceptable: JSON-compatible values matching declared field types.
- Unacceptable: Missing required fields or incompatible value types.
Postconditions:
- Shared Pydantic models validate and serialize contract-compatible data.
Returns:
- Typed model instances for contacts, assessments, assignments, weekly entries and tasks.
Errors/Exceptions:
- Pydantic validation errors for invalid payload data.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

OFFICE_HOURS_PLACEHOLDER = "Check syllabus for details"
UNKNOWN_NAME = "Unknown"

DueDateSource = Literal["due_phrase", "week", "proximity", "anchored", "semantic"]


class ContactRecord(BaseModel):
    role: Literal["instructor", "assistant"]
    name: str = UNKNOWN_NAME
    email: str
    officeHours: str = OFFICE_HOURS_PLACEHOLDER


class AssessmentRecord(BaseModel):
    kind: Literal["exam", "quiz", "midterm", "final"]
    date: str
    rawMatchText: str
    time: Optional[str] = None


class AssignmentRecord(BaseModel):
    kind: Literal["homework", "lab", "assignment", "project"]
    number: str
    dueDate: Optional[str] = None
    rawMatchText: str
    dueDateSource: Optional[DueDateSource] = None


class WeeklyScheduleEntry(BaseModel):
    week: int
    items: List[str] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    instructorInfo: List[ContactRecord] = Field(default_factory=list)
    taInfo: List[ContactRecord] = Field(default_factory=list)
    assessments: List[AssessmentRecord] = Field(default_factory=list)
    assignments: List[AssignmentRecord] = Field(default_factory=list)
    weeklySchedule: Optional[List[WeeklyScheduleEntry]] = None
    warnings: List[str] = Field(default_factory=list)

    def contacts(self) -> List[ContactRecord]:
        return [*self.instructorInfo, *self.taInfo]


class CandidateTask(BaseModel):
    title: str
    classId: str
    dueDate: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    sourceKind: str
    taskType: str
    sourceText: str = ""


class PersistedTask(BaseModel):
    id: str
    title: str
    classId: str
    dueDate: Optional[str] = None
    type: str
    extra: Dict[str, Any] = Field(default_factory=dict)


class PdfFile(BaseModel):
    filename: str
    base64_data: str
