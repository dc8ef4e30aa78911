"""
Artifact: syllabus_service/syllabus_ingest/services/task_generation_service.py
Purpose: Converts the final extraction result into scored candidate tasks and persists them through the task store with per-task failure isolation.
Preconditions:
- A `TaskStore` collaborator is supplied at construction.
Inputs:
- Acceptable: `ExtractionResult`, `ClassContext`, optional source text for the academic-content heuristic.
- Unacceptable: N/A.
Postconditions:
- Every assignment and assessment yields at most one candidate task; confidence lies in [0, 1].
- Materialization attempts every task; failures become warnings, never exceptions.
Returns:
- `GenerationResult` from `generate`, `MaterializationOutcome` from `materialize`.
Errors/Exceptions:
- None raised; individual `MaterializationError`s are reported as warnings.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional, Union

from ..clients.collaborators import TaskStore
from ..core.errors import MaterializationError
from ..core.logging import get_logger
from ..extraction.pattern_engine import as_text, display_title
from ..schemas.documents import ClassContext, NormalizedText
from ..schemas.shared import AssessmentRecord, CandidateTask, ExtractionResult, PersistedTask

logger = get_logger("syllabus_ingest.task_generation")

TASK_TYPE_BY_KIND = {
    "homework": "assignment",
    "assignment": "assignment",
    "lab": "lab",
    "project": "project",
    "exam": "exam",
    "midterm": "exam",
    "final": "exam",
    "quiz": "quiz",
}

ACADEMIC_TERMS = (
    "assignment", "homework", "project", "essay", "paper", "report", "presentation",
    "exam", "midterm", "final", "test", "quiz", "discussion", "lab", "reading",
)
MIN_ACADEMIC_TERMS = 3

# Minutes of work to plan for each task type.
ESTIMATED_DURATION_MINUTES = {
    "exam": 180,
    "assignment": 120,
    "project": 480,
    "quiz": 30,
    "reading": 60,
    "discussion": 45,
    "lab": 180,
}
DEFAULT_DURATION_MINUTES = 60

TASK_TYPE_COLORS = {
    "exam": "#EF4444",
    "assignment": "#3B82F6",
    "project": "#8B5CF6",
    "quiz": "#F59E0B",
    "reading": "#10B981",
    "discussion": "#6B7280",
    "lab": "#F97316",
}
DEFAULT_TASK_COLOR = "#6B7280"

EXPLICIT_DATE_SOURCES = frozenset({"due_phrase", "assessment"})

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

SLASH_DATE_RE = re.compile(r"(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?")
DOT_DATE_RE = re.compile(r"(\d{1,2})\.(\d{1,2})")
MONTH_NAME_DATE_RE = re.compile(r"([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?")
ASSESSMENT_NUMBER_RE = re.compile(
    r"\b(?:quiz|exam|midterm|test)(?:zes|es|s)?\s*#?\s*(\d{1,2})\b(?![/.:]\d)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ConfidenceInputs:
    due_date_source: Optional[str]
    recognized_kind: bool
    recognized_format: bool


ConfidenceScorer = Callable[[ConfidenceInputs], float]


def default_confidence_scorer(inputs: ConfidenceInputs) -> float:
    """Band by how the date was found, then add for a known kind and a parseable date.

    Bands: no date 0.10-0.25, fallback 0.35-0.65, explicit 0.70-1.0.
    """
    if inputs.due_date_source is None:
        score = 0.10
    elif inputs.due_date_source in EXPLICIT_DATE_SOURCES:
        score = 0.70
    else:
        score = 0.35
    if inputs.recognized_kind:
        score += 0.15
    if inputs.recognized_format and inputs.due_date_source is not None:
        score += 0.15
    return round(min(1.0, max(0.0, score)), 4)


def normalize_date(token: Optional[str], year: int) -> Optional[str]:
    """Convert `M/D`, `M/D/YY(YY)`, `M.D` or `Month D` into ISO `YYYY-MM-DD`."""
    if not token:
        return None
    text = token.strip().lower()

    match = SLASH_DATE_RE.fullmatch(text)
    if match:
        month, day = int(match.group(1)), int(match.group(2))
        if match.group(3):
            year = int(match.group(3))
            if year < 100:
                year += 2000
    else:
        match = DOT_DATE_RE.fullmatch(text) or MONTH_NAME_DATE_RE.fullmatch(text)
        if not match:
            return None
        month_token = match.group(1)
        month = int(month_token) if month_token.isdigit() else MONTHS.get(month_token[:3], 0)
        day = int(match.group(2))

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


@dataclass
class GenerationResult:
    tasks: list[CandidateTask] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    averageConfidence: float = 0.0

    def to_payload(self) -> dict:
        return {
            "tasks": [task.model_dump() for task in self.tasks],
            "warnings": list(self.warnings),
            "averageConfidence": self.averageConfidence,
        }


@dataclass
class MaterializationOutcome:
    created: list[PersistedTask] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _overlaps_final(record: AssessmentRecord, finals: list[AssessmentRecord]) -> bool:
    # The generic scan also matches the "Exam ..." tail of a "Final Exam ..." phrase.
    return any(
        final.date == record.date and final.rawMatchText.lower().endswith(record.rawMatchText.lower())
        for final in finals
    )


def _stated_number(record: AssessmentRecord) -> Optional[str]:
    if record.kind == "final":
        return None
    match = ASSESSMENT_NUMBER_RE.search(record.rawMatchText)
    return str(int(match.group(1))) if match else None


def _assessment_numbers(assessments: list[AssessmentRecord]) -> list[Optional[str]]:
    """Stated numbers win; repeated unnumbered kinds get the lowest free ordinal."""
    numbers = [_stated_number(record) for record in assessments]
    totals: dict[str, int] = {}
    taken: dict[str, set[str]] = {}
    for record, number in zip(assessments, numbers):
        totals[record.kind] = totals.get(record.kind, 0) + 1
        if number:
            taken.setdefault(record.kind, set()).add(number)

    counters: dict[str, int] = {}
    for index, record in enumerate(assessments):
        if numbers[index] or totals[record.kind] < 2 or record.kind == "final":
            continue
        used = taken.setdefault(record.kind, set())
        counter = counters.get(record.kind, 0) + 1
        while str(counter) in used:
            counter += 1
        counters[record.kind] = counter
        used.add(str(counter))
        numbers[index] = str(counter)
    return numbers


class TaskGenerator:
    def __init__(
        self,
        task_store: TaskStore,
        scorer: ConfidenceScorer = default_confidence_scorer,
        max_tasks: int = 50,
        min_confidence: float = 0.0,
    ):
        self.task_store = task_store
        self.scorer = scorer
        self.max_tasks = max_tasks
        self.min_confidence = min_confidence

    def _candidate(
        self,
        title: str,
        kind: str,
        raw_date: Optional[str],
        date_source: Optional[str],
        source_text: str,
        context: ClassContext,
        year: int,
    ) -> CandidateTask:
        iso_date = normalize_date(raw_date, year)
        confidence = self.scorer(
            ConfidenceInputs(
                due_date_source=date_source if raw_date else None,
                recognized_kind=kind in TASK_TYPE_BY_KIND,
                recognized_format=iso_date is not None,
            )
        )
        return CandidateTask(
            title=title,
            classId=context.class_id,
            dueDate=iso_date,
            confidence=min(1.0, max(0.0, confidence)),
            sourceKind=kind,
            taskType=TASK_TYPE_BY_KIND.get(kind, "assignment"),
            sourceText=source_text,
        )

    def generate(
        self,
        result: ExtractionResult,
        class_context: ClassContext,
        text: Union[NormalizedText, str, None] = None,
    ) -> GenerationResult:
        year = class_context.term_year or datetime.now().year
        warnings: list[str] = []
        candidates: list[CandidateTask] = []

        for record in result.assignments:
            candidates.append(
                self._candidate(
                    display_title(record.kind, record.number),
                    record.kind,
                    record.dueDate,
                    record.dueDateSource,
                    record.rawMatchText,
                    class_context,
                    year,
                )
            )

        finals = [record for record in result.assessments if record.kind == "final"]
        assessments = [
            record for record in result.assessments if record.kind == "final" or not _overlaps_final(record, finals)
        ]
        for record, number in zip(assessments, _assessment_numbers(assessments)):
            candidates.append(
                self._candidate(
                    display_title(record.kind, number),
                    record.kind,
                    record.date,
                    "assessment",
                    record.rawMatchText,
                    class_context,
                    year,
                )
            )

        for candidate in candidates:
            if candidate.dueDate is None and candidate.sourceKind in ("exam", "quiz", "midterm", "final"):
                warnings.append(f"Could not interpret the date for {candidate.title}")

        unique: list[CandidateTask] = []
        seen = set()
        for candidate in candidates:
            key = (candidate.title.lower(), candidate.dueDate)
            if key in seen:
                logger.debug("Duplicate candidate skipped: %s", candidate.title)
                continue
            seen.add(key)
            unique.append(candidate)

        if self.min_confidence > 0:
            kept = [candidate for candidate in unique if candidate.confidence >= self.min_confidence]
            if len(kept) < len(unique):
                warnings.append(
                    f"Skipped {len(unique) - len(kept)} low-confidence tasks (below {self.min_confidence:.2f})"
                )
            unique = kept

        if len(unique) > self.max_tasks:
            warnings.append(f"Only the first {self.max_tasks} of {len(unique)} tasks were kept")
            unique = unique[: self.max_tasks]

        if text is not None:
            lowered = as_text(text).lower()
            if sum(1 for term in ACADEMIC_TERMS if term in lowered) < MIN_ACADEMIC_TERMS:
                warnings.append("Content may not be a typical academic syllabus")

        average = sum(task.confidence for task in unique) / len(unique) if unique else 0.0
        logger.info(
            "Generated %d candidate tasks for class=%s avg_confidence=%.2f",
            len(unique),
            class_context.class_id,
            average,
        )
        return GenerationResult(tasks=unique, warnings=warnings, averageConfidence=round(average, 4))

    async def materialize(self, tasks: list[CandidateTask], class_id: str) -> MaterializationOutcome:
        outcome = MaterializationOutcome()
        for task in tasks:
            payload = {
                "title": task.title,
                "classId": class_id,
                "dueDate": task.dueDate,
                "type": task.taskType,
                "color": TASK_TYPE_COLORS.get(task.taskType.lower(), DEFAULT_TASK_COLOR),
                "estimatedDuration": ESTIMATED_DURATION_MINUTES.get(task.taskType.lower(), DEFAULT_DURATION_MINUTES),
                "confidence": task.confidence,
                "source": "syllabus",
            }
            try:
                outcome.created.append(await self.task_store.create_task(payload))
            except Exception as exc:
                failure = MaterializationError(task.title, exc)
                logger.warning("Task creation failed: %s", failure)
                outcome.warnings.append(str(failure))

        if outcome.warnings:
            logger.warning(
                "Some tasks failed to create for class=%s: created=%d failed=%d",
                class_id,
                len(outcome.created),
                len(outcome.warnings),
            )
        else:
            logger.info("Created %d tasks for class=%s", len(outcome.created), class_id)
        return outcome
