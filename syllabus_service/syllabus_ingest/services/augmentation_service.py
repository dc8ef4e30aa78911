"""
Artifact: syllabus_service/syllabus_ingest/services/augmentation_service.py
Purpose: Refines a pattern-extraction result with a narrower second pass anchored on already-known names and assignment tokens, plus an optional semantic tie-break between competing dates.
Preconditions:
- The input result came from `PatternExtractionEngine` over the same text.
- A `SimilarityCapability` is supplied (use `NullSimilarity` when none is configured).
Inputs:
- Acceptable: `ExtractionResult` plus `NormalizedText` or `str`.
- Unacceptable: N/A.
Postconditions:
- The input result is not mutated; a refined deep copy is returned.
- Found values are only ever replaced by other found values, never by placeholders.
- Similarity failures are logged and the rule-based value is kept.
Returns:
- Refined `ExtractionResult`.
Errors/Exceptions:
- None raised; any failure of the similarity capability is logged and absorbed.
"""

import re
from typing import Optional, Union

from ..clients.collaborators import SimilarityCapability
from ..core.errors import AugmentationError
from ..core.logging import get_logger
from ..extraction.pattern_engine import (
    as_text,
    clean_hours,
    display_title,
    due_date_warning,
    office_hours_warning,
)
from ..extraction.rules import ANCHOR_PLACEHOLDER, DEFAULT_RULES, PatternRules
from ..schemas.documents import NormalizedText
from ..schemas.shared import (
    OFFICE_HOURS_PLACEHOLDER,
    UNKNOWN_NAME,
    AssessmentRecord,
    AssignmentRecord,
    ContactRecord,
    ExtractionResult,
)
from .similarity_service import NullSimilarity

logger = get_logger("syllabus_ingest.augmentation")


class AugmentationStage:
    def __init__(self, similarity: Optional[SimilarityCapability] = None, rules: PatternRules = DEFAULT_RULES):
        self.similarity = similarity or NullSimilarity()
        self.rules = rules
        flags = re.IGNORECASE
        self._date = re.compile(rules.date_token, flags)
        self._clock_time = re.compile(rules.clock_time, flags)

    async def augment(self, result: ExtractionResult, text: Union[NormalizedText, str]) -> ExtractionResult:
        body = as_text(text)
        refined = result.model_copy(deep=True)

        hours_filled = sum(self._refine_office_hours(contact, body, refined) for contact in refined.contacts())
        dates_changed = 0
        for record in refined.assignments:
            if await self._refine_due_date(record, body, refined):
                dates_changed += 1
        times_attached = sum(self._attach_time(record, body) for record in refined.assessments)

        logger.info(
            "Augmentation finished: office_hours=%d due_dates=%d assessment_times=%d",
            hours_filled,
            dates_changed,
            times_attached,
        )
        return refined

    # Office hours

    def _anchors(self, contact: ContactRecord) -> list[str]:
        if contact.name == UNKNOWN_NAME:
            return [contact.email]
        words = [word for word in contact.name.split() if not word.endswith(".")]
        anchors = []
        if words:
            anchors.append(words[0])
        if len(words) > 1:
            anchors.append(words[-1])
        return anchors

    def _refine_office_hours(self, contact: ContactRecord, body: str, result: ExtractionResult) -> bool:
        for anchor in self._anchors(contact):
            for template in self.rules.anchored_office_hours:
                pattern = template.replace(ANCHOR_PLACEHOLDER, re.escape(anchor))
                match = re.search(pattern, body, re.IGNORECASE)
                if not match:
                    continue
                hours = clean_hours(match.group("hours"))
                if not hours:
                    continue
                was_placeholder = contact.officeHours == OFFICE_HOURS_PLACEHOLDER
                if was_placeholder:
                    _discard(result.warnings, office_hours_warning(contact))
                changed = hours != contact.officeHours
                contact.officeHours = hours
                logger.debug("Anchored office hours for %s via %r", contact.email, anchor)
                return changed
        return False

    # Assignment dates

    def _date_candidates(self, record: AssignmentRecord, body: str) -> list[tuple[str, str]]:
        """Distinct (date, snippet) pairs found on the lines that mention the assignment."""
        alias = self.rules.assignment_alias(record.kind)
        anchor = re.compile(rf"\b{alias}s?\s*#?\s*0*{re.escape(record.number)}\b", re.IGNORECASE)
        candidates = []
        seen = set()
        for match in anchor.finditer(body):
            end = min(len(body), match.end() + self.rules.anchor_window_chars)
            newline = body.find("\n", match.end(), end)
            if newline != -1:
                end = newline
            for date in self._date.finditer(body, match.end(), end):
                token = date.group(0).strip()
                if token.lower() in seen:
                    continue
                seen.add(token.lower())
                candidates.append((token, body[match.start() : date.end()].strip()))
        return candidates

    async def _refine_due_date(self, record: AssignmentRecord, body: str, result: ExtractionResult) -> bool:
        candidates = self._date_candidates(record, body)
        if not candidates:
            return False

        changed = False
        if record.dueDate is None:
            _discard(result.warnings, due_date_warning(record))
            record.dueDate = candidates[0][0]
            record.dueDateSource = "anchored"
            changed = True

        if len(candidates) < 2 or record.dueDateSource == "due_phrase":
            return changed

        query = f"{display_title(record.kind, record.number)} due date"
        try:
            scores = await self.similarity.rank(query, [snippet for _, snippet in candidates])
        except AugmentationError as exc:
            logger.warning("Semantic tie-break skipped for %s: %s", query, exc)
            return changed
        except Exception as exc:
            logger.warning("Semantic tie-break failed for %s (%s): %s", query, type(exc).__name__, exc)
            return changed
        if not scores or len(scores) != len(candidates):
            return changed

        best = max(range(len(candidates)), key=lambda idx: (scores[idx], -idx))
        best_date = candidates[best][0]
        if best_date != record.dueDate:
            logger.debug("Semantic tie-break picked %s for %s", best_date, query)
            record.dueDate = best_date
            record.dueDateSource = "semantic"
            changed = True
        return changed

    # Assessment times

    def _attach_time(self, record: AssessmentRecord, body: str) -> bool:
        if record.time:
            return False
        start = body.find(record.rawMatchText)
        if start == -1:
            return False
        end = min(len(body), start + len(record.rawMatchText) + self.rules.anchor_window_chars)
        newline = body.find("\n", start + len(record.rawMatchText), end)
        if newline != -1:
            end = newline
        match = self._clock_time.search(body, start, end)
        if not match:
            return False
        record.time = re.sub(r"\s+", " ", match.group(0)).strip()
        return True


def _discard(warnings: list[str], message: str) -> None:
    if message in warnings:
        warnings.remove(message)
