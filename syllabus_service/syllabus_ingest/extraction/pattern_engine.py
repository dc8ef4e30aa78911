"""
Artifact: syllabus_service/syllabus_ingest/extraction/pattern_engine.py
Purpose: Turns normalized syllabus text into contacts, assessments, assignments and a weekly schedule using ordered pattern rules with fallback chains.
Preconditions:
- A `PatternRules` object is supplied at construction (defaults to `DEFAULT_RULES`).
Inputs:
- Acceptable: `NormalizedText` or plain `str`, including empty text.
- Unacceptable: Non-text values.
Postconditions:
- Every detection step runs independently; absence of matches yields empty lists plus warnings, never an exception.
- Output is deterministic for identical input and rules.
Returns:
- `ExtractionResult` model.
Errors/Exceptions:
- `re.error` from the constructor when rule overrides are malformed.
"""

import re
from collections import OrderedDict
from typing import Optional, Union

from ..core.logging import get_logger
from ..schemas.documents import NormalizedText
from ..schemas.shared import (
    OFFICE_HOURS_PLACEHOLDER,
    UNKNOWN_NAME,
    AssessmentRecord,
    AssignmentRecord,
    ContactRecord,
    ExtractionResult,
    WeeklyScheduleEntry,
)
from .rules import DEFAULT_RULES, KIND_PLACEHOLDER, NUMBER_PLACEHOLDER, PatternRules

logger = get_logger("syllabus_ingest.extraction")

ROLE_TITLES = {"instructor": "instructor", "assistant": "teaching assistant"}


def as_text(text: Union[NormalizedText, str, None]) -> str:
    if text is None:
        return ""
    return str(text)


def display_title(kind: str, number: Optional[str] = None) -> str:
    """Human title for a record, e.g. `Homework 3` or `Final Exam`."""
    if kind == "final":
        return "Final Exam"
    label = kind.capitalize()
    return f"{label} {number}" if number else label


def office_hours_warning(contact: ContactRecord) -> str:
    who = contact.name if contact.name != UNKNOWN_NAME else contact.email
    return f"No office hours found for {ROLE_TITLES[contact.role]} {who}"


def due_date_warning(record: AssignmentRecord) -> str:
    return f"No due date found for {display_title(record.kind, record.number)}"


def clean_hours(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip(" \t,;:-")


class PatternExtractionEngine:
    def __init__(self, rules: PatternRules = DEFAULT_RULES):
        self.rules = rules
        flags = re.IGNORECASE
        self._role_labels = [(role, re.compile(p, flags)) for role, p in rules.role_labels]
        self._boundaries = [re.compile(p, flags) for p in rules.section_boundaries]
        self._boundaries.extend(pattern for _, pattern in self._role_labels)
        self._email = re.compile(rules.email)
        # Capitalisation carries the signal for names, so no IGNORECASE.
        self._name = re.compile(rules.name)
        self._hours_by_role = {role: re.compile(p, flags) for role, p in rules.office_hours_by_role}
        self._hours_generic = re.compile(rules.office_hours_generic, flags)
        self._assessment = re.compile(rules.assessment, flags)
        self._final_exam = re.compile(rules.final_exam, flags)
        self._assessment_aliases = dict(rules.assessment_kind_aliases)
        self._assignment_tokens = [
            (kind, alias, re.compile(rules.assignment_token.replace(KIND_PLACEHOLDER, alias), flags))
            for kind, alias in rules.assignment_kinds
        ]
        self._week = re.compile(rules.week_token, flags)
        self._schedule_item = re.compile(rules.schedule_item, flags)
        self._schedule_aliases = dict(rules.schedule_item_aliases)

    def extract(self, text: Union[NormalizedText, str]) -> ExtractionResult:
        body = as_text(text)
        warnings: list[str] = []

        instructors = self._contacts_for_role(body, "instructor", warnings)
        assistants = self._contacts_for_role(body, "assistant", warnings)
        if not instructors:
            warnings.append("No instructor contact information found")

        assessments = self._assessments(body)
        if not assessments:
            warnings.append("No exams or quizzes with dates found")

        assignments = self._assignments(body)
        if not assignments:
            warnings.append("No assignments found")
        warnings.extend(due_date_warning(record) for record in assignments if record.dueDate is None)

        schedule = self._weekly_schedule(body)

        logger.debug(
            "Pattern extraction: instructors=%d assistants=%d assessments=%d assignments=%d weeks=%d",
            len(instructors),
            len(assistants),
            len(assessments),
            len(assignments),
            len(schedule or []),
        )
        return ExtractionResult(
            instructorInfo=instructors,
            taInfo=assistants,
            assessments=assessments,
            assignments=assignments,
            weeklySchedule=schedule,
            warnings=warnings,
        )

    # Contacts

    def contact_blocks(self, body: str, role: str) -> list[str]:
        label = dict(self._role_labels).get(role)
        if label is None:
            return []
        blocks = []
        for match in label.finditer(body):
            start = match.end()
            end = min(len(body), start + self.rules.max_block_chars)
            for boundary in self._boundaries:
                found = boundary.search(body, start, end)
                if found and found.start() < end:
                    end = found.start()
            blocks.append(body[start:end])
        return blocks

    def _contacts_for_role(self, body: str, role: str, warnings: list[str]) -> list[ContactRecord]:
        seen = set()
        found = []
        for block in self.contact_blocks(body, role):
            previous_end = 0
            for email_match in self._email.finditer(block):
                email = email_match.group(0).rstrip(".")
                name = self._name_before(block[previous_end : email_match.start()])
                previous_end = email_match.end()
                if email.lower() in seen:
                    continue
                seen.add(email.lower())
                found.append((name, email))

        if not found:
            return []

        hours = self.find_office_hours(body, role)
        records = []
        for name, email in found:
            record = ContactRecord(
                role=role,
                name=name or UNKNOWN_NAME,
                email=email,
                officeHours=hours or OFFICE_HOURS_PLACEHOLDER,
            )
            if name is None:
                warnings.append(f"Could not identify a name for {email}")
            if hours is None:
                warnings.append(office_hours_warning(record))
            records.append(record)
        return records

    def _name_before(self, segment: str) -> Optional[str]:
        chosen = None
        for match in self._name.finditer(segment):
            name = self._accept_name(match.group("name"), bool(match.group("title")))
            if name:
                chosen = name
        return chosen

    def _accept_name(self, raw: str, has_title: bool) -> Optional[str]:
        stopwords = self.rules.name_stopwords
        words = raw.split()
        while words and words[0].lower().rstrip(".") in stopwords:
            words.pop(0)
        while words and words[-1].lower().rstrip(".") in stopwords:
            words.pop()
        if not words or any(word.lower().rstrip(".") in stopwords for word in words):
            return None
        if len(words) < 2 and not has_title:
            return None
        return " ".join(words)

    def find_office_hours(self, body: str, role: str) -> Optional[str]:
        """Role-specific pattern first, then the generic label; first match wins."""
        role_pattern = self._hours_by_role.get(role)
        for pattern in (role_pattern, self._hours_generic):
            if pattern is None:
                continue
            match = pattern.search(body)
            if match:
                return clean_hours(match.group("hours"))
        return None

    # Assessments

    def _assessments(self, body: str) -> list[AssessmentRecord]:
        records = []
        for match in self._assessment.finditer(body):
            kind = match.group("kind").lower()
            records.append(
                AssessmentRecord(
                    kind=self._assessment_aliases.get(kind, kind),
                    date=match.group("date").strip(),
                    rawMatchText=match.group(0).strip(),
                )
            )
        final = self._final_exam.search(body)
        if final:
            records.append(
                AssessmentRecord(
                    kind="final",
                    date=final.group("date").strip(),
                    rawMatchText=final.group(0).strip(),
                )
            )
        return records

    # Assignments

    def _assignments(self, body: str) -> list[AssignmentRecord]:
        seen = set()
        records = []
        for kind, alias, token in self._assignment_tokens:
            for match in token.finditer(body):
                number = match.group("number").lstrip("0") or "0"
                if (kind, number) in seen:
                    continue
                seen.add((kind, number))
                due_date, source = self.find_due_date(body, alias, number)
                records.append(
                    AssignmentRecord(
                        kind=kind,
                        number=number,
                        dueDate=due_date,
                        rawMatchText=match.group(0).strip(),
                        dueDateSource=source,
                    )
                )
        return records

    def find_due_date(self, body: str, alias: str, number: str) -> tuple[Optional[str], Optional[str]]:
        # Tier order can pick up a neighbouring assignment's date when two kinds share a week.
        number_pattern = "0*" + re.escape(number)
        for tier, template in self.rules.due_date_tiers:
            pattern = template.replace(KIND_PLACEHOLDER, alias).replace(NUMBER_PLACEHOLDER, number_pattern)
            match = re.search(pattern, body, re.IGNORECASE)
            if match:
                return match.group("date").strip(), tier
        return None, None

    # Weekly schedule

    def _weekly_schedule(self, body: str) -> Optional[list[WeeklyScheduleEntry]]:
        weeks = list(self._week.finditer(body))
        grouped: "OrderedDict[int, list[str]]" = OrderedDict()
        for index, match in enumerate(weeks):
            start = match.end()
            end = min(len(body), start + self.rules.schedule_window_chars)
            if index + 1 < len(weeks):
                end = min(end, weeks[index + 1].start())
            newline = body.find("\n", start, end)
            if newline != -1:
                end = newline
            items = [
                self._schedule_aliases.get(item.group("item").lower(), item.group("item").lower())
                for item in self._schedule_item.finditer(body, start, end)
            ]
            if items:
                grouped.setdefault(int(match.group("week")), []).extend(items)

        if not grouped:
            return None
        return [WeeklyScheduleEntry(week=week, items=grouped[week]) for week in sorted(grouped)]
