"""
Artifact: syllabus_service/syllabus_ingest/extraction/rules.py
Purpose: Holds the pattern-rule tables used by the extraction engine and the augmentation stage as one immutable configuration object.
Preconditions:
- Patterns are written for Python's `re` module and compiled with IGNORECASE unless noted.
Inputs:
- Acceptable: Overrides of individual rule tables via `dataclasses.replace(DEFAULT_RULES, ...)`.
- Unacceptable: Patterns missing the named groups the engine reads (`date`, `number`, `hours`, `week`, `item`).
Postconditions:
- `DEFAULT_RULES` describes common English syllabus phrasings.
Returns:
- `PatternRules` instances.
Errors/Exceptions:
- `re.error` at engine construction for malformed overrides.
"""

import re
from dataclasses import dataclass

KIND_PLACEHOLDER = "__KIND__"
NUMBER_PLACEHOLDER = "__NUMBER__"
ANCHOR_PLACEHOLDER = "__ANCHOR__"

_MONTHS = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_MONTH_NUM = r"(?:1[0-2]|0?[1-9])"
_DAY_NUM = r"(?:3[01]|[12]\d|0?[1-9])"

DATE_TOKEN = (
    r"(?<![\w/.])"
    rf"(?:{_MONTH_NUM}/{_DAY_NUM}(?:/(?:\d{{4}}|\d{{2}}))?(?![\d/])"
    rf"|{_MONTH_NUM}\.{_DAY_NUM}(?!\d|\.\d)"
    rf"|{_MONTHS}\.?\s+{_DAY_NUM}(?!\d))"
)

_MERIDIEM = r"(?:[ap]\.?m\b\.?|noon\b)"
TIME_TOKEN = (
    rf"(?:(?<![\d:/.])\d{{1,2}}(?::\d{{2}})?\s*{_MERIDIEM}?\s*(?:-|–|—|to\b|until\b)\s*"
    rf"\d{{1,2}}(?::\d{{2}})?(?:\s*{_MERIDIEM})?"
    rf"|(?<![\d:/.])\d{{1,2}}:\d{{2}}(?:\s*{_MERIDIEM})?"
    rf"|(?<![\d:/.])\d{{1,2}}\s*{_MERIDIEM})"
)

CLOCK_TIME_TOKEN = (
    rf"(?:(?<![\d:/.])\d{{1,2}}(?::\d{{2}})?\s*{_MERIDIEM}(?:\s*(?:-|–|to\b)\s*\d{{1,2}}(?::\d{{2}})?(?:\s*{_MERIDIEM})?)?"
    rf"|(?<![\d:/.])\d{{1,2}}:\d{{2}}(?:\s*(?:-|–|to\b)\s*\d{{1,2}}:\d{{2}})?(?:\s*{_MERIDIEM})?)"
)

DAY_TOKEN = (
    r"\b(?:mon|tues?|wed(?:nes)?|thu(?:rs?)?|fri|sat(?:ur)?|sun)(?:day)?s?\b\.?"
    r"|\b(?:MWF|TTh|TR|MW)\b"
)

HOURS_CAPTURE = (
    rf"[^\n]{{0,60}}?{TIME_TOKEN}"
    rf"(?:[ \t]*(?:,|;|&|\band\b)[ \t]*[^\n,;]{{0,30}}?{TIME_TOKEN})*"
)

OFFICE_HOURS_LABEL = r"\boffice\s+hours?\b"
OFFICE_HOURS_VALUE = (
    rf"{OFFICE_HOURS_LABEL}\s*(?:[:\-–—]|\bare\b|\bis\b)?\s*(?P<hours>{HOURS_CAPTURE})"
)

INSTRUCTOR_LABEL = r"\b(?:instructor|professor|lecturer)(?:\(s\)|s)?(?![a-z])"
ASSISTANT_LABEL = (
    r"(?:\bteaching\s+assistant(?:\(s\)|s)?(?![a-z])|(?-i:\bTA(?:\(s\)|s)?(?![A-Za-z])))"
)


def _letter_class(predicate) -> str:
    """Character class of the Latin, Greek and Cyrillic letters accepted by `predicate`."""
    letters = "".join(chr(code) for code in range(0x530) if chr(code).isalpha() and predicate(chr(code)))
    return f"[{re.escape(letters)}]"


_UPPER = _letter_class(str.isupper)
_LOWER = _letter_class(str.islower)
_NAME_WORD = rf"{_UPPER}(?:'{_UPPER})?{_LOWER}+(?:{_UPPER}{_LOWER}+)?(?:-{_UPPER}{_LOWER}+)?\b"
NAME_TOKEN = (
    r"(?:\b(?P<title>Professor|Prof|Dr|Mrs|Mr|Ms|Mx)\.?[ \t]+)?"
    rf"(?P<name>{_NAME_WORD}(?:[ \t]+{_UPPER}\.)?(?:[ \t]+{_NAME_WORD}){{0,3}})"
)


def _role_label_line(label: str) -> str:
    """Role label at line start, or anywhere when followed by a colon."""
    return rf"(?m:^[ \t]*{label}[ \t]*:?|{label}[ \t]*:)"


@dataclass(frozen=True)
class PatternRules:
    """Immutable rule tables; pass a reduced copy into the engine to test a subset."""

    role_labels: tuple = (
        ("instructor", _role_label_line(INSTRUCTOR_LABEL)),
        ("assistant", _role_label_line(ASSISTANT_LABEL)),
    )
    section_boundaries: tuple = (
        OFFICE_HOURS_LABEL,
        r"\n[ \t]*\n",
        r"(?m:^[ \t]*(?:textbooks?|required\s+materials|course\s+(?:description|objectives|schedule)"
        r"|grading|prerequisites|schedule|policies)\b)",
    )
    max_block_chars: int = 600
    email: str = r"[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}"
    name: str = NAME_TOKEN
    name_stopwords: frozenset = frozenset(
        {
            "department", "dept", "university", "college", "school", "hall", "building",
            "room", "office", "hours", "email", "phone", "science", "engineering",
            "course", "syllabus", "instructor", "professor", "lecturer", "teaching",
            "assistant", "assistants", "contact", "information", "name", "location",
            "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
            "center", "lab", "website",
        }
    )
    office_hours_by_role: tuple = (
        ("instructor", rf"{INSTRUCTOR_LABEL}[\s\S]{{0,200}}?{OFFICE_HOURS_VALUE}"),
        ("assistant", rf"{ASSISTANT_LABEL}[\s\S]{{0,200}}?{OFFICE_HOURS_VALUE}"),
    )
    office_hours_generic: str = OFFICE_HOURS_VALUE
    assessment: str = (
        r"\b(?P<kind>midterm|exam|quiz|test)(?:s|zes|inations?)?\b"
        rf"(?P<window>[^.!?\n]{{0,80}}?)(?P<date>{DATE_TOKEN})"
    )
    final_exam: str = (
        r"\bfinal\s+exam(?:ination)?\b"
        rf"(?P<window>[^.!?\n]{{0,80}}?)(?P<date>{DATE_TOKEN})"
    )
    assessment_kind_aliases: tuple = (("test", "exam"),)
    assignment_kinds: tuple = (
        ("homework", r"(?:homework|hw|problem\s+set)"),
        ("lab", r"lab(?:oratory)?"),
        ("assignment", r"assignment"),
        ("project", r"project"),
    )
    assignment_token: str = rf"\b{KIND_PLACEHOLDER}s?\s*#?\s*(?P<number>\d{{1,2}})\b"
    due_date_tiers: tuple = (
        (
            "due_phrase",
            rf"\b{KIND_PLACEHOLDER}s?\s*#?\s*{NUMBER_PLACEHOLDER}\b[^.\n]{{0,100}}?"
            rf"\bdue\b[^.\n]{{0,60}}?(?P<date>{DATE_TOKEN})",
        ),
        (
            "week",
            rf"\bweek\s*\d{{1,2}}\b[^.\n]{{0,100}}?\b{KIND_PLACEHOLDER}s?\s*#?\s*{NUMBER_PLACEHOLDER}\b"
            rf"[^.\n]{{0,80}}?(?P<date>{DATE_TOKEN})",
        ),
        (
            "proximity",
            rf"\b{KIND_PLACEHOLDER}s?\s*#?\s*{NUMBER_PLACEHOLDER}\b[^.\n]{{0,80}}?(?P<date>{DATE_TOKEN})",
        ),
    )
    week_token: str = r"\bweek\s*(?P<week>\d{1,2})\b"
    schedule_item: str = r"\b(?P<item>homework|hw|lab|assignment|project|midterm|exam|quiz|final)(?:s|zes)?\b"
    schedule_item_aliases: tuple = (("hw", "homework"),)
    schedule_window_chars: int = 150
    anchored_office_hours: tuple = (
        rf"\b{ANCHOR_PLACEHOLDER}(?:'s)?\b[\s\S]{{0,150}}?{OFFICE_HOURS_VALUE}",
        rf"{OFFICE_HOURS_LABEL}[^\n]{{0,80}}?\b{ANCHOR_PLACEHOLDER}\b[^\n]{{0,40}}?(?P<hours>{HOURS_CAPTURE})",
        rf"\b{ANCHOR_PLACEHOLDER}\b[^\n]{{0,80}}?(?P<hours>(?:{DAY_TOKEN})[^\n]{{0,20}}?{TIME_TOKEN})",
    )
    anchor_window_chars: int = 120
    date_token: str = DATE_TOKEN
    time_token: str = TIME_TOKEN
    clock_time: str = CLOCK_TIME_TOKEN

    def assignment_alias(self, kind: str) -> str:
        for name, alias in self.assignment_kinds:
            if name == kind:
                return alias
        return kind


DEFAULT_RULES = PatternRules()
