"""
Artifact: syllabus_service/syllabus_ingest/services/validation_service.py
Purpose: Gates an uploaded document with three independent checks (file constraints, per-user rate limits, document security) run concurrently and merged.
Preconditions:
- A `ValidationConfig` and a rate-limit collaborator are supplied at construction.
- PyMuPDF (`fitz`) is installed for structural PDF inspection.
Inputs:
- Acceptable: A `Document` and the uploading user's identifier.
- Unacceptable: N/A; every condition is reported as an error or warning string.
Postconditions:
- All three checks always run; the report holds the union of their errors and warnings.
- A check that itself fails contributes one generic error instead of raising.
Returns:
- `ValidationReport` with `ok` true iff no errors were collected.
Errors/Exceptions:
- None raised to callers.
"""

import asyncio
import re
from dataclasses import dataclass, field
from typing import Optional

from ..clients.collaborators import RateLimitStore
from ..core.config import MB, ValidationConfig
from ..core.logging import get_logger
from ..schemas.documents import Document
from ..schemas.responses import ValidationReport

logger = get_logger("syllabus_ingest.validation")

PDF_SIGNATURE = b"%PDF-"
HEADER_SCAN_BYTES = 1024
UNSAFE_FILENAME_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
ACTIVE_CONTENT_RE = re.compile(rb"/(?:JavaScript|JS|Launch)(?![A-Za-z])")
DEFAULT_FILENAME = "unnamed_file.pdf"


@dataclass
class CheckOutcome:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class PdfStructure:
    page_count: int
    needs_password: bool
    embedded_names: list[str]


def sanitize_filename(filename: str, max_length: int = 255) -> str:
    """Replace path and control characters and trim leading/trailing dots and spaces."""
    sanitized = UNSAFE_FILENAME_CHARS_RE.sub("_", filename or "")
    sanitized = sanitized.strip(". \t")
    if len(sanitized) > max_length:
        stem, dot, ext = sanitized.rpartition(".")
        suffix = f".{ext}" if dot else ""
        sanitized = sanitized[: max_length - len(suffix)] + suffix
    return sanitized or DEFAULT_FILENAME


def _format_size(size_bytes: float) -> str:
    if size_bytes >= MB:
        return f"{size_bytes / MB:.1f} MB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{int(size_bytes)} bytes"


def _retry_hint(window_seconds: int) -> str:
    if window_seconds >= 86400:
        hours = max(1, window_seconds // 3600)
        return f"Try again in up to {hours} hours."
    minutes = max(1, window_seconds // 60)
    return f"Try again in up to {minutes} minutes."


def _inspect_pdf(data: bytes) -> Optional[PdfStructure]:
    """Open the document with PyMuPDF; returns None when PyMuPDF is unavailable."""
    try:
        import fitz  # PyMuPDF
    except ImportError:
        logger.warning("PyMuPDF not installed; structural PDF checks skipped")
        return None

    with fitz.open(stream=data, filetype="pdf") as doc:
        needs_password = bool(doc.needs_pass)
        page_count = 0 if needs_password else int(doc.page_count)
        embedded = [] if needs_password else list(doc.embfile_names())
    return PdfStructure(page_count=page_count, needs_password=needs_password, embedded_names=embedded)


class ValidationGate:
    def __init__(self, config: ValidationConfig, rate_limit_store: RateLimitStore):
        self.config = config
        self.rate_limit_store = rate_limit_store

    async def validate(self, document: Document, user_id: Optional[str] = None) -> ValidationReport:
        user = user_id or document.user_id
        outcomes = await asyncio.gather(
            self._guarded(self.check_file_constraints(document), "Failed to validate file constraints"),
            self._guarded(self.check_rate_limit(user), "Failed to verify upload limits"),
            self._guarded(self.check_document_security(document), "Failed to validate document structure"),
        )
        report = ValidationReport()
        for outcome in outcomes:
            report.errors.extend(outcome.errors)
            report.warnings.extend(outcome.warnings)

        logger.info(
            "Validation gate finished for file=%s ok=%s errors=%d warnings=%d",
            document.filename,
            report.ok,
            len(report.errors),
            len(report.warnings),
        )
        return report

    async def _guarded(self, check, failure_message: str) -> CheckOutcome:
        try:
            return await check
        except Exception as exc:
            logger.warning("%s: %s", failure_message, exc)
            return CheckOutcome(errors=[failure_message])

    async def check_file_constraints(self, document: Document) -> CheckOutcome:
        cfg = self.config
        outcome = CheckOutcome()

        media_ok = (document.media_type or "").lower() in cfg.allowed_media_types
        extension_ok = document.extension in cfg.allowed_extensions
        if not media_ok and not extension_ok:
            outcome.errors.append(
                f"File type '{document.media_type or document.extension or 'unknown'}' is not allowed. "
                "Only PDF files are permitted."
            )
        elif not (media_ok and extension_ok):
            outcome.warnings.append("File extension does not match the declared file type")

        lowered = document.filename.lower()
        if any(lowered.endswith(ext) for ext in cfg.blocked_extensions):
            outcome.errors.append(
                f"File extension '{document.extension}' is blocked for security reasons. "
                "This file type may contain executable code or macros."
            )

        if len(document.filename) > cfg.max_filename_length:
            outcome.errors.append(f"Filename is too long (maximum {cfg.max_filename_length} characters)")
        sanitized = sanitize_filename(document.filename, cfg.max_filename_length)
        if sanitized != document.filename:
            outcome.warnings.append(f"Filename was sanitized from '{document.filename}' to '{sanitized}'")

        size = document.size
        limit = cfg.max_file_size_bytes
        if size <= 0:
            outcome.errors.append("File is empty")
        elif size > limit:
            outcome.errors.append(
                f"File size ({_format_size(size)}) exceeds maximum allowed size ({_format_size(limit)})"
            )
        elif size > limit * cfg.size_warning_ratio:
            outcome.warnings.append(
                f"File size ({_format_size(size)}) is close to the maximum allowed size ({_format_size(limit)})"
            )

        logger.debug(
            "File constraints checked: file=%s size=%d errors=%d warnings=%d",
            document.filename,
            size,
            len(outcome.errors),
            len(outcome.warnings),
        )
        return outcome

    async def check_rate_limit(self, user_id: str) -> CheckOutcome:
        outcome = CheckOutcome()
        for rule in self.config.rate_limits:
            count = await self.rate_limit_store.get_recent_upload_count(user_id, rule.window_seconds)
            if count >= rule.max_uploads:
                outcome.errors.append(
                    f"{rule.label.capitalize()} upload limit exceeded ({count}/{rule.max_uploads}). "
                    f"{_retry_hint(rule.window_seconds)}"
                )
            elif count >= rule.max_uploads * self.config.rate_limit_warning_ratio:
                outcome.warnings.append(f"Approaching {rule.label} upload limit ({count}/{rule.max_uploads})")
        logger.debug("Rate limits checked for user=%s errors=%d", user_id, len(outcome.errors))
        return outcome

    async def check_document_security(self, document: Document) -> CheckOutcome:
        cfg = self.config
        outcome = CheckOutcome()
        data = document.payload or b""

        if PDF_SIGNATURE not in data[:HEADER_SCAN_BYTES]:
            outcome.errors.append("Invalid PDF file: Missing PDF header signature")
            return outcome
        if document.size < cfg.min_file_size_bytes:
            outcome.warnings.append("PDF file is suspiciously small")
        if ACTIVE_CONTENT_RE.search(data):
            outcome.errors.append("PDF contains executable content (JavaScript or launch actions)")

        structure = await asyncio.to_thread(_inspect_pdf, data)
        if structure is None:
            return outcome
        if structure.needs_password:
            outcome.errors.append("PDF is password-protected. Please upload an unlocked copy.")
            return outcome
        if structure.page_count <= 0:
            outcome.errors.append("PDF has no pages")
        elif structure.page_count > cfg.max_pdf_pages:
            outcome.errors.append(
                f"PDF has {structure.page_count} pages, more than the {cfg.max_pdf_pages} expected for a syllabus"
            )

        executables = [
            name for name in structure.embedded_names if any(name.lower().endswith(ext) for ext in cfg.blocked_extensions)
        ]
        if executables:
            outcome.errors.append(f"PDF embeds blocked file types: {', '.join(executables)}")
        if len(structure.embedded_names) > cfg.max_embedded_files:
            outcome.warnings.append(
                f"PDF contains an unusually high number of embedded files ({len(structure.embedded_names)})"
            )
        return outcome
