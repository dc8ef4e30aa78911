"""
Artifact: syllabus_service/syllabus_ingest/services/text_extraction_service.py
Purpose: Converts a stored syllabus PDF into normalized plain text, page by page, with selective OCR fallback.
Preconditions:
- PyMuPDF (`fitz`) is installed; pytesseract/Pillow are optional for OCR.
- A file-storage collaborator can return the stored bytes.
Inputs:
- Acceptable: A `Document` and optionally its `StoredDocument` location.
- Unacceptable: Non-PDF binaries, image-only documents without OCR support.
Postconditions:
- Pages are normalized independently and joined with a single newline.
- Text shorter than the configured minimum never leaves this stage.
Returns:
- `NormalizedText` with page count and per-page extraction methods.
Errors/Exceptions:
- `ExtractionError` when the text is empty, unreadable or too short.
- `TransportError` when the storage collaborator fails.
"""

import asyncio
import io
import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from ..clients.collaborators import FileStorage
from ..core.errors import ExtractionError, TransportError
from ..core.logging import get_logger
from ..schemas.documents import Document, NormalizedText, StoredDocument

logger = get_logger("syllabus_ingest.text_extraction")

MIN_NATIVE_TEXT_CHARS = 48
MIN_NATIVE_WORDS = 8
MIN_ALNUM_RATIO = 0.45
MAX_SYMBOL_RATIO = 0.40

OCR_RENDER_DPI = 240
OCR_TESSERACT_CONFIG = "--oem 3 --psm 6"

HEADER_FOOTER_SAMPLE_LINES = 2
HEADER_FOOTER_REPEAT_RATIO = 0.60
HEADER_FOOTER_MIN_PAGES = 3

PREVIEW_CHARS = 200


@dataclass
class ExtractedPage:
    number: int
    method: str
    text: str


def _compute_text_quality(text: str) -> dict:
    """Return lightweight metrics used to decide native extraction quality."""
    compact = "".join(ch for ch in (text or "") if not ch.isspace())
    chars = len(compact)
    alnum = sum(ch.isalnum() for ch in compact)
    symbols = sum(not ch.isalnum() for ch in compact)
    words = re.findall(r"[A-Za-z0-9]{2,}", text or "")
    return {
        "chars": chars,
        "words": len(words),
        "alnum_ratio": (alnum / chars) if chars else 0.0,
        "symbol_ratio": (symbols / chars) if chars else 1.0,
    }


def _should_ocr_page(native_text: str) -> bool:
    """Decide if a page should use OCR instead of native extraction."""
    metrics = _compute_text_quality(native_text)
    if metrics["chars"] < MIN_NATIVE_TEXT_CHARS:
        return True
    if metrics["words"] < MIN_NATIVE_WORDS:
        return True
    if metrics["alnum_ratio"] < MIN_ALNUM_RATIO:
        return True
    if metrics["symbol_ratio"] > MAX_SYMBOL_RATIO:
        return True
    return False


def _normalize_match_line(line: str) -> str:
    normalized = re.sub(r"\d+", "#", (line or "").lower())
    normalized = re.sub(r"\s+", " ", normalized).strip(" .:-|_")
    return normalized


def _remove_repeated_headers_and_footers(page_texts: list[str]) -> list[str]:
    """
    Remove top/bottom lines that repeat on most pages.
    Running headers and page counters would otherwise show up as schedule noise.
    """
    total_pages = len(page_texts)
    if total_pages < HEADER_FOOTER_MIN_PAGES:
        return page_texts

    pattern_counts: Counter = Counter()
    for text in page_texts:
        lines = [ln.strip() for ln in (text or "").splitlines() if ln.strip()]
        sampled = lines[:HEADER_FOOTER_SAMPLE_LINES] + lines[-HEADER_FOOTER_SAMPLE_LINES:]
        patterns = {_normalize_match_line(ln) for ln in sampled if 4 <= len(ln) <= 140}
        for pattern in patterns:
            if pattern:
                pattern_counts[pattern] += 1

    min_occurrences = max(HEADER_FOOTER_MIN_PAGES, math.ceil(total_pages * HEADER_FOOTER_REPEAT_RATIO))
    repeated = {pattern for pattern, count in pattern_counts.items() if count >= min_occurrences}
    if not repeated:
        return page_texts

    cleaned_pages = []
    for text in page_texts:
        kept = [line.rstrip() for line in (text or "").splitlines() if _normalize_match_line(line) not in repeated]
        cleaned_pages.append("\n".join(kept).strip())
    return cleaned_pages


def _normalize_page_text(text: str) -> str:
    """Normalize one page; line breaks are kept because the extraction rules are line-aware."""
    if not text:
        return ""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n").replace("\u00a0", " ")
    # Words broken by PDF line wrapping, e.g. "assign-\nment".
    normalized = re.sub(r"(?<=[a-z])-\n(?=[a-z])", "", normalized)
    normalized = re.sub(r"[ \t\f\v]+", " ", normalized)
    normalized = "\n".join(line.strip() for line in normalized.split("\n"))
    normalized = re.sub(r"\n{3,}", "\n\n", normalized)
    return normalized.strip()


def _extract_ocr_text_from_page(page, filename: str, page_number: int) -> str:
    """OCR fallback for image-heavy pages. Returns empty text if OCR is unavailable."""
    try:
        import pytesseract
        from PIL import Image, ImageOps
    except ImportError:
        logger.warning(
            "OCR dependencies missing (pytesseract/Pillow); skipping OCR for %r page %d",
            filename,
            page_number,
        )
        return ""

    try:
        pix = page.get_pixmap(dpi=OCR_RENDER_DPI, alpha=False)
        image = Image.open(io.BytesIO(pix.tobytes("png")))
        processed = ImageOps.autocontrast(image.convert("L"))
        text = pytesseract.image_to_string(processed, config=OCR_TESSERACT_CONFIG)
        return (text or "").strip()
    except Exception as e:
        logger.warning("OCR failed for %r page %d: %s", filename, page_number, e)
        return ""


def extract_pages(pdf_bytes: bytes, filename: str, enable_ocr: bool = True) -> list[ExtractedPage]:
    """Extract per-page text. Unreadable documents yield an empty list."""
    try:
        import fitz
    except ImportError:
        logger.warning("pymupdf not installed – cannot extract PDF text. Run: pip install pymupdf")
        return []

    pages: list[ExtractedPage] = []
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            for idx, page in enumerate(doc, start=1):
                native_text = page.get_text("text") or ""
                method = "native"
                page_text = native_text

                if enable_ocr and _should_ocr_page(native_text):
                    ocr_text = _extract_ocr_text_from_page(page, filename=filename, page_number=idx)
                    if len(ocr_text.strip()) > len(native_text.strip()):
                        method = "ocr"
                        page_text = ocr_text

                pages.append(ExtractedPage(number=idx, method=method, text=_normalize_page_text(page_text)))
    except Exception as e:
        logger.warning("Failed to extract text from PDF %r: %s", filename, e)
        return []
    return pages


def join_pages(pages: list[ExtractedPage]) -> str:
    page_texts = _remove_repeated_headers_and_footers([p.text for p in pages])
    return "\n".join(page_texts).strip()


def extract_text_from_pdf_bytes(pdf_bytes: bytes, filename: str, enable_ocr: bool = True) -> str:
    """Extract and normalize PDF text with selective OCR fallback."""
    return join_pages(extract_pages(pdf_bytes, filename, enable_ocr=enable_ocr))


class TextExtractionAdapter:
    def __init__(self, storage: FileStorage, min_chars: int = 50, enable_ocr: bool = True):
        self.storage = storage
        self.min_chars = min_chars
        self.enable_ocr = enable_ocr

    async def extract_text(self, document: Document, stored: Optional[StoredDocument] = None) -> NormalizedText:
        pdf_bytes = document.payload
        if stored is not None:
            try:
                pdf_bytes = await self.storage.get_document_bytes(stored.path)
            except Exception as exc:
                raise TransportError.from_exception(exc) from exc

        pages = await asyncio.to_thread(extract_pages, pdf_bytes, document.filename, self.enable_ocr)
        text = join_pages(pages)

        if not text:
            raise ExtractionError(f"No text could be extracted from {document.filename!r}")
        if len(text) < self.min_chars:
            raise ExtractionError(
                f"Extracted text from {document.filename!r} is too short ({len(text)} < {self.min_chars} chars)"
            )

        logger.info(
            "Extracted %d chars from PDF %r (%d pages, ocr pages=%d)",
            len(text),
            document.filename,
            len(pages),
            sum(1 for page in pages if page.method == "ocr"),
        )
        logger.debug("PDF %r preview: %r", document.filename, text[:PREVIEW_CHARS])
        return NormalizedText(text=text, page_count=len(pages), methods=tuple(page.method for page in pages))
