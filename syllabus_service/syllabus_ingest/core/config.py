"""
Artifact: syllabus_service/syllabus_ingest/core/config.py
Purpose: Centralizes environment loading and the immutable configuration objects handed to pipeline stages.
Preconditions:
- Environment variables may be present in process env and optional .env file.
Inputs:
- Acceptable: String environment variables such as MAX_UPLOAD_MB, NVIDIA_API_KEY, LOG_LEVEL.
- Unacceptable: Non-numeric strings for numeric settings (these fall back to defaults).
Postconditions:
- Dotenv variables are loaded and configuration values are available to callers.
Returns:
- Settings object with typed accessors and stage configuration builders.
Errors/Exceptions:
- No explicit exceptions; malformed values are logged by callers via defaults.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


load_dotenv()

MB = 1024 * 1024

ALLOWED_MEDIA_TYPES = ("application/pdf",)
ALLOWED_EXTENSIONS = (".pdf",)
BLOCKED_EXTENSIONS = (
    ".exe", ".bat", ".sh", ".cmd", ".scr", ".com", ".pif",
    ".zip", ".rar", ".7z", ".tar", ".gz",
    ".js", ".html", ".php", ".asp", ".jsp",
    ".xls", ".xlsx", ".ppt", ".pptx", ".doc",
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw not in {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RateLimitRule:
    """One rolling-window upload ceiling."""

    window_seconds: int
    max_uploads: int
    label: str


@dataclass(frozen=True)
class ValidationConfig:
    max_file_size_bytes: int = 10 * MB
    size_warning_ratio: float = 0.8
    allowed_media_types: tuple = ALLOWED_MEDIA_TYPES
    allowed_extensions: tuple = ALLOWED_EXTENSIONS
    blocked_extensions: tuple = BLOCKED_EXTENSIONS
    max_filename_length: int = 255
    rate_limits: tuple = field(
        default_factory=lambda: (
            RateLimitRule(window_seconds=3600, max_uploads=10, label="hourly"),
            RateLimitRule(window_seconds=86400, max_uploads=50, label="daily"),
        )
    )
    rate_limit_warning_ratio: float = 0.8
    max_pdf_pages: int = 500
    max_embedded_files: int = 3
    min_file_size_bytes: int = 1000


class Settings:
    """Application-level configuration values."""

    app_title: str = "Syllabus Ingestion Service"

    @staticmethod
    def log_level() -> str:
        return os.getenv("LOG_LEVEL", "DEBUG").upper()

    @staticmethod
    def nvidia_api_key() -> str:
        return os.getenv("NVIDIA_API_KEY", "")

    @staticmethod
    def embedding_model_name() -> str:
        return os.getenv("EMBEDDING_MODEL_NAME", "nvidia/nv-embedqa-e5-v5")

    @staticmethod
    def semantic_tiebreak_enabled() -> bool:
        return _env_bool("ENABLE_SEMANTIC_TIEBREAK", True)

    @staticmethod
    def ocr_enabled() -> bool:
        return _env_bool("ENABLE_OCR", True)

    @staticmethod
    def min_text_chars() -> int:
        return _env_int("MIN_TEXT_CHARS", 50)

    @staticmethod
    def augmentation_timeout_seconds() -> float:
        return _env_float("AUGMENTATION_TIMEOUT_SECONDS", 10.0)

    @staticmethod
    def max_tasks_per_syllabus() -> int:
        return _env_int("MAX_TASKS_PER_SYLLABUS", 50)

    @staticmethod
    def min_task_confidence() -> float:
        return _env_float("MIN_TASK_CONFIDENCE", 0.0)

    @staticmethod
    def validation_config() -> ValidationConfig:
        max_upload_mb = _env_float("MAX_UPLOAD_MB", 10.0)
        return ValidationConfig(
            max_file_size_bytes=int(max_upload_mb * MB),
            size_warning_ratio=_env_float("UPLOAD_SIZE_WARNING_RATIO", 0.8),
            rate_limits=(
                RateLimitRule(
                    window_seconds=3600,
                    max_uploads=_env_int("MAX_UPLOADS_PER_HOUR", 10),
                    label="hourly",
                ),
                RateLimitRule(
                    window_seconds=86400,
                    max_uploads=_env_int("MAX_UPLOADS_PER_DAY", 50),
                    label="daily",
                ),
            ),
            max_pdf_pages=_env_int("MAX_PDF_PAGES", 500),
            max_embedded_files=_env_int("MAX_EMBEDDED_FILES", 3),
        )


settings = Settings()
