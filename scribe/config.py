"""Configuration management for scribe."""

import os
import re
from dataclasses import dataclass, field
from typing import List
from dotenv import load_dotenv

DEFAULT_MODEL = "gemini-3-flash-preview"


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    api_keys: List[str] = field(default_factory=list)
    port: int = 8000
    host: str = "0.0.0.0"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_model: str = DEFAULT_MODEL
    request_timeout_seconds: float = 300.0
    ocr_batch_size: int = 6
    format_max_chars: int = 7000
    translate_max_chars: int = 4500
    ocr_delay_seconds: float = 0.8
    format_delay_seconds: float = 1.0
    translate_delay_seconds: float = 1.2
    max_files: int = 200
    max_finished_jobs: int = 100
    finished_job_ttl_seconds: float = 3600.0
    log_level: str = "INFO"

    def __post_init__(self):
        for name in (
            "ocr_batch_size",
            "format_max_chars",
            "translate_max_chars",
            "max_files",
            "max_finished_jobs",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be a positive integer")
        for name in (
            "ocr_delay_seconds",
            "format_delay_seconds",
            "translate_delay_seconds",
            "finished_job_ttl_seconds",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name.upper()} must not be negative")


def parse_key_list(raw: str) -> List[str]:
    """Split a newline or comma separated key list, dropping blanks."""
    return [key.strip() for key in re.split(r"[,\n]", raw) if key.strip()]


def load_config(use_dotenv: bool = True) -> Config:
    """Load configuration from environment variables.

    An empty ``GEMINI_API_KEYS`` is allowed: callers may supply their own keys
    per request, and operations fail with ``NoCredentialsConfigured`` when
    neither source has any.

    Returns:
        Config: Configured application settings

    Raises:
        ValueError: If a numeric setting is missing or invalid
    """
    if use_dotenv:
        load_dotenv()

    return Config(
        api_keys=parse_key_list(os.getenv("GEMINI_API_KEYS", "")),
        port=int(os.getenv("PORT", "8000")),
        host=os.getenv("HOST", "0.0.0.0"),
        gemini_base_url=os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com"
        ),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "300")),
        ocr_batch_size=int(os.getenv("OCR_BATCH_SIZE", "6")),
        format_max_chars=int(os.getenv("FORMAT_MAX_CHARS", "7000")),
        translate_max_chars=int(os.getenv("TRANSLATE_MAX_CHARS", "4500")),
        ocr_delay_seconds=float(os.getenv("OCR_DELAY_SECONDS", "0.8")),
        format_delay_seconds=float(os.getenv("FORMAT_DELAY_SECONDS", "1.0")),
        translate_delay_seconds=float(os.getenv("TRANSLATE_DELAY_SECONDS", "1.2")),
        max_files=int(os.getenv("MAX_FILES", "200")),
        max_finished_jobs=int(os.getenv("MAX_FINISHED_JOBS", "100")),
        finished_job_ttl_seconds=float(
            os.getenv("FINISHED_JOB_TTL_SECONDS", "3600")
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
