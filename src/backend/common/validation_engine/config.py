from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .models import ReportFormat, RowFilter


load_dotenv()

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class EngineSettings(BaseModel):
    log_level: str = "INFO"
    # None keeps every compiled expression for the life of the process.
    expression_cache_max_entries: Optional[int] = None
    report_dir: Path = Path(".")
    report_format: ReportFormat = ReportFormat.HUMAN_READABLE


def get_engine_settings() -> EngineSettings:
    """
    Load engine settings from environment variables (a `.env` file is honoured).

    Reads:
      VALIDATION_LOG_LEVEL, VALIDATION_EXPRESSION_CACHE_MAX_ENTRIES,
      VALIDATION_REPORT_DIR, VALIDATION_REPORT_FORMAT
    """
    log_level = os.getenv("VALIDATION_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValueError(f"VALIDATION_LOG_LEVEL must be a logging level name, got '{log_level}'.")

    return EngineSettings(
        log_level=log_level,
        expression_cache_max_entries=_optional_positive_int("VALIDATION_EXPRESSION_CACHE_MAX_ENTRIES"),
        report_dir=Path(os.getenv("VALIDATION_REPORT_DIR", ".").strip() or "."),
        report_format=parse_report_format(os.getenv("VALIDATION_REPORT_FORMAT", "").strip() or "html"),
    )


def configure_logging(level: str = "INFO") -> None:
    """Send engine logs to stderr. Intended for scripts, not library use."""
    root = logging.getLogger()
    if not any(getattr(h, "_validation_engine", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._validation_engine = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper())


def _optional_positive_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw or raw == "0":
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'.") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative, got '{raw}'.")
    return value


_FORMAT_ALIASES = {
    "structured": ReportFormat.STRUCTURED,
    "json": ReportFormat.STRUCTURED,
    "html": ReportFormat.HUMAN_READABLE,
}


def parse_report_format(raw: str) -> ReportFormat:
    text = (raw or "").strip().lower()
    if text not in _FORMAT_ALIASES:
        raise ValueError(f"Report format must be 'structured', 'json' or 'html', got '{raw}'.")
    return _FORMAT_ALIASES[text]


def parse_row_filter(raw: str) -> RowFilter:
    text = (raw or "").strip().lower()
    for row_filter in RowFilter:
        if row_filter.value.lower() == text:
            return row_filter
    raise ValueError(f"Row filter must be 'all', 'valid' or 'invalid', got '{raw}'.")
