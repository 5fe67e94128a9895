"""
Pipeline worker configuration.

Single source of truth for scheduler, segmenter and scoring tunables.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class WorkerConfig:
    """Immutable worker configuration loaded once at startup."""

    # --- Extraction scheduler ---
    concurrency: int = 5
    call_timeout_seconds: float = 30.0
    inter_call_delay_seconds: float = 0.1
    pass1_definition_tokens: int = 1024
    pass1_rule_tokens: int = 1024
    pass2_tokens: int = 4096
    pass2_enabled: bool = True

    # --- Segmenter ---
    window_size: int = 1400
    window_overlap: int = 100
    min_section_length: int = 500
    min_chunk_length: int = 300
    min_cleaned_length: int = 200

    # --- Scoring / reconciliation ---
    review_threshold: float = 0.85
    overlap_threshold: float = 0.40

    # --- Deterministic path ---
    rule_engine_enabled: bool = True

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - [PIPELINE] - %(levelname)s - %(message)s"


def load_worker_config() -> WorkerConfig:
    """Build WorkerConfig from environment variables (with defaults)."""
    def _float(key: str, default: float) -> float:
        raw = os.getenv(key)
        if raw is None:
            return default
        try:
            return float(raw)
        except (TypeError, ValueError):
            return default

    def _int(key: str, default: int) -> int:
        raw = os.getenv(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except (TypeError, ValueError):
            return default

    def _bool(key: str, default: bool) -> bool:
        raw = os.getenv(key)
        if raw is None:
            return default
        return raw.strip().lower() in ("1", "true", "yes")

    return WorkerConfig(
        concurrency=max(1, _int("PIPELINE_CONCURRENCY", 5)),
        call_timeout_seconds=_float("PIPELINE_CALL_TIMEOUT", 30.0),
        inter_call_delay_seconds=_float("PIPELINE_CALL_DELAY", 0.1),
        pass1_definition_tokens=_int("PIPELINE_PASS1_DEF_TOKENS", 1024),
        pass1_rule_tokens=_int("PIPELINE_PASS1_RULE_TOKENS", 1024),
        pass2_tokens=_int("PIPELINE_PASS2_TOKENS", 4096),
        pass2_enabled=_bool("PIPELINE_PASS2_ENABLED", True),
        window_size=_int("PIPELINE_WINDOW_SIZE", 1400),
        window_overlap=_int("PIPELINE_WINDOW_OVERLAP", 100),
        min_section_length=_int("PIPELINE_MIN_SECTION", 500),
        min_chunk_length=_int("PIPELINE_MIN_CHUNK", 300),
        min_cleaned_length=_int("PIPELINE_MIN_CLEANED", 200),
        review_threshold=_float("PIPELINE_REVIEW_THRESHOLD", 0.85),
        overlap_threshold=_float("PIPELINE_OVERLAP_THRESHOLD", 0.40),
        rule_engine_enabled=_bool("PIPELINE_RULE_ENGINE_ENABLED", True),
        log_level=os.getenv("PIPELINE_LOG_LEVEL", "INFO"),
        log_format=os.getenv(
            "PIPELINE_LOG_FORMAT",
            "%(asctime)s - [PIPELINE] - %(levelname)s - %(message)s",
        ),
    )
