"""
config.py — Central settings for the Career Readiness assessment core
======================================================================
All configuration is loaded from environment variables / .env file.
Copy .env.example → .env and fill in your values.

Live report generation activates automatically when AZURE_OPENAI_ENDPOINT
and AZURE_OPENAI_API_KEY contain real (non-placeholder) values; otherwise
the rule-based mock generator is used.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env into os.environ (no-op if already set, safe to call multiple times)
load_dotenv(override=False)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# ─── Helpers ────────────────────────────────────────────────────────────────

def _is_placeholder(value: str) -> bool:
    """Return True if the value looks like an unfilled template placeholder."""
    return not value or "<" in value or value.startswith("your-") or value == "PLACEHOLDER"


# ─── Azure OpenAI (report generation service) ───────────────────────────────

@dataclass(frozen=True)
class AzureOpenAIConfig:
    endpoint:    str
    api_key:     str
    deployment:  str
    api_version: str

    @property
    def is_configured(self) -> bool:
        """True when both endpoint and key are real (non-placeholder) values."""
        return (
            bool(self.endpoint)
            and bool(self.api_key)
            and not _is_placeholder(self.endpoint)
            and not _is_placeholder(self.api_key)
        )


# ─── Autosave (Response Store) ───────────────────────────────────────────────

@dataclass(frozen=True)
class AutosaveConfig:
    debounce_seconds: float   # inactivity window before a remote write
    max_attempts:     int     # bounded retries per write
    backoff_seconds:  float   # base delay; attempt n waits base * 2**n


# ─── Report pipeline ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ReportConfig:
    stage_interval_seconds:       float
    accelerated_interval_seconds: float
    final_pause_seconds:          float
    timeout_seconds:              float
    max_attempts:                 int   # first call + retries


# ─── App-level settings ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class AppConfig:
    force_mock_mode: bool
    db_path:         str
    config_path:     str   # optional JSON question bank; "" → built-in bank
    log_level:       str
    lead_source_tag: str


# ─── Master settings object ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    openai:   AzureOpenAIConfig
    autosave: AutosaveConfig
    report:   ReportConfig
    app:      AppConfig

    @property
    def live_mode(self) -> bool:
        """Automatically True when Azure OpenAI creds are real and FORCE_MOCK_MODE is false."""
        return self.openai.is_configured and not self.app.force_mock_mode

    def status_summary(self) -> dict[str, str]:
        """Return a dict of service → status badge for operator output."""
        def badge(ok: bool) -> str:
            return "🟢 Live" if ok else "⚪ Not configured"

        return {
            "Azure OpenAI":       badge(self.openai.is_configured),
            "Report generation":  "🟢 Live" if self.live_mode else "🟡 Mock",
            "Session database":   self.app.db_path,
        }


def get_settings() -> Settings:
    """Load all configuration from environment variables."""
    _str   = lambda k, d="": os.getenv(k, d).strip()
    _int   = lambda k, d=0: int(os.getenv(k, str(d)) or d)
    _float = lambda k, d=0.0: float(os.getenv(k, str(d)) or d)
    _bool  = lambda k, d=False: os.getenv(k, str(d)).lower() in ("1", "true", "yes")

    return Settings(
        openai=AzureOpenAIConfig(
            endpoint    = _str("AZURE_OPENAI_ENDPOINT").rstrip("/"),
            api_key     = _str("AZURE_OPENAI_API_KEY"),
            deployment  = _str("AZURE_OPENAI_DEPLOYMENT", "gpt-4o"),
            api_version = _str("AZURE_OPENAI_API_VERSION", "2024-12-01-preview"),
        ),
        autosave=AutosaveConfig(
            debounce_seconds = _float("AUTOSAVE_DEBOUNCE_SECONDS", 1.5),
            max_attempts     = _int("AUTOSAVE_MAX_ATTEMPTS", 3),
            backoff_seconds  = _float("AUTOSAVE_BACKOFF_SECONDS", 0.5),
        ),
        report=ReportConfig(
            stage_interval_seconds       = _float("REPORT_STAGE_INTERVAL_SECONDS", 2.0),
            accelerated_interval_seconds = _float("REPORT_ACCELERATED_INTERVAL_SECONDS", 0.4),
            final_pause_seconds          = _float("REPORT_FINAL_PAUSE_SECONDS", 1.5),
            timeout_seconds              = _float("REPORT_TIMEOUT_SECONDS", 30.0),
            max_attempts                 = _int("REPORT_MAX_ATTEMPTS", 2),
        ),
        app=AppConfig(
            force_mock_mode = _bool("FORCE_MOCK_MODE", False),
            db_path         = _str("ASSESSMENT_DB_PATH", "career_readiness.db"),
            config_path     = _str("ASSESSMENT_CONFIG_PATH"),
            log_level       = _str("LOG_LEVEL", "INFO").upper(),
            lead_source_tag = _str("LEAD_SOURCE_TAG", "assessment"),
        ),
    )


def configure_logging(level: str | None = None) -> None:
    """Apply the process-wide logging format; LOG_LEVEL is used when *level* is omitted."""
    chosen = (level or get_settings().app.log_level).upper()
    logging.basicConfig(level=getattr(logging, chosen, logging.INFO), format=LOG_FORMAT)
