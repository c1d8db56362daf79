"""Centralized configuration for the NewsLetterAI backend.

Re-exports everything from newsletterai.infrastructure.settings, then adds
typed constants for database, generation, rendering, delivery and API
settings.  Environment variable overrides use safe defaults so the app
starts without extra env configuration.
"""

from __future__ import annotations

import os

from newsletterai.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("NEWSLETTERAI_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("NEWSLETTERAI_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("NEWSLETTERAI_DB_CONNECT_TIMEOUT", "30.0"))
DB_TEMP_CONN_MAX: int = int(os.getenv("NEWSLETTERAI_DB_TEMP_CONN_MAX", "10"))
DB_RETRY_MAX: int = int(os.getenv("NEWSLETTERAI_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("NEWSLETTERAI_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("NEWSLETTERAI_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("NEWSLETTERAI_DB_RETRY_JITTER", "0.1"))

# --- Generation (LLM) ---
LLM_TIMEOUT_SECONDS: float = float(os.getenv("NEWSLETTERAI_LLM_TIMEOUT", "120"))
CONTENT_MIN_CHARS: int = 100
CONTENT_DOCUMENT_MARKER: str = "<!doctype html"

# --- Rendering ---
RENDER_TIMEOUT_SECONDS: float = float(os.getenv("NEWSLETTERAI_RENDER_TIMEOUT", "60"))
RENDER_MAX_CONCURRENCY: int = int(os.getenv("NEWSLETTERAI_RENDER_MAX_CONCURRENCY", "2"))
RENDER_PAGE_FORMAT: str = "A4"
ARTIFACT_MEDIA_TYPE: str = "application/pdf"

# --- Delivery ---
DELIVERY_TIMEOUT_SECONDS: float = float(os.getenv("NEWSLETTERAI_DELIVERY_TIMEOUT", "30"))
DELIVERY_BATCH_SIZE: int = int(os.getenv("NEWSLETTERAI_DELIVERY_BATCH_SIZE", "100"))

# --- Distribution policy ---
# "override": send forces status to sent from any state
# "guarded": send only permitted from approved (or sent, for re-sends)
SEND_POLICY: str = os.getenv("NEWSLETTERAI_SEND_POLICY", "override").lower()

# --- Notifications ---
GENERATED_ACTION_URL: str = "/dashboard?tab=generated-newsletters"

# --- API ---
API_PREFIX: str = "/api/newsletters"
API_LIST_LIMIT_DEFAULT: int = 100
API_LIST_LIMIT_MAX: int = 500
API_RECIPIENTS_MAX: int = 5000
