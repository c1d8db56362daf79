"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

# Project paths
NEWSLETTERAI_ROOT = Path(__file__).parent.parent

# Environment
ENV = os.getenv("NEWSLETTERAI_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("NEWSLETTERAI_LOG_LEVEL", "INFO")

# Google Cloud / Gemini
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", os.getenv("GOOGLE_API_KEY"))
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash-latest")
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "8192"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "1.0"))

# Email delivery (Resend)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
FROM_EMAIL = os.getenv("NEWSLETTERAI_FROM_EMAIL", "newsletter@example.com")
FROM_NAME = os.getenv("NEWSLETTERAI_FROM_NAME", "NewsLetterAI")

# Headless Chrome used by the renderer (empty = selenium manager picks one)
CHROME_BINARY = os.getenv("NEWSLETTERAI_CHROME_BINARY", "")

# Admin API key for the newsletter endpoints
ADMIN_API_KEY = os.getenv("NEWSLETTERAI_ADMIN_API_KEY")

# Data
DEFAULT_DB_PATH = NEWSLETTERAI_ROOT / "data" / "newsletterai.db"


def is_production() -> bool:
    """Check if running in production"""
    return ENV == "production"


def is_development() -> bool:
    """Check if running in development"""
    return ENV == "development"
