"""Health check endpoint for the NewsLetterAI API.

Liveness probe plus provider readiness (presence checks only, no API calls).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from newsletterai.config import API_PREFIX, APP_VERSION, SEND_POLICY
from newsletterai.distribution.mailer import get_mailer
from newsletterai.llm import gemini
from newsletterai.observability.telemetry import get_counter, get_latency_stats

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get(f"{API_PREFIX}/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "NewsLetterAI API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "generation": {"configured": gemini.is_configured()},
        "delivery": {"configured": get_mailer().is_configured},
        "send_policy": SEND_POLICY,
        "pipeline": {
            "generation_ms": get_latency_stats("generation"),
            "render_ms": get_latency_stats("render"),
            "generated": get_counter("generation.succeeded"),
            "sent": get_counter("distribution.succeeded"),
        },
    }
