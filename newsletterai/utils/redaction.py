"""
Logging helpers for keeping recipient addresses out of logs.

Provides:
- redact(): Hash sensitive strings for correlation without exposure
- redact_email(): Keep the domain, hash the local part
"""

from __future__ import annotations

from hashlib import sha256


def redact(value: str | None) -> str:
    """
    Return a stable hash representation of a sensitive string.
    """
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def redact_email(address: str | None) -> str:
    """
    Redact the local part of an email address.

    Example:
        "jane.doe@example.com" -> "hash:1a2b3c4d5e6f@example.com"
    """
    if not address or "@" not in address:
        return redact(address)
    local, _, domain = address.rpartition("@")
    return f"{redact(local)}@{domain}"
