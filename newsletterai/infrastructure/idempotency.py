"""
Deterministic content keys for generated newsletters.

The key (sha256 over title, category and the ordered article refs) is stored
on every generated record. Nothing enforces uniqueness: two identical
generation requests legitimately produce two records. Callers that want
de-duplication look the key up before generating.
"""

from __future__ import annotations

from collections.abc import Iterable
from hashlib import sha256

from newsletterai.observability.telemetry import counter, log_event


def generation_key(title: str, category: str, article_refs: Iterable[str]) -> str:
    """
    Compute the content key. Raises ValueError if title or category is missing.
    """
    missing = [name for name, val in (("title", title), ("category", category)) if not val]
    if missing:
        counter("idempotency.missing_fields")
        log_event("idempotency.drop", missing_fields=missing)
        raise ValueError(f"generation key requires: {', '.join(missing)}")

    hasher = sha256()
    hasher.update(title.strip().encode("utf-8"))
    hasher.update(b"\x1f")
    hasher.update(category.strip().encode("utf-8"))
    for ref in article_refs:
        hasher.update(b"\x1e")
        hasher.update(str(ref).encode("utf-8"))
    return hasher.hexdigest()
