"""
Newsletter domain models.

A Newsletter is created once by the generation pipeline, then only its
status and recipient set change (distribution workflow) until an admin
deletes it.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


class NewsletterStatus(str, Enum):
    """Approval/send state of a newsletter."""

    NOT_SENT = "not_sent"  # Initial state after generation
    PENDING = "pending"  # Awaiting approval
    APPROVED = "approved"  # Cleared for distribution
    SENT = "sent"  # Delivered to at least one recipient list
    DECLINED = "declined"  # Terminal

    @classmethod
    def _missing_(cls, value: object) -> NewsletterStatus | None:
        # Older clients send the display label ("Not Sent")
        if isinstance(value, str):
            normalized = value.strip().lower().replace(" ", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class ArticleSummary(BaseModel):
    """A curated article as supplied by the client for generation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str | None = Field(default=None, alias="_id")
    title: str
    summary: str = ""
    source_name: str = Field(default="", alias="sourceName")
    category: str | None = None
    original_url: str = Field(default="", alias="originalUrl")
    image_url: str | None = Field(default=None, alias="imageUrl")

    @field_validator("summary", "source_name", "original_url", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("article title cannot be empty")
        return v.strip()

    def to_prompt_dict(self) -> dict[str, Any]:
        """Field names the layout rules refer to."""
        return {
            "title": self.title,
            "summary": self.summary,
            "source": self.source_name,
            "category": self.category,
            "originalUrl": self.original_url,
            "imageUrl": self.image_url,
        }


class Artifact(BaseModel):
    """Rendered fixed-page document (opaque to the store)."""

    data: bytes
    media_type: str = "application/pdf"

    @property
    def size(self) -> int:
        return len(self.data)


class Newsletter(BaseModel):
    """A generated newsletter and its distribution state."""

    model_config = ConfigDict(frozen=False)

    id: str = Field(..., description="Unique identifier (UUID)")
    title: str
    category: str
    status: NewsletterStatus = Field(default=NewsletterStatus.NOT_SENT)
    article_refs: list[str] = Field(default_factory=list)
    recipients: list[str] = Field(default_factory=list, description="Deduplicated user ids")
    artifact: Artifact | None = None
    markup: str | None = None
    content_key: str | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("recipients")
    @classmethod
    def dedupe_recipients(cls, v: list[str]) -> list[str]:
        return sorted(set(v))

    @model_validator(mode="after")
    def artifact_and_markup_together(self) -> Newsletter:
        if (self.artifact is None) != (self.markup is None):
            raise ValueError("artifact and markup must both be present or both absent")
        return self

    @property
    def has_artifact(self) -> bool:
        return self.artifact is not None and self.artifact.size > 0

    @property
    def filename(self) -> str:
        """Download filename: title with whitespace replaced by underscores."""
        return re.sub(r"\s", "_", self.title) + ".pdf"

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for the newsletters table (recipients live elsewhere)."""
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "status": self.status.value,
            "article_refs": json.dumps(self.article_refs),
            "artifact_data": self.artifact.data if self.artifact else None,
            "artifact_media_type": self.artifact.media_type if self.artifact else None,
            "markup": self.markup,
            "content_key": self.content_key,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(
        cls,
        row: dict[str, Any],
        recipients: list[str] | None = None,
        include_payload: bool = True,
    ) -> Newsletter:
        """Create Newsletter from a database row.

        With ``include_payload=False`` the artifact and markup are left out
        (listing queries don't select them).
        """
        artifact = None
        markup = None
        if include_payload and row.get("artifact_data") is not None:
            artifact = Artifact(
                data=bytes(row["artifact_data"]),
                media_type=row.get("artifact_media_type") or "application/pdf",
            )
            markup = row.get("markup")

        return cls(
            id=row["id"],
            title=row["title"],
            category=row["category"],
            status=NewsletterStatus(row["status"]),
            article_refs=json.loads(row["article_refs"]) if row.get("article_refs") else [],
            recipients=recipients or [],
            artifact=artifact,
            markup=markup,
            content_key=row.get("content_key"),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class NewsletterSummary(BaseModel):
    """Listing projection of a Newsletter (no artifact bytes, no markup)."""

    id: str
    title: str
    category: str
    status: NewsletterStatus
    recipient_count: int = 0
    has_artifact: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> NewsletterSummary:
        return cls(
            id=row["id"],
            title=row["title"],
            category=row["category"],
            status=NewsletterStatus(row["status"]),
            recipient_count=row.get("recipient_count") or 0,
            has_artifact=bool(row.get("has_artifact")),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SendOutcome(BaseModel):
    """Result of a completed distribution."""

    newsletter: Newsletter
    requested: int
    delivered: int
    delivery_skipped: bool = False
    notifications_degraded: bool = False
