"""Notification model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from newsletterai.newsletters.models import utc_now


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    newsletter_id: str
    message: str
    action_url: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "newsletter_id": self.newsletter_id,
            "message": self.message,
            "action_url": self.action_url,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Notification:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            newsletter_id=row["newsletter_id"],
            message=row["message"],
            action_url=row.get("action_url"),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
