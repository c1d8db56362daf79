"""
User and Category models.

Both are owned elsewhere in the product (account and category management);
the newsletter pipeline only reads them.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from newsletterai.newsletters.models import utc_now


class User(BaseModel):
    id: str
    email: str
    name: str | None = None
    categories: list[str] = Field(default_factory=list, description="Managed category names")
    created_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "categories": json.dumps(self.categories),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> User:
        return cls(
            id=row["id"],
            email=row["email"],
            name=row.get("name"),
            categories=json.loads(row["categories"]) if row.get("categories") else [],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class Category(BaseModel):
    name: str
    keywords: list[str] = Field(default_factory=list)
    flyer_image_url: str | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Category:
        return cls(
            name=row["name"],
            keywords=json.loads(row["keywords"]) if row.get("keywords") else [],
            flyer_image_url=row.get("flyer_image_url"),
        )
