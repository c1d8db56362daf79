"""
User and Category repositories.

Read paths are what the newsletter pipeline needs (caller lookup, recipient
resolution, flyer lookup); the write paths exist for seeding and tests.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from newsletterai.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from newsletterai.observability.logging import get_logger
from newsletterai.users.models import Category, User

logger = get_logger(__name__)


class UserRepository:
    @staticmethod
    @retry_on_db_lock()
    def save(user: User) -> User:
        """Insert or replace a user record."""
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO users (id, email, name, categories, created_at)
                VALUES (:id, :email, :name, :categories, :created_at)
                """,
                user.to_db_dict(),
            )
        return user

    @staticmethod
    def get_by_id(user_id: str) -> User | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

        return User.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_many(user_ids: Iterable[str]) -> list[User]:
        """
        Users for the given ids. Unknown ids are skipped.

        Returns:
            Users in the order of first appearance in ``user_ids``
        """
        unique_ids = list(dict.fromkeys(user_ids))
        if not unique_ids:
            return []

        placeholders = ",".join("?" for _ in unique_ids)
        with get_db_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM users WHERE id IN ({placeholders})",
                unique_ids,
            ).fetchall()

        by_id = {row["id"]: User.from_db_row(dict(row)) for row in rows}
        return [by_id[user_id] for user_id in unique_ids if user_id in by_id]


class CategoryRepository:
    @staticmethod
    @retry_on_db_lock()
    def upsert(category: Category) -> Category:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO categories (name, keywords, flyer_image_url)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    keywords = excluded.keywords,
                    flyer_image_url = excluded.flyer_image_url
                """,
                (category.name, json.dumps(category.keywords), category.flyer_image_url),
            )
        return category

    @staticmethod
    def get_by_name(name: str) -> Category | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM categories WHERE name = ?", (name,)).fetchone()

        return Category.from_db_row(dict(row)) if row else None
