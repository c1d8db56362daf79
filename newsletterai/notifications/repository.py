"""
Notification Repository.

Batch inserts are unordered and keep going past individual failures; the
caller gets a count of what was written and what wasn't.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from newsletterai.infrastructure.database import get_db_connection
from newsletterai.notifications.models import Notification
from newsletterai.observability.logging import get_logger

logger = get_logger(__name__)

_INSERT_SQL = """
    INSERT INTO notifications (id, user_id, newsletter_id, message, action_url, created_at)
    VALUES (:id, :user_id, :newsletter_id, :message, :action_url, :created_at)
"""


@dataclass
class BatchWriteResult:
    written: int = 0
    failed: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0


class NotificationRepository:
    @staticmethod
    def insert_many(notifications: list[Notification]) -> BatchWriteResult:
        """
        Write each notification independently (autocommit per row).

        Row-level sqlite errors are counted and logged, not raised. Failing to
        get a connection at all still raises.
        """
        result = BatchWriteResult()
        if not notifications:
            return result

        with get_db_connection() as conn:
            for notification in notifications:
                try:
                    conn.execute(_INSERT_SQL, notification.to_db_dict())
                    conn.commit()
                    result.written += 1
                except sqlite3.Error as e:
                    conn.rollback()
                    result.failed += 1
                    logger.warning(
                        "Failed to write notification for user %s: %s",
                        notification.user_id,
                        e,
                    )

        return result

    @staticmethod
    def list_for_user(user_id: str, limit: int = 50) -> list[Notification]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM notifications
                WHERE user_id = ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()

        return [Notification.from_db_row(dict(row)) for row in rows]
