"""
Newsletter Repository - CRUD operations for newsletters and their recipients.

The only writer of the newsletters and newsletter_recipients tables.
Artifact bytes and markup are stored as opaque payloads.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from newsletterai.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from newsletterai.newsletters.models import (
    Artifact,
    Newsletter,
    NewsletterStatus,
    NewsletterSummary,
    utc_now,
)
from newsletterai.observability.logging import get_logger

logger = get_logger(__name__)

_SUMMARY_COLUMNS = """
    n.id, n.title, n.category, n.status, n.created_at, n.updated_at,
    n.artifact_data IS NOT NULL AS has_artifact,
    (SELECT COUNT(*) FROM newsletter_recipients r WHERE r.newsletter_id = n.id)
        AS recipient_count
"""


def _load_recipients(conn, newsletter_id: str) -> list[str]:
    rows = conn.execute(
        "SELECT user_id FROM newsletter_recipients WHERE newsletter_id = ?",
        (newsletter_id,),
    ).fetchall()
    return [row["user_id"] for row in rows]


class NewsletterRepository:
    """
    Repository for Newsletter CRUD operations.

    All methods use connection pooling and proper transaction handling.
    """

    @staticmethod
    @retry_on_db_lock()
    def create_generated(
        title: str,
        category: str,
        article_refs: list[str],
        markup: str,
        artifact: Artifact,
        content_key: str | None = None,
    ) -> Newsletter:
        """
        Persist the result of a successful generation.

        Only called once markup has been validated and the artifact rendered;
        the record starts in not_sent with no recipients.

        Returns:
            Created Newsletter with generated id

        Side Effects:
            - Inserts row into newsletters table
            - Commits transaction
        """
        now = utc_now()
        newsletter = Newsletter(
            id=str(uuid.uuid4()),
            title=title,
            category=category,
            status=NewsletterStatus.NOT_SENT,
            article_refs=article_refs,
            artifact=artifact,
            markup=markup,
            content_key=content_key,
            created_at=now,
            updated_at=now,
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO newsletters (
                    id, title, category, status, article_refs,
                    artifact_data, artifact_media_type, markup, content_key,
                    created_at, updated_at
                ) VALUES (
                    :id, :title, :category, :status, :article_refs,
                    :artifact_data, :artifact_media_type, :markup, :content_key,
                    :created_at, :updated_at
                )
                """,
                newsletter.to_db_dict(),
            )

        logger.info(
            "Created newsletter %s (%s, %d articles, %d bytes)",
            newsletter.id,
            category,
            len(article_refs),
            artifact.size,
        )
        return newsletter

    @staticmethod
    def get_by_id(newsletter_id: str, include_payload: bool = True) -> Newsletter | None:
        """
        Get a newsletter by ID, with its recipient set.

        Returns:
            Newsletter if found, None otherwise
        """
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM newsletters WHERE id = ?",
                (newsletter_id,),
            ).fetchone()
            if not row:
                return None
            recipients = _load_recipients(conn, newsletter_id)

        return Newsletter.from_db_row(dict(row), recipients, include_payload=include_payload)

    @staticmethod
    def list_by_categories(
        categories: Iterable[str], limit: int | None = None
    ) -> list[NewsletterSummary]:
        """
        Newsletters in any of the given categories, newest first.

        Returns:
            Summaries (empty list when no categories are given)
        """
        categories = list(dict.fromkeys(categories))
        if not categories:
            return []

        placeholders = ",".join("?" for _ in categories)
        query = f"""
            SELECT {_SUMMARY_COLUMNS}
            FROM newsletters n
            WHERE n.category IN ({placeholders})
            ORDER BY n.created_at DESC, n.id
        """
        params: list = list(categories)
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        return [NewsletterSummary.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def find_by_content_key(content_key: str) -> list[NewsletterSummary]:
        """All newsletters generated from the same content, newest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS}
                FROM newsletters n
                WHERE n.content_key = ?
                ORDER BY n.created_at DESC
                """,
                (content_key,),
            ).fetchall()

        return [NewsletterSummary.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def update_status(newsletter_id: str, status: NewsletterStatus) -> bool:
        """
        Set status unconditionally.

        Returns:
            True if a row was updated, False if the newsletter doesn't exist
        """
        with db_transaction() as conn:
            cursor = conn.execute(
                "UPDATE newsletters SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, utc_now().isoformat(), newsletter_id),
            )
            updated = cursor.rowcount > 0

        if updated:
            logger.info("Newsletter %s status -> %s", newsletter_id, status.value)
        return updated

    @staticmethod
    @retry_on_db_lock()
    def record_distribution(
        newsletter_id: str, status: NewsletterStatus, user_ids: Iterable[str]
    ) -> bool:
        """
        Apply the outcome of a send in one transaction: new status plus the
        union of the existing and given recipients.

        Returns:
            True if the newsletter exists and was updated
        """
        now = utc_now().isoformat()
        unique_ids = list(dict.fromkeys(user_ids))

        with db_transaction() as conn:
            cursor = conn.execute(
                "UPDATE newsletters SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, now, newsletter_id),
            )
            if cursor.rowcount == 0:
                return False

            conn.executemany(
                """
                INSERT OR IGNORE INTO newsletter_recipients (newsletter_id, user_id, added_at)
                VALUES (?, ?, ?)
                """,
                [(newsletter_id, user_id, now) for user_id in unique_ids],
            )

        logger.info(
            "Newsletter %s status -> %s, merged %d recipient(s)",
            newsletter_id,
            status.value,
            len(unique_ids),
        )
        return True

    @staticmethod
    @retry_on_db_lock()
    def delete(newsletter_id: str) -> bool:
        """
        Delete a newsletter (recipients cascade).

        Returns:
            True if a row was deleted
        """
        with db_transaction() as conn:
            cursor = conn.execute("DELETE FROM newsletters WHERE id = ?", (newsletter_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Deleted newsletter %s", newsletter_id)
        return deleted
