"""
Database schema initialization for NewsLetterAI.

Contains the SQL schema and validation logic, kept out of database.py so the
pool module stays small.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from newsletterai.observability.logging import get_logger

logger = get_logger(__name__)


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Safe to run multiple times - uses CREATE TABLE IF NOT EXISTS.

    Side Effects:
    - Creates the parent directory and the database file if needed
    - Creates tables and indexes if they don't exist
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                name TEXT,
                categories TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS categories (
                name TEXT PRIMARY KEY,
                keywords TEXT NOT NULL DEFAULT '[]',
                flyer_image_url TEXT
            );

            CREATE TABLE IF NOT EXISTS newsletters (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                category TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'not_sent',
                article_refs TEXT NOT NULL DEFAULT '[]',
                artifact_data BLOB,
                artifact_media_type TEXT,
                markup TEXT,
                content_key TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                CHECK ((artifact_data IS NULL) = (markup IS NULL))
            );

            CREATE TABLE IF NOT EXISTS newsletter_recipients (
                newsletter_id TEXT NOT NULL
                    REFERENCES newsletters(id) ON DELETE CASCADE,
                user_id TEXT NOT NULL,
                added_at TEXT NOT NULL,
                PRIMARY KEY (newsletter_id, user_id)
            );

            CREATE TABLE IF NOT EXISTS notifications (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                newsletter_id TEXT NOT NULL,
                message TEXT NOT NULL,
                action_url TEXT,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_newsletters_category
            ON newsletters(category, created_at);

            CREATE INDEX IF NOT EXISTS idx_newsletters_content_key
            ON newsletters(content_key);

            CREATE INDEX IF NOT EXISTS idx_notifications_user
            ON notifications(user_id, created_at);
        """)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema initialized at %s", db_path)


REQUIRED_TABLES: dict[str, list[str]] = {
    "users": ["id", "email", "categories"],
    "categories": ["name", "flyer_image_url"],
    "newsletters": [
        "id",
        "title",
        "category",
        "status",
        "article_refs",
        "artifact_data",
        "artifact_media_type",
        "markup",
    ],
    "newsletter_recipients": ["newsletter_id", "user_id"],
    "notifications": ["id", "user_id", "newsletter_id", "message"],
}


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Validate database has expected schema

    Raises:
        ValueError: If tables or columns are missing
    """
    cursor = conn.cursor()
    cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
    existing_tables = {row[0] for row in cursor.fetchall()}

    missing_tables = set(REQUIRED_TABLES) - existing_tables
    if missing_tables:
        raise ValueError(f"Database missing tables: {sorted(missing_tables)}")

    for table, required_cols in REQUIRED_TABLES.items():
        # Identifiers cannot be parameterised; names come from the dict above
        cursor.execute(f"PRAGMA table_info({table})")
        existing_cols = {row[1] for row in cursor.fetchall()}
        missing_cols = set(required_cols) - existing_cols
        if missing_cols:
            raise ValueError(f"Table {table} missing columns: {sorted(missing_cols)}")

    return True
