"""
Test suite for the database layer

Covers lock retry, pooling and schema initialisation.
"""

from __future__ import annotations

import sqlite3

import pytest


def test_retry_decorator_success():
    """Test retry decorator with successful operation"""
    from newsletterai.infrastructure.database import retry_on_db_lock

    call_count = [0]

    @retry_on_db_lock(max_retries=3, base_delay=0.01)
    def successful_operation():
        call_count[0] += 1
        return "success"

    assert successful_operation() == "success"
    assert call_count[0] == 1, "Should succeed on first try"


def test_retry_decorator_recovers_from_lock():
    """Test retry decorator recovers from database lock errors"""
    from newsletterai.infrastructure.database import retry_on_db_lock

    call_count = [0]

    @retry_on_db_lock(max_retries=3, base_delay=0.01, max_delay=0.05)
    def flaky_operation():
        call_count[0] += 1
        if call_count[0] < 3:
            raise sqlite3.OperationalError("database is locked")
        return "success"

    assert flaky_operation() == "success"
    assert call_count[0] == 3, "Should retry twice before success"


def test_retry_decorator_fails_after_max_retries():
    """Test retry decorator gives up after max retries"""
    from newsletterai.infrastructure.database import retry_on_db_lock

    call_count = [0]

    @retry_on_db_lock(max_retries=2, base_delay=0.01)
    def always_fails():
        call_count[0] += 1
        raise sqlite3.OperationalError("database is locked")

    with pytest.raises(sqlite3.OperationalError, match="database is locked"):
        always_fails()

    assert call_count[0] == 3, "Should try 3 times (initial + 2 retries)"


def test_retry_decorator_ignores_non_lock_errors():
    """Test retry decorator doesn't retry non-lock errors"""
    from newsletterai.infrastructure.database import retry_on_db_lock

    call_count = [0]

    @retry_on_db_lock(max_retries=3, base_delay=0.01)
    def schema_error():
        call_count[0] += 1
        raise sqlite3.OperationalError("no such table: foo")

    with pytest.raises(sqlite3.OperationalError, match="no such table"):
        schema_error()

    assert call_count[0] == 1, "Should not retry non-lock errors"


def test_init_database_is_idempotent(temp_db):
    """Running init twice keeps the schema valid"""
    from newsletterai.infrastructure.database import init_database, validate_schema

    init_database()
    assert validate_schema() is True


def test_validate_schema_reports_missing_tables(temp_db):
    from newsletterai.infrastructure.database import db_transaction, validate_schema

    with db_transaction() as conn:
        conn.execute("DROP TABLE notifications")

    with pytest.raises(ValueError, match="notifications"):
        validate_schema()


def test_missing_database_file(tmp_path, monkeypatch):
    from newsletterai.infrastructure.database import close_pools, get_db_connection

    monkeypatch.setenv("NEWSLETTERAI_DB_PATH", str(tmp_path / "absent.db"))
    close_pools()

    with pytest.raises(FileNotFoundError):
        with get_db_connection():
            pass


def test_pool_exhaustion_uses_temporary_connection(temp_db, monkeypatch):
    """When the pool is empty a temporary connection is created and closed on return"""
    from newsletterai.infrastructure import database

    monkeypatch.setattr(database, "DB_POOL_TIMEOUT", 0.01)
    pool = database.DatabaseConnectionPool(temp_db, pool_size=1)

    held = pool.get_connection()
    temp = pool.get_connection()
    assert pool.temp_conn_count == 1

    pool.return_connection(temp)
    assert pool.temp_conn_count == 0
    with pytest.raises(sqlite3.ProgrammingError):
        temp.execute("SELECT 1")

    pool.return_connection(held)
    pool.close_all()


def test_closed_pool_refuses_connections(temp_db):
    from newsletterai.infrastructure.database import DatabaseConnectionPool

    pool = DatabaseConnectionPool(temp_db, pool_size=1)
    pool.close_all()

    with pytest.raises(RuntimeError, match="closed"):
        pool.get_connection()
