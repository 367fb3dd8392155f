"""
PostgreSQL repository adapter - Implements MemberStore and NotificationOutbox.

This module provides the PostgreSQL implementation of the domain's
storage ports using psycopg3 with raw SQL.

Uniqueness Design:
------------------
Email and member identifier uniqueness are enforced by the database, never
by application-level locking, so concurrent registrations cannot both win:

1. **members_email_key**: UNIQUE constraint on the normalized email.

2. **issued_member_ids_pkey**: every identifier ever handed out is recorded
   in issued_member_ids in the same transaction as the member row, so an
   identifier is never reused even if the member row disappears.

3. **members_member_id_key**: UNIQUE constraint on members.member_id.

Driver errors are translated into domain exceptions; a violated constraint
name tells DuplicateKey which field collided.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

import psycopg
from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import DuplicateKey, Unavailable, ValidationError
from src.domain.models import MemberRecord, NotificationKind, OutboxEntry, StoredMember

logger = logging.getLogger(__name__)

_DUPLICATE_FIELDS = {
    "members_email_key": "email",
    "members_member_id_key": "member_id",
    "issued_member_ids_pkey": "member_id",
}

_MEMBER_COLUMNS = """
    member_id, full_name, email, phone, address, date_of_birth,
    membership_type, skills, interests, registered_at
"""


def create_pool(
    database_url: str, min_size: int, max_size: int, timeout_seconds: float
) -> ConnectionPool:
    """
    Create a connection pool with bounded checkout and statement timeouts.

    Both timeouts surface as Unavailable from the repository methods.
    """
    return ConnectionPool(
        conninfo=database_url,
        min_size=min_size,
        max_size=max_size,
        timeout=timeout_seconds,
        kwargs={"options": f"-c statement_timeout={int(timeout_seconds * 1000)}"},
        open=True,
    )


@contextmanager
def _translate_errors(record: MemberRecord | None = None, member_id: str = "") -> Iterator[None]:
    """Map psycopg exceptions onto the domain error taxonomy."""
    try:
        yield
    except errors.UniqueViolation as e:
        constraint = e.diag.constraint_name or ""
        field = _DUPLICATE_FIELDS.get(constraint, "email")
        value = member_id if field == "member_id" else (record.email if record else "")
        raise DuplicateKey(field, value) from e
    except errors.NotNullViolation as e:
        raise ValidationError(e.diag.column_name or "unknown") from e
    except errors.CheckViolation as e:
        constraint = e.diag.constraint_name or ""
        field = constraint.removeprefix("members_").removesuffix("_check") or "unknown"
        raise ValidationError(field) from e
    except psycopg.DataError as e:
        raise ValidationError("record", f"Malformed member data: {e}") from e
    except psycopg.OperationalError as e:
        # Covers connection failures, PoolTimeout and QueryCanceled (statement_timeout)
        raise Unavailable("storage", f"Storage unavailable: {e}") from e


def _row_to_member(row: dict) -> StoredMember:
    return StoredMember(
        full_name=row["full_name"],
        email=row["email"],
        phone=row["phone"],
        address=row["address"],
        date_of_birth=row["date_of_birth"],
        membership_type=row["membership_type"],
        skills=row["skills"],
        interests=tuple(row["interests"] or ()),
        member_id=row["member_id"],
        registered_at=row["registered_at"],
    )


def _row_to_entry(row: dict) -> OutboxEntry:
    return OutboxEntry(
        id=row["id"],
        member_id=row["member_id"],
        kind=NotificationKind(row["kind"]),
        attempts=row["attempts"],
        last_error=row["last_error"],
    )


class PostgresMemberStore:
    """
    Implements MemberStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create(
        self,
        record: MemberRecord,
        member_id: str,
        notifications: Sequence[NotificationKind] = (),
    ) -> StoredMember:
        """
        Atomically insert a member, its issued identifier and outbox rows.

        All statements run in one transaction; any constraint violation
        rolls back the whole insert.

        Args:
            record: Normalized applicant data
            member_id: Generated member identifier
            notifications: Notification kinds to enqueue for delivery

        Returns:
            StoredMember with the database-assigned registered_at
        """
        issue_sql = "INSERT INTO issued_member_ids (member_id) VALUES (%s)"

        insert_sql = f"""
            INSERT INTO members (
                member_id, full_name, email, phone, address, date_of_birth,
                membership_type, skills, interests
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s::text[])
            RETURNING {_MEMBER_COLUMNS}
        """

        outbox_sql = """
            INSERT INTO notification_outbox (member_id, kind)
            VALUES (%s, %s)
        """

        with _translate_errors(record, member_id):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(issue_sql, (member_id,))
                cursor.execute(
                    insert_sql,
                    (
                        member_id,
                        record.full_name,
                        record.email,
                        record.phone,
                        record.address,
                        record.date_of_birth,
                        record.membership_type,
                        record.skills,
                        list(record.interests),
                    ),
                )
                row = cursor.fetchone()
                for kind in notifications:
                    cursor.execute(outbox_sql, (member_id, NotificationKind(kind).value))
                conn.commit()

        return _row_to_member(row)

    def find_by_member_id(self, member_id: str) -> StoredMember | None:
        """
        Look up a member by identifier.

        Returns:
            StoredMember, or None when no row matches
        """
        sql = f"SELECT {_MEMBER_COLUMNS} FROM members WHERE member_id = %s"

        with _translate_errors(member_id=member_id):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (member_id,))
                row = cursor.fetchone()

        if row is None:
            return None
        return _row_to_member(row)


class PostgresNotificationOutbox:
    """Implements NotificationOutbox protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def pending(self, limit: int, max_attempts: int) -> list[OutboxEntry]:
        sql = """
            SELECT id, member_id, kind, attempts, last_error
            FROM notification_outbox
            WHERE delivered_at IS NULL AND attempts < %s
            ORDER BY id
            LIMIT %s
        """

        with _translate_errors():
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (max_attempts, limit))
                rows = cursor.fetchall()

        return [_row_to_entry(row) for row in rows]

    def claim(self, limit: int, max_attempts: int, lease_seconds: float) -> list[OutboxEntry]:
        """
        Lease up to `limit` deliverable entries.

        SKIP LOCKED keeps concurrent relays from selecting the same rows;
        claimed_until keeps them from re-selecting rows another relay is
        still sending after that relay's transaction committed.
        """
        sql = """
            UPDATE notification_outbox
            SET claimed_until = NOW() + make_interval(secs => %s)
            WHERE id IN (
                SELECT id
                FROM notification_outbox
                WHERE delivered_at IS NULL
                  AND attempts < %s
                  AND (claimed_until IS NULL OR claimed_until < NOW())
                ORDER BY id
                LIMIT %s
                FOR UPDATE SKIP LOCKED
            )
            RETURNING id, member_id, kind, attempts, last_error
        """

        with _translate_errors():
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (lease_seconds, max_attempts, limit))
                rows = cursor.fetchall()
                conn.commit()

        return sorted((_row_to_entry(row) for row in rows), key=lambda entry: entry.id)

    def mark_delivered(self, entry_id: int) -> None:
        sql = "UPDATE notification_outbox SET delivered_at = NOW() WHERE id = %s"
        with _translate_errors():
            with self._pool.connection() as conn:
                conn.execute(sql, (entry_id,))
                conn.commit()

    def mark_failed(self, entry_id: int, error: str) -> None:
        sql = """
            UPDATE notification_outbox
            SET attempts = attempts + 1, last_error = %s, claimed_until = NULL
            WHERE id = %s
        """
        with _translate_errors():
            with self._pool.connection() as conn:
                conn.execute(sql, (error, entry_id))
                conn.commit()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
