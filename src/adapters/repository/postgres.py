"""
PostgreSQL repository adapters - Implement the domain persistence protocols.

This module provides the PostgreSQL implementation of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design:
------------------
1. **Single active code**: a partial UNIQUE index on
   verification_codes(address, channel) WHERE consumed_at IS NULL, written
   with INSERT ... ON CONFLICT DO UPDATE, replaces the previous active code
   atomically. Two racing issuances leave exactly one active row.

2. **Single consumption**: consume_code() locks the active row with
   SELECT ... FOR UPDATE; a racing second submission blocks, then sees
   consumed_at set and finds no active row.

3. **Constant-time comparison**: secrets.compare_digest() always runs,
   against a dummy code when no row exists.

Timestamps come from the domain clock rather than NOW(), so expiry is
evaluated against the same instant the domain reasons about.
"""

import logging
import secrets
from datetime import datetime
from pathlib import Path

from psycopg.errors import UniqueViolation
from psycopg_pool import ConnectionPool

from src.domain.exceptions import EmailAlreadyRegistered, UserNotFound, UsernameTaken
from src.domain.models import User
from src.domain.ports import Channel, Purpose, Step, UserType, VerifyResult

logger = logging.getLogger(__name__)

_USER_COLUMNS = (
    "id, name, email, username, phone, country_code, password_hash, "
    "user_type, email_verified, phone_verified, created_at"
)


def _row_to_user(row: tuple) -> User:
    return User(
        id=row[0],
        name=row[1],
        email=row[2],
        username=row[3],
        phone=row[4],
        country_code=row[5],
        password_hash=row[6],
        user_type=UserType(row[7]),
        email_verified=row[8],
        phone_verified=row[9],
        created_at=row[10],
    )


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

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

    def create(self, user: User) -> User:
        sql = f"""
            INSERT INTO users (id, name, email, username, password_hash, user_type)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING {_USER_COLUMNS}
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    sql,
                    (
                        user.id,
                        user.name,
                        user.email,
                        user.username,
                        user.password_hash,
                        user.user_type.value,
                    ),
                )
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation as e:
            # Lost a race against a concurrent registration
            if "username" in str(e):
                raise UsernameTaken() from None
            raise EmailAlreadyRegistered() from None
        return _row_to_user(row)

    def get(self, user_id: str) -> User | None:
        return self._fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s", (user_id,))

    def get_by_email(self, email: str) -> User | None:
        return self._fetch_one(f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s", (email,))

    def get_by_username(self, username: str) -> User | None:
        return self._fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE LOWER(username) = LOWER(%s)", (username,)
        )

    def update_details(
        self, user_id: str, name: str, username: str | None, password_hash: str | None
    ) -> None:
        sql = """
            UPDATE users
            SET name = %s, username = %s, password_hash = %s
            WHERE id = %s AND email_verified = FALSE
        """
        self._execute(sql, (name, username, password_hash, user_id))

    def set_phone(self, user_id: str, phone: str, country_code: str) -> None:
        sql = """
            UPDATE users
            SET phone = %s, country_code = %s, phone_verified = FALSE
            WHERE id = %s
        """
        self._execute(sql, (phone, country_code, user_id))

    def mark_verified(self, user_id: str, step: Step) -> User:
        # Column name comes from a closed enum, never from input
        column = "email_verified" if step == Step.EMAIL else "phone_verified"
        sql = f"UPDATE users SET {column} = TRUE WHERE id = %s RETURNING {_USER_COLUMNS}"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (user_id,))
            row = cursor.fetchone()
            conn.commit()
        if row is None:
            raise UserNotFound()
        return _row_to_user(row)

    def _fetch_one(self, sql: str, params: tuple) -> User | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return _row_to_user(row) if row is not None else None

    def _execute(self, sql: str, params: tuple) -> None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()
            if cursor.rowcount == 0:
                raise UserNotFound()


class PostgresCodeRepository:
    """Implements CodeRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def store_code(
        self,
        address: str,
        channel: Channel,
        purpose: Purpose,
        code: str,
        issued_at: datetime,
        expires_at: datetime,
        user_id: str | None = None,
    ) -> None:
        """
        Upsert the active code for (address, channel).

        The ON CONFLICT target is the partial unique index over unconsumed
        rows, so the previous active code is overwritten in place.
        """
        sql = """
            INSERT INTO verification_codes
                (address, channel, purpose, code, user_id, issued_at, expires_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (address, channel) WHERE consumed_at IS NULL DO UPDATE
            SET purpose = EXCLUDED.purpose,
                code = EXCLUDED.code,
                user_id = EXCLUDED.user_id,
                issued_at = EXCLUDED.issued_at,
                expires_at = EXCLUDED.expires_at,
                attempt_count = 0
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (address, channel.value, purpose.value, code, user_id, issued_at, expires_at),
            )
            conn.commit()

    def consume_code(
        self, address: str, channel: Channel, purpose: Purpose, code: str, now: datetime
    ) -> VerifyResult:
        """
        Verify and consume the active code with row-level locking.

        Returns:
            VerifyResult indicating success or specific failure reason
        """
        select_sql = """
            SELECT id, purpose, code, expires_at
            FROM verification_codes
            WHERE address = %s AND channel = %s AND consumed_at IS NULL
            FOR UPDATE
        """

        consume_sql = """
            UPDATE verification_codes
            SET consumed_at = %s
            WHERE id = %s AND consumed_at IS NULL
        """

        increment_sql = """
            UPDATE verification_codes
            SET attempt_count = attempt_count + 1
            WHERE id = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(select_sql, (address, channel.value))
            row = cursor.fetchone()

            if row is not None and row[1] == purpose.value:
                code_id, stored_code, expires_at = row[0], row[2], row[3]
            else:
                code_id, stored_code, expires_at = None, "0" * len(code), None

            # CRITICAL: Always compare for constant-time behavior
            code_valid = secrets.compare_digest(stored_code.encode(), code.encode())

            if code_id is None:
                conn.commit()
                return VerifyResult.NOT_FOUND

            if now >= expires_at:
                conn.commit()
                return VerifyResult.EXPIRED

            if not code_valid:
                cursor.execute(increment_sql, (code_id,))
                conn.commit()
                return VerifyResult.INVALID_CODE

            cursor.execute(consume_sql, (now, code_id))
            conn.commit()
            return VerifyResult.SUCCESS

    def delete_expired(self, before: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM verification_codes WHERE expires_at <= %s", (before,))
            conn.commit()
            return cursor.rowcount


class PostgresIssuanceLog:
    """Implements IssuanceLog protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def last_issued_at(self, address: str, channel: Channel) -> datetime | None:
        sql = "SELECT issued_at FROM code_issuances WHERE address = %s AND channel = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (address, channel.value))
            row = cursor.fetchone()
        return row[0] if row is not None else None

    def record_issuance(self, address: str, channel: Channel, at: datetime) -> None:
        sql = """
            INSERT INTO code_issuances (address, channel, issued_at)
            VALUES (%s, %s, %s)
            ON CONFLICT (address, channel) DO UPDATE SET issued_at = EXCLUDED.issued_at
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (address, channel.value, at))
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
