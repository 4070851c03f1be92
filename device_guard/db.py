"""
SQLite database layer using aiosqlite.

Stores accounts, device bindings, one-time codes and storefront settings.
Tables are created automatically on first connect.

Conflicting writes are serialized by the database itself: unique keys,
``ON CONFLICT`` upserts and conditional deletes. Nothing here holds an
in-process lock.
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from device_guard.config import DB_PATH
from device_guard.errors import StorageError
from device_guard.models import Account, OtpRecord

logger = logging.getLogger(__name__)

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None


async def init_db() -> None:
    """Open the database and create tables if they don't exist."""
    global _db
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")

    await _db.executescript(_SCHEMA)
    await _db.commit()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    if _db is None:
        raise StorageError("Database not initialized", operation="get_db")
    return _db


def _storage_op(func):
    """Re-raise driver errors from a repository function as StorageError.

    Rolls back the open transaction before raising.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except aiosqlite.Error as exc:
            logger.exception("Storage operation %s failed", func.__name__)
            if _db is not None:
                await _db.rollback()
            raise StorageError(
                f"Storage operation {func.__name__} failed",
                operation=func.__name__,
            ) from exc

    return wrapper


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id      TEXT PRIMARY KEY,
    device_limit    INTEGER NOT NULL CHECK (device_limit > 0),
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS account_devices (
    account_id      TEXT NOT NULL,
    device_id       TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    PRIMARY KEY (account_id, device_id),
    FOREIGN KEY (account_id) REFERENCES accounts(account_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS otp_codes (
    account_id      TEXT PRIMARY KEY,   -- one live code per account
    code            TEXT NOT NULL,
    expires_at      TEXT NOT NULL,      -- ISO-8601, UTC
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS settings (
    key             TEXT PRIMARY KEY,
    value           TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_account(row: aiosqlite.Row) -> Account:
    return Account(
        account_id=row["account_id"],
        device_limit=row["device_limit"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_otp(row: aiosqlite.Row) -> OtpRecord:
    return OtpRecord(
        account_id=row["account_id"],
        code=row["code"],
        expires_at=row["expires_at"],
    )


# ══════════════════════════════════════════════════════════════════════════
#                    ACCOUNT REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


@_storage_op
async def get_or_create_account(account_id: str, default_limit: int) -> tuple[Account, bool]:
    """
    Return the account, inserting it with *default_limit* if it is unseen.

    The insert is conditional, so concurrent first sightings converge on a
    single row and an existing limit is never overwritten. The second
    element of the result is True when this call created the row.
    """
    db = get_db()
    now = _now_iso()
    cur = await db.execute(
        """
        INSERT INTO accounts (account_id, device_limit, created_at, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (account_id) DO NOTHING
        """,
        (account_id, default_limit, now, now),
    )
    created = cur.rowcount > 0
    await db.commit()

    async with db.execute(
        "SELECT * FROM accounts WHERE account_id = ?", (account_id,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_account(row), created


@_storage_op
async def get_account(account_id: str) -> Account | None:
    """Fetch a single account by ID."""
    db = get_db()
    async with db.execute(
        "SELECT * FROM accounts WHERE account_id = ?", (account_id,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_account(row) if row else None


@_storage_op
async def set_device_limit(account_id: str, device_limit: int) -> Account:
    """Create or update an account with an explicit device limit."""
    db = get_db()
    now = _now_iso()
    await db.execute(
        """
        INSERT INTO accounts (account_id, device_limit, created_at, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (account_id) DO UPDATE SET
            device_limit = excluded.device_limit,
            updated_at = excluded.updated_at
        """,
        (account_id, device_limit, now, now),
    )
    await db.commit()
    return await get_account(account_id)  # type: ignore[return-value]


# ══════════════════════════════════════════════════════════════════════════
#                    DEVICE REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


@_storage_op
async def list_devices(account_id: str) -> set[str]:
    """Return every device identifier bound to the account."""
    db = get_db()
    async with db.execute(
        "SELECT device_id FROM account_devices WHERE account_id = ?",
        (account_id,),
    ) as cur:
        rows = await cur.fetchall()
    return {r["device_id"] for r in rows}


@_storage_op
async def bind_device(account_id: str, device_id: str) -> bool:
    """
    Bind a device to an account.

    Binding an already-bound pair is a no-op. Returns True if a new row
    was inserted.
    """
    db = get_db()
    cur = await db.execute(
        """
        INSERT INTO account_devices (account_id, device_id, created_at)
        VALUES (?, ?, ?)
        ON CONFLICT (account_id, device_id) DO NOTHING
        """,
        (account_id, device_id, _now_iso()),
    )
    await db.commit()
    return cur.rowcount > 0


# ══════════════════════════════════════════════════════════════════════════
#                    OTP REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


@_storage_op
async def upsert_otp(account_id: str, code: str, expires_at: datetime) -> None:
    """Insert or replace the account's code. Last writer wins."""
    db = get_db()
    await db.execute(
        """
        INSERT INTO otp_codes (account_id, code, expires_at, created_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (account_id) DO UPDATE SET
            code = excluded.code,
            expires_at = excluded.expires_at,
            created_at = excluded.created_at
        """,
        (account_id, code, expires_at.isoformat(), _now_iso()),
    )
    await db.commit()


@_storage_op
async def read_otp(account_id: str) -> OtpRecord | None:
    """Fetch the account's code record, if any."""
    db = get_db()
    async with db.execute(
        "SELECT account_id, code, expires_at FROM otp_codes WHERE account_id = ?",
        (account_id,),
    ) as cur:
        row = await cur.fetchone()
    return _row_to_otp(row) if row else None


@_storage_op
async def delete_otp(account_id: str, code: str | None = None) -> bool:
    """
    Delete the account's code record.

    When *code* is given the delete only matches if that code is still the
    stored one, so of several concurrent callers exactly one gets True.
    """
    db = get_db()
    if code is None:
        cur = await db.execute(
            "DELETE FROM otp_codes WHERE account_id = ?", (account_id,)
        )
    else:
        cur = await db.execute(
            "DELETE FROM otp_codes WHERE account_id = ? AND code = ?",
            (account_id, code),
        )
    await db.commit()
    return cur.rowcount > 0


# ══════════════════════════════════════════════════════════════════════════
#                    SETTINGS REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


@_storage_op
async def get_settings() -> dict[str, str]:
    """Return all stored settings as a key → value mapping."""
    db = get_db()
    async with db.execute("SELECT key, value FROM settings") as cur:
        rows = await cur.fetchall()
    return {r["key"]: r["value"] for r in rows}


@_storage_op
async def put_settings(values: dict[str, str]) -> None:
    """Upsert several settings in one transaction."""
    db = get_db()
    now = _now_iso()
    await db.executemany(
        """
        INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
        ON CONFLICT (key) DO UPDATE SET
            value = excluded.value,
            updated_at = excluded.updated_at
        """,
        [(k, v, now) for k, v in values.items()],
    )
    await db.commit()
