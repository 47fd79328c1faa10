"""
Admin user persistence.
"""

from __future__ import annotations

from uuid import UUID

from core import db


def normalize_username(username: str) -> str:
    return (username or "").strip().lower()


async def create_user(*, username: str, password_hash: str, role: str = "admin") -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO users (username, password_hash, role)
        VALUES ($1, $2, $3)
        RETURNING id, username, role, created_at, updated_at
        """,
        normalize_username(username),
        password_hash,
        role,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def get_user_by_username(username: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, username, password_hash, role, created_at, updated_at
        FROM users
        WHERE lower(username) = lower($1)
        """,
        normalize_username(username),
    )


async def get_user_by_id(user_id: UUID) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, username, password_hash, role, created_at, updated_at
        FROM users
        WHERE id = $1
        """,
        user_id,
    )


async def set_password_hash(user_id: UUID, password_hash: str) -> None:
    await db.execute(
        """
        UPDATE users
        SET password_hash = $2,
            updated_at = now()
        WHERE id = $1
        """,
        user_id,
        password_hash,
    )
