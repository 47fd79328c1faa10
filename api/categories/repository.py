"""
Category persistence (raw SQL).
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import asyncpg

from core import db

_COLUMNS = "id, name, description, icon, project_count, featured, created_at, updated_at"

# API field -> column. Only these may be written through update_category().
UPDATABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "icon": "icon",
    "featured": "featured",
}


async def list_categories(*, featured_only: bool = False) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_COLUMNS}
        FROM categories
        WHERE ($1::boolean = false OR featured = true)
        ORDER BY name ASC
        """,
        featured_only,
    )


async def get_category(
    category_id: UUID,
    *,
    for_update: bool = False,
    conn: asyncpg.Connection | None = None,
) -> dict[str, Any] | None:
    lock = "FOR UPDATE" if for_update else ""
    return await db.fetch_one(
        f"""
        SELECT {_COLUMNS}
        FROM categories
        WHERE id = $1
        {lock}
        """,
        category_id,
        conn=conn,
    )


async def get_category_by_name(name: str, *, conn: asyncpg.Connection | None = None) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {_COLUMNS}
        FROM categories
        WHERE name = $1
        """,
        name,
        conn=conn,
    )


async def get_categories_by_names(
    names: list[str],
    *,
    conn: asyncpg.Connection | None = None,
) -> list[dict[str, Any]]:
    if not names:
        return []
    return await db.fetch_all(
        f"""
        SELECT {_COLUMNS}
        FROM categories
        WHERE name = ANY($1::text[])
        """,
        names,
        conn=conn,
    )


async def insert_category(
    *,
    name: str,
    description: str,
    icon: str,
    featured: bool = False,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO categories (name, description, icon, featured)
        VALUES ($1, $2, $3, $4)
        RETURNING {_COLUMNS}
        """,
        name,
        description,
        icon,
        featured,
    )
    if row is None:
        raise RuntimeError("Failed to insert category.")
    return row


async def update_category(category_id: UUID, fields: dict[str, Any]) -> dict[str, Any] | None:
    values = {UPDATABLE_FIELDS[k]: v for (k, v) in fields.items() if k in UPDATABLE_FIELDS}
    if not values:
        return await get_category(category_id)

    assignments, args = db.set_clause(values, start=2)
    return await db.fetch_one(
        f"""
        UPDATE categories
        SET {assignments},
            updated_at = now()
        WHERE id = $1
        RETURNING {_COLUMNS}
        """,
        category_id,
        *args,
    )


async def count_category_projects(category_id: UUID, *, conn: asyncpg.Connection | None = None) -> int:
    value = await db.fetch_value(
        """
        SELECT count(*)
        FROM project_categories
        WHERE category_id = $1
        """,
        category_id,
        conn=conn,
    )
    return int(value or 0)


async def delete_category(category_id: UUID, *, conn: asyncpg.Connection | None = None) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM categories
        WHERE id = $1
        RETURNING id
        """,
        category_id,
        conn=conn,
    )
    return row is not None


async def lock_categories(category_ids: list[UUID], *, conn: asyncpg.Connection) -> None:
    """
    Row-lock categories (in id order) before their join rows change.

    Holding these locks until commit serialises membership edits per
    category, so the count in `refresh_project_counts` runs on a snapshot
    taken after every earlier writer committed.
    """
    if not category_ids:
        return
    await db.fetch_all(
        """
        SELECT id
        FROM categories
        WHERE id = ANY($1::uuid[])
        ORDER BY id
        FOR UPDATE
        """,
        list(category_ids),
        conn=conn,
    )


async def refresh_project_counts(category_ids: list[UUID], *, conn: asyncpg.Connection | None = None) -> None:
    """
    Recompute `project_count` from the live join rows.

    Callers must hold `lock_categories` on the same ids first; the count
    subquery otherwise keeps a snapshot from before any row-lock wait.
    """
    if not category_ids:
        return
    await db.execute(
        """
        UPDATE categories c
        SET project_count = (
              SELECT count(*)
              FROM project_categories pc
              WHERE pc.category_id = c.id
            ),
            updated_at = now()
        WHERE c.id = ANY($1::uuid[])
        """,
        list(category_ids),
        conn=conn,
    )


async def count_categories() -> int:
    return int(await db.fetch_value("SELECT count(*) FROM categories") or 0)


async def top_categories(*, limit: int = 5) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_COLUMNS}
        FROM categories
        ORDER BY project_count DESC, name ASC
        LIMIT $1
        """,
        limit,
    )
