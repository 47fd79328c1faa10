"""
Video persistence (raw SQL).

Videos carry no category rows of their own; categories are read through the
owning project's `project_categories`.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import asyncpg

from core import db
from projects.repository import like_pattern

_COLUMNS = """
    v.id, v.project_id, v.title, v.description, v.playback_id, v.thumbnail,
    v.featured, v.created_at, v.updated_at, p.name AS project_name
"""

UPDATABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "playback_id": "playback_id",
    "thumbnail": "thumbnail",
    "featured": "featured",
}

SORT_COLUMNS = {
    "title": "v.title",
    "createdAt": "v.created_at",
}


@dataclass(frozen=True)
class VideoFilter:
    featured: bool | None = None
    project_id: UUID | None = None
    category: str | None = None
    search: str | None = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"


def _where(filters: VideoFilter) -> tuple[str, list[Any]]:
    conditions: list[str] = []
    args: list[Any] = []

    if filters.featured is not None:
        args.append(filters.featured)
        conditions.append(f"v.featured = ${len(args)}")
    if filters.project_id is not None:
        args.append(filters.project_id)
        conditions.append(f"v.project_id = ${len(args)}")
    if filters.category:
        args.append(filters.category)
        conditions.append(
            f"""EXISTS (
                SELECT 1 FROM project_categories pc
                JOIN categories c ON c.id = pc.category_id
                WHERE pc.project_id = v.project_id AND c.name = ${len(args)}
            )"""
        )
    if filters.search:
        args.append(like_pattern(filters.search))
        n = len(args)
        conditions.append(
            f"""(
                v.title ILIKE ${n}
                OR v.description ILIKE ${n}
                OR v.playback_id ILIKE ${n}
                OR p.name ILIKE ${n}
            )"""
        )

    where = " AND ".join(conditions) if conditions else "true"
    return where, args


async def find_videos(
    filters: VideoFilter,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[dict[str, Any]]:
    where, args = _where(filters)
    sort_column = SORT_COLUMNS.get(filters.sort_by, "v.created_at")
    direction = "ASC" if filters.sort_order == "asc" else "DESC"

    args.append(limit)
    limit_n = len(args)
    args.append(offset)
    offset_n = len(args)

    return await db.fetch_all(
        f"""
        SELECT {_COLUMNS}
        FROM project_videos v
        JOIN projects p ON p.id = v.project_id
        WHERE {where}
        ORDER BY {sort_column} {direction}, v.id {direction}
        LIMIT ${limit_n}
        OFFSET ${offset_n}
        """,
        *args,
    )


async def count_videos(filters: VideoFilter | None = None) -> int:
    where, args = _where(filters or VideoFilter())
    value = await db.fetch_value(
        f"""
        SELECT count(*)
        FROM project_videos v
        JOIN projects p ON p.id = v.project_id
        WHERE {where}
        """,
        *args,
    )
    return int(value or 0)


async def get_video(video_id: UUID, *, conn: asyncpg.Connection | None = None) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {_COLUMNS}
        FROM project_videos v
        JOIN projects p ON p.id = v.project_id
        WHERE v.id = $1
        """,
        video_id,
        conn=conn,
    )


async def get_video_id_by_playback_id(
    playback_id: str,
    *,
    conn: asyncpg.Connection | None = None,
) -> UUID | None:
    return await db.fetch_value(
        "SELECT id FROM project_videos WHERE playback_id = $1",
        playback_id,
        conn=conn,
    )


async def insert_video(
    *,
    project_id: UUID,
    title: str,
    description: str | None,
    playback_id: str,
    thumbnail: str,
    featured: bool,
    conn: asyncpg.Connection | None = None,
) -> UUID:
    video_id = await db.fetch_value(
        """
        INSERT INTO project_videos (project_id, title, description, playback_id, thumbnail, featured)
        VALUES ($1, $2, $3, $4, $5, $6)
        RETURNING id
        """,
        project_id,
        title,
        description,
        playback_id,
        thumbnail,
        featured,
        conn=conn,
    )
    if video_id is None:
        raise RuntimeError("Failed to insert video.")
    return video_id


async def update_video(
    video_id: UUID,
    fields: dict[str, Any],
    *,
    conn: asyncpg.Connection | None = None,
) -> bool:
    values = {UPDATABLE_FIELDS[k]: v for (k, v) in fields.items() if k in UPDATABLE_FIELDS}
    assignments, args = db.set_clause(values, start=2)
    set_sql = f"{assignments}, updated_at = now()" if assignments else "updated_at = now()"
    status = await db.execute(
        f"""
        UPDATE project_videos
        SET {set_sql}
        WHERE id = $1
        """,
        video_id,
        *args,
        conn=conn,
    )
    return status.endswith(" 1")


async def delete_video(video_id: UUID) -> bool:
    status = await db.execute("DELETE FROM project_videos WHERE id = $1", video_id)
    return status.endswith(" 1")


async def project_categories(
    project_ids: list[UUID],
    *,
    conn: asyncpg.Connection | None = None,
) -> dict[UUID, list[str]]:
    names: dict[UUID, list[str]] = defaultdict(list)
    if not project_ids:
        return names
    for row in await db.fetch_all(
        """
        SELECT pc.project_id, c.name
        FROM project_categories pc
        JOIN categories c ON c.id = pc.category_id
        WHERE pc.project_id = ANY($1::uuid[])
        ORDER BY c.name ASC
        """,
        list(set(project_ids)),
        conn=conn,
    ):
        names[row["project_id"]].append(str(row["name"]))
    return names
