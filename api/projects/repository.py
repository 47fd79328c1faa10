"""
Project persistence (raw SQL).

Projects own their join rows, images, videos and social links; the schema
cascades deletes to all of them. Category `project_count` is maintained by
the service through `categories.repository.refresh_project_counts`.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import asyncpg

from core import db

# Arbitrary constant key for pg_advisory_xact_lock around the featured cap.
FEATURED_LOCK_KEY = 0x5EA7_0001

_COLUMNS = """
    p.id, p.name, p.tagline, p.description, p.logo, p.hero_image, p.website,
    p.video_url, p.featured, p.status::text AS status, p.is_hiring,
    p.career_page_url, p.is_open_for_bounty, p.bounty_submission_url,
    p.is_open_source, p.github_url, p.created_at, p.updated_at
"""

_RETURNING = """
    id, name, tagline, description, logo, hero_image, website, video_url,
    featured, status::text AS status, is_hiring, career_page_url,
    is_open_for_bounty, bounty_submission_url, is_open_source, github_url,
    created_at, updated_at
"""

# API field -> column for scalar project fields.
SCALAR_FIELDS = {
    "name": "name",
    "tagline": "tagline",
    "description": "description",
    "logo": "logo",
    "hero_image": "hero_image",
    "website": "website",
    "video_url": "video_url",
    "featured": "featured",
    "status": "status",
    "is_hiring": "is_hiring",
    "career_page_url": "career_page_url",
    "is_open_for_bounty": "is_open_for_bounty",
    "bounty_submission_url": "bounty_submission_url",
    "is_open_source": "is_open_source",
    "github_url": "github_url",
}

SOCIAL_FIELDS = ("website", "github", "twitter", "discord", "telegram", "medium", "youtube")

SORT_COLUMNS = {
    "name": "p.name",
    "createdAt": "p.created_at",
    "updatedAt": "p.updated_at",
}


@dataclass(frozen=True)
class ProjectFilter:
    category: str | None = None
    featured: bool | None = None
    status: str | None = None
    search: str | None = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"


def like_pattern(term: str) -> str:
    """
    Substring pattern for ILIKE with LIKE wildcards in `term` escaped.
    """
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _where(filters: ProjectFilter) -> tuple[str, list[Any]]:
    conditions: list[str] = []
    args: list[Any] = []

    if filters.category:
        args.append(filters.category)
        conditions.append(
            f"""EXISTS (
                SELECT 1 FROM project_categories pc
                JOIN categories c ON c.id = pc.category_id
                WHERE pc.project_id = p.id AND c.name = ${len(args)}
            )"""
        )
    if filters.featured is not None:
        args.append(filters.featured)
        conditions.append(f"p.featured = ${len(args)}")
    if filters.status:
        args.append(filters.status)
        conditions.append(f"p.status = ${len(args)}::project_status")
    if filters.search:
        args.append(like_pattern(filters.search))
        n = len(args)
        conditions.append(
            f"""(
                p.name ILIKE ${n}
                OR p.description ILIKE ${n}
                OR EXISTS (
                    SELECT 1 FROM project_categories pc
                    JOIN categories c ON c.id = pc.category_id
                    WHERE pc.project_id = p.id AND c.name ILIKE ${n}
                )
            )"""
        )

    where = " AND ".join(conditions) if conditions else "true"
    return where, args


async def find_projects(
    filters: ProjectFilter,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[dict[str, Any]]:
    where, args = _where(filters)
    sort_column = SORT_COLUMNS.get(filters.sort_by, "p.created_at")
    direction = "ASC" if filters.sort_order == "asc" else "DESC"

    args.append(limit)
    limit_n = len(args)
    args.append(offset)
    offset_n = len(args)

    return await db.fetch_all(
        f"""
        SELECT {_COLUMNS}
        FROM projects p
        WHERE {where}
        ORDER BY {sort_column} {direction}, p.id {direction}
        LIMIT ${limit_n}
        OFFSET ${offset_n}
        """,
        *args,
    )


async def count_projects(filters: ProjectFilter) -> int:
    where, args = _where(filters)
    value = await db.fetch_value(
        f"""
        SELECT count(*)
        FROM projects p
        WHERE {where}
        """,
        *args,
    )
    return int(value or 0)


async def get_project(
    project_id: UUID,
    *,
    for_update: bool = False,
    conn: asyncpg.Connection | None = None,
) -> dict[str, Any] | None:
    lock = "FOR UPDATE" if for_update else ""
    return await db.fetch_one(
        f"""
        SELECT {_COLUMNS}
        FROM projects p
        WHERE p.id = $1
        {lock}
        """,
        project_id,
        conn=conn,
    )


async def lock_featured(*, conn: asyncpg.Connection) -> None:
    """
    Serialise featured-cap checks until the surrounding transaction ends.
    """
    await db.execute("SELECT pg_advisory_xact_lock($1)", FEATURED_LOCK_KEY, conn=conn)


async def count_featured(*, conn: asyncpg.Connection | None = None) -> int:
    value = await db.fetch_value(
        "SELECT count(*) FROM projects WHERE featured = true",
        conn=conn,
    )
    return int(value or 0)


async def insert_project(fields: dict[str, Any], *, conn: asyncpg.Connection | None = None) -> dict[str, Any]:
    values = {SCALAR_FIELDS[k]: v for (k, v) in fields.items() if k in SCALAR_FIELDS}
    columns = list(values)
    placeholders = [
        f"${i}::project_status" if col == "status" else f"${i}"
        for (i, col) in enumerate(columns, start=1)
    ]
    row = await db.fetch_one(
        f"""
        INSERT INTO projects ({", ".join(columns)})
        VALUES ({", ".join(placeholders)})
        RETURNING {_RETURNING}
        """,
        *values.values(),
        conn=conn,
    )
    if row is None:
        raise RuntimeError("Failed to insert project.")
    return row


async def update_project(
    project_id: UUID,
    fields: dict[str, Any],
    *,
    conn: asyncpg.Connection | None = None,
) -> dict[str, Any] | None:
    """
    Apply a partial update. Always bumps `updated_at`, even with no fields.
    """
    values = {SCALAR_FIELDS[k]: v for (k, v) in fields.items() if k in SCALAR_FIELDS}
    assignments, args = db.set_clause(values, start=2)
    if "status" in values:
        n = 2 + list(values).index("status")
        assignments = assignments.replace(f"status = ${n}", f"status = ${n}::project_status")
    set_sql = f"{assignments}, updated_at = now()" if assignments else "updated_at = now()"
    return await db.fetch_one(
        f"""
        UPDATE projects
        SET {set_sql}
        WHERE id = $1
        RETURNING {_RETURNING}
        """,
        project_id,
        *args,
        conn=conn,
    )


async def delete_project(project_id: UUID, *, conn: asyncpg.Connection | None = None) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM projects
        WHERE id = $1
        RETURNING id
        """,
        project_id,
        conn=conn,
    )
    return row is not None


async def get_project_category_ids(project_id: UUID, *, conn: asyncpg.Connection | None = None) -> list[UUID]:
    rows = await db.fetch_all(
        """
        SELECT category_id
        FROM project_categories
        WHERE project_id = $1
        """,
        project_id,
        conn=conn,
    )
    return [r["category_id"] for r in rows]


async def add_project_categories(
    project_id: UUID,
    category_ids: list[UUID],
    *,
    conn: asyncpg.Connection | None = None,
) -> None:
    """
    Idempotent: pairs that already exist are left alone.
    """
    if not category_ids:
        return
    await db.execute(
        """
        INSERT INTO project_categories (project_id, category_id)
        SELECT $1, unnest($2::uuid[])
        ON CONFLICT (project_id, category_id) DO NOTHING
        """,
        project_id,
        list(category_ids),
        conn=conn,
    )


async def remove_project_categories(
    project_id: UUID,
    category_ids: list[UUID],
    *,
    conn: asyncpg.Connection | None = None,
) -> None:
    if not category_ids:
        return
    await db.execute(
        """
        DELETE FROM project_categories
        WHERE project_id = $1
          AND category_id = ANY($2::uuid[])
        """,
        project_id,
        list(category_ids),
        conn=conn,
    )


async def upsert_social_links(
    project_id: UUID,
    links: dict[str, str | None],
    *,
    conn: asyncpg.Connection | None = None,
) -> None:
    """
    Create the one-to-one row, or overwrite the supplied fields on the existing one.
    """
    values = {k: links[k] for k in SOCIAL_FIELDS if k in links}
    columns = ["project_id", *values]
    placeholders = [f"${i}" for i in range(1, len(columns) + 1)]
    updates = ", ".join(f"{col} = EXCLUDED.{col}" for col in values)
    conflict = f"DO UPDATE SET {updates}" if updates else "DO NOTHING"
    await db.execute(
        f"""
        INSERT INTO social_links ({", ".join(columns)})
        VALUES ({", ".join(placeholders)})
        ON CONFLICT (project_id) {conflict}
        """,
        project_id,
        *values.values(),
        conn=conn,
    )


async def replace_images(
    project_id: UUID,
    urls: list[str],
    *,
    conn: asyncpg.Connection | None = None,
) -> None:
    """
    Replace the image list; `order` is the position in `urls`.
    """
    await db.execute("DELETE FROM project_images WHERE project_id = $1", project_id, conn=conn)
    if not urls:
        return
    await db.execute(
        """
        INSERT INTO project_images (project_id, url, alt, "order")
        SELECT $1, u.url, 'Project image ' || u.ord, (u.ord - 1)::int
        FROM unnest($2::text[]) WITH ORDINALITY AS u(url, ord)
        """,
        project_id,
        list(urls),
        conn=conn,
    )


async def fetch_relations(
    project_ids: list[UUID],
    *,
    conn: asyncpg.Connection | None = None,
) -> dict[UUID, dict[str, Any]]:
    """
    Load categories, images, videos and social links for a page of projects.
    """
    relations: dict[UUID, dict[str, Any]] = defaultdict(
        lambda: {"categories": [], "images": [], "videos": [], "social_links": None}
    )
    if not project_ids:
        return relations
    ids = list(project_ids)

    for row in await db.fetch_all(
        """
        SELECT pc.project_id, c.name
        FROM project_categories pc
        JOIN categories c ON c.id = pc.category_id
        WHERE pc.project_id = ANY($1::uuid[])
        ORDER BY c.name ASC
        """,
        ids,
        conn=conn,
    ):
        relations[row["project_id"]]["categories"].append(str(row["name"]))

    for row in await db.fetch_all(
        """
        SELECT project_id, url
        FROM project_images
        WHERE project_id = ANY($1::uuid[])
        ORDER BY "order" ASC, created_at ASC, id ASC
        """,
        ids,
        conn=conn,
    ):
        relations[row["project_id"]]["images"].append(str(row["url"]))

    for row in await db.fetch_all(
        """
        SELECT id, project_id, title, description, playback_id, thumbnail,
               featured, created_at, updated_at
        FROM project_videos
        WHERE project_id = ANY($1::uuid[])
        ORDER BY created_at DESC
        """,
        ids,
        conn=conn,
    ):
        relations[row["project_id"]]["videos"].append(row)

    for row in await db.fetch_all(
        f"""
        SELECT project_id, {", ".join(SOCIAL_FIELDS)}
        FROM social_links
        WHERE project_id = ANY($1::uuid[])
        """,
        ids,
        conn=conn,
    ):
        relations[row["project_id"]]["social_links"] = row

    return relations


async def recent_projects(*, limit: int = 5) -> list[dict[str, Any]]:
    return await find_projects(ProjectFilter(), limit=limit)
