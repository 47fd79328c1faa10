"""
Project business logic.

Invariants kept here (inside one transaction per mutation):
- at most `FEATURED_PROJECT_LIMIT` projects are featured at any time
- every category's `project_count` equals its live join rows
- a project always resolves its categories by name; unknown names are rejected
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from categories import repository as category_repository
from core import db, responses
from core.config import FEATURED_PROJECT_LIMIT
from core.errors import BadRequestError, NotFoundError

from . import repository, schemas

logger = logging.getLogger(__name__)

FEATURED_CAP_MESSAGE = (
    f"Maximum of {FEATURED_PROJECT_LIMIT} featured projects allowed. Unfeature an existing project first."
)

_STATUS_TOKENS = {
    "published": "PUBLISHED",
    "unpublished": "UNPUBLISHED",
}


def normalize_status(token: str | None) -> str:
    """
    Map a request status token to the stored enum. Unknown tokens become UNPUBLISHED.
    """
    return _STATUS_TOKENS.get((token or "").strip().lower(), "UNPUBLISHED")


def parse_status_filter(token: str | None) -> str | None:
    raw = (token or "").strip().lower()
    if not raw or raw == "all":
        return None
    if raw not in _STATUS_TOKENS:
        raise BadRequestError(f"Invalid status filter '{token}'. Use 'published' or 'unpublished'.")
    return _STATUS_TOKENS[raw]


def _to_embedded_video(row: dict) -> dict:
    return {
        "id": row["id"],
        "projectId": row["project_id"],
        "title": str(row["title"]),
        "description": row.get("description"),
        "playbackId": str(row["playback_id"]),
        "thumbnail": row.get("thumbnail") or "",
        "featured": bool(row.get("featured", False)),
        "createdAt": responses.iso(row.get("created_at")),
        "updatedAt": responses.iso(row.get("updated_at")),
    }


def _to_social_links(row: dict | None) -> dict | None:
    if row is None:
        return None
    return {field: row.get(field) for field in repository.SOCIAL_FIELDS}


def to_project_response(row: dict, relations: dict[str, Any]) -> dict:
    body = {
        "id": row["id"],
        "name": str(row["name"]),
        "tagline": row.get("tagline") or "",
        "description": row.get("description") or "",
        "logo": row.get("logo"),
        "heroImage": row.get("hero_image"),
        "website": row.get("website"),
        "videoUrl": row.get("video_url"),
        "featured": bool(row.get("featured", False)),
        "status": str(row.get("status") or "UNPUBLISHED").lower(),
        "isHiring": bool(row.get("is_hiring", False)),
        "careerPageUrl": row.get("career_page_url"),
        "isOpenForBounty": bool(row.get("is_open_for_bounty", False)),
        "bountySubmissionUrl": row.get("bounty_submission_url"),
        "isOpenSource": bool(row.get("is_open_source", False)),
        "githubUrl": row.get("github_url"),
        "createdAt": responses.iso(row.get("created_at")),
        "updatedAt": responses.iso(row.get("updated_at")),
        "categories": list(relations["categories"]),
        "images": list(relations["images"]),
        "videos": [_to_embedded_video(v) for v in relations["videos"]],
    }
    social_links = _to_social_links(relations["social_links"])
    if social_links is not None:
        body["socialLinks"] = social_links
    return body


async def _hydrate(rows: list[dict], *, conn=None) -> list[dict]:
    relations = await repository.fetch_relations([r["id"] for r in rows], conn=conn)
    return [to_project_response(r, relations[r["id"]]) for r in rows]


async def _load_project(project_id: UUID, *, conn=None) -> dict:
    row = await repository.get_project(project_id, conn=conn)
    if row is None:
        raise NotFoundError("Project not found")
    (project,) = await _hydrate([row], conn=conn)
    return project


async def _resolve_category_ids(names: list[str], *, conn) -> list[UUID]:
    wanted = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
    if not wanted:
        raise BadRequestError("At least one category is required")

    rows = await category_repository.get_categories_by_names(wanted, conn=conn)
    by_name = {str(r["name"]): r["id"] for r in rows}
    missing = [n for n in wanted if n not in by_name]
    if missing:
        raise BadRequestError(f"Unknown categories: {', '.join(missing)}")
    return [by_name[n] for n in wanted]


async def _check_featured_cap(*, conn) -> None:
    # Held until commit, so concurrent writers observe each other's featured rows.
    await repository.lock_featured(conn=conn)
    if await repository.count_featured(conn=conn) >= FEATURED_PROJECT_LIMIT:
        raise BadRequestError(FEATURED_CAP_MESSAGE)


async def list_projects(query: schemas.ProjectQuery) -> tuple[list[dict], dict[str, int]]:
    filters = repository.ProjectFilter(
        category=query.category,
        featured=query.featured,
        status=parse_status_filter(query.status),
        search=(query.search or "").strip() or None,
        sort_by=query.sort_by,
        sort_order=query.sort_order,
    )
    page = responses.Page(page=query.page, limit=query.limit)

    rows = await repository.find_projects(filters, limit=page.limit, offset=page.offset)
    total = await repository.count_projects(filters)
    return await _hydrate(rows), responses.pagination(page, total)


async def get_project(project_id: UUID) -> dict:
    return await _load_project(project_id)


async def list_featured_projects() -> list[dict]:
    rows = await repository.find_projects(repository.ProjectFilter(featured=True))
    return await _hydrate(rows)


async def list_projects_by_category(category_name: str) -> list[dict]:
    rows = await repository.find_projects(repository.ProjectFilter(category=category_name))
    return await _hydrate(rows)


async def search_projects(term: str | None) -> list[dict]:
    cleaned = (term or "").strip()
    if not cleaned:
        raise BadRequestError("Search query is required")
    rows = await repository.find_projects(repository.ProjectFilter(search=cleaned))
    return await _hydrate(rows)


async def create_project(payload: schemas.ProjectCreate) -> dict:
    data = payload.model_dump(exclude={"categories", "images", "social_links"})
    data["status"] = normalize_status(payload.status)

    async with db.transaction() as conn:
        if payload.featured:
            await _check_featured_cap(conn=conn)

        category_ids = await _resolve_category_ids(payload.categories, conn=conn)
        await category_repository.lock_categories(category_ids, conn=conn)

        row = await repository.insert_project(data, conn=conn)
        project_id = row["id"]

        await repository.add_project_categories(project_id, category_ids, conn=conn)
        if payload.social_links is not None:
            await repository.upsert_social_links(project_id, payload.social_links.model_dump(), conn=conn)
        if payload.images:
            await repository.replace_images(project_id, payload.images, conn=conn)

        await category_repository.refresh_project_counts(category_ids, conn=conn)
        project = await _load_project(project_id, conn=conn)

    logger.info(
        "project_created id=%s name=%s featured=%s categories=%d",
        project_id,
        row["name"],
        row["featured"],
        len(category_ids),
    )
    return project


# Columns that are NOT NULL in storage: an explicit null leaves them unchanged.
_NON_NULLABLE = frozenset(
    {"name", "tagline", "description", "featured", "status", "is_hiring", "is_open_for_bounty", "is_open_source"}
)


async def update_project(project_id: UUID, payload: schemas.ProjectUpdate) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    category_names = fields.pop("categories", None)
    images = fields.pop("images", None)
    fields.pop("social_links", None)
    social_links = (
        payload.social_links.model_dump(exclude_unset=True) if payload.social_links is not None else None
    )

    fields = {k: v for (k, v) in fields.items() if v is not None or k not in _NON_NULLABLE}
    if "status" in fields:
        fields["status"] = normalize_status(fields["status"])

    async with db.transaction() as conn:
        existing = await repository.get_project(project_id, for_update=True, conn=conn)
        if existing is None:
            raise NotFoundError("Project not found")

        if fields.get("featured") is True and not existing["featured"]:
            await _check_featured_cap(conn=conn)

        touched: set[UUID] = set()
        if category_names is not None:
            wanted = await _resolve_category_ids(category_names, conn=conn)
            current = await repository.get_project_category_ids(project_id, conn=conn)
            to_remove = [c for c in current if c not in set(wanted)]
            to_add = [c for c in wanted if c not in set(current)]
            await category_repository.lock_categories(list(set(to_remove) | set(to_add)), conn=conn)
            await repository.remove_project_categories(project_id, to_remove, conn=conn)
            await repository.add_project_categories(project_id, to_add, conn=conn)
            touched.update(to_remove)
            touched.update(to_add)

        if social_links is not None:
            await repository.upsert_social_links(project_id, social_links, conn=conn)
        if images is not None:
            await repository.replace_images(project_id, images, conn=conn)

        await repository.update_project(project_id, fields, conn=conn)

        if touched:
            await category_repository.refresh_project_counts(sorted(touched, key=str), conn=conn)
        project = await _load_project(project_id, conn=conn)

    logger.info("project_updated id=%s fields=%s", project_id, ",".join(sorted(fields)) or "-")
    return project


async def delete_project(project_id: UUID) -> None:
    async with db.transaction() as conn:
        existing = await repository.get_project(project_id, for_update=True, conn=conn)
        if existing is None:
            raise NotFoundError("Project not found")

        category_ids = await repository.get_project_category_ids(project_id, conn=conn)
        await category_repository.lock_categories(category_ids, conn=conn)
        await repository.delete_project(project_id, conn=conn)
        await category_repository.refresh_project_counts(category_ids, conn=conn)

    logger.info("project_deleted id=%s name=%s categories=%d", project_id, existing["name"], len(category_ids))
