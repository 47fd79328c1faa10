"""
Video business logic.

`playback_id` is unique across the whole store; the unique index is the
final arbiter, the pre-checks only give a friendlier message.
"""

from __future__ import annotations

import logging
from uuid import UUID

import asyncpg

from core import db, responses
from core.errors import BadRequestError, ConflictError, NotFoundError
from projects import repository as project_repository

from . import repository, schemas

logger = logging.getLogger(__name__)

PLAYBACK_CONFLICT_MESSAGE = "Video with this playback ID already exists"


def to_video_response(row: dict, categories: list[str]) -> dict:
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
        "projectName": row.get("project_name"),
        "categories": list(categories),
    }


async def _enrich(rows: list[dict], *, conn=None) -> list[dict]:
    categories = await repository.project_categories([r["project_id"] for r in rows], conn=conn)
    return [to_video_response(r, categories[r["project_id"]]) for r in rows]


async def _load_video(video_id: UUID, *, conn=None) -> dict:
    row = await repository.get_video(video_id, conn=conn)
    if row is None:
        raise NotFoundError("Video not found")
    (video,) = await _enrich([row], conn=conn)
    return video


async def list_videos(query: schemas.VideoQuery) -> tuple[list[dict], dict[str, int]]:
    filters = repository.VideoFilter(
        featured=query.featured,
        project_id=query.project_id,
        category=query.category,
        search=(query.search or "").strip() or None,
        sort_by=query.sort_by,
        sort_order=query.sort_order,
    )
    page = responses.Page(page=query.page, limit=query.limit)

    rows = await repository.find_videos(filters, limit=page.limit, offset=page.offset)
    total = await repository.count_videos(filters)
    return await _enrich(rows), responses.pagination(page, total)


async def get_video(video_id: UUID) -> dict:
    return await _load_video(video_id)


async def list_project_videos(project_id: UUID) -> list[dict]:
    if await project_repository.get_project(project_id) is None:
        raise NotFoundError("Project not found")
    rows = await repository.find_videos(repository.VideoFilter(project_id=project_id))
    return await _enrich(rows)


async def list_featured_videos() -> list[dict]:
    rows = await repository.find_videos(repository.VideoFilter(featured=True))
    return await _enrich(rows)


async def list_videos_by_category(category_name: str) -> list[dict]:
    rows = await repository.find_videos(repository.VideoFilter(category=category_name))
    return await _enrich(rows)


async def search_videos(term: str | None) -> list[dict]:
    cleaned = (term or "").strip()
    if not cleaned:
        raise BadRequestError("Search query is required")
    rows = await repository.find_videos(repository.VideoFilter(search=cleaned))
    return await _enrich(rows)


async def create_video(project_id: UUID, payload: schemas.VideoCreate) -> dict:
    try:
        async with db.transaction() as conn:
            project = await project_repository.get_project(project_id, conn=conn)
            if project is None:
                raise NotFoundError("Project not found")

            if await repository.get_video_id_by_playback_id(payload.playback_id, conn=conn) is not None:
                raise ConflictError(PLAYBACK_CONFLICT_MESSAGE)

            video_id = await repository.insert_video(
                project_id=project_id,
                title=payload.title,
                description=payload.description,
                playback_id=payload.playback_id,
                thumbnail=payload.thumbnail or "",
                featured=payload.featured,
                conn=conn,
            )
            video = await _load_video(video_id, conn=conn)
    except asyncpg.UniqueViolationError as exc:
        raise ConflictError(PLAYBACK_CONFLICT_MESSAGE) from exc

    logger.info("video_created id=%s project_id=%s playback_id=%s", video_id, project_id, payload.playback_id)
    return video


# NOT NULL columns: an explicit null leaves them unchanged.
_NON_NULLABLE = frozenset({"title", "playback_id", "thumbnail", "featured"})


async def update_video(video_id: UUID, payload: schemas.VideoUpdate) -> dict:
    fields = {
        k: v
        for (k, v) in payload.model_dump(exclude_unset=True).items()
        if v is not None or k not in _NON_NULLABLE
    }

    try:
        async with db.transaction() as conn:
            existing = await repository.get_video(video_id, conn=conn)
            if existing is None:
                raise NotFoundError("Video not found")

            new_playback_id = fields.get("playback_id")
            if new_playback_id is not None and new_playback_id != existing["playback_id"]:
                other_id = await repository.get_video_id_by_playback_id(new_playback_id, conn=conn)
                if other_id is not None and other_id != video_id:
                    raise ConflictError(PLAYBACK_CONFLICT_MESSAGE)

            await repository.update_video(video_id, fields, conn=conn)
            video = await _load_video(video_id, conn=conn)
    except asyncpg.UniqueViolationError as exc:
        raise ConflictError(PLAYBACK_CONFLICT_MESSAGE) from exc

    logger.info("video_updated id=%s fields=%s", video_id, ",".join(sorted(fields)) or "-")
    return video


async def delete_video(video_id: UUID) -> None:
    if not await repository.delete_video(video_id):
        raise NotFoundError("Video not found")
    logger.info("video_deleted id=%s", video_id)
