"""
Video API endpoints.
"""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from auth import dependencies as auth_dependencies
from core import responses

from . import schemas, service

router = APIRouter(prefix="/videos")


@router.get("")
async def list_videos(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    featured: bool | None = None,
    project_id: UUID | None = Query(default=None, alias="projectId"),
    category: str | None = None,
    search: str | None = None,
    sort_by: Literal["title", "createdAt"] = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
) -> dict:
    query = schemas.VideoQuery(
        page=page,
        limit=limit,
        featured=featured,
        project_id=project_id,
        category=category,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items, pagination = await service.list_videos(query)
    return responses.ok(items, pagination=pagination)


@router.get("/featured")
async def list_featured_videos() -> dict:
    return responses.ok(await service.list_featured_videos())


@router.get("/search")
async def search_videos(q: str | None = None) -> dict:
    return responses.ok(await service.search_videos(q))


@router.get("/project/{project_id}")
async def list_project_videos(project_id: UUID) -> dict:
    return responses.ok(await service.list_project_videos(project_id))


@router.get("/category/{category_name}")
async def list_videos_by_category(category_name: str) -> dict:
    return responses.ok(await service.list_videos_by_category(category_name))


@router.get("/{video_id}")
async def get_video(video_id: UUID) -> dict:
    return responses.ok(await service.get_video(video_id))


@router.post("/project/{project_id}", status_code=status.HTTP_201_CREATED)
async def create_video(
    project_id: UUID,
    request: schemas.VideoCreate,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    video = await service.create_video(project_id, request)
    return responses.ok(video, message="Video created successfully")


@router.put("/{video_id}")
async def update_video(
    video_id: UUID,
    request: schemas.VideoUpdate,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    video = await service.update_video(video_id, request)
    return responses.ok(video, message="Video updated successfully")


@router.delete("/{video_id}")
async def delete_video(
    video_id: UUID,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    await service.delete_video(video_id)
    return responses.ok(None, message="Video deleted successfully")
