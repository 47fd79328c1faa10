"""
Project API endpoints.
"""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from auth import dependencies as auth_dependencies
from core import responses

from . import schemas, service

router = APIRouter(prefix="/projects")


@router.get("")
async def list_projects(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    category: str | None = None,
    featured: bool | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    search: str | None = None,
    sort_by: Literal["name", "createdAt", "updatedAt"] = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
) -> dict:
    query = schemas.ProjectQuery(
        page=page,
        limit=limit,
        category=category,
        featured=featured,
        status=status_filter,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items, pagination = await service.list_projects(query)
    return responses.ok(items, pagination=pagination)


@router.get("/featured")
async def list_featured_projects() -> dict:
    return responses.ok(await service.list_featured_projects())


@router.get("/search")
async def search_projects(q: str | None = None) -> dict:
    return responses.ok(await service.search_projects(q))


@router.get("/category/{category_name}")
async def list_projects_by_category(category_name: str) -> dict:
    return responses.ok(await service.list_projects_by_category(category_name))


@router.get("/{project_id}")
async def get_project(project_id: UUID) -> dict:
    return responses.ok(await service.get_project(project_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    request: schemas.ProjectCreate,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    project = await service.create_project(request)
    return responses.ok(project, message="Project created successfully")


@router.put("/{project_id}")
async def update_project(
    project_id: UUID,
    request: schemas.ProjectUpdate,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    project = await service.update_project(project_id, request)
    return responses.ok(project, message="Project updated successfully")


@router.delete("/{project_id}")
async def delete_project(
    project_id: UUID,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    await service.delete_project(project_id)
    return responses.ok(None, message="Project deleted successfully")
