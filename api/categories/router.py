"""
Category API endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from auth import dependencies as auth_dependencies
from core import responses

from . import schemas, service

router = APIRouter(prefix="/categories")


@router.get("")
async def list_categories() -> dict:
    return responses.ok(await service.list_categories())


@router.get("/featured")
async def list_featured_categories() -> dict:
    return responses.ok(await service.list_featured_categories())


@router.get("/{category_id}")
async def get_category(category_id: UUID) -> dict:
    return responses.ok(await service.get_category(category_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(
    request: schemas.CategoryCreate,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    category = await service.create_category(request)
    return responses.ok(category, message="Category created successfully")


@router.put("/{category_id}")
async def update_category(
    category_id: UUID,
    request: schemas.CategoryUpdate,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    category = await service.update_category(category_id, request)
    return responses.ok(category, message="Category updated successfully")


@router.delete("/{category_id}")
async def delete_category(
    category_id: UUID,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    await service.delete_category(category_id)
    return responses.ok(None, message="Category deleted successfully")
