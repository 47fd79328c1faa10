"""
Category business logic.
"""

from __future__ import annotations

import logging
from uuid import UUID

import asyncpg

from core import db
from core.errors import ConflictError, InvalidStateError, NotFoundError

from . import repository, schemas

logger = logging.getLogger(__name__)


def to_category_response(row: dict) -> dict:
    return {
        "id": row["id"],
        "name": str(row["name"]),
        "description": row.get("description") or "",
        "icon": row.get("icon") or "",
        "projectCount": int(row.get("project_count") or 0),
        "featured": bool(row.get("featured", False)),
    }


async def list_categories() -> list[dict]:
    rows = await repository.list_categories()
    return [to_category_response(r) for r in rows]


async def list_featured_categories() -> list[dict]:
    rows = await repository.list_categories(featured_only=True)
    return [to_category_response(r) for r in rows]


async def get_category(category_id: UUID) -> dict:
    row = await repository.get_category(category_id)
    if row is None:
        raise NotFoundError("Category not found")
    return to_category_response(row)


async def create_category(payload: schemas.CategoryCreate) -> dict:
    if await repository.get_category_by_name(payload.name) is not None:
        raise ConflictError(f"Category '{payload.name}' already exists")

    try:
        row = await repository.insert_category(
            name=payload.name,
            description=payload.description,
            icon=payload.icon,
            featured=payload.featured,
        )
    except asyncpg.UniqueViolationError as exc:
        raise ConflictError(f"Category '{payload.name}' already exists") from exc

    logger.info("category_created id=%s name=%s", row["id"], row["name"])
    return to_category_response(row)


async def update_category(category_id: UUID, payload: schemas.CategoryUpdate) -> dict:
    existing = await repository.get_category(category_id)
    if existing is None:
        raise NotFoundError("Category not found")

    # Every category column is NOT NULL, so an explicit null means "leave as is".
    fields = {k: v for (k, v) in payload.model_dump(exclude_unset=True).items() if v is not None}

    new_name = fields.get("name")
    if new_name is not None and new_name != existing["name"]:
        other = await repository.get_category_by_name(new_name)
        if other is not None and other["id"] != existing["id"]:
            raise ConflictError(f"Category '{new_name}' already exists")

    try:
        row = await repository.update_category(category_id, fields)
    except asyncpg.UniqueViolationError as exc:
        raise ConflictError(f"Category '{new_name}' already exists") from exc
    if row is None:
        raise NotFoundError("Category not found")
    return to_category_response(row)


async def delete_category(category_id: UUID) -> None:
    """
    Delete a category that no project references. No cascade.
    """
    async with db.transaction() as conn:
        # Row lock conflicts with the key-share lock taken by concurrent join inserts.
        existing = await repository.get_category(category_id, for_update=True, conn=conn)
        if existing is None:
            raise NotFoundError("Category not found")

        if await repository.count_category_projects(category_id, conn=conn) > 0:
            raise InvalidStateError("Cannot delete category with existing projects")

        try:
            await repository.delete_category(category_id, conn=conn)
        except asyncpg.ForeignKeyViolationError as exc:
            raise InvalidStateError("Cannot delete category with existing projects") from exc

    logger.info("category_deleted id=%s name=%s", category_id, existing["name"])
