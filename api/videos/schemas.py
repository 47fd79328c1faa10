"""
Video API schemas.
"""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from core.schemas import CamelModel


class VideoCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    playback_id: str = Field(..., min_length=1, max_length=200)
    thumbnail: str = ""
    featured: bool = False


class VideoUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    playback_id: str | None = Field(default=None, min_length=1, max_length=200)
    thumbnail: str | None = None
    featured: bool | None = None


class VideoQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    featured: bool | None = None
    project_id: UUID | None = None
    category: str | None = None
    search: str | None = None
    sort_by: Literal["title", "createdAt"] = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"
