"""
Category API schemas (request models).
"""

from __future__ import annotations

from pydantic import Field

from core.schemas import CamelModel


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., max_length=500)
    icon: str = Field(..., min_length=1)
    featured: bool = False


class CategoryUpdate(CamelModel):
    """Every field optional; only supplied fields change."""

    name: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=500)
    icon: str | None = Field(default=None, min_length=1)
    featured: bool | None = None
