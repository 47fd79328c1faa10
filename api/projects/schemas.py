"""
Project API schemas (request models and list query).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from core.schemas import CamelModel


class SocialLinksPayload(CamelModel):
    website: str | None = None
    github: str | None = None
    twitter: str | None = None
    discord: str | None = None
    telegram: str | None = None
    medium: str | None = None
    youtube: str | None = None

    @field_validator("*")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        return value or None


class ProjectCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    tagline: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=2000)
    categories: list[str] = Field(..., min_length=1, max_length=5)
    logo: str | None = None
    hero_image: str | None = None
    website: str | None = None
    video_url: str | None = None
    featured: bool = False
    status: str | None = None
    is_hiring: bool = False
    career_page_url: str | None = None
    is_open_for_bounty: bool = False
    bounty_submission_url: str | None = None
    is_open_source: bool = False
    github_url: str | None = None
    images: list[str] | None = None
    social_links: SocialLinksPayload | None = None


class ProjectUpdate(CamelModel):
    """
    Partial update. Omitted fields keep their value; `categories` and
    `images`, when present, replace the current set.
    """

    name: str | None = Field(default=None, min_length=1, max_length=100)
    tagline: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    categories: list[str] | None = Field(default=None, min_length=1, max_length=5)
    logo: str | None = None
    hero_image: str | None = None
    website: str | None = None
    video_url: str | None = None
    featured: bool | None = None
    status: str | None = None
    is_hiring: bool | None = None
    career_page_url: str | None = None
    is_open_for_bounty: bool | None = None
    bounty_submission_url: str | None = None
    is_open_source: bool | None = None
    github_url: str | None = None
    images: list[str] | None = None
    social_links: SocialLinksPayload | None = None


class ProjectQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    category: str | None = None
    featured: bool | None = None
    status: str | None = None
    search: str | None = None
    sort_by: Literal["name", "createdAt", "updatedAt"] = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"
