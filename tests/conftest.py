"""
Shared fixtures.

`store` swaps every repository function the services call for an in-memory
fake, and turns `db.transaction()` into a no-op, so service invariants can be
checked without Postgres.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from auth import repository as auth_repository
from categories import repository as category_repository
from core import db
from projects import repository as project_repository
from videos import repository as video_repository


def _matches(term: str, *values: str | None) -> bool:
    needle = term.lower()
    return any(needle in (v or "").lower() for v in values)


class FakeStore:
    def __init__(self) -> None:
        self.categories: dict[uuid.UUID, dict[str, Any]] = {}
        self.projects: dict[uuid.UUID, dict[str, Any]] = {}
        self.joins: set[tuple[uuid.UUID, uuid.UUID]] = set()
        self.social_links: dict[uuid.UUID, dict[str, Any]] = {}
        self.images: dict[uuid.UUID, list[str]] = {}
        self.videos: dict[uuid.UUID, dict[str, Any]] = {}
        self.users: dict[uuid.UUID, dict[str, Any]] = {}
        self.featured_locks = 0
        self.category_locks: list[set[uuid.UUID]] = []
        self._tick = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        self._tick += timedelta(seconds=1)
        return self._tick

    # categories

    def _category_names(self, project_id: uuid.UUID) -> list[str]:
        return sorted(self.categories[c]["name"] for (p, c) in self.joins if p == project_id)

    async def list_categories(self, *, featured_only: bool = False):
        rows = [dict(c) for c in self.categories.values() if c["featured"] or not featured_only]
        return sorted(rows, key=lambda r: r["name"])

    async def get_category(self, category_id, *, for_update=False, conn=None):
        row = self.categories.get(category_id)
        return dict(row) if row else None

    async def get_category_by_name(self, name, *, conn=None):
        return next((dict(c) for c in self.categories.values() if c["name"] == name), None)

    async def get_categories_by_names(self, names, *, conn=None):
        return [dict(c) for c in self.categories.values() if c["name"] in set(names)]

    async def insert_category(self, *, name, description, icon, featured=False):
        now = self._now()
        row = {
            "id": uuid.uuid4(),
            "name": name,
            "description": description,
            "icon": icon,
            "project_count": 0,
            "featured": featured,
            "created_at": now,
            "updated_at": now,
        }
        self.categories[row["id"]] = row
        return dict(row)

    async def update_category(self, category_id, fields):
        row = self.categories.get(category_id)
        if row is None:
            return None
        row.update({k: v for (k, v) in fields.items() if k in category_repository.UPDATABLE_FIELDS})
        row["updated_at"] = self._now()
        return dict(row)

    async def count_category_projects(self, category_id, *, conn=None):
        return sum(1 for (_, c) in self.joins if c == category_id)

    async def delete_category(self, category_id, *, conn=None):
        return self.categories.pop(category_id, None) is not None

    async def lock_categories(self, category_ids, *, conn):
        if category_ids:
            self.category_locks.append(set(category_ids))

    async def refresh_project_counts(self, category_ids, *, conn=None):
        for category_id in category_ids:
            if category_id in self.categories:
                self.categories[category_id]["project_count"] = sum(1 for (_, c) in self.joins if c == category_id)

    async def count_categories(self):
        return len(self.categories)

    async def top_categories(self, *, limit=5):
        rows = sorted(self.categories.values(), key=lambda r: (-r["project_count"], r["name"]))
        return [dict(r) for r in rows[:limit]]

    # projects

    def _project_matches(self, row, filters: project_repository.ProjectFilter) -> bool:
        names = self._category_names(row["id"])
        if filters.category and filters.category not in names:
            return False
        if filters.featured is not None and row["featured"] != filters.featured:
            return False
        if filters.status and row["status"] != filters.status:
            return False
        if filters.search and not _matches(filters.search, row["name"], row["description"], *names):
            return False
        return True

    async def find_projects(self, filters, *, limit=None, offset=0):
        column = {"name": "name", "createdAt": "created_at", "updatedAt": "updated_at"}[filters.sort_by]
        rows = [dict(r) for r in self.projects.values() if self._project_matches(r, filters)]
        rows.sort(key=lambda r: (r[column], str(r["id"])), reverse=filters.sort_order == "desc")
        rows = rows[offset:]
        return rows[:limit] if limit is not None else rows

    async def count_projects(self, filters):
        return sum(1 for r in self.projects.values() if self._project_matches(r, filters))

    async def get_project(self, project_id, *, for_update=False, conn=None):
        row = self.projects.get(project_id)
        return dict(row) if row else None

    async def lock_featured(self, *, conn):
        self.featured_locks += 1

    async def count_featured(self, *, conn=None):
        return sum(1 for r in self.projects.values() if r["featured"])

    async def insert_project(self, fields, *, conn=None):
        now = self._now()
        row = {
            "id": uuid.uuid4(),
            "name": "",
            "tagline": "",
            "description": "",
            "logo": None,
            "hero_image": None,
            "website": None,
            "video_url": None,
            "featured": False,
            "status": "UNPUBLISHED",
            "is_hiring": False,
            "career_page_url": None,
            "is_open_for_bounty": False,
            "bounty_submission_url": None,
            "is_open_source": False,
            "github_url": None,
            "created_at": now,
            "updated_at": now,
        }
        row.update({k: v for (k, v) in fields.items() if k in project_repository.SCALAR_FIELDS})
        self.projects[row["id"]] = row
        return dict(row)

    async def update_project(self, project_id, fields, *, conn=None):
        row = self.projects.get(project_id)
        if row is None:
            return None
        row.update({k: v for (k, v) in fields.items() if k in project_repository.SCALAR_FIELDS})
        row["updated_at"] = self._now()
        return dict(row)

    async def delete_project(self, project_id, *, conn=None):
        if self.projects.pop(project_id, None) is None:
            return False
        self.joins = {(p, c) for (p, c) in self.joins if p != project_id}
        self.social_links.pop(project_id, None)
        self.images.pop(project_id, None)
        self.videos = {k: v for (k, v) in self.videos.items() if v["project_id"] != project_id}
        return True

    async def get_project_category_ids(self, project_id, *, conn=None):
        return [c for (p, c) in self.joins if p == project_id]

    async def add_project_categories(self, project_id, category_ids, *, conn=None):
        self.joins.update((project_id, c) for c in category_ids)

    async def remove_project_categories(self, project_id, category_ids, *, conn=None):
        self.joins.difference_update((project_id, c) for c in category_ids)

    async def upsert_social_links(self, project_id, links, *, conn=None):
        current = self.social_links.setdefault(project_id, {k: None for k in project_repository.SOCIAL_FIELDS})
        current.update({k: v for (k, v) in links.items() if k in project_repository.SOCIAL_FIELDS})

    async def replace_images(self, project_id, urls, *, conn=None):
        self.images[project_id] = list(urls)

    async def fetch_relations(self, project_ids, *, conn=None):
        relations = {}
        for project_id in project_ids:
            videos = sorted(
                (dict(v) for v in self.videos.values() if v["project_id"] == project_id),
                key=lambda v: v["created_at"],
                reverse=True,
            )
            links = self.social_links.get(project_id)
            relations[project_id] = {
                "categories": self._category_names(project_id),
                "images": list(self.images.get(project_id, [])),
                "videos": videos,
                "social_links": dict(links) if links else None,
            }
        return relations

    async def recent_projects(self, *, limit=5):
        return await self.find_projects(project_repository.ProjectFilter(), limit=limit)

    # videos

    def _video_row(self, video):
        return {**video, "project_name": self.projects[video["project_id"]]["name"]}

    def _video_matches(self, video, filters: video_repository.VideoFilter) -> bool:
        project = self.projects[video["project_id"]]
        if filters.featured is not None and video["featured"] != filters.featured:
            return False
        if filters.project_id is not None and video["project_id"] != filters.project_id:
            return False
        if filters.category and filters.category not in self._category_names(video["project_id"]):
            return False
        if filters.search and not _matches(
            filters.search, video["title"], video["description"], video["playback_id"], project["name"]
        ):
            return False
        return True

    async def find_videos(self, filters, *, limit=None, offset=0):
        column = {"title": "title", "createdAt": "created_at"}[filters.sort_by]
        rows = [self._video_row(v) for v in self.videos.values() if self._video_matches(v, filters)]
        rows.sort(key=lambda r: (r[column], str(r["id"])), reverse=filters.sort_order == "desc")
        rows = rows[offset:]
        return rows[:limit] if limit is not None else rows

    async def count_videos(self, filters=None):
        filters = filters or video_repository.VideoFilter()
        return sum(1 for v in self.videos.values() if self._video_matches(v, filters))

    async def get_video(self, video_id, *, conn=None):
        video = self.videos.get(video_id)
        return self._video_row(video) if video else None

    async def get_video_id_by_playback_id(self, playback_id, *, conn=None):
        return next((v["id"] for v in self.videos.values() if v["playback_id"] == playback_id), None)

    async def insert_video(self, *, project_id, title, description, playback_id, thumbnail, featured, conn=None):
        now = self._now()
        video = {
            "id": uuid.uuid4(),
            "project_id": project_id,
            "title": title,
            "description": description,
            "playback_id": playback_id,
            "thumbnail": thumbnail,
            "featured": featured,
            "created_at": now,
            "updated_at": now,
        }
        self.videos[video["id"]] = video
        return video["id"]

    async def update_video(self, video_id, fields, *, conn=None):
        video = self.videos.get(video_id)
        if video is None:
            return False
        video.update({k: v for (k, v) in fields.items() if k in video_repository.UPDATABLE_FIELDS})
        video["updated_at"] = self._now()
        return True

    async def delete_video(self, video_id):
        return self.videos.pop(video_id, None) is not None

    async def project_categories(self, project_ids, *, conn=None):
        return {p: self._category_names(p) for p in set(project_ids)}

    # users

    async def create_user(self, *, username, password_hash, role="admin"):
        now = self._now()
        row = {
            "id": uuid.uuid4(),
            "username": auth_repository.normalize_username(username),
            "password_hash": password_hash,
            "role": role,
            "created_at": now,
            "updated_at": now,
        }
        self.users[row["id"]] = row
        return dict(row)

    async def get_user_by_username(self, username):
        wanted = auth_repository.normalize_username(username)
        return next((dict(u) for u in self.users.values() if u["username"] == wanted), None)

    async def get_user_by_id(self, user_id):
        row = self.users.get(user_id)
        return dict(row) if row else None

    async def set_password_hash(self, user_id, password_hash):
        self.users[user_id]["password_hash"] = password_hash


_PATCHED = {
    category_repository: (
        "list_categories",
        "get_category",
        "get_category_by_name",
        "get_categories_by_names",
        "insert_category",
        "update_category",
        "count_category_projects",
        "delete_category",
        "lock_categories",
        "refresh_project_counts",
        "count_categories",
        "top_categories",
    ),
    project_repository: (
        "find_projects",
        "count_projects",
        "get_project",
        "lock_featured",
        "count_featured",
        "insert_project",
        "update_project",
        "delete_project",
        "get_project_category_ids",
        "add_project_categories",
        "remove_project_categories",
        "upsert_social_links",
        "replace_images",
        "fetch_relations",
        "recent_projects",
    ),
    video_repository: (
        "find_videos",
        "count_videos",
        "get_video",
        "get_video_id_by_playback_id",
        "insert_video",
        "update_video",
        "delete_video",
        "project_categories",
    ),
    auth_repository: (
        "create_user",
        "get_user_by_username",
        "get_user_by_id",
        "set_password_hash",
    ),
}


@asynccontextmanager
async def _no_transaction(**_: Any):
    yield None


@pytest.fixture
def store(monkeypatch) -> FakeStore:
    fake = FakeStore()
    for module, names in _PATCHED.items():
        for name in names:
            monkeypatch.setattr(module, name, getattr(fake, name))
    monkeypatch.setattr(db, "transaction", _no_transaction)
    return fake


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
    monkeypatch.setenv("UPLOAD_BASE_URL", "http://cdn.test/uploads")
    return tmp_path
