"""
Admin dashboard aggregates.
"""

from __future__ import annotations

from categories import repository as category_repository
from categories import service as category_service
from core import responses
from projects import repository as project_repository
from projects import service as project_service
from videos import repository as video_repository

RECENT_PROJECTS = 5
TOP_CATEGORIES = 5


async def dashboard() -> dict:
    total_projects = await project_repository.count_projects(project_repository.ProjectFilter())
    published_projects = await project_repository.count_projects(
        project_repository.ProjectFilter(status="PUBLISHED")
    )
    total_categories = await category_repository.count_categories()
    total_videos = await video_repository.count_videos()

    recent = await project_repository.recent_projects(limit=RECENT_PROJECTS)
    relations = await project_repository.fetch_relations([r["id"] for r in recent])
    top = await category_repository.top_categories(limit=TOP_CATEGORIES)

    return {
        "totalProjects": total_projects,
        "publishedProjects": published_projects,
        "totalCategories": total_categories,
        "totalVideos": total_videos,
        "recentProjects": [project_service.to_project_response(r, relations[r["id"]]) for r in recent],
        "topCategories": [
            {**category_service.to_category_response(r), "createdAt": responses.iso(r.get("created_at"))}
            for r in top
        ],
    }
