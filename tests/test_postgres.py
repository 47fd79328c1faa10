"""
Service tests against a real PostgreSQL (13+).

Set TEST_DATABASE_URL (or DATABASE_URL) to run them. Each test applies
`db/migrations/*.sql` into a throwaway schema and drops it afterwards.
"""

import asyncio
import os
import uuid
from pathlib import Path
from urllib.parse import urlsplit

import asyncpg
import pytest
import pytest_asyncio

from categories import repository as category_repository
from categories import schemas as category_schemas
from categories import service as category_service
from core import db
from core.errors import BadRequestError, ConflictError, InvalidStateError
from projects import repository as project_repository
from projects import schemas as project_schemas
from projects import service as project_service
from videos import schemas as video_schemas
from videos import service as video_service

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL") or os.environ.get("DATABASE_URL", "")
MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "db" / "migrations"

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL is not set")


def _migration_up(path: Path) -> str:
    return path.read_text().split("-- migrate:down", 1)[0]


def _with_search_path(url: str, schema: str) -> str:
    sep = "&" if urlsplit(url).query else "?"
    return f"{url}{sep}search_path={schema}"


@pytest_asyncio.fixture
async def pg(monkeypatch):
    schema = f"test_{uuid.uuid4().hex[:12]}"
    admin = await asyncpg.connect(db._sanitize_database_url(TEST_DATABASE_URL))
    try:
        await admin.execute(f'CREATE SCHEMA "{schema}"')
        await admin.execute(f'SET search_path TO "{schema}"')
        for path in sorted(MIGRATIONS_DIR.glob("*.sql")):
            await admin.execute(_migration_up(path))

        monkeypatch.setenv("DATABASE_URL", _with_search_path(TEST_DATABASE_URL, schema))
        await db.init_pool()
        try:
            yield schema
        finally:
            await db.close_pool()
            await admin.execute(f'DROP SCHEMA "{schema}" CASCADE')
    finally:
        await admin.close()


async def _categories(*names):
    return {
        name: await category_service.create_category(
            category_schemas.CategoryCreate(name=name, description="", icon=f"/category/{name}.svg")
        )
        for name in names
    }


async def _project(name, categories=("DeFi",), **extra):
    return await project_service.create_project(
        project_schemas.ProjectCreate(name=name, categories=list(categories), **extra)
    )


async def _counts():
    """(cached project_count, live join rows) per category name."""
    rows = await db.fetch_all(
        """
        SELECT c.name, c.project_count, count(pc.project_id) AS live
        FROM categories c
        LEFT JOIN project_categories pc ON pc.category_id = c.id
        GROUP BY c.id
        """
    )
    return {r["name"]: (r["project_count"], r["live"]) for r in rows}


class TestCategoryCountsUnderConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_creates_in_one_category(self, pg):
        await _categories("DeFi")

        await asyncio.gather(*(_project(f"P{i}") for i in range(20)))

        assert (await _counts())["DeFi"] == (20, 20)

    @pytest.mark.asyncio
    async def test_concurrent_moves_between_categories(self, pg):
        await _categories("A", "B")
        projects = [await _project(f"P{i}", categories=["A"]) for i in range(10)]

        await asyncio.gather(
            *(
                project_service.update_project(p["id"], project_schemas.ProjectUpdate(categories=["B"]))
                for p in projects
            )
        )

        counts = await _counts()
        assert counts["A"] == (0, 0)
        assert counts["B"] == (10, 10)

    @pytest.mark.asyncio
    async def test_concurrent_deletes(self, pg):
        await _categories("DeFi", "Tooling")
        projects = [await _project(f"P{i}", categories=["DeFi", "Tooling"]) for i in range(8)]

        await asyncio.gather(*(project_service.delete_project(p["id"]) for p in projects[:5]))

        counts = await _counts()
        assert counts["DeFi"] == (3, 3)
        assert counts["Tooling"] == (3, 3)


class TestConcurrentLimits:

    @pytest.mark.asyncio
    async def test_featured_cap_holds(self, pg):
        await _categories("DeFi")

        results = await asyncio.gather(
            *(_project(f"F{i}", featured=True) for i in range(10)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, dict)) == 3
        assert all(isinstance(r, BadRequestError) for r in results if not isinstance(r, dict))
        assert await project_repository.count_featured() == 3

    @pytest.mark.asyncio
    async def test_playback_id_is_unique(self, pg):
        await _categories("DeFi")
        project = await _project("Cetus")
        payload = video_schemas.VideoCreate(title="Intro", playback_id="pb-1")

        results = await asyncio.gather(
            *(video_service.create_video(project["id"], payload) for _ in range(5)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, dict)) == 1
        assert sum(1 for r in results if isinstance(r, ConflictError)) == 4


class TestSql:

    @pytest.mark.asyncio
    async def test_images_keep_order_and_are_replaced(self, pg):
        await _categories("DeFi")
        project = await _project("Cetus", images=["/c.png", "/a.png", "/b.png"])

        assert project["images"] == ["/c.png", "/a.png", "/b.png"]

        updated = await project_service.update_project(
            project["id"], project_schemas.ProjectUpdate(images=["/z.png", "/y.png"])
        )
        assert updated["images"] == ["/z.png", "/y.png"]

    @pytest.mark.asyncio
    async def test_social_links_upsert(self, pg):
        await _categories("DeFi")
        project = await _project(
            "Cetus",
            social_links=project_schemas.SocialLinksPayload(twitter="https://x.com/cetus", discord=""),
        )

        updated = await project_service.update_project(
            project["id"],
            project_schemas.ProjectUpdate(social_links=project_schemas.SocialLinksPayload(github="https://gh/cetus")),
        )

        assert project["socialLinks"]["discord"] is None
        assert updated["socialLinks"]["twitter"] == "https://x.com/cetus"
        assert updated["socialLinks"]["github"] == "https://gh/cetus"
        assert await db.fetch_value("SELECT count(*) FROM social_links") == 1

    @pytest.mark.asyncio
    async def test_search_treats_like_wildcards_literally(self, pg):
        await _categories("DeFi")
        await _project("100% onchain")
        await _project("100 percent")
        await _project("snake_case")
        await _project("snakeXcase")

        assert [p["name"] for p in await project_service.search_projects("%")] == ["100% onchain"]
        assert [p["name"] for p in await project_service.search_projects("e_c")] == ["snake_case"]

    @pytest.mark.asyncio
    async def test_search_matches_category_name_case_insensitively(self, pg):
        await _categories("DeFi", "Tooling")
        await _project("Cetus", categories=["Tooling"])
        await _project("Scallop", categories=["DeFi"])

        assert [p["name"] for p in await project_service.search_projects("tool")] == ["Cetus"]

    @pytest.mark.asyncio
    async def test_failed_create_rolls_back(self, pg, monkeypatch):
        await _categories("DeFi")

        async def fail(*args, **kwargs):
            raise RuntimeError("count refresh failed")

        monkeypatch.setattr(category_repository, "refresh_project_counts", fail)

        with pytest.raises(RuntimeError):
            await _project("Cetus")

        assert await db.fetch_value("SELECT count(*) FROM projects") == 0
        assert await db.fetch_value("SELECT count(*) FROM project_categories") == 0

    @pytest.mark.asyncio
    async def test_category_in_use_cannot_be_deleted(self, pg):
        cats = await _categories("DeFi")
        await _project("Cetus")

        with pytest.raises(InvalidStateError, match="Cannot delete category with existing projects"):
            await category_service.delete_category(cats["DeFi"]["id"])
