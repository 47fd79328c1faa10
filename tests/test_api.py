"""
HTTP layer: envelope, status mapping, validation and auth guard.
"""

import asyncio
import uuid

import pytest
from fastapi.testclient import TestClient

from auth import dependencies as auth_dependencies
from auth import service as auth_service
from core import config
from main import app

PREFIX = config.api_prefix()


@pytest.fixture
def client(store):
    app.dependency_overrides[auth_dependencies.get_current_user] = lambda: {"id": uuid.uuid4(), "role": "admin"}
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(store):
    return TestClient(app)


def _create_category(client, name="DeFi"):
    response = client.post(
        f"{PREFIX}/categories",
        json={"name": name, "description": f"{name} projects", "icon": f"/category/{name}.svg"},
    )
    assert response.status_code == 201
    return response.json()["data"]


class TestEnvelope:

    def test_health(self, anonymous_client):
        body = anonymous_client.get(f"{PREFIX}/health").json()

        assert body["success"] is True
        assert body["version"] == config.APP_VERSION

    def test_not_found_maps_to_404(self, client):
        response = client.get(f"{PREFIX}/projects/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Project not found"}

    def test_validation_error_maps_to_400(self, client):
        response = client.post(f"{PREFIX}/projects", json={"name": "", "categories": []})

        body = response.json()
        assert response.status_code == 400
        assert body["error"] == "Validation error"
        assert {d["field"] for d in body["details"]} >= {"name", "categories"}

    def test_limit_above_hundred_is_rejected(self, client):
        response = client.get(f"{PREFIX}/projects", params={"limit": 101})

        assert response.status_code == 400

    def test_conflict_maps_to_409(self, client):
        _create_category(client)

        response = client.post(
            f"{PREFIX}/categories",
            json={"name": "DeFi", "description": "again", "icon": "/category/defi.svg"},
        )

        assert response.status_code == 409
        assert response.json()["success"] is False


class TestAuthGuard:

    def test_mutation_without_token_is_401(self, anonymous_client):
        response = anonymous_client.post(
            f"{PREFIX}/categories",
            json={"name": "DeFi", "description": "", "icon": "/category/defi.svg"},
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "No token provided"}

    def test_signed_download_url_requires_token(self, anonymous_client):
        response = anonymous_client.get(f"{PREFIX}/upload/signed-download-url/cetus/logo/a.png")

        assert response.status_code == 401

    def test_reads_are_public(self, anonymous_client):
        response = anonymous_client.get(f"{PREFIX}/categories")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": []}

    def test_login_then_me(self, anonymous_client, store):
        asyncio.run(auth_service.ensure_admin("admin", "admin123"))
        login = anonymous_client.post(f"{PREFIX}/auth/login", json={"username": "admin", "password": "admin123"})
        token = login.json()["data"]["token"]

        me = anonymous_client.get(f"{PREFIX}/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert login.json()["message"] == "Login successful"
        assert me.json()["data"]["username"] == "admin"


class TestProjectsApi:

    def test_create_list_and_paginate(self, client):
        _create_category(client)
        for i in range(3):
            response = client.post(
                f"{PREFIX}/projects",
                json={"name": f"Project {i}", "categories": ["DeFi"], "isOpenSource": True},
            )
            assert response.status_code == 201

        body = client.get(f"{PREFIX}/projects", params={"page": 2, "limit": 2}).json()

        assert len(body["data"]) == 1
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}
        assert body["data"][0]["isOpenSource"] is True

    def test_featured_cap_maps_to_400(self, client):
        _create_category(client)
        for i in range(3):
            client.post(f"{PREFIX}/projects", json={"name": f"F{i}", "categories": ["DeFi"], "featured": True})

        response = client.post(f"{PREFIX}/projects", json={"name": "F4", "categories": ["DeFi"], "featured": True})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Maximum of 3 featured projects")

    def test_delete_category_in_use_maps_to_400(self, client):
        category = _create_category(client)
        client.post(f"{PREFIX}/projects", json={"name": "Cetus", "categories": ["DeFi"]})

        response = client.delete(f"{PREFIX}/categories/{category['id']}")

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot delete category with existing projects"

    def test_unknown_status_filter_is_400(self, client):
        response = client.get(f"{PREFIX}/projects", params={"status": "coming-soon"})

        assert response.status_code == 400

    def test_video_create_and_search(self, client):
        _create_category(client)
        project = client.post(f"{PREFIX}/projects", json={"name": "Cetus", "categories": ["DeFi"]}).json()["data"]

        created = client.post(
            f"{PREFIX}/videos/project/{project['id']}",
            json={"title": "Intro", "playbackId": "pb-1"},
        )
        duplicate = client.post(
            f"{PREFIX}/videos/project/{project['id']}",
            json={"title": "Again", "playbackId": "pb-1"},
        )
        found = client.get(f"{PREFIX}/videos/search", params={"q": "intro"}).json()

        assert created.status_code == 201
        assert created.json()["data"]["categories"] == ["DeFi"]
        assert duplicate.status_code == 409
        assert [v["playbackId"] for v in found["data"]] == ["pb-1"]

    def test_dashboard(self, client):
        _create_category(client)
        client.post(f"{PREFIX}/projects", json={"name": "Cetus", "categories": ["DeFi"], "status": "published"})
        client.post(f"{PREFIX}/projects", json={"name": "Scallop", "categories": ["DeFi"]})

        data = client.get(f"{PREFIX}/admin/dashboard").json()["data"]

        assert data["totalProjects"] == 2
        assert data["publishedProjects"] == 1
        assert data["totalCategories"] == 1
        assert [p["name"] for p in data["recentProjects"]] == ["Scallop", "Cetus"]
        assert data["topCategories"][0]["projectCount"] == 2
