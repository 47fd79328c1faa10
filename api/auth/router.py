"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from core import responses

from . import dependencies, schemas, service

router = APIRouter(prefix="/auth")


@router.post("/login")
async def login(request: schemas.LoginRequest) -> dict:
    result = await service.login(request)
    return responses.ok(result.model_dump(mode="json"), message="Login successful")


@router.post("/logout")
async def logout() -> dict:
    # Tokens are stateless; the client discards its copy.
    return responses.ok(None, message="Logged out successfully")


@router.get("/me")
async def me(access_token: str = Depends(dependencies.get_bearer_token)) -> dict:
    user = await service.me(access_token)
    return responses.ok(user.model_dump(mode="json"))
