"""
Admin API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from auth import dependencies as auth_dependencies
from core import responses

from . import service

router = APIRouter(prefix="/admin")


@router.get("/dashboard")
async def dashboard(_: dict = Depends(auth_dependencies.get_current_user)) -> dict:
    return responses.ok(await service.dashboard())
