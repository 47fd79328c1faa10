"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: UUID
    username: str
    role: str


class LoginResponse(BaseModel):
    user: UserResponse
    token: str
