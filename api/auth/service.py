"""
Auth business logic.

The catalog services never check credentials themselves; routers guard
mutating endpoints with `dependencies.get_current_user`.
"""

from __future__ import annotations

import logging
from uuid import UUID

from core.errors import AuthError

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=user_row["id"],
        username=str(user_row["username"]),
        role=str(user_row.get("role") or "admin"),
    )


async def login(payload: schemas.LoginRequest) -> schemas.LoginResponse:
    user_row = await repository.get_user_by_username(payload.username)
    if user_row is None:
        logger.info("login_rejected username=%s reason=unknown_user", payload.username)
        raise AuthError("Invalid credentials")

    is_valid = security.verify_password(payload.password, str(user_row.get("password_hash") or ""))
    if not is_valid:
        logger.info("login_rejected username=%s reason=bad_password", payload.username)
        raise AuthError("Invalid credentials")

    token = security.build_access_token(
        user_id=str(user_row["id"]),
        username=str(user_row["username"]),
        role=str(user_row.get("role") or "admin"),
    )
    return schemas.LoginResponse(user=_to_user_response(user_row), token=token)


async def get_user_from_access_token(access_token: str) -> dict:
    try:
        payload = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise AuthError(str(exc)) from exc

    subject = str(payload.get("sub") or "").strip()
    try:
        user_id = UUID(subject)
    except ValueError as exc:
        raise AuthError("Invalid access token subject.") from exc

    user_row = await repository.get_user_by_id(user_id)
    if user_row is None:
        raise AuthError("User not found.")
    if str(user_row.get("role") or "") != "admin":
        raise AuthError("Admin role required.")
    return user_row


async def me(access_token: str) -> schemas.UserResponse:
    user_row = await get_user_from_access_token(access_token)
    return _to_user_response(user_row)


async def ensure_admin(username: str, password: str) -> dict:
    """
    Create the admin user, or reset its password if it already exists.
    """
    password_hash = security.hash_password(password)
    existing = await repository.get_user_by_username(username)
    if existing is not None:
        await repository.set_password_hash(existing["id"], password_hash)
        return existing
    return await repository.create_user(username=username, password_hash=password_hash, role="admin")
