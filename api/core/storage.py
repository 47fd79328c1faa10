"""
Blob store backed by the local filesystem.

Objects live under UPLOAD_DIR and are served publicly at UPLOAD_BASE_URL/<key>.
Each object has a JSON sidecar (`<name>.meta.json`) holding its content type,
original filename and upload time.

Signed URLs are short-lived JWTs bound to one key and one operation
("get" or "put"); the uploads router redeems them.
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import quote

import aiofiles
import aiofiles.os
import jwt
from starlette.exceptions import HTTPException
from starlette.staticfiles import StaticFiles

from . import config
from .errors import AuthError, BadRequestError, NotFoundError, StoreError

META_SUFFIX = ".meta.json"
SIGNED_OPERATIONS = {"get", "put"}


@dataclass(frozen=True)
class StoredObject:
    url: str
    key: str
    size: int


def sanitize_segment(name: str) -> str:
    """
    Lowercase a user-supplied name and replace anything outside [a-z0-9-].
    """
    return re.sub(r"[^a-z0-9-]", "-", (name or "").strip().lower())


def normalize_key(key: str) -> str:
    raw = (key or "").strip().strip("/")
    if not raw:
        raise BadRequestError("Object key is empty.")
    parts = PurePosixPath(raw).parts
    if any(part in ("..", ".") for part in parts) or raw.endswith(META_SUFFIX):
        raise BadRequestError("Invalid object key.")
    return "/".join(parts)


def _root() -> Path:
    return Path(config.upload_dir()).resolve()


def _object_path(key: str) -> Path:
    root = _root()
    path = (root / normalize_key(key)).resolve()
    if root not in path.parents:
        raise BadRequestError("Invalid object key.")
    return path


def _meta_path(path: Path) -> Path:
    return path.with_name(path.name + META_SUFFIX)


def public_url(key: str) -> str:
    return f"{config.upload_base_url()}/{quote(normalize_key(key))}"


class PublicFiles(StaticFiles):
    """
    Serves stored objects at their public URLs. Metadata sidecars stay private.
    """

    async def get_response(self, path: str, scope):
        if path.endswith(META_SUFFIX):
            raise HTTPException(status_code=404)
        return await super().get_response(path, scope)


async def put(
    data: bytes,
    key: str,
    *,
    content_type: str,
    original_name: str | None = None,
) -> StoredObject:
    key = normalize_key(key)
    path = _object_path(key)
    meta = {
        "contentType": content_type,
        "originalName": original_name,
        "uploadedAt": datetime.now(timezone.utc).isoformat(),
    }
    try:
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        async with aiofiles.open(_meta_path(path), "w") as f:
            await f.write(json.dumps(meta))
    except OSError as exc:
        raise StoreError(f"Failed to store object: {exc.strerror or exc}") from exc
    return StoredObject(url=public_url(key), key=key, size=len(data))


async def exists(key: str) -> bool:
    return await aiofiles.os.path.isfile(_object_path(key))


async def head(key: str) -> dict[str, Any]:
    path = _object_path(key)
    try:
        stat = await aiofiles.os.stat(path)
    except FileNotFoundError as exc:
        raise NotFoundError("File not found.") from exc

    meta: dict[str, Any] = {}
    if await aiofiles.os.path.isfile(_meta_path(path)):
        async with aiofiles.open(_meta_path(path), "r") as f:
            meta = json.loads(await f.read() or "{}")

    return {
        "key": normalize_key(key),
        "size": stat.st_size,
        "contentType": meta.get("contentType") or "application/octet-stream",
        "originalName": meta.get("originalName"),
        "uploadedAt": meta.get("uploadedAt"),
        "lastModified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
    }


async def read(key: str) -> tuple[bytes, str]:
    info = await head(key)
    async with aiofiles.open(_object_path(key), "rb") as f:
        data = await f.read()
    return data, str(info["contentType"])


async def delete(key: str) -> bool:
    """
    Remove an object and its sidecar. Returns False if it did not exist.
    """
    path = _object_path(key)
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise StoreError(f"Failed to delete object: {exc.strerror or exc}") from exc

    try:
        await aiofiles.os.remove(_meta_path(path))
    except FileNotFoundError:
        pass
    return True


def _walk(root: Path, prefix: str) -> list[dict[str, Any]]:
    base = root / prefix if prefix else root
    if not base.is_dir():
        return []
    items: list[dict[str, Any]] = []
    for path in sorted(base.rglob("*")):
        if not path.is_file() or path.name.endswith(META_SUFFIX):
            continue
        stat = path.stat()
        items.append(
            {
                "key": path.relative_to(root).as_posix(),
                "size": stat.st_size,
                "lastModified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            }
        )
    return items


async def list_prefix(prefix: str) -> list[dict[str, Any]]:
    """
    List objects whose key starts with the folder `prefix`.
    """
    clean = normalize_key(prefix) if (prefix or "").strip("/") else ""
    return await asyncio.to_thread(_walk, _root(), clean)


def signed_url(
    key: str,
    *,
    operation: str,
    content_type: str | None = None,
    expires_in: int | None = None,
) -> str:
    if operation not in SIGNED_OPERATIONS:
        raise BadRequestError(f"Unsupported signed operation '{operation}'.")
    key = normalize_key(key)
    ttl = expires_in or config.signed_url_expire_s()
    now = int(time.time())
    payload = {
        "type": "blob",
        "key": key,
        "op": operation,
        "ct": content_type,
        "iat": now,
        "exp": now + ttl,
    }
    token = jwt.encode(payload, config.jwt_secret(), algorithm=config.jwt_algorithm())
    return f"{config.public_api_url()}{config.api_prefix()}/upload/blob/{quote(key)}?token={token}"


def verify_signed_token(token: str, *, key: str, operation: str) -> dict[str, Any]:
    try:
        payload = jwt.decode((token or "").strip(), config.jwt_secret(), algorithms=[config.jwt_algorithm()])
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid or expired signed URL.") from exc

    if payload.get("type") != "blob" or payload.get("op") != operation:
        raise AuthError("Signed URL does not allow this operation.")
    if payload.get("key") != normalize_key(key):
        raise AuthError("Signed URL does not match this key.")
    return payload
