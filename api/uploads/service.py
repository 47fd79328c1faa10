"""
Upload "service layer".

Validates uploads against per-kind rules (folder, size, mime types), builds
object keys and talks to `core.storage`. Nothing here touches the database.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePosixPath

from fastapi import UploadFile

from core import config, storage
from core.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

MB = 1024 * 1024

IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
VIDEO_TYPES = ("video/mp4", "video/webm", "video/quicktime")

PROJECT_FOLDERS = ("logo", "project-images", "project-hero-image", "project-videos")
FOLDER_MARKER = ".gitkeep"

MAX_FILES_PER_REQUEST = 10
# Signed PUTs carry no upload kind; cap them at the largest kind.
SIGNED_PUT_MAX_BYTES = 100 * MB

HEALTH_CHECK_KEY = "health-check/test.txt"


@dataclass(frozen=True)
class UploadRule:
    folder: str
    max_bytes: int
    allowed_types: tuple[str, ...] = IMAGE_TYPES


_KIND_RULES = {
    "logo": UploadRule(folder="logo", max_bytes=2 * MB),
    "project-hero-image": UploadRule(folder="project-hero-image", max_bytes=10 * MB),
    "project-image": UploadRule(folder="project-images", max_bytes=8 * MB),
    "project-images": UploadRule(folder="project-images", max_bytes=8 * MB),
    "project-video": UploadRule(folder="project-videos", max_bytes=100 * MB, allowed_types=VIDEO_TYPES),
}


def resolve_rule(kind: str | None, *, folder: str | None = None, playback_id: str | None = None) -> UploadRule:
    """
    Pick folder and limits for an upload kind. Unknown or missing kinds get
    the 5 MB image default under `folder` (or "uploads").
    """
    if kind == "video-thumbnail":
        if not (playback_id or "").strip():
            raise BadRequestError("Playback ID is required for video thumbnails")
        return UploadRule(
            folder=f"project-videos/{storage.sanitize_segment(playback_id)}/thumbnail",
            max_bytes=3 * MB,
        )
    if kind in _KIND_RULES:
        return _KIND_RULES[kind]
    return UploadRule(folder=_clean_folder(folder) or "uploads", max_bytes=5 * MB)


def _clean_folder(folder: str | None) -> str:
    raw = (folder or "").strip().strip("/")
    if not raw:
        return ""
    return "/".join(storage.sanitize_segment(part) for part in PurePosixPath(raw).parts)


def _file_ext(filename: str) -> str:
    return PurePosixPath(filename).suffix.lstrip(".").lower() or "bin"


def build_key(filename: str, *, folder: str, project_name: str | None = None) -> str:
    """
    `<project>/<folder>/<millis>-<random>.<ext>`, or without the project segment.
    """
    name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{_file_ext(filename)}"
    project = storage.sanitize_segment(project_name) if (project_name or "").strip() else ""
    parts = [p for p in (project, folder, name) if p]
    return "/".join(parts)


def _format_mb(max_bytes: int) -> str:
    value = max_bytes / MB
    return f"{value:g}MB"


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise BadRequestError(f"File too large. Maximum size: {_format_mb(max_bytes)}")

    return bytes(buf)


async def store_upload(file: UploadFile, rule: UploadRule, *, project_name: str | None = None) -> dict:
    if not file.filename:
        raise BadRequestError("No file uploaded")

    content_type = (file.content_type or "").lower()
    if content_type not in rule.allowed_types:
        raise BadRequestError(f"Invalid file type. Allowed types: {', '.join(rule.allowed_types)}")

    data = await read_upload_bytes(file, rule.max_bytes)
    key = build_key(file.filename, folder=rule.folder, project_name=project_name)
    stored = await storage.put(data, key, content_type=content_type, original_name=file.filename)

    logger.info("upload_stored key=%s size=%d content_type=%s", stored.key, stored.size, content_type)
    return {
        "url": stored.url,
        "key": stored.key,
        "originalName": file.filename,
        "size": stored.size,
        "mimetype": content_type,
    }


async def upload_file(
    file: UploadFile | None,
    *,
    kind: str | None = None,
    folder: str | None = None,
    project_name: str | None = None,
    playback_id: str | None = None,
) -> dict:
    if file is None:
        raise BadRequestError("No file uploaded")
    rule = resolve_rule(kind, folder=folder, playback_id=playback_id)
    return await store_upload(file, rule, project_name=project_name)


async def upload_files(
    files: list[UploadFile],
    *,
    kind: str | None = None,
    folder: str | None = None,
    project_name: str | None = None,
) -> list[dict]:
    if not files:
        raise BadRequestError("No files uploaded")
    if len(files) > MAX_FILES_PER_REQUEST:
        raise BadRequestError(f"Too many files. Maximum is {MAX_FILES_PER_REQUEST}")

    rule = resolve_rule(kind, folder=folder)
    # Sequential so a bad file stops the batch before later files are written.
    return [await store_upload(f, rule, project_name=project_name) for f in files]


async def delete_file(key: str) -> None:
    if not await storage.delete(key):
        raise NotFoundError("File not found")
    logger.info("upload_deleted key=%s", key)


async def file_metadata(key: str) -> dict:
    return await storage.head(key)


def signed_upload_url(*, filename: str, content_type: str, folder: str | None = None) -> dict:
    if not (filename or "").strip() or not (content_type or "").strip():
        raise BadRequestError("Filename and content type are required")

    key = build_key(filename, folder=_clean_folder(folder) or "uploads")
    expires_in = config.signed_url_expire_s()
    url = storage.signed_url(key, operation="put", content_type=content_type, expires_in=expires_in)
    return {"signedUrl": url, "key": key, "expiresIn": expires_in}


async def signed_download_url(key: str) -> dict:
    if not await storage.exists(key):
        raise NotFoundError("File not found.")
    expires_in = config.signed_url_expire_s()
    url = storage.signed_url(key, operation="get", expires_in=expires_in)
    return {"signedUrl": url, "key": storage.normalize_key(key), "expiresIn": expires_in}


async def read_signed(key: str, token: str) -> tuple[bytes, str]:
    storage.verify_signed_token(token, key=key, operation="get")
    return await storage.read(key)


async def write_signed(key: str, token: str, data: bytes, content_type: str | None) -> dict:
    claims = storage.verify_signed_token(token, key=key, operation="put")
    if len(data) > SIGNED_PUT_MAX_BYTES:
        raise BadRequestError(f"File too large. Maximum size: {_format_mb(SIGNED_PUT_MAX_BYTES)}")

    stored_type = claims.get("ct") or content_type or "application/octet-stream"
    stored = await storage.put(data, key, content_type=stored_type, original_name=PurePosixPath(key).name)
    return {"url": stored.url, "key": stored.key, "size": stored.size}


async def create_project_folders(project_name: str) -> dict:
    if not (project_name or "").strip():
        raise BadRequestError("Project name is required")

    project = storage.sanitize_segment(project_name)
    for folder in PROJECT_FOLDERS:
        await storage.put(b"", f"{project}/{folder}/{FOLDER_MARKER}", content_type="text/plain")

    logger.info("project_folders_created project=%s", project)
    return {"projectName": project_name, "folders": list(PROJECT_FOLDERS)}


async def list_project_files(project_name: str, folder: str | None = None) -> dict:
    project = storage.sanitize_segment(project_name)
    if not project.strip("-"):
        raise BadRequestError("Project name is required")

    clean_folder = _clean_folder(folder)
    prefix = f"{project}/{clean_folder}" if clean_folder else project
    files = [
        {**item, "url": storage.public_url(item["key"])}
        for item in await storage.list_prefix(prefix)
        if PurePosixPath(item["key"]).name != FOLDER_MARKER
    ]
    return {"projectName": project_name, "folder": clean_folder or "all", "files": files}


async def create_video_folder(project_name: str, playback_id: str) -> dict:
    if not (project_name or "").strip():
        raise BadRequestError("Project name is required")
    if not (playback_id or "").strip():
        raise BadRequestError("Playback ID is required")

    folder_path = (
        f"{storage.sanitize_segment(project_name)}/project-videos/{storage.sanitize_segment(playback_id)}/thumbnail"
    )
    await storage.put(b"", f"{folder_path}/{FOLDER_MARKER}", content_type="text/plain")
    return {"projectName": project_name, "playbackId": playback_id, "folderPath": f"{folder_path}/"}


async def health() -> dict:
    return {
        "storageRoot": config.upload_dir(),
        "testFileExists": await storage.exists(HEALTH_CHECK_KEY),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
