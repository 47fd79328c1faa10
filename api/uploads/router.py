"""
Upload API endpoints (local blob store).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile

from auth import dependencies as auth_dependencies
from core import responses

from . import schemas, service

router = APIRouter(prefix="/upload")


@router.get("/health")
async def health() -> dict:
    return responses.ok(await service.health(), message="Storage service is healthy")


@router.post("/single")
async def upload_single(
    file: UploadFile | None = File(default=None),
    upload_type: str | None = Form(default=None, alias="type"),
    folder: str | None = Form(default=None),
    project_name: str | None = Form(default=None, alias="projectName"),
    playback_id: str | None = Form(default=None, alias="playbackId"),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    result = await service.upload_file(
        file,
        kind=upload_type,
        folder=folder,
        project_name=project_name,
        playback_id=playback_id,
    )
    return responses.ok(result, message="File uploaded successfully")


@router.post("/multiple")
async def upload_multiple(
    files: list[UploadFile] | None = File(default=None),
    upload_type: str | None = Form(default=None, alias="type"),
    folder: str | None = Form(default=None),
    project_name: str | None = Form(default=None, alias="projectName"),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    results = await service.upload_files(files or [], kind=upload_type, folder=folder, project_name=project_name)
    return responses.ok(results, message=f"{len(results)} files uploaded successfully")


@router.get("/metadata/{key:path}")
async def file_metadata(key: str) -> dict:
    return responses.ok(await service.file_metadata(key))


@router.post("/signed-url")
async def signed_url(
    request: schemas.SignedUrlRequest,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    result = service.signed_upload_url(
        filename=request.filename,
        content_type=request.content_type,
        folder=request.folder,
    )
    return responses.ok(result)


@router.get("/signed-download-url/{key:path}")
async def signed_download_url(
    key: str,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return responses.ok(await service.signed_download_url(key))


@router.get("/blob/{key:path}")
async def read_blob(key: str, token: str = Query(...)) -> Response:
    data, content_type = await service.read_signed(key, token)
    return Response(content=data, media_type=content_type)


@router.put("/blob/{key:path}")
async def write_blob(key: str, request: Request, token: str = Query(...)) -> dict:
    data = await request.body()
    result = await service.write_signed(key, token, data, request.headers.get("content-type"))
    return responses.ok(result, message="File uploaded successfully")


@router.post("/project/create-folders")
async def create_project_folders(
    request: schemas.ProjectFoldersRequest,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    result = await service.create_project_folders(request.project_name)
    return responses.ok(result, message="Project folder structure created successfully")


@router.get("/project/{project_name}/files")
async def list_project_files(project_name: str, folder: str | None = None) -> dict:
    result = await service.list_project_files(project_name, folder)
    return responses.ok(result, message="Project files retrieved successfully")


@router.post("/video/create-folder")
async def create_video_folder(
    request: schemas.VideoFolderRequest,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    result = await service.create_video_folder(request.project_name, request.playback_id)
    return responses.ok(result, message="Video folder structure created successfully")


@router.delete("/{key:path}")
async def delete_file(
    key: str,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    await service.delete_file(key)
    return responses.ok(None, message="File deleted successfully")
