"""
Upload API schemas (JSON bodies; multipart fields are declared on the routes).
"""

from __future__ import annotations

from pydantic import Field

from core.schemas import CamelModel


class SignedUrlRequest(CamelModel):
    filename: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)
    folder: str | None = None


class ProjectFoldersRequest(CamelModel):
    project_name: str = Field(..., min_length=1)


class VideoFolderRequest(CamelModel):
    project_name: str = Field(..., min_length=1)
    playback_id: str = Field(..., min_length=1)
