"""File upload schemas."""

from datetime import datetime

from app.schemas.common import CamelModel


class UploadedFileOut(CamelModel):
    key: str
    url: str
    bucket: str
    size: int
    content_type: str
    etag: str | None = None
    original_name: str


class PresignUploadIn(CamelModel):
    filename: str
    content_type: str
    folder: str = "uploads"


class PresignUploadOut(CamelModel):
    upload_url: str
    key: str
    file_url: str
    expires_in: int


class PresignDownloadOut(CamelModel):
    download_url: str
    key: str
    expires_in: int


class FileMetadataOut(CamelModel):
    key: str
    content_type: str | None = None
    size: int | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    metadata: dict[str, str] = {}
