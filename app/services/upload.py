"""Upload validation and storage of tenant files."""

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath

from app.core.config import settings
from app.core.exceptions import FileUploadError, ForbiddenError
from app.services.storage import StorageService, key_belongs_to, make_key

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".pdf", ".csv", ".xlsx", ".xls"}


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    body: bytes


def validate_file(file: IncomingFile) -> None:
    ext = PurePosixPath(file.filename or "").suffix.lower()
    if file.content_type not in settings.allowed_upload_types:
        raise FileUploadError(f"File type {file.content_type} is not allowed")
    if ext not in ALLOWED_EXTENSIONS:
        raise FileUploadError(f"File extension {ext or '(none)'} is not allowed")
    if len(file.body) > settings.max_upload_size_bytes:
        raise FileUploadError(
            f"File too large. Maximum size is {settings.max_upload_size_mb}MB", status_code=413
        )
    if not file.body:
        raise FileUploadError("File is empty")


class UploadService:
    def __init__(self, storage: StorageService, company_id: str, user_id: str | None = None):
        self._storage = storage
        self._company_id = company_id
        self._user_id = user_id

    def _check_key(self, key: str) -> None:
        if not key_belongs_to(key, self._company_id):
            raise ForbiddenError("Access denied to this file")

    async def upload(self, file: IncomingFile, folder: str = "uploads") -> dict:
        validate_file(file)
        key = make_key(folder, self._company_id, file.filename)
        metadata = {
            "original-name": file.filename.encode("ascii", "ignore").decode("ascii"),
            "company-id": self._company_id,
        }
        if self._user_id:
            metadata["uploaded-by"] = self._user_id
        result = await self._storage.upload_file(file.body, key, file.content_type, metadata)
        return {**result, "original_name": file.filename}

    async def upload_many(self, files: list[IncomingFile], folder: str = "uploads") -> list[dict]:
        if not files:
            raise FileUploadError("No files uploaded")
        if len(files) > settings.max_upload_files:
            raise FileUploadError(f"Too many files. Maximum is {settings.max_upload_files}")
        # Validate everything before the first byte is stored
        for file in files:
            validate_file(file)
        return [await self.upload(file, folder) for file in files]

    async def presigned_upload(self, filename: str, content_type: str, folder: str = "uploads") -> dict:
        ext = PurePosixPath(filename or "").suffix.lower()
        if content_type not in settings.allowed_upload_types or ext not in ALLOWED_EXTENSIONS:
            raise FileUploadError(f"File type {content_type} is not allowed")
        key = make_key(folder, self._company_id, filename)
        return await self._storage.generate_presigned_upload_url(key, content_type)

    async def presigned_download(self, key: str) -> dict:
        self._check_key(key)
        return await self._storage.generate_presigned_download_url(key)

    async def metadata(self, key: str) -> dict:
        self._check_key(key)
        meta = await self._storage.get_file_metadata(key)
        if meta is None:
            raise FileUploadError("File not found", status_code=404)
        return meta

    async def delete(self, key: str) -> None:
        self._check_key(key)
        await self._storage.delete_file(key)
        logger.info("File %s deleted by %s", key, self._user_id)
