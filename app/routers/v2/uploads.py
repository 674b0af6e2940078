"""File upload router (/api/v2/uploads).

Files land under `{folder}/{company_id}/...`; key-based operations refuse
keys outside the caller's company folder.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.core.auth import CurrentUser, get_current_company
from app.core.response import DataResponse, MessageResponse
from app.schemas.upload import (
    FileMetadataOut,
    PresignDownloadOut,
    PresignUploadIn,
    PresignUploadOut,
    UploadedFileOut,
)
from app.services.storage import StorageService, get_storage
from app.services.upload import IncomingFile, UploadService

router = APIRouter(prefix="/uploads", tags=["Uploads"])


def _svc(storage: StorageService, current: CurrentUser) -> UploadService:
    return UploadService(storage, current.company_id, current.id)


async def _incoming(upload: UploadFile) -> IncomingFile:
    return IncomingFile(
        filename=upload.filename or "file",
        content_type=upload.content_type or "application/octet-stream",
        body=await upload.read(),
    )


@router.post("/single", response_model=DataResponse[UploadedFileOut], status_code=status.HTTP_201_CREATED)
async def upload_single(
    file: UploadFile = File(...),
    folder: str = Form(default="uploads"),
    current: CurrentUser = Depends(get_current_company),
    storage: StorageService = Depends(get_storage),
):
    result = await _svc(storage, current).upload(await _incoming(file), folder)
    return {"message": "File uploaded successfully", "data": result}


@router.post(
    "/multiple", response_model=DataResponse[list[UploadedFileOut]], status_code=status.HTTP_201_CREATED
)
async def upload_multiple(
    files: list[UploadFile] = File(...),
    folder: str = Form(default="uploads"),
    current: CurrentUser = Depends(get_current_company),
    storage: StorageService = Depends(get_storage),
):
    incoming = [await _incoming(f) for f in files]
    results = await _svc(storage, current).upload_many(incoming, folder)
    return {"message": f"{len(results)} files uploaded successfully", "data": results}


@router.post("/presigned-upload", response_model=DataResponse[PresignUploadOut])
async def presigned_upload(
    body: PresignUploadIn,
    current: CurrentUser = Depends(get_current_company),
    storage: StorageService = Depends(get_storage),
):
    result = await _svc(storage, current).presigned_upload(body.filename, body.content_type, body.folder)
    return {"data": result}


@router.get("/presigned-download", response_model=DataResponse[PresignDownloadOut])
async def presigned_download(
    key: str = Query(min_length=1),
    current: CurrentUser = Depends(get_current_company),
    storage: StorageService = Depends(get_storage),
):
    return {"data": await _svc(storage, current).presigned_download(key)}


@router.get("/metadata", response_model=DataResponse[FileMetadataOut])
async def file_metadata(
    key: str = Query(min_length=1),
    current: CurrentUser = Depends(get_current_company),
    storage: StorageService = Depends(get_storage),
):
    return {"data": await _svc(storage, current).metadata(key)}


@router.delete("", response_model=MessageResponse)
async def delete_file(
    key: str = Query(min_length=1),
    current: CurrentUser = Depends(get_current_company),
    storage: StorageService = Depends(get_storage),
):
    await _svc(storage, current).delete(key)
    return {"message": "File deleted successfully"}
