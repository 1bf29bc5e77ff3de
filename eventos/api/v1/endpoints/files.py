from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.api.deps import get_storage
from eventos.core.database import get_db
from eventos.core.logging_config import set_event_id
from eventos.models.event_file import FileCategory
from eventos.models.user import Actor
from eventos.modules.auth.dependencies import get_current_actor
from eventos.schemas.files import EventFileResponse
from eventos.services.event_files_service import EventFilesService
from eventos.services.storage_service import UploadedFile

router = APIRouter()


async def read_upload(upload: UploadFile) -> UploadedFile:
    content = await upload.read()
    return UploadedFile(
        file_name=upload.filename or "file",
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )


@router.get("/{event_id}/files", response_model=List[EventFileResponse])
async def list_event_files(
    event_id: str,
    category: Optional[FileCategory] = None,
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
):
    set_event_id(event_id)
    return await EventFilesService(db, storage).list_files(actor, event_id, category)


@router.post("/{event_id}/files", response_model=EventFileResponse, status_code=status.HTTP_201_CREATED)
async def upload_event_file(
    event_id: str,
    category: FileCategory = Form(...),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
):
    """Upload a program document or speaker CV (PDF, DOC, DOCX, TXT or image, max 10MB)"""
    set_event_id(event_id)
    service = EventFilesService(db, storage)
    record = await service.upload(actor, event_id, category, await read_upload(file))
    response = EventFileResponse.model_validate(record)
    response.url = await storage.get_presigned_url(record.file_path)
    return response


@router.delete("/{event_id}/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_file(
    event_id: str,
    file_id: str,
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
):
    set_event_id(event_id)
    await EventFilesService(db, storage).delete(actor, event_id, file_id)
