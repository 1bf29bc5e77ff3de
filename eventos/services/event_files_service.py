"""
Supporting documents (program, speaker CVs) attached to an event.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.core.exceptions import AuthorizationError, EventFileNotFoundError
from eventos.core.logging_config import logger
from eventos.models.event_file import EventFile, FileCategory
from eventos.models.user import Actor
from eventos.schemas.files import EventFileResponse
from eventos.services.event_lifecycle import EventService
from eventos.services.storage_service import UploadedFile, generate_file_path, validate_file


class EventFilesService:
    def __init__(self, db: AsyncSession, storage):
        self.db = db
        self.storage = storage
        self.events = EventService(db, storage=storage)

    async def upload(self, actor: Actor, event_id: str, category: FileCategory,
                     upload: UploadedFile) -> EventFile:
        """
        Validate, store and record one file.

        The blob is removed again when the database insert fails, so a stored
        object always has a matching row.
        """
        event = await self.events.load(event_id)
        if str(event.user_id) != actor.id:
            raise AuthorizationError("Only the event owner can upload files")

        validate_file(upload.file_name, upload.size, upload.content_type)

        path = generate_file_path(actor.id, str(event.id), category.value, upload.file_name)
        await self.storage.upload_file(path, upload.content, upload.content_type)

        record = EventFile(
            event_id=event.id,
            user_id=actor.id,
            file_name=upload.file_name,
            file_path=path,
            file_size=upload.size,
            file_type=upload.content_type,
            category=category,
        )
        try:
            self.db.add(record)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            await self.storage.delete_file(path)
            raise

        logger.info(
            f"Uploaded {category.value} file {upload.file_name} for event {event_id}",
            extra={"event_type": "file_uploaded", "entity_id": str(event.id), "file_path": path},
        )
        return record

    async def list_files(self, actor: Actor, event_id: str,
                         category: Optional[FileCategory] = None) -> List[EventFileResponse]:
        """Files of an event with signed download URLs, newest first"""
        event = await self.events.get_for_actor(actor, event_id)

        stmt = select(EventFile).where(EventFile.event_id == event.id)
        if category is not None:
            stmt = stmt.where(EventFile.category == category)
        result = await self.db.execute(stmt.order_by(EventFile.uploaded_at.desc()))

        files = []
        for record in result.scalars().all():
            response = EventFileResponse.model_validate(record)
            response.url = await self.storage.get_presigned_url(record.file_path)
            files.append(response)
        return files

    async def delete(self, actor: Actor, event_id: str, file_id: str) -> None:
        """Owner or admin"""
        result = await self.db.execute(
            select(EventFile).where(EventFile.id == str(file_id), EventFile.event_id == str(event_id))
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise EventFileNotFoundError(str(file_id))
        if not actor.is_admin and str(record.user_id) != actor.id:
            raise AuthorizationError("You do not have access to this file")

        path = record.file_path
        await self.db.delete(record)
        await self.db.commit()
        await self.storage.delete_file(path)
