"""
Certificate request sub-workflow, nested under an approved event.

    sin_solicitar --request--> solicitadas --approve--> emitidas
                                   ^   |
                                   +---+ reject (request rejected, event unchanged)

A rejected request is final; the organizer may file a new one while the
event is still in solicitadas and nothing is pending.
"""
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.core.config import settings
from eventos.core.exceptions import (
    AuthorizationError,
    CertificateRequestNotFoundError,
    StatePreconditionError,
    StorageError,
    ValidationError,
)
from eventos.core.logging_config import logger
from eventos.core.types import utcnow
from eventos.models.certificate_request import CertificateRequest, CertificateRequestStatus
from eventos.models.event import Event, EventStatus, CertificateStatus
from eventos.models.user import Actor, User
from eventos.schemas.certificate import CertificateRequestCreate
from eventos.services.event_lifecycle import EventService
from eventos.services.notification_service import build_certificates_issued_message
from eventos.services.storage_service import UploadedFile, generate_file_path, validate_file

ATTENDANCE_LIST = "attendance_list"
PHOTO = "photo"


class CertificateService:
    def __init__(
        self,
        db: AsyncSession,
        dispatcher=None,
        storage=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.storage = storage
        self.clock = clock
        self.events = EventService(db, storage=storage, clock=clock)

    # ==================== Organizer ====================

    async def request_certificates(
        self,
        actor: Actor,
        event_id: str,
        payload: CertificateRequestCreate,
        attendance_list: Optional[UploadedFile] = None,
        photos: Optional[List[UploadedFile]] = None,
    ) -> CertificateRequest:
        """
        File a certificate request for an approved event.

        Attachments are uploaded before the database write and deleted
        again if that write fails.
        """
        photos = photos or []
        event = await self.events.load(event_id)
        if str(event.user_id) != actor.id:
            raise AuthorizationError("Only the event owner can request certificates")
        if event.status != EventStatus.APROBADO:
            raise StatePreconditionError(
                "Solo se pueden solicitar constancias de eventos aprobados",
                current_state=event.status.value,
                expected_states=[EventStatus.APROBADO.value],
            )
        await self._check_can_request(event)

        if not payload.participants and attendance_list is None:
            raise ValidationError("La lista de asistencia es requerida", field="participants")
        if len(photos) > settings.CERTIFICATE_MAX_PHOTOS:
            raise ValidationError(
                f"Máximo {settings.CERTIFICATE_MAX_PHOTOS} fotos", field="photos"
            )
        if attendance_list is not None:
            validate_file(attendance_list.file_name, attendance_list.size, attendance_list.content_type)
        for photo in photos:
            validate_file(photo.file_name, photo.size, photo.content_type, images_only=True)

        attachments = await self._upload_attachments(actor, event, attendance_list, photos)

        now = self.clock()
        request = CertificateRequest(
            event_id=event.id,
            requested_by=actor.id,
            status=CertificateRequestStatus.PENDING,
            event_summary=payload.event_summary,
            participant_list=[p.model_dump(mode="json") for p in payload.participants],
            speakers=[s.model_dump() for s in payload.speakers],
            committee=[c.model_dump() for c in payload.committee],
            attachments=attachments,
            requested_at=now,
        )
        previous = event.certificate_status
        try:
            self.db.add(request)
            event.certificate_status = CertificateStatus.SOLICITADAS
            event.updated_at = now
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            await self._remove_attachments(attachments)
            raise

        logger.log_transition("Event.certificates", str(event.id), previous.value,
                              CertificateStatus.SOLICITADAS.value, "request_certificates",
                              actor_id=actor.id, certificate_request_id=str(request.id))
        return request

    async def list_for_event(self, actor: Actor, event_id: str) -> List[CertificateRequest]:
        event = await self.events.get_for_actor(actor, event_id)
        result = await self.db.execute(
            select(CertificateRequest)
            .where(CertificateRequest.event_id == event.id)
            .order_by(CertificateRequest.requested_at.asc())
        )
        return list(result.scalars().all())

    # ==================== Admin ====================

    async def list_pending(self, actor: Actor) -> List[CertificateRequest]:
        """Pending requests, oldest first"""
        self._require_admin(actor)
        result = await self.db.execute(
            select(CertificateRequest)
            .where(CertificateRequest.status == CertificateRequestStatus.PENDING)
            .order_by(CertificateRequest.requested_at.asc())
        )
        return list(result.scalars().all())

    async def approve_request(self, actor: Actor, request_id: str) -> CertificateRequest:
        """
        Approve a pending request and mark the event's certificates as issued.

        Both rows change in one transaction: any failure before the commit
        rolls back the request and the event together.
        """
        self._require_admin(actor)
        request = await self._load_pending(request_id)
        event = await self.events.load(request.event_id)

        event_id = str(event.id)
        now = self.clock()
        try:
            self._mark_request(request, CertificateRequestStatus.APPROVED, now)
            await self.db.flush()
            self._mark_event_issued(event, now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.error(
                f"Certificate approval for request {request_id} rolled back",
                extra={"event_type": "certificate_approval_failed", "entity_id": event_id},
            )
            raise

        logger.log_transition("CertificateRequest", str(request.id), CertificateRequestStatus.PENDING.value,
                              CertificateRequestStatus.APPROVED.value, "approve", actor_id=actor.id)
        logger.log_transition("Event.certificates", event_id, CertificateStatus.SOLICITADAS.value,
                              CertificateStatus.EMITIDAS.value, "approve_certificates", actor_id=actor.id)

        await self._notify_issued(event)
        return request

    async def reject_request(self, actor: Actor, request_id: str,
                             reason: Optional[str] = None) -> CertificateRequest:
        """Reject a pending request; the event stays in solicitadas"""
        self._require_admin(actor)
        request = await self._load_pending(request_id)

        self._mark_request(request, CertificateRequestStatus.REJECTED, self.clock())
        request.rejection_reason = reason.strip() if reason and reason.strip() else None
        await self.db.commit()

        logger.log_transition("CertificateRequest", str(request.id), CertificateRequestStatus.PENDING.value,
                              CertificateRequestStatus.REJECTED.value, "reject", actor_id=actor.id)
        return request

    # ==================== Helpers ====================

    async def _check_can_request(self, event: Event) -> None:
        if event.certificate_status == CertificateStatus.SIN_SOLICITAR:
            return
        if event.certificate_status == CertificateStatus.SOLICITADAS:
            pending = await self.db.scalar(
                select(CertificateRequest.id).where(
                    CertificateRequest.event_id == event.id,
                    CertificateRequest.status == CertificateRequestStatus.PENDING,
                ).limit(1)
            )
            if pending is None:
                return
            raise StatePreconditionError(
                "Ya existe una solicitud de constancias pendiente",
                current_state=event.certificate_status.value,
            )
        raise StatePreconditionError(
            "Las constancias de este evento ya fueron emitidas",
            current_state=event.certificate_status.value,
            expected_states=[CertificateStatus.SIN_SOLICITAR.value],
        )

    async def _load_pending(self, request_id: str) -> CertificateRequest:
        result = await self.db.execute(
            select(CertificateRequest)
            .where(CertificateRequest.id == str(request_id))
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise CertificateRequestNotFoundError(str(request_id))
        if request.status != CertificateRequestStatus.PENDING:
            raise StatePreconditionError(
                "La solicitud ya fue procesada",
                current_state=request.status.value,
                expected_states=[CertificateRequestStatus.PENDING.value],
            )
        return request

    @staticmethod
    def _mark_request(request: CertificateRequest, status: CertificateRequestStatus, now: datetime) -> None:
        request.status = status
        request.processed_at = now

    @staticmethod
    def _mark_event_issued(event: Event, now: datetime) -> None:
        event.certificate_status = CertificateStatus.EMITIDAS
        event.updated_at = now

    async def _upload_attachments(self, actor: Actor, event: Event,
                                  attendance_list: Optional[UploadedFile],
                                  photos: List[UploadedFile]) -> List[dict]:
        files = [(ATTENDANCE_LIST, attendance_list)] if attendance_list is not None else []
        files += [(PHOTO, photo) for photo in photos]
        if files and self.storage is None:
            raise StorageError("File storage is not configured")

        uploaded: List[dict] = []
        try:
            for kind, upload in files:
                path = generate_file_path(actor.id, str(event.id), f"certificates/{kind}", upload.file_name)
                await self.storage.upload_file(path, upload.content, upload.content_type)
                uploaded.append({
                    "kind": kind,
                    "file_name": upload.file_name,
                    "file_path": path,
                    "file_size": upload.size,
                    "file_type": upload.content_type,
                })
        except StorageError:
            await self._remove_attachments(uploaded)
            raise
        return uploaded

    async def _remove_attachments(self, attachments: List[dict]) -> None:
        if self.storage is None:
            return
        for attachment in attachments:
            await self.storage.delete_file(attachment["file_path"])

    async def _notify_issued(self, event: Event) -> None:
        if self.dispatcher is None:
            return
        owner = await self.db.get(User, event.user_id)
        organizer_email = owner.email if owner else event.email
        if organizer_email:
            self.dispatcher.dispatch(build_certificates_issued_message(event, organizer_email))

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")
