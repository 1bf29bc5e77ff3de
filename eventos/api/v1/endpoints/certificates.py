from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.api.deps import get_clock, get_storage, schema_error
from eventos.api.v1.endpoints.files import read_upload
from eventos.core.database import get_db
from eventos.core.logging_config import set_event_id
from eventos.models.user import Actor
from eventos.modules.auth.dependencies import get_current_actor
from eventos.schemas.certificate import CertificateRequestCreate, CertificateRequestResponse
from eventos.services.certificate_service import CertificateService

router = APIRouter()


@router.post(
    "/{event_id}/certificates",
    response_model=CertificateRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_certificates(
    event_id: str,
    payload: str = Form(..., description="CertificateRequestCreate as JSON"),
    attendance_list: Optional[UploadFile] = File(None),
    photos: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
    clock=Depends(get_clock),
    actor: Actor = Depends(get_current_actor),
):
    """
    Request completion certificates for an approved event.

    Multipart form: `payload` (JSON with event_summary, participants,
    speakers, committee), optional `attendance_list` file and up to 10
    `photos`.
    """
    set_event_id(event_id)
    try:
        data = CertificateRequestCreate.model_validate_json(payload)
    except SchemaValidationError as e:
        raise schema_error(e, "Datos de la solicitud inválidos")

    attendance = await read_upload(attendance_list) if attendance_list is not None else None
    photo_files = [await read_upload(p) for p in photos or []]

    service = CertificateService(db, storage=storage, clock=clock)
    return await service.request_certificates(actor, event_id, data, attendance, photo_files)


@router.get("/{event_id}/certificates", response_model=List[CertificateRequestResponse])
async def list_certificate_requests(
    event_id: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    set_event_id(event_id)
    return await CertificateService(db).list_for_event(actor, event_id)
