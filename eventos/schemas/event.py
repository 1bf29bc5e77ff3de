from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime

from eventos.models.event import (
    EventStatus,
    CertificateStatus,
    EventProgram,
    EventType,
    EventClassification,
    EventModality,
)


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class EventDraft(BaseModel):
    """
    In-progress event data as entered by the organizer.

    Dates without an offset are local wall-clock values in the event timezone;
    they are normalized to UTC instants when the draft is finalized.
    """
    name: str = ""
    responsible: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: str = ""
    program: EventProgram = EventProgram.MEDICO
    event_type: EventType = EventType.ACADEMICO
    classification: EventClassification = EventClassification.CONFERENCIA
    classification_other: Optional[str] = None
    modality: EventModality = EventModality.PRESENCIAL
    venue: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    has_cost: bool = False
    cost_details: Optional[str] = None
    online_info: Optional[str] = None
    organizers: str = ""
    observations: Optional[str] = None
    program_details: str = ""
    speaker_cvs: str = ""
    codigos_requeridos: int = Field(0, ge=0)

    @field_validator(
        "responsible", "email", "classification_other", "cost_details",
        "online_info", "observations", "start_date", "end_date",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("venue", mode="before")
    @classmethod
    def venue_none_to_blank(cls, v):
        return "" if v is None else v


class CreateEventData(BaseModel):
    """Complete, normalized payload handed to the lifecycle on save or submit"""
    name: str
    responsible: Optional[str] = None
    email: Optional[str] = None
    phone: str
    program: EventProgram
    event_type: EventType
    classification: EventClassification
    classification_other: Optional[str] = None
    modality: EventModality
    venue: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    has_cost: bool = False
    cost_details: Optional[str] = None
    online_info: Optional[str] = None
    organizers: str
    observations: Optional[str] = None
    program_details: str
    speaker_cvs: str
    codigos_requeridos: int = Field(0, ge=0)


class TimelineStep(BaseModel):
    key: str
    label: str
    completed: bool
    current: bool = False
    detail: Optional[str] = None


class EventResponse(BaseModel):
    id: str
    user_id: str
    name: str
    responsible: Optional[str]
    email: Optional[str]
    phone: str
    program: EventProgram
    event_type: EventType
    classification: EventClassification
    classification_other: Optional[str]
    modality: EventModality
    venue: Optional[str]
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    has_cost: bool
    cost_details: Optional[str]
    online_info: Optional[str]
    organizers: str
    observations: Optional[str]
    program_details: str
    speaker_cvs: str
    codigos_requeridos: int
    status: EventStatus
    status_label: str
    certificate_status: CertificateStatus
    certificate_status_label: str
    admin_comments: Optional[str]
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime
    timeline: List[TimelineStep] = []

    class Config:
        from_attributes = True


class EventListResponse(BaseModel):
    events: List[EventResponse]
    total: int
    page: int
    limit: int
    has_more: bool


class EventFilters(BaseModel):
    """Search filters shared by organizer and admin listings"""
    search: Optional[str] = None
    program: Optional[EventProgram] = None
    status: Optional[str] = None  # an EventStatus value or "all"
    start_date_from: Optional[datetime] = None
    start_date_to: Optional[datetime] = None
    user_id: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is None or v == "all":
            return v
        EventStatus(v)
        return v


class EventStatistics(BaseModel):
    total: int
    borrador: int = 0
    en_revision: int = 0
    aprobado: int = 0
    rechazado: int = 0


class AdminStatistics(BaseModel):
    total_events: int
    by_status: EventStatistics
    certificates_sin_solicitar: int = 0
    certificates_solicitadas: int = 0
    certificates_emitidas: int = 0
    certificate_requests_pending: int = 0
    certificate_requests_approved: int = 0
    certificate_requests_rejected: int = 0
    recent_events: int = 0
