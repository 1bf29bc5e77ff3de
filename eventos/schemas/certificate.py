from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime

from eventos.core.config import settings
from eventos.models.certificate_request import CertificateRequestStatus


class Speaker(BaseModel):
    name: str = Field(..., min_length=1)
    role: str = Field("Ponente", min_length=1)


class CommitteeMember(BaseModel):
    name: str = Field(..., min_length=1)
    role: str = Field("Coordinador", min_length=1)


class Participant(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None


class CertificateRequestCreate(BaseModel):
    """Organizer payload; files travel separately as multipart parts"""
    event_summary: str
    participants: List[Participant] = []
    speakers: List[Speaker] = []
    committee: List[CommitteeMember] = []

    @field_validator("event_summary")
    @classmethod
    def validate_summary(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("La reseña es requerida")
        if len(v.split()) > settings.CERTIFICATE_SUMMARY_MAX_WORDS:
            raise ValueError(f"Máximo {settings.CERTIFICATE_SUMMARY_MAX_WORDS} palabras")
        return v


class CertificateRejection(BaseModel):
    reason: Optional[str] = None


class CertificateRequestResponse(BaseModel):
    id: str
    event_id: str
    requested_by: Optional[str]
    status: CertificateRequestStatus
    event_summary: str
    participant_list: List[dict]
    speakers: List[dict]
    committee: List[dict]
    attachments: List[dict]
    rejection_reason: Optional[str]
    requested_at: datetime
    processed_at: Optional[datetime]

    class Config:
        from_attributes = True
