# Re-export all models for convenient imports
from eventos.models.user import User, UserRole, Actor
from eventos.models.event import (
    Event,
    EventStatus,
    CertificateStatus,
    EventProgram,
    EventType,
    EventClassification,
    EventModality,
    STATUS_LABELS,
    CERTIFICATE_STATUS_LABELS,
)
from eventos.models.certificate_request import CertificateRequest, CertificateRequestStatus
from eventos.models.event_file import EventFile, FileCategory

__all__ = [
    # User
    "User",
    "UserRole",
    "Actor",
    # Event
    "Event",
    "EventStatus",
    "CertificateStatus",
    "EventProgram",
    "EventType",
    "EventClassification",
    "EventModality",
    "STATUS_LABELS",
    "CERTIFICATE_STATUS_LABELS",
    # Certificates
    "CertificateRequest",
    "CertificateRequestStatus",
    # Files
    "EventFile",
    "FileCategory",
]
