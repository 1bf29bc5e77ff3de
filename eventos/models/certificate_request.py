from sqlalchemy import Column, Text, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from eventos.core.database import Base
from eventos.core.types import GUID, UTCDateTime, generate_uuid, utcnow


class CertificateRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CertificateRequest(Base):
    """Request to issue completion certificates for one approved event"""
    __tablename__ = "certificate_requests"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    event_id = Column(GUID, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    status = Column(
        SQLEnum(CertificateRequestStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=CertificateRequestStatus.PENDING,
        nullable=False,
        index=True
    )

    # Payload
    event_summary = Column(Text, nullable=False)
    participant_list = Column(JSON, nullable=False, default=list)  # [{"name": ..., "email": ...}]
    speakers = Column(JSON, nullable=False, default=list)  # [{"name": ..., "role": ...}]
    committee = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)  # [{"kind", "file_name", "file_path", ...}]

    rejection_reason = Column(Text, nullable=True)

    # Timestamps
    requested_at = Column(UTCDateTime, default=utcnow, nullable=False, index=True)
    processed_at = Column(UTCDateTime, nullable=True)

    # Relationships
    event = relationship("Event", back_populates="certificate_requests")

    def __repr__(self):
        return f"<CertificateRequest {self.id} event={self.event_id} ({self.status.value if self.status else '-'})>"
