from sqlalchemy import Column, String, Integer, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from eventos.core.database import Base
from eventos.core.types import GUID, UTCDateTime, generate_uuid, utcnow


class FileCategory(str, enum.Enum):
    """Supporting document kind"""
    PROGRAM = "program"
    CV = "cv"


class EventFile(Base):
    """Supporting document uploaded for an event (program or speaker CV)"""
    __tablename__ = "event_files"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    event_id = Column(GUID, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    file_name = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False, unique=True)
    file_size = Column(Integer, nullable=False)
    file_type = Column(String(255), nullable=False)
    category = Column(
        SQLEnum(FileCategory, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False
    )

    uploaded_at = Column(UTCDateTime, default=utcnow, nullable=False)

    # Relationships
    event = relationship("Event", back_populates="files")

    def __repr__(self):
        return f"<EventFile {self.file_name} ({self.category.value if self.category else '-'})>"
