from dataclasses import dataclass
from sqlalchemy import Column, String, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from eventos.core.database import Base
from eventos.core.types import GUID, UTCDateTime, generate_uuid, utcnow


class UserRole(str, enum.Enum):
    """User roles"""
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """Organizer or administrator account"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)

    role = Column(
        SQLEnum(UserRole, values_callable=lambda obj: [e.value for e in obj]),
        default=UserRole.USER,
        nullable=False
    )
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    events = relationship("Event", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_actor(self) -> "Actor":
        return Actor(id=str(self.id), role=self.role, email=self.email, full_name=self.full_name or "")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"


@dataclass(frozen=True)
class Actor:
    """Identity passed into workflow services: who is acting and with which role"""
    id: str
    role: UserRole
    email: str = ""
    full_name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
