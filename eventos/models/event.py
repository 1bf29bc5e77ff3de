from sqlalchemy import Column, String, Boolean, Integer, Text, ForeignKey, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
import enum

from eventos.core.database import Base
from eventos.core.types import GUID, UTCDateTime, generate_uuid, utcnow


def _enum_values(obj):
    return [e.value for e in obj]


class EventStatus(str, enum.Enum):
    """Primary lifecycle state"""
    BORRADOR = "borrador"
    EN_REVISION = "en_revision"
    APROBADO = "aprobado"
    RECHAZADO = "rechazado"


class CertificateStatus(str, enum.Enum):
    """Certificate sub-state, meaningful only once the event is approved"""
    SIN_SOLICITAR = "sin_solicitar"
    SOLICITADAS = "solicitadas"
    EMITIDAS = "emitidas"


class EventProgram(str, enum.Enum):
    MEDICO = "Médico"
    PSICOLOGIA = "Psicología"
    NUTRICION = "Nutrición"
    POSGRADO = "Posgrado"


class EventType(str, enum.Enum):
    ACADEMICO = "Académico"
    CULTURAL = "Cultural"
    DEPORTIVO = "Deportivo"
    SALUD = "Salud"


class EventClassification(str, enum.Enum):
    CONFERENCIA = "Conferencia"
    SEMINARIO = "Seminario"
    TALLER = "Taller"
    OTRO = "Otro"


class EventModality(str, enum.Enum):
    PRESENCIAL = "Presencial"
    EN_LINEA = "En línea"
    MIXTA = "Mixta"


STATUS_LABELS = {
    EventStatus.BORRADOR: "Borrador",
    EventStatus.EN_REVISION: "En revisión",
    EventStatus.APROBADO: "Aprobado",
    EventStatus.RECHAZADO: "Rechazado",
}

CERTIFICATE_STATUS_LABELS = {
    CertificateStatus.SIN_SOLICITAR: "Sin solicitar",
    CertificateStatus.SOLICITADAS: "Solicitadas",
    CertificateStatus.EMITIDAS: "Emitidas",
}


class Event(Base):
    """Event proposal owned by an organizer"""
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("codigos_requeridos >= 0", name="ck_events_codigos_non_negative"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Identity / contact
    name = Column(String(500), nullable=False)
    responsible = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=False, default="")

    # Classification
    program = Column(SQLEnum(EventProgram, values_callable=_enum_values), nullable=False,
                     default=EventProgram.MEDICO)
    event_type = Column("type", SQLEnum(EventType, values_callable=_enum_values), nullable=False,
                        default=EventType.ACADEMICO)
    classification = Column(SQLEnum(EventClassification, values_callable=_enum_values), nullable=False,
                            default=EventClassification.CONFERENCIA)
    classification_other = Column(String(255), nullable=True)

    # Schedule and place
    modality = Column(SQLEnum(EventModality, values_callable=_enum_values), nullable=False,
                      default=EventModality.PRESENCIAL)
    venue = Column(String(500), nullable=True)
    online_info = Column(Text, nullable=True)
    start_date = Column(UTCDateTime, nullable=True, index=True)
    end_date = Column(UTCDateTime, nullable=True)

    # Cost
    has_cost = Column(Boolean, default=False, nullable=False)
    cost_details = Column(Text, nullable=True)

    # Narrative content
    organizers = Column(Text, nullable=False, default="")
    observations = Column(Text, nullable=True)
    program_details = Column(Text, nullable=False, default="")
    speaker_cvs = Column(Text, nullable=False, default="")

    codigos_requeridos = Column(Integer, default=0, nullable=False)

    # Workflow state
    status = Column(SQLEnum(EventStatus, values_callable=_enum_values), nullable=False,
                    default=EventStatus.BORRADOR, index=True)
    certificate_status = Column(SQLEnum(CertificateStatus, values_callable=_enum_values), nullable=False,
                                default=CertificateStatus.SIN_SOLICITAR)
    admin_comments = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(UTCDateTime, default=utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="events")
    certificate_requests = relationship(
        "CertificateRequest", back_populates="event",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="CertificateRequest.requested_at"
    )
    files = relationship("EventFile", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def status_label(self) -> str:
        return STATUS_LABELS.get(self.status, str(self.status))

    @property
    def certificate_status_label(self) -> str:
        return CERTIFICATE_STATUS_LABELS.get(self.certificate_status, str(self.certificate_status))

    def __repr__(self):
        return f"<Event {self.id} {self.name!r} ({self.status.value if self.status else '-'})>"
