# Pydantic schemas
from eventos.schemas.event import (
    EventDraft,
    CreateEventData,
    EventResponse,
    EventListResponse,
    EventFilters,
    EventStatistics,
    AdminStatistics,
    TimelineStep,
)
from eventos.schemas.review import ReviewDecision
from eventos.schemas.certificate import (
    CertificateRequestCreate,
    CertificateRequestResponse,
    CertificateRejection,
    Participant,
    Speaker,
    CommitteeMember,
)
from eventos.schemas.wizard import (
    WizardSession,
    WizardAdvanceResponse,
    WizardFinalizeRequest,
    WizardFinalizeResponse,
    RuleMessage,
)
from eventos.schemas.files import EventFileResponse
from eventos.schemas.auth import UserRegister, UserLogin, UserResponse, Token
