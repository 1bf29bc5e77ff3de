from pydantic import BaseModel, Field
from typing import Optional, List

from eventos.schemas.event import EventDraft, EventResponse

WIZARD_FIRST_STEP = 1
WIZARD_LAST_STEP = 3


class WizardSession(BaseModel):
    """
    Serializable wizard state: the client sends it back on every call,
    so a wizard can be resumed from any device.
    """
    current_step: int = Field(WIZARD_FIRST_STEP, ge=WIZARD_FIRST_STEP, le=WIZARD_LAST_STEP)
    draft: EventDraft = Field(default_factory=EventDraft)
    event_id: Optional[str] = None  # set when editing an existing event
    is_authorized: bool = False


class RuleMessage(BaseModel):
    rule: str
    field: Optional[str] = None
    message: str
    severity: str


class WizardAdvanceResponse(BaseModel):
    session: WizardSession
    advanced: bool
    errors: List[RuleMessage] = []
    advisories: List[RuleMessage] = []


class WizardFinalizeRequest(BaseModel):
    session: WizardSession
    as_draft: bool = False


class WizardFinalizeResponse(BaseModel):
    event: EventResponse
    submitted: bool
