"""
Three-step event wizard: (1) event data, (2) program and speakers, (3) review.

The wizard holds no state of its own. Each call receives a WizardSession
and returns the next one, so a half-filled form can be resumed later.
"""
from datetime import datetime
from typing import Callable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from eventos.core.config import settings
from eventos.core.exceptions import StatePreconditionError, ValidationError
from eventos.core.types import utcnow
from eventos.models.event import Event, EventModality, EventClassification
from eventos.models.user import Actor
from eventos.schemas.event import EventDraft, CreateEventData
from eventos.schemas.wizard import (
    WizardSession,
    WizardAdvanceResponse,
    RuleMessage,
    WIZARD_FIRST_STEP,
    WIZARD_LAST_STEP,
)
from eventos.services.event_lifecycle import EventService, LifecyclePolicy
from eventos.services.validation import (
    evaluate_step,
    blocking_failures,
    error_failures,
    advisories,
)
from eventos.utils.timezone import local_wall_clock_to_instant


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_create_data(draft: EventDraft, zone_id: Optional[str] = None) -> CreateEventData:
    """
    Normalize a draft into the payload stored on the event.

    - dates become UTC instants (naive values are read in the event timezone)
    - venue is dropped for online events, online_info for in-person ones
    - classification_other and cost_details only survive when they apply
    """
    zone_id = zone_id or settings.EVENT_TIMEZONE
    online = draft.modality == EventModality.EN_LINEA

    return CreateEventData(
        name=draft.name.strip(),
        responsible=_clean(draft.responsible),
        email=str(draft.email) if draft.email else None,
        phone=draft.phone.strip(),
        program=draft.program,
        event_type=draft.event_type,
        classification=draft.classification,
        classification_other=(
            _clean(draft.classification_other)
            if draft.classification == EventClassification.OTRO else None
        ),
        modality=draft.modality,
        venue=None if online else _clean(draft.venue),
        start_date=local_wall_clock_to_instant(draft.start_date, zone_id) if draft.start_date else None,
        end_date=local_wall_clock_to_instant(draft.end_date, zone_id) if draft.end_date else None,
        has_cost=draft.has_cost,
        cost_details=_clean(draft.cost_details) if draft.has_cost else None,
        online_info=None if draft.modality == EventModality.PRESENCIAL else _clean(draft.online_info),
        organizers=draft.organizers.strip(),
        observations=_clean(draft.observations),
        program_details=draft.program_details.strip(),
        speaker_cvs=draft.speaker_cvs.strip(),
        codigos_requeridos=draft.codigos_requeridos,
    )


def draft_from_event(event: Event) -> EventDraft:
    """Load an existing event back into a draft (edit flow); dates stay as instants"""
    return EventDraft(
        name=event.name,
        responsible=event.responsible,
        email=event.email,
        phone=event.phone,
        program=event.program,
        event_type=event.event_type,
        classification=event.classification,
        classification_other=event.classification_other,
        modality=event.modality,
        venue=event.venue or "",
        start_date=event.start_date,
        end_date=event.end_date,
        has_cost=event.has_cost,
        cost_details=event.cost_details,
        online_info=event.online_info,
        organizers=event.organizers,
        observations=event.observations,
        program_details=event.program_details,
        speaker_cvs=event.speaker_cvs,
        codigos_requeridos=event.codigos_requeridos,
    )


def _messages(results) -> list:
    return [
        RuleMessage(rule=r.rule, field=r.field, message=r.message, severity=r.severity)
        for r in results
    ]


class EventWizard:
    """Drives the wizard and hands finished drafts to the EventService"""

    def __init__(
        self,
        db: AsyncSession,
        dispatcher=None,
        clock: Callable[[], datetime] = utcnow,
        policy: Optional[LifecyclePolicy] = None,
        zone_id: Optional[str] = None,
    ):
        self.db = db
        self.clock = clock
        self.zone_id = zone_id or settings.EVENT_TIMEZONE
        self.events = EventService(db, dispatcher=dispatcher, clock=clock, policy=policy)

    def check_step(self, session: WizardSession, step: Optional[int] = None):
        data = build_create_data(session.draft, self.zone_id)
        return evaluate_step(step or session.current_step, data, self.clock(), session.is_authorized)

    def advance(self, session: WizardSession) -> WizardAdvanceResponse:
        """Validate the current step and move to the next one if nothing blocks"""
        if session.current_step >= WIZARD_LAST_STEP:
            raise StatePreconditionError(
                "The review step is the last one; save or submit instead",
                current_state=str(session.current_step),
            )

        results = self.check_step(session)
        blocked = blocking_failures(results)
        advanced = not blocked
        next_session = session.model_copy(
            update={"current_step": session.current_step + 1 if advanced else session.current_step}
        )
        return WizardAdvanceResponse(
            session=next_session,
            advanced=advanced,
            errors=_messages(error_failures(results)),
            advisories=_messages(advisories(results)),
        )

    def retreat(self, session: WizardSession) -> WizardSession:
        if session.current_step <= WIZARD_FIRST_STEP:
            raise StatePreconditionError(
                "Already at the first step",
                current_state=str(session.current_step),
            )
        return session.model_copy(update={"current_step": session.current_step - 1})

    async def finalize(self, session: WizardSession, actor: Actor, as_draft: bool) -> Tuple[Event, bool]:
        """
        Save the draft or submit it for review.

        Submitting re-runs every wizard gate against the current time, so a
        start date that was fine when step 1 passed can still be rejected
        here. Returns (event, submitted).
        """
        if session.current_step != WIZARD_LAST_STEP:
            raise StatePreconditionError(
                "Finish the wizard steps before saving",
                current_state=str(session.current_step),
                expected_states=[str(WIZARD_LAST_STEP)],
            )

        data = build_create_data(session.draft, self.zone_id)

        if not as_draft:
            now = self.clock()
            results = [
                *evaluate_step(1, data, now, session.is_authorized),
                *evaluate_step(2, data, now),
            ]
            blocked = blocking_failures(results)
            if blocked:
                raise ValidationError.from_results(blocked)

        if session.event_id:
            event = await self.events.update_event(actor, session.event_id, data, as_draft=as_draft)
        else:
            event = await self.events.create_event(actor, data, submit=not as_draft)

        return event, not as_draft
