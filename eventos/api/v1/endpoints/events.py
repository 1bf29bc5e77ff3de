"""
Organizer event endpoints: listing, wizard, edit, submit, delete.

Wizard routes are declared before /{event_id} so "wizard" and "statistics"
are never parsed as event ids.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.api.deps import build_filters, get_clock, get_dispatcher, get_storage
from eventos.core.database import get_db
from eventos.core.logging_config import set_event_id
from eventos.models.event import EventProgram
from eventos.models.user import Actor
from eventos.modules.auth.dependencies import get_current_actor
from eventos.schemas.event import (
    EventDraft,
    EventListResponse,
    EventResponse,
    EventStatistics,
)
from eventos.schemas.wizard import (
    WizardAdvanceResponse,
    WizardFinalizeRequest,
    WizardFinalizeResponse,
    WizardSession,
)
from eventos.services.event_lifecycle import EventService
from eventos.services.statistics_service import StatisticsService
from eventos.services.timeline import serialize_event
from eventos.services.wizard import EventWizard, build_create_data

router = APIRouter()


@router.get("", response_model=EventListResponse)
async def list_my_events(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    program: Optional[EventProgram] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date_from: Optional[datetime] = None,
    start_date_to: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Events owned by the current organizer, newest first"""
    filters = build_filters(
        search=search,
        program=program,
        status=status_filter,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        user_id=actor.id,
    )
    events, total = await EventService(db).search(filters, page=page, limit=limit)
    return EventListResponse(
        events=[serialize_event(e) for e in events],
        total=total,
        page=page,
        limit=limit,
        has_more=page * limit < total,
    )


@router.get("/statistics", response_model=EventStatistics)
async def my_statistics(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return await StatisticsService(db).organizer_statistics(actor)


# ==================== Wizard ====================

@router.post("/wizard/advance", response_model=WizardAdvanceResponse)
async def wizard_advance(
    session: WizardSession,
    db: AsyncSession = Depends(get_db),
    clock=Depends(get_clock),
    actor: Actor = Depends(get_current_actor),
):
    """Validate the current step; move forward only when nothing blocks"""
    return EventWizard(db, clock=clock).advance(session)


@router.post("/wizard/retreat", response_model=WizardSession)
async def wizard_retreat(
    session: WizardSession,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return EventWizard(db).retreat(session)


@router.post("/wizard/finalize", response_model=WizardFinalizeResponse, status_code=status.HTTP_201_CREATED)
async def wizard_finalize(
    body: WizardFinalizeRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    clock=Depends(get_clock),
    actor: Actor = Depends(get_current_actor),
):
    """Save the wizard draft or submit it for review"""
    wizard = EventWizard(db, dispatcher=dispatcher, clock=clock)
    event, submitted = await wizard.finalize(body.session, actor, as_draft=body.as_draft)
    return WizardFinalizeResponse(event=serialize_event(event), submitted=submitted)


# ==================== Single event ====================

@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    set_event_id(event_id)
    event = await EventService(db).get_for_actor(actor, event_id)
    return serialize_event(event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    draft: EventDraft,
    submit: bool = Query(False, description="Submit for review after saving"),
    db: AsyncSession = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    clock=Depends(get_clock),
    actor: Actor = Depends(get_current_actor),
):
    """Edit a draft or rejected event"""
    set_event_id(event_id)
    service = EventService(db, dispatcher=dispatcher, clock=clock)
    event = await service.update_event(actor, event_id, build_create_data(draft), as_draft=not submit)
    return serialize_event(event)


@router.post("/{event_id}/submit", response_model=EventResponse)
async def submit_event(
    event_id: str,
    db: AsyncSession = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    clock=Depends(get_clock),
    actor: Actor = Depends(get_current_actor),
):
    set_event_id(event_id)
    service = EventService(db, dispatcher=dispatcher, clock=clock)
    event = await service.submit_for_review(actor, event_id)
    return serialize_event(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
):
    set_event_id(event_id)
    await EventService(db, storage=storage).delete_event(actor, event_id)
