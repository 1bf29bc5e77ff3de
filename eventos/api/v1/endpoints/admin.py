"""
Admin endpoints: event listing and review, statistics, certificate requests.
All endpoints require the admin role.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.api.deps import build_filters, get_clock, get_dispatcher, get_storage
from eventos.core.config import settings
from eventos.core.database import get_db
from eventos.core.logging_config import set_event_id
from eventos.models.event import EventProgram
from eventos.models.user import Actor
from eventos.modules.auth.dependencies import get_current_admin_actor
from eventos.schemas.certificate import CertificateRejection, CertificateRequestResponse
from eventos.schemas.event import AdminStatistics, EventListResponse, EventResponse
from eventos.schemas.review import ReviewDecision
from eventos.services.certificate_service import CertificateService
from eventos.services.review_service import ReviewService
from eventos.services.statistics_service import StatisticsService
from eventos.services.timeline import serialize_event

router = APIRouter()


@router.get("/events", response_model=EventListResponse)
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.ADMIN_EVENTS_PAGE_SIZE, ge=1, le=100),
    search: Optional[str] = None,
    program: Optional[EventProgram] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date_from: Optional[datetime] = None,
    start_date_to: Optional[datetime] = None,
    user_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin_actor),
):
    """All events with filtering and pagination, newest first"""
    filters = build_filters(
        search=search,
        program=program,
        status=status_filter,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        user_id=user_id,
    )
    events, total = await ReviewService(db).list_events(admin, filters, page=page, limit=limit)
    return EventListResponse(
        events=[serialize_event(e) for e in events],
        total=total,
        page=page,
        limit=limit,
        has_more=page * limit < total,
    )


@router.get("/events/review-queue", response_model=List[EventResponse])
async def review_queue(
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin_actor),
):
    """Events waiting for a decision, oldest first"""
    events = await ReviewService(db).list_for_review(admin)
    return [serialize_event(e) for e in events]


@router.post("/events/{event_id}/decision", response_model=EventResponse)
async def decide_event(
    event_id: str,
    decision: ReviewDecision,
    db: AsyncSession = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    clock=Depends(get_clock),
    admin: Actor = Depends(get_current_admin_actor),
):
    """Approve or reject an event in review"""
    set_event_id(event_id)
    service = ReviewService(db, dispatcher=dispatcher, clock=clock)
    event = await service.decide(
        admin,
        event_id,
        decision.action,
        comments=decision.comments,
        rejection_reason=decision.rejection_reason,
    )
    return serialize_event(event)


@router.get("/statistics", response_model=AdminStatistics)
async def admin_statistics(
    db: AsyncSession = Depends(get_db),
    clock=Depends(get_clock),
    admin: Actor = Depends(get_current_admin_actor),
):
    return await StatisticsService(db, clock=clock).admin_statistics(admin)


# ==================== Certificate requests ====================

@router.get("/certificate-requests", response_model=List[CertificateRequestResponse])
async def pending_certificate_requests(
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin_actor),
):
    return await CertificateService(db).list_pending(admin)


@router.post("/certificate-requests/{request_id}/approve", response_model=CertificateRequestResponse)
async def approve_certificate_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    storage=Depends(get_storage),
    clock=Depends(get_clock),
    admin: Actor = Depends(get_current_admin_actor),
):
    """Approve the request and mark the event's certificates as issued"""
    service = CertificateService(db, dispatcher=dispatcher, storage=storage, clock=clock)
    return await service.approve_request(admin, request_id)


@router.post("/certificate-requests/{request_id}/reject", response_model=CertificateRequestResponse)
async def reject_certificate_request(
    request_id: str,
    body: CertificateRejection,
    db: AsyncSession = Depends(get_db),
    clock=Depends(get_clock),
    admin: Actor = Depends(get_current_admin_actor),
):
    service = CertificateService(db, clock=clock)
    return await service.reject_request(admin, request_id, body.reason)
