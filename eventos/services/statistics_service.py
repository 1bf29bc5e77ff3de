"""Dashboard counters for organizers and administrators"""
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.core.config import settings
from eventos.core.exceptions import AuthorizationError
from eventos.core.types import utcnow
from eventos.models.certificate_request import CertificateRequest, CertificateRequestStatus
from eventos.models.event import Event, EventStatus, CertificateStatus
from eventos.models.user import Actor
from eventos.schemas.event import AdminStatistics, EventStatistics


class StatisticsService:
    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def _count_by(self, column, user_id: Optional[str] = None) -> Dict:
        stmt = select(column, func.count()).select_from(column.class_).group_by(column)
        if user_id is not None:
            stmt = stmt.where(Event.user_id == user_id)
        result = await self.db.execute(stmt)
        return {key: count for key, count in result.all()}

    async def _event_statistics(self, user_id: Optional[str] = None) -> EventStatistics:
        counts = await self._count_by(Event.status, user_id)
        return EventStatistics(
            total=sum(counts.values()),
            **{status.value: counts.get(status, 0) for status in EventStatus},
        )

    async def organizer_statistics(self, actor: Actor) -> EventStatistics:
        """Counts by status over the organizer's own events"""
        return await self._event_statistics(actor.id)

    async def admin_statistics(self, actor: Actor) -> AdminStatistics:
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")

        by_status = await self._event_statistics()
        certificates = await self._count_by(Event.certificate_status)
        requests = await self._count_by(CertificateRequest.status)

        since = self.clock() - timedelta(days=settings.RECENT_EVENTS_DAYS)
        recent = await self.db.scalar(
            select(func.count()).select_from(Event).where(Event.created_at >= since)
        )

        return AdminStatistics(
            total_events=by_status.total,
            by_status=by_status,
            certificates_sin_solicitar=certificates.get(CertificateStatus.SIN_SOLICITAR, 0),
            certificates_solicitadas=certificates.get(CertificateStatus.SOLICITADAS, 0),
            certificates_emitidas=certificates.get(CertificateStatus.EMITIDAS, 0),
            certificate_requests_pending=requests.get(CertificateRequestStatus.PENDING, 0),
            certificate_requests_approved=requests.get(CertificateRequestStatus.APPROVED, 0),
            certificate_requests_rejected=requests.get(CertificateRequestStatus.REJECTED, 0),
            recent_events=recent or 0,
        )
