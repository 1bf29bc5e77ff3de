"""
Admin review of submitted events.

Decisions are committed first; organizer and code-allocation notices are
dispatched afterwards and never influence the outcome of the decision.
"""
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.core.exceptions import AuthorizationError, ValidationError
from eventos.core.logging_config import logger
from eventos.core.types import utcnow
from eventos.models.event import Event, EventStatus
from eventos.models.user import Actor, User
from eventos.schemas.event import EventFilters
from eventos.services.event_lifecycle import (
    EventAction,
    EventService,
    LifecyclePolicy,
    resolve_transition,
)
from eventos.services.notification_service import (
    build_approval_message,
    build_codes_message,
    build_rejection_message,
)
from eventos.services.validation import rejection_reason_required

DECISION_ACTIONS = {
    "approve": EventAction.APPROVE,
    "reject": EventAction.REJECT,
}


class ReviewService:
    def __init__(
        self,
        db: AsyncSession,
        dispatcher=None,
        clock: Callable[[], datetime] = utcnow,
        policy: Optional[LifecyclePolicy] = None,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.clock = clock
        self.policy = policy or LifecyclePolicy.from_settings()
        self.events = EventService(db, clock=clock, policy=self.policy)

    async def list_for_review(self, actor: Actor) -> List[Event]:
        """Review queue: every event in en_revision, oldest first"""
        self._require_admin(actor)
        result = await self.db.execute(
            select(Event)
            .where(Event.status == EventStatus.EN_REVISION)
            .order_by(Event.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_events(self, actor: Actor, filters: EventFilters,
                          page: int = 1, limit: int = 20) -> Tuple[List[Event], int]:
        """All events for the admin panel, newest first"""
        self._require_admin(actor)
        return await self.events.search(filters, page=page, limit=limit)

    async def decide(
        self,
        actor: Actor,
        event_id: str,
        action: str,
        comments: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> Event:
        """
        Approve or reject an event in review.

        Raises AuthorizationError for non-admins, ValidationError when a
        rejection has no reason and StatePreconditionError when the event is
        no longer in en_revision. None of these mutate the event.
        """
        self._require_admin(actor)
        if action not in DECISION_ACTIONS:
            raise ValidationError(f"Unknown decision '{action}'", field="action")

        reason_check = rejection_reason_required(action, rejection_reason)
        if not reason_check.passed:
            raise ValidationError.from_results([reason_check])

        event = await self.events.load(event_id)
        return await self.apply_decision(actor, event, action, comments, rejection_reason)

    async def apply_decision(
        self,
        actor: Actor,
        event: Event,
        action: str,
        comments: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> Event:
        """
        Transition an already loaded event and commit.

        The en_revision check runs against `event` as loaded: there is no row
        lock or version column, so two admins deciding concurrently on the
        same event end with last-write-wins.
        """
        event_action = DECISION_ACTIONS[action]
        transition = resolve_transition(event.status, event_action, actor, None, self.policy)

        previous = event.status
        now = self.clock()
        event.status = transition.target
        event.updated_at = now
        # Comments and reason always describe the latest decision
        event.admin_comments = (comments or "").strip() or None
        if event_action == EventAction.REJECT:
            event.rejection_reason = rejection_reason.strip()
        else:
            event.rejection_reason = None

        await self.db.commit()
        logger.log_transition("Event", str(event.id), previous.value, transition.target.value,
                              event_action.value, actor_id=actor.id)

        await self._notify(event, event_action)
        return event

    async def _notify(self, event: Event, action: EventAction) -> None:
        if self.dispatcher is None:
            return

        owner = await self.db.get(User, event.user_id)
        organizer_email = owner.email if owner else event.email

        if action == EventAction.APPROVE:
            if organizer_email:
                self.dispatcher.dispatch(build_approval_message(event, organizer_email))
            self.dispatcher.dispatch(build_codes_message(event))
        elif organizer_email:
            self.dispatcher.dispatch(build_rejection_message(event, organizer_email))

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")
