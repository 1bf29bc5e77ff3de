"""
Event lifecycle state machine.

The transition table below is the single source of truth for which action
may move an event between states and who may perform it. Services call
`resolve_transition` before mutating anything; validation of field values
is delegated to eventos.services.validation.
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import select, delete, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from eventos.core.config import settings
from eventos.core.exceptions import (
    AuthorizationError,
    EventNotFoundError,
    StatePreconditionError,
    ValidationError,
)
from eventos.core.logging_config import logger
from eventos.core.types import utcnow
from eventos.models.event import Event, EventStatus, CertificateStatus
from eventos.models.certificate_request import CertificateRequest
from eventos.models.event_file import EventFile
from eventos.models.user import Actor, User
from eventos.schemas.event import CreateEventData, EventFilters
from eventos.services.notification_service import build_new_event_message
from eventos.services.validation import evaluate_submission, error_failures


class EventAction(str, enum.Enum):
    CREATE = "create"
    SAVE_DRAFT = "save_draft"
    SUBMIT = "submit_for_review"
    RESUBMIT = "resubmit"
    APPROVE = "approve"
    REJECT = "reject"


ADMIN_ACTIONS: FrozenSet[EventAction] = frozenset({EventAction.APPROVE, EventAction.REJECT})


@dataclass(frozen=True)
class Transition:
    source: Optional[EventStatus]
    action: EventAction
    target: EventStatus
    owner_only: bool = True
    requires_drafts: bool = False


_TRANSITION_LIST = [
    Transition(None, EventAction.CREATE, EventStatus.BORRADOR),
    Transition(EventStatus.BORRADOR, EventAction.SAVE_DRAFT, EventStatus.BORRADOR, requires_drafts=True),
    Transition(EventStatus.RECHAZADO, EventAction.SAVE_DRAFT, EventStatus.BORRADOR, requires_drafts=True),
    Transition(EventStatus.BORRADOR, EventAction.SUBMIT, EventStatus.EN_REVISION),
    Transition(EventStatus.RECHAZADO, EventAction.RESUBMIT, EventStatus.EN_REVISION),
    Transition(EventStatus.EN_REVISION, EventAction.APPROVE, EventStatus.APROBADO, owner_only=False),
    Transition(EventStatus.EN_REVISION, EventAction.REJECT, EventStatus.RECHAZADO, owner_only=False),
]

TRANSITIONS: Dict[Tuple[Optional[EventStatus], EventAction], Transition] = {
    (t.source, t.action): t for t in _TRANSITION_LIST
}


@dataclass(frozen=True)
class LifecyclePolicy:
    """
    drafts_enabled=True: events start in borrador and both borrador and
    rechazado are editable. False: create submits immediately and only
    rechazado events can be edited.
    """
    drafts_enabled: bool = True

    @property
    def editable_states(self) -> FrozenSet[EventStatus]:
        if self.drafts_enabled:
            return frozenset({EventStatus.BORRADOR, EventStatus.RECHAZADO})
        return frozenset({EventStatus.RECHAZADO})

    @classmethod
    def from_settings(cls) -> "LifecyclePolicy":
        return cls(drafts_enabled=settings.EVENT_DRAFTS_ENABLED)


def allowed_sources(action: EventAction, policy: LifecyclePolicy) -> List[str]:
    return [
        t.source.value for t in _TRANSITION_LIST
        if t.action == action and t.source is not None
        and (policy.drafts_enabled or not t.requires_drafts)
    ]


def resolve_transition(
    current: Optional[EventStatus],
    action: EventAction,
    actor: Actor,
    owner_id: Optional[str],
    policy: LifecyclePolicy,
) -> Transition:
    """Return the transition for (current, action) or raise why it is not allowed"""
    if action in ADMIN_ACTIONS and not actor.is_admin:
        raise AuthorizationError("Admin access required", action=action.value)

    transition = TRANSITIONS.get((current, action))
    if transition is None or (transition.requires_drafts and not policy.drafts_enabled):
        raise StatePreconditionError(
            f"Cannot {action.value.replace('_', ' ')} an event in state "
            f"'{current.value if current else 'new'}'",
            current_state=current.value if current else None,
            expected_states=allowed_sources(action, policy),
        )

    if transition.owner_only and owner_id is not None and str(owner_id) != actor.id:
        raise AuthorizationError("Only the event owner can perform this action", action=action.value)

    return transition


def submission_action(current: EventStatus) -> EventAction:
    return EventAction.RESUBMIT if current == EventStatus.RECHAZADO else EventAction.SUBMIT


def check_submission(data, now: datetime) -> None:
    """Raise ValidationError naming every failed rule"""
    failures = error_failures(evaluate_submission(data, now))
    if failures:
        raise ValidationError.from_results(failures)


_EDITABLE_FIELDS = (
    "name", "responsible", "email", "phone", "program", "event_type",
    "classification", "classification_other", "modality", "venue",
    "start_date", "end_date", "has_cost", "cost_details", "online_info",
    "organizers", "observations", "program_details", "speaker_cvs",
    "codigos_requeridos",
)


def apply_fields(event: Event, data: CreateEventData) -> None:
    for field_name in _EDITABLE_FIELDS:
        setattr(event, field_name, getattr(data, field_name))


def escape_like(term: str) -> str:
    """Make % and _ in user input match literally in LIKE patterns"""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class EventService:
    """
    Organizer-side event operations: create, edit, submit, read, delete.

    Every operation re-reads the event from the database before checking
    its state.
    """

    def __init__(
        self,
        db: AsyncSession,
        dispatcher=None,
        storage=None,
        clock: Callable[[], datetime] = utcnow,
        policy: Optional[LifecyclePolicy] = None,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.storage = storage
        self.clock = clock
        self.policy = policy or LifecyclePolicy.from_settings()

    # ==================== Reads ====================

    async def load(self, event_id: str) -> Event:
        result = await self.db.execute(
            select(Event)
            .where(Event.id == str(event_id))
            .execution_options(populate_existing=True)
        )
        event = result.scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    async def get_for_actor(self, actor: Actor, event_id: str) -> Event:
        event = await self.load(event_id)
        if not actor.is_admin and str(event.user_id) != actor.id:
            raise AuthorizationError("You do not have access to this event")
        return event

    async def search(self, filters: EventFilters, page: int = 1, limit: int = 20,
                     newest_first: bool = True) -> Tuple[List[Event], int]:
        conditions = []
        if filters.user_id:
            conditions.append(Event.user_id == filters.user_id)
        if filters.search:
            term = f"%{escape_like(filters.search.strip())}%"
            conditions.append(or_(
                Event.name.ilike(term, escape="\\"),
                Event.responsible.ilike(term, escape="\\"),
                Event.email.ilike(term, escape="\\"),
            ))
        if filters.program:
            conditions.append(Event.program == filters.program)
        if filters.status and filters.status != "all":
            conditions.append(Event.status == EventStatus(filters.status))
        if filters.start_date_from:
            conditions.append(Event.start_date >= filters.start_date_from)
        if filters.start_date_to:
            conditions.append(Event.start_date <= filters.start_date_to)

        count_stmt = select(func.count()).select_from(Event)
        stmt = select(Event)
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            stmt = stmt.where(and_(*conditions))

        total = await self.db.scalar(count_stmt) or 0

        order = Event.created_at.desc() if newest_first else Event.created_at.asc()
        page = max(1, page)
        limit = max(1, min(100, limit))
        result = await self.db.execute(
            stmt.order_by(order).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    # ==================== Mutations ====================

    async def create_event(self, actor: Actor, data: CreateEventData, submit: bool = False) -> Event:
        """
        Create an event owned by `actor`.

        submit=True runs the submission rules first and stores the event
        directly in en_revision. With drafts disabled this is the only way
        to create an event.
        """
        if not submit and not self.policy.drafts_enabled:
            raise StatePreconditionError(
                "Drafts are disabled: events must be submitted for review",
                expected_states=[EventStatus.EN_REVISION.value],
            )

        now = self.clock()
        created = resolve_transition(None, EventAction.CREATE, actor, None, self.policy)
        if submit:
            check_submission(data, now)

        event = Event(
            user_id=actor.id,
            status=created.target,
            certificate_status=CertificateStatus.SIN_SOLICITAR,
            created_at=now,
            updated_at=now,
        )
        apply_fields(event, data)
        self.db.add(event)
        await self.db.flush()
        logger.log_transition("Event", str(event.id), None, created.target.value,
                              EventAction.CREATE.value, actor_id=actor.id)

        if submit:
            transition = resolve_transition(event.status, EventAction.SUBMIT, actor, event.user_id, self.policy)
            self._apply(event, transition, actor, now)

        await self.db.commit()

        if submit:
            await self._notify_first_submission(event, actor)
        return event

    async def update_event(self, actor: Actor, event_id: str, data: CreateEventData,
                           as_draft: bool = True) -> Event:
        """Edit an owned event; as_draft=False also submits it for review"""
        event = await self.load(event_id)
        if str(event.user_id) != actor.id:
            raise AuthorizationError("Only the event owner can edit this event")
        if event.status not in self.policy.editable_states:
            raise StatePreconditionError(
                "Solo puedes editar eventos en borrador o rechazados"
                if self.policy.drafts_enabled else "Solo puedes editar eventos rechazados",
                current_state=event.status.value,
                expected_states=sorted(s.value for s in self.policy.editable_states),
            )

        now = self.clock()
        action = EventAction.SAVE_DRAFT if as_draft else submission_action(event.status)
        transition = resolve_transition(event.status, action, actor, event.user_id, self.policy)
        if not as_draft:
            check_submission(data, now)

        apply_fields(event, data)
        self._apply(event, transition, actor, now)
        await self.db.commit()

        if transition.action == EventAction.SUBMIT:
            await self._notify_first_submission(event, actor)
        return event

    async def submit_for_review(self, actor: Actor, event_id: str) -> Event:
        """Move a draft (or a rejected event) into review using its stored data"""
        event = await self.load(event_id)
        now = self.clock()
        transition = resolve_transition(
            event.status, submission_action(event.status), actor, event.user_id, self.policy
        )
        check_submission(event, now)

        self._apply(event, transition, actor, now)
        await self.db.commit()

        if transition.action == EventAction.SUBMIT:
            await self._notify_first_submission(event, actor)
        return event

    async def delete_event(self, actor: Actor, event_id: str) -> None:
        """Owners may delete editable events; admins may delete any event"""
        event = await self.load(event_id)
        if not actor.is_admin:
            if str(event.user_id) != actor.id:
                raise AuthorizationError("Only the event owner can delete this event")
            if event.status not in self.policy.editable_states:
                raise StatePreconditionError(
                    "Only editable events can be deleted",
                    current_state=event.status.value,
                    expected_states=sorted(s.value for s in self.policy.editable_states),
                )

        paths = list((await self.db.execute(
            select(EventFile.file_path).where(EventFile.event_id == event.id)
        )).scalars().all())
        attachment_lists = (await self.db.execute(
            select(CertificateRequest.attachments).where(CertificateRequest.event_id == event.id)
        )).scalars().all()
        for attachments in attachment_lists:
            paths.extend(a["file_path"] for a in attachments or [])

        await self.db.execute(delete(EventFile).where(EventFile.event_id == event.id))
        await self.db.execute(delete(CertificateRequest).where(CertificateRequest.event_id == event.id))
        await self.db.delete(event)
        await self.db.commit()
        logger.info(f"Deleted event {event_id}", extra={"event_type": "event_deleted", "entity_id": event_id})

        if self.storage is not None:
            for path in paths:
                await self.storage.delete_file(path)

    # ==================== Helpers ====================

    def _apply(self, event: Event, transition: Transition, actor: Actor, now: datetime) -> None:
        previous = event.status
        event.status = transition.target
        event.updated_at = now
        logger.log_transition("Event", str(event.id), previous.value if previous else None,
                              transition.target.value, transition.action.value, actor_id=actor.id)

    async def _notify_first_submission(self, event: Event, actor: Actor) -> None:
        if self.dispatcher is None:
            return
        user_name, user_email = actor.full_name, actor.email
        if not user_email:
            user = await self.db.get(User, event.user_id)
            if user is not None:
                user_name, user_email = user.full_name or "", user.email
        self.dispatcher.dispatch(build_new_event_message(event, user_name, user_email))
