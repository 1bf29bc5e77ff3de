"""
Unit tests for the admin review workflow
"""
from datetime import timedelta

import pytest

from eventos.core.exceptions import AuthorizationError, StatePreconditionError, ValidationError
from eventos.models.event import EventStatus
from eventos.schemas.event import EventFilters
from eventos.services.event_lifecycle import EventService
from eventos.services.notification_service import NotificationDispatcher
from eventos.services.review_service import ReviewService
from tests.conftest import FIXED_NOW, RecordingNotifier

DECIDED_AT = FIXED_NOW + timedelta(days=1)


async def submitted_event(db_session, organizer, make_event_data, **overrides):
    service = EventService(db_session, clock=lambda: FIXED_NOW)
    return await service.create_event(organizer, make_event_data(**overrides), submit=True)


@pytest.fixture
def review(db_session, dispatcher):
    return ReviewService(db_session, dispatcher=dispatcher, clock=lambda: DECIDED_AT)


class TestDecide:
    async def test_approve_sends_both_notices_once(self, db_session, organizer, test_user, admin,
                                                  make_event_data, review, dispatcher, notifier):
        event = await submitted_event(db_session, organizer, make_event_data, codigos_requeridos=3)

        decided = await review.decide(admin, event.id, "approve", comments="ok")
        await dispatcher.drain()

        assert decided.status == EventStatus.APROBADO
        assert decided.admin_comments == "ok"
        assert decided.updated_at == DECIDED_AT
        assert sorted(notifier.kinds()) == ["codes_request", "event_approved"]

        approval = next(m for m in notifier.sent if m.kind == "event_approved")
        codes = next(m for m in notifier.sent if m.kind == "codes_request")
        assert approval.to == test_user.email
        assert codes.metadata["codigos_requeridos"] == 3
        assert "Códigos requeridos: 3" in codes.text_body

    async def test_approve_succeeds_when_notifier_always_fails(self, db_session, organizer, admin,
                                                               make_event_data):
        failing = NotificationDispatcher(notifier=RecordingNotifier(fail=True))
        review = ReviewService(db_session, dispatcher=failing, clock=lambda: DECIDED_AT)
        event = await submitted_event(db_session, organizer, make_event_data)

        decided = await review.decide(admin, event.id, "approve")
        await failing.drain()

        assert decided.status == EventStatus.APROBADO
        assert (await review.events.load(event.id)).status == EventStatus.APROBADO
        assert len(failing.failures) == 2
        assert {f["kind"] for f in failing.failures} == {"event_approved", "codes_request"}

    async def test_reject_persists_exact_reason(self, db_session, organizer, admin, make_event_data,
                                                review, dispatcher, notifier):
        event = await submitted_event(db_session, organizer, make_event_data)

        decided = await review.decide(admin, event.id, "reject", rejection_reason="budget exceeded")
        await dispatcher.drain()

        assert decided.status == EventStatus.RECHAZADO
        assert decided.rejection_reason == "budget exceeded"
        assert notifier.kinds() == ["event_rejected"]

    @pytest.mark.parametrize("reason", ["", "   ", None])
    async def test_reject_without_reason_leaves_event_untouched(self, db_session, organizer, admin,
                                                                make_event_data, review, notifier, reason):
        event = await submitted_event(db_session, organizer, make_event_data)

        with pytest.raises(ValidationError) as exc_info:
            await review.decide(admin, event.id, "reject", rejection_reason=reason)
        assert exc_info.value.failures[0]["rule"] == "rejection_reason_required"

        reloaded = await review.events.load(event.id)
        assert reloaded.status == EventStatus.EN_REVISION
        assert reloaded.rejection_reason is None
        assert reloaded.updated_at == FIXED_NOW
        assert notifier.attempts == []

    async def test_second_decision_fails_and_keeps_first(self, db_session, organizer, admin,
                                                        make_event_data, review):
        event = await submitted_event(db_session, organizer, make_event_data)
        await review.decide(admin, event.id, "approve")

        with pytest.raises(StatePreconditionError):
            await review.decide(admin, event.id, "reject", rejection_reason="too late")

        reloaded = await review.events.load(event.id)
        assert reloaded.status == EventStatus.APROBADO
        assert reloaded.rejection_reason is None

    async def test_blank_comments_not_stored(self, db_session, organizer, admin, make_event_data, review):
        event = await submitted_event(db_session, organizer, make_event_data)
        decided = await review.decide(admin, event.id, "approve", comments="   ")
        assert decided.admin_comments is None

    async def test_approval_after_resubmit_drops_previous_rejection(self, db_session, organizer, admin,
                                                                    make_event_data, review, dispatcher,
                                                                    notifier):
        event = await submitted_event(db_session, organizer, make_event_data)
        await review.decide(admin, event.id, "reject", comments="Falta presupuesto",
                            rejection_reason="sin CV")
        await EventService(db_session, clock=lambda: FIXED_NOW).submit_for_review(organizer, event.id)

        decided = await review.decide(admin, event.id, "approve")
        await dispatcher.drain()

        assert decided.status == EventStatus.APROBADO
        assert decided.admin_comments is None
        assert decided.rejection_reason is None
        approval = next(m for m in notifier.sent if m.kind == "event_approved")
        assert "Falta presupuesto" not in approval.text_body
        assert "Falta presupuesto" not in approval.html_body

    async def test_organizer_cannot_decide(self, db_session, organizer, make_event_data, review):
        event = await submitted_event(db_session, organizer, make_event_data)

        with pytest.raises(AuthorizationError):
            await review.decide(organizer, event.id, "approve")
        assert (await review.events.load(event.id)).status == EventStatus.EN_REVISION

    async def test_draft_cannot_be_decided(self, db_session, organizer, admin, make_event_data, review):
        draft = await EventService(db_session, clock=lambda: FIXED_NOW).create_event(organizer, make_event_data())

        with pytest.raises(StatePreconditionError):
            await review.decide(admin, draft.id, "approve")


class TestConcurrentDecisions:
    async def test_stale_double_decision_is_last_write_wins(self, db_session, session_factory, organizer,
                                                            admin, make_event_data):
        """
        Known gap: two admins load the event while it is in review and both
        decide. Without row locking or a version column the second commit
        silently overwrites the first.
        """
        event = await submitted_event(db_session, organizer, make_event_data)

        async with session_factory() as first, session_factory() as second:
            first_review = ReviewService(first, clock=lambda: DECIDED_AT)
            second_review = ReviewService(second, clock=lambda: DECIDED_AT)
            seen_by_first = await first_review.events.load(event.id)
            seen_by_second = await second_review.events.load(event.id)

            await first_review.apply_decision(admin, seen_by_first, "approve")
            await second_review.apply_decision(admin, seen_by_second, "reject",
                                               rejection_reason="duplicado")

        async with session_factory() as fresh:
            final = await EventService(fresh).load(event.id)
            assert final.status == EventStatus.RECHAZADO
            assert final.rejection_reason == "duplicado"

    async def test_sequential_double_decision_is_rejected(self, db_session, session_factory, organizer,
                                                          admin, make_event_data):
        event = await submitted_event(db_session, organizer, make_event_data)

        async with session_factory() as first, session_factory() as second:
            await ReviewService(first).decide(admin, event.id, "approve")
            with pytest.raises(StatePreconditionError):
                await ReviewService(second).decide(admin, event.id, "reject", rejection_reason="x")


class TestListings:
    async def test_review_queue_oldest_first(self, db_session, organizer, admin, make_event_data):
        service = EventService(db_session)
        for offset, name in [(2, "Tercero"), (0, "Primero"), (1, "Segundo")]:
            service.clock = lambda o=offset: FIXED_NOW + timedelta(hours=o)
            await service.create_event(organizer, make_event_data(name=name), submit=True)
        service.clock = lambda: FIXED_NOW
        await service.create_event(organizer, make_event_data(name="Borrador"))

        queue = await ReviewService(db_session).list_for_review(admin)
        assert [e.name for e in queue] == ["Primero", "Segundo", "Tercero"]

    async def test_queue_requires_admin(self, db_session, organizer):
        with pytest.raises(AuthorizationError):
            await ReviewService(db_session).list_for_review(organizer)

    async def test_admin_listing_filters(self, db_session, organizer, admin, make_event_data):
        service = EventService(db_session, clock=lambda: FIXED_NOW)
        await service.create_event(organizer, make_event_data(name="Simposio de Nutrición", program="Nutrición"))
        await service.create_event(organizer, make_event_data(name="Taller Médico", program="Médico"))

        events, total = await ReviewService(db_session).list_events(
            admin, EventFilters(program="Nutrición", status="all")
        )
        assert total == 1
        assert events[0].name == "Simposio de Nutrición"
