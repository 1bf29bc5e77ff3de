"""
Unit tests for the three-step event wizard
"""
from datetime import datetime, timedelta, timezone

import pytest

from eventos.core.exceptions import StatePreconditionError, ValidationError
from eventos.models.event import EventModality, EventClassification, EventStatus
from eventos.schemas.event import EventDraft
from eventos.schemas.wizard import WizardSession
from eventos.services.wizard import EventWizard, build_create_data, draft_from_event
from tests.conftest import FIXED_NOW

TIJUANA = "America/Tijuana"


def complete_draft(**overrides) -> EventDraft:
    # FIXED_NOW is 2025-03-01 10:00 local; April dates are 40+ days ahead
    values = dict(
        name="Congreso de Salud Mental",
        responsible="Dra. Ruiz",
        email="ruiz@uabc.edu.mx",
        phone="6649876543",
        modality=EventModality.PRESENCIAL,
        venue="Auditorio FMP",
        start_date=datetime(2025, 4, 15, 9, 0),
        end_date=datetime(2025, 4, 15, 14, 0),
        organizers="Facultad de Medicina y Psicología",
        program_details="Mesa redonda y conferencias",
        speaker_cvs="Dr. López, psiquiatra",
        codigos_requeridos=2,
    )
    values.update(overrides)
    return EventDraft(**values)


@pytest.fixture
def wizard(db_session, dispatcher):
    return EventWizard(db_session, dispatcher=dispatcher, clock=lambda: FIXED_NOW, zone_id=TIJUANA)


class TestBuildCreateData:
    def test_dates_are_converted_from_local_time(self):
        data = build_create_data(complete_draft(), TIJUANA)
        assert data.start_date == datetime(2025, 4, 15, 16, 0, tzinfo=timezone.utc)

    def test_online_event_drops_venue(self):
        data = build_create_data(complete_draft(modality=EventModality.EN_LINEA, venue="Sala 1",
                                                online_info="https://meet.example/abc"), TIJUANA)
        assert data.venue is None
        assert data.online_info == "https://meet.example/abc"

    def test_in_person_event_drops_online_info(self):
        data = build_create_data(complete_draft(online_info="https://meet.example/abc"), TIJUANA)
        assert data.online_info is None

    def test_other_description_only_kept_for_other(self):
        data = build_create_data(complete_draft(classification_other="Simposio"), TIJUANA)
        assert data.classification_other is None

        data = build_create_data(complete_draft(classification=EventClassification.OTRO,
                                                classification_other=" Simposio "), TIJUANA)
        assert data.classification_other == "Simposio"

    def test_cost_details_only_kept_with_cost(self):
        assert build_create_data(complete_draft(cost_details="$500"), TIJUANA).cost_details is None
        assert build_create_data(complete_draft(has_cost=True, cost_details="$500"), TIJUANA).cost_details == "$500"


class TestAdvanceAndRetreat:
    def test_step_one_blocked_until_authorized(self, wizard):
        session = WizardSession(current_step=1, draft=complete_draft(), is_authorized=False)

        response = wizard.advance(session)

        assert not response.advanced
        assert response.session.current_step == 1
        assert response.errors == []
        assert [a.rule for a in response.advisories] == ["authorization_required"]

    def test_step_one_advances(self, wizard):
        session = WizardSession(current_step=1, draft=complete_draft(), is_authorized=True)

        response = wizard.advance(session)

        assert response.advanced
        assert response.session.current_step == 2

    def test_cost_advisory_blocks(self, wizard):
        session = WizardSession(current_step=1, draft=complete_draft(has_cost=True), is_authorized=True)

        response = wizard.advance(session)

        assert not response.advanced
        assert [a.rule for a in response.advisories] == ["cost_flagged_blocks_progression"]

    def test_step_one_reports_every_error(self, wizard):
        draft = complete_draft(
            name="", venue="",
            start_date=datetime(2025, 3, 5, 9, 0), end_date=datetime(2025, 3, 5, 12, 0),
        )
        response = wizard.advance(WizardSession(current_step=1, draft=draft, is_authorized=True))

        assert {e.rule for e in response.errors} == {
            "name_required", "venue_required_unless_online", "minimum_lead_time"
        }

    def test_other_hint_does_not_block(self, wizard):
        draft = complete_draft(classification=EventClassification.OTRO)
        response = wizard.advance(WizardSession(current_step=1, draft=draft, is_authorized=True))

        assert response.advanced
        assert [a.rule for a in response.advisories] == ["classification_other_described"]

    def test_step_two_requires_narrative(self, wizard):
        draft = complete_draft(program_details="")
        response = wizard.advance(WizardSession(current_step=2, draft=draft, is_authorized=True))

        assert not response.advanced
        assert [e.rule for e in response.errors] == ["program_details_required"]

    def test_cannot_advance_past_review(self, wizard):
        with pytest.raises(StatePreconditionError):
            wizard.advance(WizardSession(current_step=3, draft=complete_draft()))

    def test_retreat(self, wizard):
        session = wizard.retreat(WizardSession(current_step=2, draft=complete_draft()))
        assert session.current_step == 1
        assert session.draft.name == "Congreso de Salud Mental"

    def test_cannot_retreat_from_first_step(self, wizard):
        with pytest.raises(StatePreconditionError):
            wizard.retreat(WizardSession(current_step=1))


class TestFinalize:
    async def test_submit_new_event(self, wizard, organizer, dispatcher, notifier):
        session = WizardSession(current_step=3, draft=complete_draft(), is_authorized=True)

        event, submitted = await wizard.finalize(session, organizer, as_draft=False)
        await dispatcher.drain()

        assert submitted
        assert event.status == EventStatus.EN_REVISION
        assert event.start_date == datetime(2025, 4, 15, 16, 0, tzinfo=timezone.utc)
        assert event.codigos_requeridos == 2
        assert notifier.kinds() == ["new_event"]

    async def test_save_draft_skips_gates(self, wizard, organizer, notifier):
        session = WizardSession(current_step=3, draft=complete_draft(has_cost=True), is_authorized=False)

        event, submitted = await wizard.finalize(session, organizer, as_draft=True)

        assert not submitted
        assert event.status == EventStatus.BORRADOR
        assert notifier.attempts == []

    async def test_submit_rechecks_lead_time_against_current_time(self, db_session, organizer):
        draft = complete_draft(start_date=datetime(2025, 3, 23, 9, 0), end_date=datetime(2025, 3, 23, 12, 0))
        session = WizardSession(current_step=1, draft=draft, is_authorized=True)

        early = EventWizard(db_session, clock=lambda: FIXED_NOW, zone_id=TIJUANA)
        session = early.advance(session).session
        session = early.advance(session).session
        assert session.current_step == 3

        late = EventWizard(db_session, clock=lambda: FIXED_NOW + timedelta(days=2), zone_id=TIJUANA)
        with pytest.raises(ValidationError) as exc_info:
            await late.finalize(session, organizer, as_draft=False)
        assert [f["rule"] for f in exc_info.value.failures] == ["minimum_lead_time"]

    async def test_submit_rechecks_authorization(self, wizard, organizer):
        session = WizardSession(current_step=3, draft=complete_draft(), is_authorized=False)

        with pytest.raises(ValidationError):
            await wizard.finalize(session, organizer, as_draft=False)

    async def test_finalize_before_review_step(self, wizard, organizer):
        with pytest.raises(StatePreconditionError):
            await wizard.finalize(WizardSession(current_step=2, draft=complete_draft()), organizer, as_draft=True)

    async def test_edit_existing_draft(self, wizard, organizer):
        session = WizardSession(current_step=3, draft=complete_draft(), is_authorized=True)
        draft_event, _ = await wizard.finalize(session, organizer, as_draft=True)

        edited = draft_from_event(draft_event).model_copy(update={"name": "Congreso (edición 2)"})
        session = WizardSession(current_step=3, draft=edited, event_id=draft_event.id, is_authorized=True)
        event, submitted = await wizard.finalize(session, organizer, as_draft=False)

        assert submitted
        assert event.id == draft_event.id
        assert event.name == "Congreso (edición 2)"
        assert event.status == EventStatus.EN_REVISION
        assert event.start_date == draft_event.start_date
