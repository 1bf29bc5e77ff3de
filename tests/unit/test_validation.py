"""
Unit tests for the validation rules and their per-step aggregation
"""
from datetime import timedelta

import pytest

from eventos.models.event import EventModality, EventClassification
from eventos.services.validation import (
    LEAD_TIME_MESSAGE,
    advisories,
    authorization_required,
    blocking_failures,
    classification_other_described,
    cost_flagged_blocks_progression,
    end_not_before_start,
    error_failures,
    evaluate_step,
    evaluate_submission,
    minimum_lead_time,
    name_required,
    rejection_reason_required,
    venue_required_unless_online,
)
from tests.conftest import FIXED_NOW


class TestMinimumLeadTime:
    """Lead-time gate: at least 21 full days between now and the start"""

    def test_exactly_21_days_passes(self):
        result = minimum_lead_time(FIXED_NOW + timedelta(days=21), FIXED_NOW)
        assert result.passed

    def test_one_second_short_fails(self):
        result = minimum_lead_time(FIXED_NOW + timedelta(days=21) - timedelta(seconds=1), FIXED_NOW)
        assert not result.passed
        assert result.rule == "minimum_lead_time"
        assert result.field == "start_date"
        assert result.message == LEAD_TIME_MESSAGE.format(days=21)

    @pytest.mark.parametrize("days", [0, 1, 10, 20])
    def test_short_lead_fails(self, days):
        assert not minimum_lead_time(FIXED_NOW + timedelta(days=days), FIXED_NOW).passed

    @pytest.mark.parametrize("days", [22, 30, 365])
    def test_long_lead_passes(self, days):
        assert minimum_lead_time(FIXED_NOW + timedelta(days=days), FIXED_NOW).passed

    def test_past_date_fails(self):
        assert not minimum_lead_time(FIXED_NOW - timedelta(days=1), FIXED_NOW).passed

    def test_custom_minimum(self):
        assert minimum_lead_time(FIXED_NOW + timedelta(days=7), FIXED_NOW, min_days=7).passed

    def test_missing_start_is_left_to_required_rule(self):
        assert minimum_lead_time(None, FIXED_NOW).passed


class TestVenueRule:
    """Venue can only be blank for fully online events"""

    @pytest.mark.parametrize("venue", ["", "   ", None])
    def test_online_allows_blank_venue(self, venue):
        assert venue_required_unless_online(EventModality.EN_LINEA, venue).passed

    @pytest.mark.parametrize("modality", [EventModality.PRESENCIAL, EventModality.MIXTA])
    @pytest.mark.parametrize("venue", ["", "   ", None])
    def test_in_person_requires_venue(self, modality, venue):
        result = venue_required_unless_online(modality, venue)
        assert not result.passed
        assert result.field == "venue"

    @pytest.mark.parametrize("modality", list(EventModality))
    def test_filled_venue_always_passes(self, modality):
        assert venue_required_unless_online(modality, "Room 4").passed


class TestAdvisories:
    def test_cost_blocks_as_advisory(self):
        result = cost_flagged_blocks_progression(True)
        assert not result.passed
        assert result.severity == "advisory"
        assert result.blocks

    def test_no_cost_passes(self):
        assert cost_flagged_blocks_progression(False).passed

    def test_authorization_blocks_until_confirmed(self):
        assert authorization_required(False).blocks
        assert authorization_required(True).passed

    def test_other_classification_hint_does_not_block(self):
        result = classification_other_described(EventClassification.OTRO, "")
        assert not result.passed
        assert not result.blocks

    def test_other_classification_described(self):
        assert classification_other_described(EventClassification.OTRO, "Simposio").passed


class TestSimpleRules:
    @pytest.mark.parametrize("value", ["", "  ", None])
    def test_blank_name_fails(self, value):
        assert not name_required(value).passed

    def test_name_present(self):
        assert name_required("Congreso").passed

    def test_end_before_start_fails(self):
        assert not end_not_before_start(FIXED_NOW, FIXED_NOW - timedelta(minutes=1)).passed

    def test_same_start_and_end_passes(self):
        assert end_not_before_start(FIXED_NOW, FIXED_NOW).passed

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_reject_without_reason_fails(self, reason):
        assert not rejection_reason_required("reject", reason).passed

    def test_reject_with_reason_passes(self):
        assert rejection_reason_required("reject", "budget exceeded").passed

    def test_approve_needs_no_reason(self):
        assert rejection_reason_required("approve", None).passed


class TestAggregation:
    def test_valid_submission_has_no_errors(self, make_event_data):
        assert error_failures(evaluate_submission(make_event_data(), FIXED_NOW)) == []

    def test_submission_reports_lead_time_and_venue(self, make_event_data):
        data = make_event_data(days_ahead=10, venue=None)
        failures = error_failures(evaluate_submission(data, FIXED_NOW))
        assert {f.rule for f in failures} == {"minimum_lead_time", "venue_required_unless_online"}

    def test_submission_ignores_wizard_advisories(self, make_event_data):
        data = make_event_data(has_cost=True)
        rules = {r.rule for r in evaluate_submission(data, FIXED_NOW)}
        assert "cost_flagged_blocks_progression" not in rules
        assert "authorization_required" not in rules

    def test_step_one_requires_authorization(self, make_event_data):
        results = evaluate_step(1, make_event_data(), FIXED_NOW, is_authorized=False)
        assert [r.rule for r in blocking_failures(results)] == ["authorization_required"]
        assert error_failures(results) == []

    def test_step_one_cost_is_reported_as_advisory(self, make_event_data):
        results = evaluate_step(1, make_event_data(has_cost=True), FIXED_NOW, is_authorized=True)
        assert [r.rule for r in advisories(results)] == ["cost_flagged_blocks_progression"]
        assert blocking_failures(results)

    def test_step_two_checks_narrative(self, make_event_data):
        results = evaluate_step(2, make_event_data(program_details="", speaker_cvs=" "), FIXED_NOW)
        assert {r.rule for r in blocking_failures(results)} == {
            "program_details_required", "speaker_cvs_required"
        }

    def test_review_step_has_no_rules(self, make_event_data):
        assert evaluate_step(3, make_event_data(), FIXED_NOW) == []

    def test_failure_dict_omits_passed(self):
        data = name_required("").to_dict()
        assert data["rule"] == "name_required"
        assert "passed" not in data
