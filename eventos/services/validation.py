"""
Validation rules for event drafts.

Every rule is a pure function returning a RuleResult, so each one can be
tested on its own and the wizard, the lifecycle and the review workflow
can combine them as they need.

Severity:
- "error": the data is wrong and must be corrected.
- "advisory": the data is fine but a manual step is required first
  (cost follow-up, direction authorization). Advisories with
  `blocking=True` still stop the wizard.
"""
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from eventos.core.config import settings
from eventos.models.event import EventModality, EventClassification

SEVERITY_ERROR = "error"
SEVERITY_ADVISORY = "advisory"

LEAD_TIME_MESSAGE = (
    "Reagendar: no se cumple con el tiempo requerido "
    "(mínimo {days} días de anticipación)."
)
COST_ADVISORY = "Atención: Contactar al responsable de educación continua"
AUTHORIZATION_ADVISORY = "Envié su propuesta a dirección o subdirección."


@dataclass(frozen=True)
class RuleResult:
    passed: bool
    rule: str
    message: str = ""
    field: Optional[str] = None
    severity: str = SEVERITY_ERROR
    blocking: bool = True

    @property
    def blocks(self) -> bool:
        return not self.passed and self.blocking

    def to_dict(self) -> Dict:
        data = asdict(self)
        data.pop("passed")
        return data


def _ok(rule: str, field: Optional[str] = None) -> RuleResult:
    return RuleResult(passed=True, rule=rule, field=field)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _required(rule: str, field: str, message: str) -> Callable[[Optional[str]], RuleResult]:
    def check(value: Optional[str]) -> RuleResult:
        if _is_blank(value):
            return RuleResult(passed=False, rule=rule, message=message, field=field)
        return _ok(rule, field)
    check.__name__ = rule
    return check


# ==================== Required text fields ====================

name_required = _required("name_required", "name", "El nombre del evento es requerido")
phone_required = _required("phone_required", "phone", "El teléfono es requerido")
organizers_required = _required("organizers_required", "organizers", "Los organizadores son requeridos")
program_details_required = _required(
    "program_details_required", "program_details", "El programa detallado es requerido"
)
speaker_cvs_required = _required(
    "speaker_cvs_required", "speaker_cvs", "La semblanza de los ponentes es requerida"
)


def start_date_required(start_date: Optional[datetime]) -> RuleResult:
    if start_date is None:
        return RuleResult(False, "start_date_required", "La fecha de inicio es requerida", "start_date")
    return _ok("start_date_required", "start_date")


def end_date_required(end_date: Optional[datetime]) -> RuleResult:
    if end_date is None:
        return RuleResult(False, "end_date_required", "La fecha de fin es requerida", "end_date")
    return _ok("end_date_required", "end_date")


# ==================== Conditional rules ====================

def venue_required_unless_online(modality: EventModality, venue: Optional[str]) -> RuleResult:
    """Venue may be empty only for fully online events"""
    if modality != EventModality.EN_LINEA and _is_blank(venue):
        return RuleResult(False, "venue_required_unless_online", "La sede es requerida", "venue")
    return _ok("venue_required_unless_online", "venue")


def minimum_lead_time(start_date: Optional[datetime], now: datetime,
                      min_days: Optional[int] = None) -> RuleResult:
    """
    Start must be at least `min_days` full days after `now`.

    Exactly min_days * 24h passes. Both datetimes must be aware. A missing
    start date is reported by start_date_required, not here.
    """
    days = settings.MIN_LEAD_DAYS if min_days is None else min_days
    if start_date is None:
        return _ok("minimum_lead_time", "start_date")
    if start_date - now < timedelta(days=days):
        return RuleResult(False, "minimum_lead_time", LEAD_TIME_MESSAGE.format(days=days), "start_date")
    return _ok("minimum_lead_time", "start_date")


def end_not_before_start(start_date: Optional[datetime], end_date: Optional[datetime]) -> RuleResult:
    if start_date is not None and end_date is not None and end_date < start_date:
        return RuleResult(
            False, "end_not_before_start",
            "La fecha de fin no puede ser anterior a la fecha de inicio", "end_date"
        )
    return _ok("end_not_before_start", "end_date")


def cost_flagged_blocks_progression(has_cost: bool) -> RuleResult:
    """A paid event needs manual financial follow-up before the wizard continues"""
    if has_cost:
        return RuleResult(False, "cost_flagged_blocks_progression", COST_ADVISORY, "has_cost",
                          severity=SEVERITY_ADVISORY)
    return _ok("cost_flagged_blocks_progression", "has_cost")


def authorization_required(is_authorized: bool) -> RuleResult:
    """Organizer attests the proposal went through direction; never stored"""
    if not is_authorized:
        return RuleResult(False, "authorization_required", AUTHORIZATION_ADVISORY, "is_authorized",
                          severity=SEVERITY_ADVISORY)
    return _ok("authorization_required", "is_authorized")


def classification_other_described(classification: EventClassification,
                                   classification_other: Optional[str]) -> RuleResult:
    """Display hint only: does not stop the wizard"""
    if classification == EventClassification.OTRO and _is_blank(classification_other):
        return RuleResult(
            False, "classification_other_described",
            "Describe la clasificación del evento", "classification_other",
            severity=SEVERITY_ADVISORY, blocking=False,
        )
    return _ok("classification_other_described", "classification_other")


def rejection_reason_required(action: str, reason: Optional[str]) -> RuleResult:
    if action == "reject" and _is_blank(reason):
        return RuleResult(False, "rejection_reason_required", "El motivo de rechazo es requerido",
                          "rejection_reason")
    return _ok("rejection_reason_required", "rejection_reason")


# ==================== Aggregation ====================

def _data_rules(draft, now: datetime) -> List[RuleResult]:
    results = [
        name_required(draft.name),
        phone_required(draft.phone),
        venue_required_unless_online(draft.modality, draft.venue),
        start_date_required(draft.start_date),
        end_date_required(draft.end_date),
        minimum_lead_time(draft.start_date, now),
        organizers_required(draft.organizers),
        classification_other_described(draft.classification, draft.classification_other),
    ]
    if settings.ENFORCE_END_AFTER_START:
        results.append(end_not_before_start(draft.start_date, draft.end_date))
    return results


def _narrative_rules(draft) -> List[RuleResult]:
    return [
        program_details_required(draft.program_details),
        speaker_cvs_required(draft.speaker_cvs),
    ]


def evaluate_step(step: int, draft, now: datetime, is_authorized: bool = False) -> List[RuleResult]:
    """Run the rules for one wizard step (1 data, 2 narrative, 3 review)"""
    if step == 1:
        return [
            authorization_required(is_authorized),
            *_data_rules(draft, now),
            cost_flagged_blocks_progression(draft.has_cost),
        ]
    if step == 2:
        return _narrative_rules(draft)
    return []


def evaluate_submission(draft, now: datetime) -> List[RuleResult]:
    """Rules that gate moving an event out of draft into review"""
    return _data_rules(draft, now) + _narrative_rules(draft)


def blocking_failures(results: List[RuleResult]) -> List[RuleResult]:
    return [r for r in results if r.blocks]


def error_failures(results: List[RuleResult]) -> List[RuleResult]:
    """Blocking failures that are data errors rather than advisories"""
    return [r for r in results if r.blocks and r.severity == SEVERITY_ERROR]


def advisories(results: List[RuleResult]) -> List[RuleResult]:
    return [r for r in results if not r.passed and r.severity == SEVERITY_ADVISORY]
