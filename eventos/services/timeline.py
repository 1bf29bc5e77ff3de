"""Status timeline shown next to each event, derived from its current state."""
from typing import List

from eventos.models.event import (
    Event,
    EventStatus,
    CertificateStatus,
    STATUS_LABELS,
    CERTIFICATE_STATUS_LABELS,
)
from eventos.schemas.event import EventResponse, TimelineStep


def build_timeline(event: Event) -> List[TimelineStep]:
    status = event.status
    decided = status in (EventStatus.APROBADO, EventStatus.RECHAZADO)

    steps = [
        TimelineStep(
            key="borrador",
            label="Evento creado",
            completed=True,
            current=status == EventStatus.BORRADOR,
        ),
        TimelineStep(
            key="en_revision",
            label=STATUS_LABELS[EventStatus.EN_REVISION],
            completed=status != EventStatus.BORRADOR,
            current=status == EventStatus.EN_REVISION,
        ),
    ]

    if status == EventStatus.APROBADO:
        decision_label = STATUS_LABELS[EventStatus.APROBADO]
    elif status == EventStatus.RECHAZADO:
        decision_label = STATUS_LABELS[EventStatus.RECHAZADO]
    else:
        decision_label = "Pendiente"
    steps.append(TimelineStep(
        key="decision",
        label=decision_label,
        completed=decided,
        current=decided and status == EventStatus.RECHAZADO,
        detail=event.rejection_reason if status == EventStatus.RECHAZADO else event.admin_comments,
    ))

    if status == EventStatus.APROBADO:
        cert = event.certificate_status
        steps.append(TimelineStep(
            key="constancias",
            label=f"Constancias: {CERTIFICATE_STATUS_LABELS[cert]}",
            completed=cert == CertificateStatus.EMITIDAS,
            current=cert != CertificateStatus.EMITIDAS,
        ))

    return steps


def serialize_event(event: Event) -> EventResponse:
    response = EventResponse.model_validate(event)
    response.timeline = build_timeline(event)
    return response
