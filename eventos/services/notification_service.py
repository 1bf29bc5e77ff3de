"""
Workflow notifications.

Messages are built from committed records and handed to the dispatcher,
which sends each one as its own asyncio task. A failed or slow notifier
never affects the workflow operation that triggered it; failures go to the
dead-letter logger and are kept in `failures` for inspection.
"""
import asyncio
import html
from collections import deque
from typing import Deque, Dict, List, Optional, Set

from eventos.core.config import settings
from eventos.core.logging_config import logger, dead_letter_logger
from eventos.core.types import utcnow
from eventos.services.email_service import EmailMessage, get_email_backend
from eventos.utils.timezone import format_local

FOOTER = "Sistema de Registro y Constancias - FMP UABC"
BRAND_COLOR = "#006341"


def _html_wrapper(title: str, intro: str, rows: Dict[str, str], closing: str = "") -> str:
    row_html = "".join(
        f"<p><strong>{html.escape(label)}:</strong> {html.escape(str(value))}</p>"
        for label, value in rows.items()
    )
    title, intro, closing = html.escape(title), html.escape(intro), html.escape(closing)
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: {BRAND_COLOR};">{title}</h2>
        <p>{intro}</p>
        <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
            {row_html}
        </div>
        <p>{closing}</p>
        <p style="color: #666; font-size: 12px; margin-top: 30px;">
            Este es un mensaje automático del {FOOTER}
        </p>
    </div>
    """


def _text_wrapper(title: str, intro: str, rows: Dict[str, str], closing: str = "") -> str:
    lines = [title, "", intro, ""]
    lines += [f"{label}: {value}" for label, value in rows.items()]
    if closing:
        lines += ["", closing]
    lines += ["", "---", FOOTER]
    return "\n".join(lines)


def _message(kind: str, to: str, subject: str, title: str, intro: str,
             rows: Dict[str, str], closing: str = "", **metadata) -> EmailMessage:
    return EmailMessage(
        to=to,
        subject=subject,
        html_body=_html_wrapper(title, intro, rows, closing),
        text_body=_text_wrapper(title, intro, rows, closing),
        kind=kind,
        metadata=metadata,
    )


# ==================== Message builders ====================

def build_new_event_message(event, user_name: str, user_email: str) -> EmailMessage:
    """Sent to the administrative inbox when an event is first submitted"""
    return _message(
        "new_event",
        settings.ADMIN_NOTIFICATION_EMAIL,
        f"Nuevo evento registrado: {event.name}",
        "Nuevo Evento Registrado",
        "Se ha registrado un nuevo evento en el sistema:",
        {
            "Evento": event.name,
            "Registrado por": user_name or user_email,
            "Email del usuario": user_email,
            "ID del evento": str(event.id),
        },
        "El evento está pendiente de revisión administrativa.",
        event_id=str(event.id),
    )


def build_approval_message(event, organizer_email: str) -> EmailMessage:
    rows = {
        "Evento": event.name,
        "Fecha de inicio": format_local(event.start_date),
        "Sede": event.venue or event.modality.value,
    }
    if event.admin_comments:
        rows["Comentarios"] = event.admin_comments
    return _message(
        "event_approved",
        organizer_email,
        f"Evento aprobado: {event.name}",
        "Evento Aprobado",
        "Tu evento ha sido aprobado por la administración.",
        rows,
        "Una vez realizado el evento podrás solicitar las constancias desde el sistema.",
        event_id=str(event.id),
    )


def build_rejection_message(event, organizer_email: str) -> EmailMessage:
    rows = {
        "Evento": event.name,
        "Motivo del rechazo": event.rejection_reason or "",
    }
    if event.admin_comments:
        rows["Comentarios"] = event.admin_comments
    return _message(
        "event_rejected",
        organizer_email,
        f"Evento rechazado: {event.name}",
        "Evento Rechazado",
        "Tu evento ha sido rechazado por la administración.",
        rows,
        "Puedes editar el evento y enviarlo nuevamente a revisión.",
        event_id=str(event.id),
    )


def build_codes_message(event) -> EmailMessage:
    """Code-allocation notice for the administrative channel on approval"""
    summary = (event.program_details or "").strip()
    if len(summary) > 500:
        summary = summary[:497] + "..."
    return _message(
        "codes_request",
        settings.CODES_NOTIFICATION_EMAIL,
        f"Códigos requeridos ({event.codigos_requeridos}): {event.name}",
        "Solicitud de Códigos",
        "Se aprobó un evento que requiere asignación de códigos:",
        {
            "Evento": event.name,
            "Códigos requeridos": str(event.codigos_requeridos),
            "Inicio": format_local(event.start_date),
            "Fin": format_local(event.end_date),
            "Modalidad": event.modality.value,
            "Sede": event.venue or "-",
            "Programa": event.program.value,
            "Tipo": event.event_type.value,
            "Clasificación": event.classification_other or event.classification.value,
            "Resumen": summary or "-",
        },
        event_id=str(event.id),
        codigos_requeridos=event.codigos_requeridos,
    )


def build_certificates_issued_message(event, organizer_email: str) -> EmailMessage:
    return _message(
        "certificates_issued",
        organizer_email,
        f"Constancias emitidas: {event.name}",
        "Constancias Emitidas",
        "La solicitud de constancias de tu evento fue aprobada.",
        {"Evento": event.name, "ID del evento": str(event.id)},
        event_id=str(event.id),
    )


# ==================== Dispatcher ====================

class NotificationDispatcher:
    """
    Fire-and-forget delivery of EmailMessages.

    `dispatch` returns immediately with the created task. Callers dispatch
    only after their transaction has committed.
    """

    def __init__(self, notifier=None, max_failures: int = 100):
        self.notifier = notifier if notifier is not None else get_email_backend()
        self._pending: Set[asyncio.Task] = set()
        self.failures: Deque[Dict] = deque(maxlen=max_failures)

    def dispatch(self, message: EmailMessage) -> asyncio.Task:
        task = asyncio.create_task(self._deliver(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def dispatch_all(self, messages: List[EmailMessage]) -> List[asyncio.Task]:
        return [self.dispatch(m) for m in messages]

    async def _deliver(self, message: EmailMessage) -> bool:
        error: Optional[str] = None
        try:
            delivered = await self.notifier.send(message)
        except Exception as e:
            delivered = False
            error = f"{type(e).__name__}: {e}"

        logger.log_notification(message.kind, message.to, delivered, **message.metadata)
        if not delivered:
            self._dead_letter(message, error or "notifier reported failure")
        return delivered

    def _dead_letter(self, message: EmailMessage, error: str) -> None:
        record = {
            "kind": message.kind,
            "to": message.to,
            "subject": message.subject,
            "error": error,
            "failed_at": utcnow().isoformat(),
            **message.metadata,
        }
        self.failures.append(record)
        dead_letter_logger.warning(
            f"Undelivered {message.kind} notification to {message.to}: {error}",
            extra={"event_type": "notification_dead_letter", **record},
        )

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every in-flight notification (shutdown and tests)"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


notification_dispatcher = NotificationDispatcher()
