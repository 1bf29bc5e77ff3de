"""
Collaborator providers and request helpers for the endpoints.

Tests replace the providers through app.dependency_overrides.
"""
from pydantic import ValidationError as SchemaValidationError

from eventos.core.exceptions import ValidationError
from eventos.core.types import utcnow
from eventos.schemas.event import EventFilters
from eventos.services.notification_service import NotificationDispatcher, notification_dispatcher
from eventos.services.storage_service import StorageService, storage_service


def get_dispatcher() -> NotificationDispatcher:
    return notification_dispatcher


def get_storage() -> StorageService:
    return storage_service


def get_clock():
    return utcnow


def schema_error(exc: SchemaValidationError, message: str = "Invalid request data") -> ValidationError:
    """Turn a pydantic error raised inside an endpoint into a 400 ValidationError"""
    failures = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return ValidationError(message, failures=failures)


def build_filters(**values) -> EventFilters:
    try:
        return EventFilters(**values)
    except SchemaValidationError as e:
        raise schema_error(e, "Invalid filters")
