"""Custom SQLAlchemy types for cross-database compatibility"""
from datetime import datetime, timezone
from sqlalchemy import TypeDecorator, String, DateTime
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Timezone-aware current UTC instant"""
    return datetime.now(timezone.utc)


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value


class UTCDateTime(TypeDecorator):
    """
    Stores instants as naive UTC and returns timezone-aware UTC datetimes.

    SQLite drops tzinfo, so comparisons between stored values and
    aware datetimes only work if both sides are normalized here.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
