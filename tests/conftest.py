"""
FMP Eventos - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_eventos.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['EMAIL_BACKEND'] = 'console'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_FILE'] = ''

from eventos.main import app
from eventos.api.deps import get_clock, get_dispatcher, get_storage
from eventos.core.database import Base, get_db
from eventos.core.exceptions import StorageError
from eventos.core.security import get_password_hash, create_access_token
from eventos.models.event import EventModality
from eventos.models.user import User, UserRole
from eventos.schemas.event import CreateEventData
from eventos.services.email_service import EmailMessage
from eventos.services.notification_service import NotificationDispatcher

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_eventos.db'
# NullPool: every test runs on its own event loop
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# 18:00 UTC, 10:00 in Tijuana
FIXED_NOW = datetime(2025, 3, 1, 18, 0, tzinfo=timezone.utc)


# ==================== Collaborator doubles ====================

class RecordingNotifier:
    """Notifier that keeps every message; fail=True makes every send raise"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[EmailMessage] = []
        self.attempts: List[EmailMessage] = []

    async def send(self, message: EmailMessage) -> bool:
        self.attempts.append(message)
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append(message)
        return True

    def kinds(self) -> List[str]:
        return [m.kind for m in self.attempts]


class InMemoryStorage:
    """Blob store double with the StorageService interface"""

    def __init__(self, fail_uploads: bool = False):
        self.fail_uploads = fail_uploads
        self.objects = {}
        self.deleted: List[str] = []

    async def upload_file(self, key: str, content: bytes, content_type: str, max_retries: int = 3) -> dict:
        if self.fail_uploads:
            raise StorageError("Error al subir el archivo", key=key)
        self.objects[key] = (content, content_type)
        return {'file_path': key, 'size_bytes': len(content)}

    async def delete_file(self, key: str) -> bool:
        self.deleted.append(key)
        return self.objects.pop(key, None) is not None

    async def get_presigned_url(self, key: str, expiration: int = None) -> str:
        return f"https://storage.test/{key}?expires={expiration or 3600}"


# ==================== Database ====================

@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory():
    """Independent sessions, for re-reading committed state"""
    return TestSessionLocal


# ==================== Collaborators ====================

@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier: RecordingNotifier) -> NotificationDispatcher:
    return NotificationDispatcher(notifier=notifier)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def make_event_data():
    """Complete, valid event data starting `days_ahead` days after FIXED_NOW"""
    def factory(days_ahead: float = 30, **overrides) -> CreateEventData:
        start = FIXED_NOW + timedelta(days=days_ahead)
        values = dict(
            name=f"Jornada de {fake.word()}",
            responsible=fake.name(),
            email=fake.email(),
            phone="6641234567",
            program="Médico",
            event_type="Académico",
            classification="Conferencia",
            modality=EventModality.PRESENCIAL,
            venue="Auditorio FMP",
            start_date=start,
            end_date=start + timedelta(hours=4),
            has_cost=False,
            organizers="Coordinación de Educación Continua",
            program_details="09:00 Bienvenida\n10:00 Conferencia magistral",
            speaker_cvs="Dra. Pérez, especialista en cardiología",
            codigos_requeridos=0,
        )
        values.update(overrides)
        return CreateEventData(**values)
    return factory


# ==================== Users ====================

@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test organizer"""
    user = User(
        email=fake.email(),
        hashed_password=get_password_hash('testpassword123'),
        full_name=fake.name(),
        role=UserRole.USER,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second organizer, for ownership checks"""
    user = User(
        email=fake.email(),
        hashed_password=get_password_hash('otherpassword123'),
        full_name=fake.name(),
        role=UserRole.USER,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    user = User(
        email=fake.email(),
        hashed_password=get_password_hash('adminpassword123'),
        full_name=fake.name(),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def organizer(test_user: User):
    return test_user.to_actor()


@pytest.fixture
def admin(admin_user: User):
    return admin_user.to_actor()


# ==================== HTTP ====================

@pytest.fixture
async def client(db_session: AsyncSession, dispatcher, storage) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and collaborator overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_clock] = lambda: (lambda: FIXED_NOW)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    await dispatcher.drain()
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    token_data = {
        'sub': str(test_user.id),
        'email': test_user.email,
        'role': test_user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Generate authentication headers for admin user"""
    token_data = {
        'sub': str(admin_user.id),
        'email': admin_user.email,
        'role': admin_user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}
