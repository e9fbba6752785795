import os
from collections.abc import AsyncGenerator
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Load environment variables from .env file
load_dotenv()

# Tests never touch the configured database; default to a throwaway in-memory SQLite
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")  # pragma: allowlist secret
os.environ.setdefault("LOG_FORMAT", "console")

from app.core.security import create_access_token  # noqa: E402
from app.database import get_db  # noqa: E402
from app.dependencies import get_cache_manager  # noqa: E402
from app.main import app  # noqa: E402
from app.models import doctors, metadata, profiles, users  # noqa: E402
from app.models.profiles import UserRole  # noqa: E402

# Not a real bcrypt hash; tests that sign in register through the API instead
FAKE_PASSWORD_HASH = "not-a-real-hash"  # pragma: allowlist secret


def _engine_kwargs() -> dict:
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {}


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a freshly created schema."""
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_kwargs())

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with the cache disabled."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(
    db: AsyncSession,
    role: UserRole = UserRole.PATIENT,
    first_name: str = "Test",
    last_name: str = "User",
) -> UUID:
    """Insert an identity and its profile; returns the user ID."""
    user_id = uuid4()
    await db.execute(
        insert(users).values(
            id=user_id,
            email=f"user.{user_id}@example.com",
            password_hash=FAKE_PASSWORD_HASH,
        )
    )
    await db.execute(
        insert(profiles).values(
            id=user_id,
            first_name=first_name,
            last_name=last_name,
            role=role.value,
        )
    )
    await db.commit()
    return user_id


async def _create_doctor(
    db: AsyncSession,
    name: str = "Dr. Sarah Johnson",
    specialty: str = "Cardiology",
    hospital: str = "Mayo Clinic",
    created_by_user_id: UUID | None = None,
    city: str | None = "Rochester",
    region: str | None = "Minnesota",
) -> UUID:
    """Insert a doctor listing; returns the doctor ID."""
    doctor_id = uuid4()
    await db.execute(
        insert(doctors).values(
            id=doctor_id,
            name=name,
            specialty=specialty,
            hospital=hospital,
            experience=15,
            education=["MD, Harvard Medical School"],
            bio="Board-certified physician.",
            languages=["English"],
            contact={
                "phone": "(507) 555-0123",
                "email": "doctor@example.com",
                "address": "200 First St SW",
                "city": city,
                "region": region,
            },
            created_by_user_id=created_by_user_id,
        )
    )
    await db.commit()
    return doctor_id


def _auth_headers(user_id: UUID) -> dict:
    """Bearer headers for a signed-in identity."""
    token = create_access_token(str(user_id))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def patient_id(db_session: AsyncSession) -> UUID:
    """A signed-up patient."""
    return await _create_user(db_session, UserRole.PATIENT, "Pat", "Patient")


@pytest_asyncio.fixture
async def doctor_user_id(db_session: AsyncSession) -> UUID:
    """A signed-up account with the doctor role."""
    return await _create_user(db_session, UserRole.DOCTOR, "Sarah", "Johnson")


@pytest_asyncio.fixture
async def doctor_id(db_session: AsyncSession) -> UUID:
    """A listing nobody has created or claimed."""
    return await _create_doctor(db_session)


@pytest.fixture
def patient_headers(patient_id: UUID) -> dict:
    """Authentication headers for the patient."""
    return _auth_headers(patient_id)


@pytest.fixture
def doctor_headers(doctor_user_id: UUID) -> dict:
    """Authentication headers for the doctor account."""
    return _auth_headers(doctor_user_id)


@pytest.fixture
def sample_doctor_data() -> dict:
    """Sample doctor listing payload."""
    return {
        "name": "Dr. Michael Chen",
        "specialty": "Neurology",
        "subspecialties": ["Stroke", "Epilepsy"],
        "hospital": "Johns Hopkins Hospital",
        "experience": 12,
        "education": ["MD, Johns Hopkins University"],
        "bio": "Neurologist focused on stroke recovery.",
        "languages": ["English", "Mandarin"],
        "accepting_new_patients": True,
        "contact": {
            "phone": "(410) 555-0198",
            "email": "mchen@example.com",
            "address": "1800 Orleans St",
            "city": "Baltimore",
            "region": "Maryland",
        },
    }


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for extra identities: ``await make_user(UserRole.DOCTOR)``."""

    async def factory(role: UserRole = UserRole.PATIENT, **kwargs) -> UUID:
        return await _create_user(db_session, role, **kwargs)

    return factory


@pytest.fixture
def make_doctor(db_session: AsyncSession):
    """Factory for extra listings: ``await make_doctor(name=..., created_by_user_id=...)``."""

    async def factory(**kwargs) -> UUID:
        return await _create_doctor(db_session, **kwargs)

    return factory


@pytest.fixture
def auth_headers_for():
    """Build bearer headers for any identity."""
    return _auth_headers
