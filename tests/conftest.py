"""Shared fixtures: in-memory database, users, tokens and an API client."""

from collections.abc import AsyncGenerator
from datetime import date, timedelta
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import trekbook.models  # noqa: F401
from trekbook.client import booking_payload
from trekbook.core.security import create_access_token
from trekbook.database import Base, get_db
from trekbook.main import app
from trekbook.models.user import User

TREK_ID = "5b0f6a52-3a8c-4f39-9d0e-0b7c2f1c9a11"
CONTACT = {"name": "Asha Rao", "email": "asha@example.com", "phone": "+919800000001"}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


async def _create_user(session_factory, email: str, role: str = "user") -> User:
    async with session_factory() as session:
        user = User(email=email, name=email.split("@")[0], role=role)
        session.add(user)
        await session.commit()
        return user


@pytest.fixture
async def traveller(session_factory) -> User:
    return await _create_user(session_factory, "asha@example.com")


@pytest.fixture
async def other_traveller(session_factory) -> User:
    return await _create_user(session_factory, "ravi@example.com")


@pytest.fixture
async def admin(session_factory) -> User:
    return await _create_user(session_factory, "ops@trekbook.in", role="admin")


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id)})


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}


def upcoming_booking(
    partial: bool = False,
    total_price: int = 1_000_000,
    participants: int = 2,
    days_ahead: int = 30,
    **partial_terms: Any,
) -> dict[str, Any]:
    """Booking body for a batch starting ``days_ahead`` days from today."""
    start = date.today() + timedelta(days=days_ahead)
    partial_payment = None
    if partial:
        partial_payment = {
            "initial_amount": 300_000,
            "final_payment_due_date": start - timedelta(days=7),
            "auto_cancel_on_due_date": False,
            **partial_terms,
        }
    return booking_payload(
        trek_id=TREK_ID,
        trek_name="Kedarkantha Winter Trek",
        batch_start_date=start,
        batch_end_date=start + timedelta(days=5),
        total_price=total_price,
        contact=CONTACT,
        number_of_participants=participants,
        partial_payment=partial_payment,
    )


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
