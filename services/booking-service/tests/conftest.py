import os

os.environ.setdefault("BOOKING_DB", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.pop("RABBIT_URL", None)

from datetime import datetime, timezone

import httpx
import pytest
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from app.db import Base
from app.main import app
from app.payments import PaymentMethod
from app.policy import Identity, Role
from app.pricing import ServiceType
from app.routes import get_db
from app.schemas import CreateBookingRequest
from app.services import BookingService

CUSTOMER = Identity(user_id="cust-1", role=Role.CUSTOMER)
OTHER_CUSTOMER = Identity(user_id="cust-2", role=Role.CUSTOMER)
TECHNICIAN = Identity(user_id="tech-1", role=Role.TECHNICIAN)
OTHER_TECHNICIAN = Identity(user_id="tech-2", role=Role.TECHNICIAN)
ADMIN = Identity(user_id="admin-1", role=Role.ADMIN)


class RecordingPublisher:
    enabled = True

    def __init__(self):
        self.published = []

    async def publish(self, routing_key: str, message_body: str):
        self.published.append((routing_key, message_body))

    @property
    def routing_keys(self):
        return [rk for rk, _ in self.published]


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def events():
    return RecordingPublisher()


@pytest.fixture
def service(db, events):
    return BookingService(db, publisher=events)


@pytest.fixture
async def make_service(session_factory, events):
    """Independent services, each on its own session, to play concurrent requests."""
    sessions = []

    def _make():
        session = session_factory()
        sessions.append(session)
        return BookingService(session, publisher=events)

    yield _make
    for session in sessions:
        await session.close()


def booking_request(
    service_type=ServiceType.CLEANING,
    method=PaymentMethod.CASH_ON_DELIVERY,
    payment_id=None,
    wants_subscription=False,
):
    return CreateBookingRequest(
        service_type=service_type,
        address="12 Canal Road, Lahore",
        booking_date=datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc),
        wants_subscription=wants_subscription,
        payment={"method": method, "paymentId": payment_id},
    )


@pytest.fixture
def new_booking(service):
    async def _create(identity=CUSTOMER, **kwargs):
        return await service.create_booking(identity, booking_request(**kwargs))

    return _create


@pytest.fixture
def assigned_booking(service, new_booking):
    async def _create(technician=TECHNICIAN, **kwargs):
        booking = await new_booking(**kwargs)
        return await service.assign_technician(ADMIN, booking.booking_id, technician.user_id)

    return _create


@pytest.fixture
def completed_booking(service, assigned_booking):
    async def _create(**kwargs):
        booking = await assigned_booking(**kwargs)
        await service.advance_status(TECHNICIAN, booking.booking_id, "In Progress")
        return await service.advance_status(TECHNICIAN, booking.booking_id, "Completed")

    return _create


def make_token(identity: Identity) -> str:
    return jwt.encode(
        {"sub": identity.user_id, "role": identity.role.value},
        os.environ["JWT_SECRET"],
        algorithm="HS256",
    )


def auth(identity: Identity) -> dict:
    return {"Authorization": f"Bearer {make_token(identity)}"}


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
