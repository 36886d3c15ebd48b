from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .db import SessionLocal
from .policy import Identity
from .schemas import (
    AssignTechnicianRequest,
    BookingEnvelope,
    BookingListResponse,
    BookingResponse,
    BookingUpdateRequest,
    CreateBookingRequest,
    ImagesUpdate,
    RatingRequest,
    StatusUpdateRequest,
)
from .security import get_current_identity
from .services import BookingService, MSG_ASSIGNED, MSG_RATED, MSG_UPDATED

router = APIRouter()


async def get_db():
    async with SessionLocal() as session:
        yield session


def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService(db)


def _envelope(booking, message: str | None = None) -> BookingEnvelope:
    return BookingEnvelope(data=BookingResponse.from_booking(booking), message=message)


@router.post("/bookings", response_model=BookingEnvelope, status_code=201)
async def create_booking(
    data: CreateBookingRequest,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.create_booking(identity, data)
    return _envelope(booking)


@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    bookings = await service.list_bookings(identity)
    return BookingListResponse(data=[BookingResponse.from_booking(b) for b in bookings])


@router.get("/bookings/attention", response_model=BookingListResponse)
async def list_bookings_needing_attention(
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    bookings = await service.list_needing_attention(identity)
    return BookingListResponse(data=[BookingResponse.from_booking(b) for b in bookings])


@router.get("/bookings/{booking_id}", response_model=BookingEnvelope)
async def get_booking(
    booking_id: str,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.get_booking(identity, booking_id)
    return _envelope(booking)


@router.put("/bookings/{booking_id}", response_model=BookingEnvelope)
async def update_booking(
    booking_id: str,
    data: BookingUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    booking, message = await service.update_booking(identity, booking_id, data)
    return _envelope(booking, message)


@router.post("/bookings/{booking_id}/assign", response_model=BookingEnvelope)
async def assign_technician(
    booking_id: str,
    data: AssignTechnicianRequest,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.assign_technician(identity, booking_id, data.technician)
    return _envelope(booking, MSG_ASSIGNED)


@router.post("/bookings/{booking_id}/status", response_model=BookingEnvelope)
async def advance_status(
    booking_id: str,
    data: StatusUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.advance_status(identity, booking_id, data.status)
    return _envelope(booking, MSG_UPDATED)


@router.put("/bookings/{booking_id}/images", response_model=BookingEnvelope)
async def attach_images(
    booking_id: str,
    data: ImagesUpdate,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.attach_images(identity, booking_id, before=data.before, after=data.after)
    return _envelope(booking, MSG_UPDATED)


@router.post("/bookings/{booking_id}/payment/confirm", response_model=BookingEnvelope)
async def confirm_payment(
    booking_id: str,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    booking, message = await service.confirm_payment(identity, booking_id)
    return _envelope(booking, message)


@router.post("/bookings/{booking_id}/rating", response_model=BookingEnvelope)
async def rate_booking(
    booking_id: str,
    data: RatingRequest,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.rate_booking(identity, booking_id, data.rating)
    return _envelope(booking, MSG_RATED)
