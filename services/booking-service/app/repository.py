from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .lifecycle import ASSIGNABLE_STATES, BookingStatus
from .models import Booking
from .payments import PaymentMethod, PaymentReceiver, PaymentStatus
from .policy import Identity, Role


class BookingRepository:
    """
    Record store for bookings.

    Nothing here commits. State changes are conditional UPDATEs guarded on the
    state the caller observed, including the technician a technician-side write
    was authorized against. Each returns whether a row matched so the caller
    can turn a lost race into a rejection instead of overwriting.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, **data) -> Booking:
        booking = Booking(**data)
        self.db.add(booking)
        await self.db.flush()
        return booking

    async def get(self, booking_id: str) -> Booking | None:
        res = await self.db.execute(select(Booking).where(Booking.booking_id == booking_id))
        return res.scalar_one_or_none()

    async def reload(self, booking: Booking) -> Booking:
        await self.db.refresh(booking)
        return booking

    async def list_visible(self, identity: Identity) -> list[Booking]:
        stmt = select(Booking)
        if identity.role == Role.TECHNICIAN:
            stmt = stmt.where(Booking.technician_id == identity.user_id)
        elif identity.role != Role.ADMIN:
            stmt = stmt.where(Booking.customer_id == identity.user_id)
        res = await self.db.execute(stmt.order_by(Booking.created_at.desc(), Booking.id.desc()))
        return list(res.scalars().all())

    async def _guarded_update(self, booking: Booking, *criteria, **values) -> bool:
        stmt = (
            update(Booking)
            .where(Booking.id == booking.id, *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(stmt)
        return res.rowcount == 1

    async def assign_technician(self, booking: Booking, technician_id: str) -> bool:
        return await self._guarded_update(
            booking,
            Booking.status.in_([s.value for s in ASSIGNABLE_STATES]),
            technician_id=technician_id,
            status=BookingStatus.ASSIGNED.value,
        )

    async def transition_status(
        self, booking: Booking, current: BookingStatus, target: BookingStatus, technician_id: str
    ) -> bool:
        return await self._guarded_update(
            booking,
            Booking.status == current.value,
            Booking.technician_id == technician_id,
            status=target.value,
        )

    async def mark_paid(
        self,
        booking: Booking,
        received_by: PaymentReceiver,
        received_at: datetime,
        technician_id: str | None = None,
    ) -> bool:
        criteria = [Booking.payment_status == PaymentStatus.PENDING.value]
        if received_by == PaymentReceiver.TECHNICIAN:
            criteria.append(Booking.payment_method == PaymentMethod.CASH_ON_DELIVERY.value)
            criteria.append(Booking.technician_id == technician_id)
        return await self._guarded_update(
            booking,
            *criteria,
            payment_status=PaymentStatus.PAID.value,
            payment_received_by=received_by.value,
            payment_received_at=received_at,
        )

    async def set_images(
        self, booking: Booking, before: str | None, after: str | None, technician_id: str
    ) -> bool:
        values = {}
        if before:
            values["image_before"] = before
        if after:
            values["image_after"] = after
        if not values:
            return False
        return await self._guarded_update(booking, Booking.technician_id == technician_id, **values)

    async def set_rating(self, booking: Booking, rating: int) -> bool:
        return await self._guarded_update(
            booking,
            Booking.status == BookingStatus.COMPLETED.value,
            rating=rating,
        )
