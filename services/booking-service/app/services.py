import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from . import events
from .errors import AuthorizationFailure, BookingError, NotFound, StateConflict, ValidationFailure
from .lifecycle import (
    BookingStatus,
    parse_status,
    validate_assignment,
    validate_rating,
    validate_transition,
)
from .listing import requires_admin_attention
from .models import Booking
from .payments import (
    PaymentReceiver,
    PaymentStatus,
    check_admin_approval,
    check_technician_confirmation,
    requested_paid,
)
from .policy import (
    Identity,
    ensure_admin,
    ensure_can_create,
    ensure_fields_allowed,
    require_access,
)
from .pricing import compute_amount_due, is_subscription_booking
from .rabbitmq import RabbitPublisher, publisher as default_publisher
from .repository import BookingRepository
from .schemas import BookingUpdateRequest, CreateBookingRequest

logger = logging.getLogger(__name__)

MSG_UPDATED = "Updated successfully!"
MSG_RATED = "Rating submitted successfully!"
MSG_COD_CONFIRMED = "Payment confirmed! Admin has been notified."
MSG_PAYMENT_APPROVED = "Payment marked as paid."
MSG_PAYMENT_ACKNOWLEDGED = "Payment was already collected by the technician."
MSG_ASSIGNED = "Technician assigned."


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BookingService:
    """
    Booking lifecycle and payment reconciliation.

    Every public method takes the caller's identity explicitly, runs its checks
    against the current record, applies guarded writes and commits once. Any
    BookingError rolls the whole transaction back.
    """

    def __init__(self, db: AsyncSession, publisher: RabbitPublisher | None = None):
        self.db = db
        self.repo = BookingRepository(db)
        self.publisher = publisher or default_publisher
        self._outbox: list[tuple[str, dict]] = []

    # ---------- reads ----------

    async def _load(self, booking_id: str) -> Booking:
        booking = await self.repo.get(booking_id)
        if not booking:
            raise NotFound("Booking not found")
        return booking

    async def get_booking(self, identity: Identity, booking_id: str) -> Booking:
        booking = await self._load(booking_id)
        require_access(identity, booking)
        return booking

    async def list_bookings(self, identity: Identity) -> list[Booking]:
        return await self.repo.list_visible(identity)

    async def list_needing_attention(self, identity: Identity) -> list[Booking]:
        ensure_admin(identity, "view pending payments")
        return requires_admin_attention(await self.repo.list_visible(identity))

    # ---------- creation ----------

    async def create_booking(self, identity: Identity, data: CreateBookingRequest) -> Booking:
        ensure_can_create(identity)

        subscription = is_subscription_booking(data.service_type, data.wants_subscription)
        booking = await self.repo.create(
            booking_id=str(uuid.uuid4()),
            customer_id=identity.user_id,
            technician_id=None,
            service_type=data.service_type.value,
            address=data.address,
            booking_date=data.booking_date,
            is_subscription_booking=subscription,
            amount_due=compute_amount_due(data.service_type, subscription),
            status=BookingStatus.PENDING.value,
            payment_method=data.payment.method.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_id=data.payment.payment_id,
        )
        self._emit(events.BOOKING_CREATED, booking, amount_due=booking.amount_due)
        await self._commit(booking)
        logger.info(
            "Booking %s created by customer %s (%s, amount_due=%s)",
            booking.booking_id, identity.user_id, booking.service_type, booking.amount_due,
        )
        return booking

    # ---------- named operations ----------

    async def assign_technician(self, identity: Identity, booking_id: str, technician_id: str) -> Booking:
        async with self._transaction(booking_id) as booking:
            ensure_admin(identity, "assign technicians")
            await self._assign(booking, technician_id)
        return booking

    async def advance_status(self, identity: Identity, booking_id: str, target: BookingStatus) -> Booking:
        async with self._transaction(booking_id) as booking:
            caps = require_access(identity, booking)
            if not caps.is_assigned_technician:
                raise AuthorizationFailure("Only the assigned technician can change booking status")
            await self._advance(booking, target, identity.user_id)
        return booking

    async def attach_images(
        self, identity: Identity, booking_id: str, before: str | None = None, after: str | None = None
    ) -> Booking:
        async with self._transaction(booking_id) as booking:
            caps = require_access(identity, booking)
            if not caps.is_assigned_technician:
                raise AuthorizationFailure("Only the assigned technician can upload job photos")
            await self._images(booking, before, after, identity.user_id)
        return booking

    async def confirm_payment(self, identity: Identity, booking_id: str) -> tuple[Booking, str]:
        async with self._transaction(booking_id) as booking:
            caps = require_access(identity, booking)
            if caps.is_admin:
                message = await self._approve_payment(booking)
            elif caps.is_assigned_technician:
                message = await self._confirm_cod(booking, identity.user_id)
            else:
                raise AuthorizationFailure("Only an admin or the assigned technician can confirm payment")
        return booking, message

    async def rate_booking(self, identity: Identity, booking_id: str, rating: int) -> Booking:
        async with self._transaction(booking_id) as booking:
            caps = require_access(identity, booking)
            if not caps.is_owner:
                raise AuthorizationFailure("Only the customer who booked the service can rate it")
            await self._rate(booking, rating)
        return booking

    # ---------- generic partial update ----------

    async def update_booking(
        self, identity: Identity, booking_id: str, data: BookingUpdateRequest
    ) -> tuple[Booking, str]:
        """
        Apply a role-dependent partial update in one transaction.

        The identity may only send fields its capabilities cover. Assigning a
        technician forces the booking to Assigned, so a status sent alongside
        it is ignored.
        """
        fields = data.requested_fields()
        async with self._transaction(booking_id) as booking:
            caps = require_access(identity, booking)
            if not fields:
                raise ValidationFailure("No changes supplied")
            ensure_fields_allowed(caps, fields)

            message = MSG_UPDATED

            if "rating" in fields:
                await self._rate(booking, data.rating)
                message = MSG_RATED

            if "technician" in fields:
                if "status" in fields:
                    logger.info(
                        "Ignoring requested status %s for booking %s: assignment forces Assigned",
                        data.status.value, booking.booking_id,
                    )
                await self._assign(booking, data.technician)
                message = MSG_ASSIGNED
            elif "status" in fields:
                if not caps.is_assigned_technician:
                    raise AuthorizationFailure("Only the assigned technician can change booking status")
                await self._advance(booking, data.status, identity.user_id)

            if "images" in fields:
                await self._images(booking, data.images.before, data.images.after, identity.user_id)

            if "payment_received_by" in fields and "payment" not in fields:
                raise ValidationFailure("paymentReceivedBy can only be sent with a payment status")

            if "payment" in fields:
                requested_paid(data.payment.status)
                if caps.is_admin:
                    message = await self._approve_payment(booking)
                else:
                    if data.payment_received_by not in (None, PaymentReceiver.TECHNICIAN):
                        raise ValidationFailure("Technicians can only record payments they received")
                    message = await self._confirm_cod(booking, identity.user_id)

        return booking, message

    # ---------- transitions ----------

    async def _assign(self, booking: Booking, technician_id: str):
        validate_assignment(booking.status)
        previous = booking.technician_id
        if not await self.repo.assign_technician(booking, technician_id):
            raise StateConflict("Booking changed while assigning a technician", reason="concurrent_update")
        await self.repo.reload(booking)
        self._emit(events.BOOKING_ASSIGNED, booking, previous_technician_id=previous)
        logger.info("Booking %s assigned to technician %s", booking.booking_id, technician_id)

    async def _advance(self, booking: Booking, target: BookingStatus, technician_id: str):
        current = parse_status(booking.status)
        target = parse_status(target)
        if not validate_transition(current, target):
            return
        if not await self.repo.transition_status(booking, current, target, technician_id):
            raise StateConflict("Booking changed while updating its status", reason="concurrent_update")
        await self.repo.reload(booking)
        self._emit(events.BOOKING_STATUS_CHANGED, booking, previous_status=current.value)
        logger.info("Booking %s moved %s -> %s", booking.booking_id, current.value, target.value)

    async def _images(self, booking: Booking, before: str | None, after: str | None, technician_id: str):
        if not before and not after:
            raise ValidationFailure("No images supplied")
        if not await self.repo.set_images(booking, before, after, technician_id):
            raise StateConflict("Booking changed while uploading job photos", reason="concurrent_update")
        await self.repo.reload(booking)
        self._emit(
            events.BOOKING_IMAGES_UPDATED,
            booking,
            before=bool(before),
            after=bool(after),
        )

    async def _approve_payment(self, booking: Booking) -> str:
        if not check_admin_approval(booking.payment_method, booking.payment_status, booking.payment_received_by):
            logger.info("Admin acknowledged technician-collected payment for booking %s", booking.booking_id)
            return MSG_PAYMENT_ACKNOWLEDGED
        await self._mark_paid(booking, PaymentReceiver.ADMIN)
        return MSG_PAYMENT_APPROVED

    async def _confirm_cod(self, booking: Booking, technician_id: str) -> str:
        check_technician_confirmation(booking.payment_method, booking.payment_status)
        if not await self.repo.mark_paid(booking, PaymentReceiver.TECHNICIAN, _now(), technician_id):
            raise StateConflict("Booking changed while confirming payment", reason="concurrent_update")
        await self._paid(booking, PaymentReceiver.TECHNICIAN)
        return MSG_COD_CONFIRMED

    async def _mark_paid(self, booking: Booking, received_by: PaymentReceiver):
        if not await self.repo.mark_paid(booking, received_by, _now()):
            raise StateConflict("Payment has already been confirmed", reason="payment_already_paid")
        await self._paid(booking, received_by)

    async def _paid(self, booking: Booking, received_by: PaymentReceiver):
        await self.repo.reload(booking)
        self._emit(events.PAYMENT_CONFIRMED, booking, amount_due=booking.amount_due)
        logger.info(
            "Payment for booking %s confirmed by %s (%s)",
            booking.booking_id, received_by.value, booking.payment_method,
        )

    async def _rate(self, booking: Booking, rating: int):
        validate_rating(booking.status)
        if not await self.repo.set_rating(booking, rating):
            raise ValidationFailure("You can only rate completed services.", reason="not_completed")
        await self.repo.reload(booking)
        self._emit(events.BOOKING_RATED, booking, rating=rating)

    # ---------- plumbing ----------

    def _emit(self, event_type: str, booking: Booking, **extra):
        self._outbox.append((event_type, events.booking_snapshot(booking, **extra)))

    async def _commit(self, booking: Booking):
        await self.db.commit()
        await self.repo.reload(booking)
        await self._flush_outbox()

    async def _flush_outbox(self):
        pending, self._outbox = self._outbox, []
        for event_type, data in pending:
            await self.publisher.publish(event_type, events.to_json(events.build_event(event_type, data)))

    def _transaction(self, booking_id: str):
        return _BookingTransaction(self, booking_id)


class _BookingTransaction:
    """Loads a booking, yields it for mutation, then commits or rolls back as one unit."""

    def __init__(self, service: BookingService, booking_id: str):
        self.service = service
        self.booking_id = booking_id
        self.booking: Booking | None = None

    async def __aenter__(self) -> Booking:
        self.booking = await self.service._load(self.booking_id)
        return self.booking

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            await self.service._commit(self.booking)
            return False

        self.service._outbox.clear()
        await self.service.db.rollback()
        if isinstance(exc, BookingError):
            logger.warning("Booking %s update rejected: %s", self.booking_id, exc.message)
            # rollback expires the instance; reload it so callers still holding it see the stored row
            await self.service.repo.reload(self.booking)
        return False
