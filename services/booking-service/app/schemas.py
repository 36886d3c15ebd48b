from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .lifecycle import BookingStatus
from .payments import PaymentMethod, PaymentReceiver, PaymentStatus, normalize_method
from .pricing import ServiceType


class _Wire(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(populate_by_name=True)


class PaymentIn(_Wire):
    method: PaymentMethod
    payment_id: str | None = Field(default=None, alias="paymentId")

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, v):
        return normalize_method(v)

    @field_validator("payment_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _transaction_id_for_transfers(self):
        if self.method == PaymentMethod.ONLINE_TRANSFER and not self.payment_id:
            raise ValueError("Transaction ID (TID) is required for online transfer payments.")
        return self


class CreateBookingRequest(_Wire):
    service_type: ServiceType = Field(alias="serviceType")
    address: str = Field(min_length=1)
    booking_date: datetime = Field(alias="bookingDate")
    wants_subscription: bool = Field(default=False, alias="wantsSubscription")
    payment: PaymentIn

    @field_validator("address", mode="before")
    @classmethod
    def _strip_address(cls, v):
        return v.strip() if isinstance(v, str) else v


class PaymentStatusUpdate(_Wire):
    status: PaymentStatus


class ImagesUpdate(_Wire):
    before: str | None = Field(default=None, min_length=1)
    after: str | None = Field(default=None, min_length=1)


class BookingUpdateRequest(_Wire):
    """Role-dependent partial update; which fields an identity may send is decided by policy."""

    technician: str | None = Field(default=None, min_length=1)
    status: BookingStatus | None = None
    images: ImagesUpdate | None = None
    payment: PaymentStatusUpdate | None = None
    payment_received_by: PaymentReceiver | None = Field(default=None, alias="paymentReceivedBy")
    rating: int | None = Field(default=None, ge=1, le=5)

    def requested_fields(self) -> set[str]:
        return {name for name in self.model_fields_set if getattr(self, name) is not None}


class AssignTechnicianRequest(_Wire):
    technician: str = Field(min_length=1)


class StatusUpdateRequest(_Wire):
    status: BookingStatus


class RatingRequest(_Wire):
    rating: int = Field(ge=1, le=5)


class PaymentResponse(_Wire):
    method: str
    status: str
    payment_id: str | None = Field(default=None, alias="paymentId")
    payment_received_by: str | None = Field(default=None, alias="paymentReceivedBy")
    payment_received_at: datetime | None = Field(default=None, alias="paymentReceivedAt")


class ImagesResponse(_Wire):
    before: str | None = None
    after: str | None = None


class BookingResponse(_Wire):
    id: str
    customer: str
    technician: str | None = None
    service_type: str = Field(alias="serviceType")
    address: str
    booking_date: datetime = Field(alias="bookingDate")
    is_subscription_booking: bool = Field(alias="isSubscriptionBooking")
    amount_due: int = Field(alias="amountDue")
    status: str
    payment: PaymentResponse
    images: ImagesResponse
    rating: int | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @classmethod
    def from_booking(cls, booking) -> "BookingResponse":
        return cls(
            id=booking.booking_id,
            customer=booking.customer_id,
            technician=booking.technician_id,
            service_type=booking.service_type,
            address=booking.address,
            booking_date=booking.booking_date,
            is_subscription_booking=booking.is_subscription_booking,
            amount_due=booking.amount_due,
            status=booking.status,
            payment=PaymentResponse(
                method=booking.payment_method,
                status=booking.payment_status,
                payment_id=booking.payment_id,
                payment_received_by=booking.payment_received_by,
                payment_received_at=booking.payment_received_at,
            ),
            images=ImagesResponse(before=booking.image_before, after=booking.image_after),
            rating=booking.rating,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingEnvelope(_Wire):
    success: bool = True
    message: str | None = None
    data: BookingResponse


class BookingListResponse(_Wire):
    success: bool = True
    data: list[BookingResponse]
