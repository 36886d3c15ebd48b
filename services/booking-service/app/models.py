from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Text, func

from .db import Base


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # received_by/received_at exist exactly when the payment is Paid
        CheckConstraint(
            "(payment_status = 'Paid' AND payment_received_by IS NOT NULL AND payment_received_at IS NOT NULL)"
            " OR (payment_status = 'Pending' AND payment_received_by IS NULL AND payment_received_at IS NULL)",
            name="ck_bookings_payment_receipt",
        ),
        CheckConstraint("amount_due >= 0", name="ck_bookings_amount_due_non_negative"),
        CheckConstraint(
            "status = 'Pending' OR technician_id IS NOT NULL",
            name="ck_bookings_technician_when_assigned",
        ),
    )

    id = Column(Integer, primary_key=True)
    booking_id = Column(String, unique=True, nullable=False, index=True)

    customer_id = Column(String, nullable=False, index=True)
    technician_id = Column(String, nullable=True, index=True)

    service_type = Column(String, nullable=False)
    address = Column(Text, nullable=False)
    booking_date = Column(DateTime(timezone=True), nullable=False)
    is_subscription_booking = Column(Boolean, nullable=False, default=False)
    amount_due = Column(Integer, nullable=False)

    status = Column(String, nullable=False, index=True)  # Pending/Assigned/In Progress/Completed

    payment_method = Column(String, nullable=False)  # Online Transfer/Cash on Delivery
    payment_status = Column(String, nullable=False, index=True)  # Pending/Paid
    payment_id = Column(String, nullable=True)
    payment_received_by = Column(String, nullable=True)  # admin/technician
    payment_received_at = Column(DateTime(timezone=True), nullable=True)

    image_before = Column(Text, nullable=True)
    image_after = Column(Text, nullable=True)

    rating = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
