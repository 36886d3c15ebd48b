from enum import Enum

from .errors import StateConflict, ValidationFailure


class PaymentMethod(str, Enum):
    ONLINE_TRANSFER = "Online Transfer"
    CASH_ON_DELIVERY = "Cash on Delivery"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"


class PaymentReceiver(str, Enum):
    ADMIN = "admin"
    TECHNICIAN = "technician"


# Mobile wallet names customers pick in the booking form. All of them are
# pre-paid transfers that carry a transaction id.
_METHOD_ALIASES = {
    "online transfer": PaymentMethod.ONLINE_TRANSFER,
    "onlinetransfer": PaymentMethod.ONLINE_TRANSFER,
    "easypaisa": PaymentMethod.ONLINE_TRANSFER,
    "jazzcash": PaymentMethod.ONLINE_TRANSFER,
    "easypaisa/jazzcash": PaymentMethod.ONLINE_TRANSFER,
    "cash on delivery": PaymentMethod.CASH_ON_DELIVERY,
    "cashondelivery": PaymentMethod.CASH_ON_DELIVERY,
    "cod": PaymentMethod.CASH_ON_DELIVERY,
}


def normalize_method(value) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    method = _METHOD_ALIASES.get((value or "").strip().lower())
    if not method:
        allowed = [m.value for m in PaymentMethod]
        raise ValueError(f"Invalid payment method: {value}. Allowed: {allowed}")
    return method


def requested_paid(status) -> None:
    """Payments only ever move forward to Paid."""
    if status != PaymentStatus.PAID:
        raise ValidationFailure(
            "Payment status can only be set to Paid",
            reason="payment_reopen",
        )


def check_admin_approval(method, status, received_by) -> bool:
    """
    Admin approval works for any method.

    Returns True when the payment must be written as Paid, and False when it is
    already Paid by a technician: the admin call then acknowledges the cash
    receipt without touching it. A payment the admin already approved is a
    repeat and is rejected.
    """
    if status == PaymentStatus.PENDING:
        return True
    if received_by == PaymentReceiver.TECHNICIAN:
        return False
    raise StateConflict("Payment has already been confirmed", reason="payment_already_paid")


def check_technician_confirmation(method, status) -> None:
    if method != PaymentMethod.CASH_ON_DELIVERY:
        raise StateConflict(
            "Cannot confirm payment. Only pending COD payments can be confirmed.",
            reason="payment_not_cod",
        )
    if status != PaymentStatus.PENDING:
        raise StateConflict(
            "Cannot confirm payment. Only pending COD payments can be confirmed.",
            reason="payment_already_paid",
        )


def needs_admin_attention(method, status, received_by) -> bool:
    """Pending payments, plus cash a technician collected that admin should see."""
    if status == PaymentStatus.PENDING:
        return True
    return (
        method == PaymentMethod.CASH_ON_DELIVERY
        and status == PaymentStatus.PAID
        and received_by == PaymentReceiver.TECHNICIAN
    )
