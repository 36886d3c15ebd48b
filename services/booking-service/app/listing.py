from .payments import needs_admin_attention
from .policy import Identity, Role


def visible_to(identity: Identity, bookings):
    """Role-scoped subset of an in-memory booking set."""
    if identity.role == Role.ADMIN:
        return list(bookings)
    if identity.role == Role.TECHNICIAN:
        return [b for b in bookings if b.technician_id == identity.user_id]
    return [b for b in bookings if b.customer_id == identity.user_id]


def requires_admin_attention(bookings):
    return [
        b for b in bookings
        if needs_admin_attention(b.payment_method, b.payment_status, b.payment_received_by)
    ]
