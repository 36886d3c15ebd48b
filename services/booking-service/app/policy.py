from dataclasses import dataclass
from enum import Enum

from .errors import AuthorizationFailure


class Role(str, Enum):
    CUSTOMER = "customer"
    TECHNICIAN = "technician"
    ADMIN = "admin"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, passed explicitly into every core operation."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# Update fields each capability may send through the generic update path.
OWNER_FIELDS = frozenset({"rating"})
ADMIN_FIELDS = frozenset({"technician", "payment", "status"})
TECHNICIAN_FIELDS = frozenset({"status", "images", "payment", "payment_received_by"})


@dataclass(frozen=True)
class Capabilities:
    is_owner: bool = False
    is_admin: bool = False
    is_assigned_technician: bool = False

    @property
    def any(self) -> bool:
        return self.is_owner or self.is_admin or self.is_assigned_technician

    def allowed_fields(self) -> frozenset:
        fields = frozenset()
        if self.is_owner:
            fields |= OWNER_FIELDS
        if self.is_admin:
            fields |= ADMIN_FIELDS
        if self.is_assigned_technician:
            fields |= TECHNICIAN_FIELDS
        return fields


def classify(identity: Identity, booking) -> Capabilities:
    return Capabilities(
        is_owner=identity.role == Role.CUSTOMER and booking.customer_id == identity.user_id,
        is_admin=identity.role == Role.ADMIN,
        is_assigned_technician=bool(booking.technician_id) and booking.technician_id == identity.user_id,
    )


def require_access(identity: Identity, booking) -> Capabilities:
    caps = classify(identity, booking)
    if not caps.any:
        raise AuthorizationFailure("Not authorized to update this booking")
    return caps


def ensure_can_create(identity: Identity) -> None:
    if identity.role == Role.ADMIN:
        raise AuthorizationFailure("Admin users cannot book services.")
    if identity.role != Role.CUSTOMER:
        raise AuthorizationFailure("Only customers can book services.")


def ensure_admin(identity: Identity, action: str = "perform this action") -> None:
    if not identity.is_admin:
        raise AuthorizationFailure(f"Only admins can {action}")


def ensure_fields_allowed(caps: Capabilities, requested: set) -> None:
    denied = set(requested) - caps.allowed_fields()
    if denied:
        raise AuthorizationFailure(
            f"Not authorized to change: {', '.join(sorted(denied))}",
            reason="field_not_permitted",
        )
