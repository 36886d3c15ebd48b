from enum import Enum


class ServiceType(str, Enum):
    CLEANING = "Solar Panel Cleaning"
    INSTALLATION = "Solar Panel Installation"
    FOUNDATION = "Solar Foundation"


SERVICE_PRICING = {
    ServiceType.CLEANING.value: 2000,
    ServiceType.INSTALLATION.value: 2500,
    ServiceType.FOUNDATION.value: 1500,
}

SUBSCRIPTION_PRICE = 12000


def _key(service_type) -> str:
    if isinstance(service_type, ServiceType):
        return service_type.value
    return service_type or ""


def is_subscription_booking(service_type, wants_subscription: bool) -> bool:
    """Subscriptions only exist for cleaning; the flag is dropped for anything else."""
    return _key(service_type) == ServiceType.CLEANING.value and bool(wants_subscription)


def compute_amount_due(service_type, wants_subscription: bool = False) -> int:
    """
    Amount owed for a booking, frozen onto it at creation time.

    Unknown service types price at 0 instead of raising. A cleaning
    subscription replaces the per-visit price rather than adding to it.
    """
    key = _key(service_type)
    base_price = SERVICE_PRICING.get(key, 0)

    if key == ServiceType.CLEANING.value:
        return SUBSCRIPTION_PRICE if wants_subscription else base_price

    return base_price
