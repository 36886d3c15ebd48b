from enum import Enum

from .errors import StateConflict, ValidationFailure


class BookingStatus(str, Enum):
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


# Linear lifecycle: each state has at most one successor.
_NEXT = {
    BookingStatus.PENDING: BookingStatus.ASSIGNED,
    BookingStatus.ASSIGNED: BookingStatus.IN_PROGRESS,
    BookingStatus.IN_PROGRESS: BookingStatus.COMPLETED,
    BookingStatus.COMPLETED: None,
}

# Technician (re)assignment is only possible before work has started.
ASSIGNABLE_STATES = {BookingStatus.PENDING, BookingStatus.ASSIGNED}

# Statuses a technician may drive. Assigned is reached through assignment only.
TECHNICIAN_TARGETS = {BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED}


def parse_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        allowed = [s.value for s in BookingStatus]
        raise ValidationFailure(f"Invalid booking status: {value}. Allowed: {allowed}")


def next_status(current) -> BookingStatus | None:
    return _NEXT[parse_status(current)]


def validate_transition(current, target) -> bool:
    """
    Check a technician-driven status change.

    Returns False when the booking is already in the target state (nothing to
    write) and True when target is the immediate successor. Anything else,
    skipping ahead or moving backwards, is a StateConflict.
    """
    current = parse_status(current)
    target = parse_status(target)

    if target == current:
        return False

    if target not in TECHNICIAN_TARGETS:
        raise StateConflict(
            f"Booking status cannot be set to {target.value} directly",
            reason="invalid_transition",
        )

    if next_status(current) != target:
        raise StateConflict(
            f"Invalid booking status transition: {current.value} -> {target.value}",
            reason="invalid_transition",
        )
    return True


def validate_assignment(current) -> None:
    current = parse_status(current)
    if current not in ASSIGNABLE_STATES:
        raise StateConflict(
            f"Cannot assign a technician to a booking that is {current.value}",
            reason="assignment_closed",
        )


def validate_rating(current) -> None:
    if parse_status(current) != BookingStatus.COMPLETED:
        raise ValidationFailure("You can only rate completed services.", reason="not_completed")
