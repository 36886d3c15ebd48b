import pytest

from app.errors import StateConflict, ValidationFailure
from app.lifecycle import (
    BookingStatus,
    next_status,
    validate_assignment,
    validate_rating,
    validate_transition,
)


class TestTransitions:
    def test_linear_order(self):
        assert next_status("Pending") == BookingStatus.ASSIGNED
        assert next_status("Assigned") == BookingStatus.IN_PROGRESS
        assert next_status("In Progress") == BookingStatus.COMPLETED
        assert next_status("Completed") is None

    @pytest.mark.parametrize(
        "current, target",
        [("Assigned", "In Progress"), ("In Progress", "Completed")],
    )
    def test_technician_steps_forward(self, current, target):
        assert validate_transition(current, target) is True

    @pytest.mark.parametrize("status", [s.value for s in BookingStatus])
    def test_same_state_is_noop(self, status):
        assert validate_transition(status, status) is False

    @pytest.mark.parametrize(
        "current, target",
        [
            ("Pending", "Completed"),
            ("Pending", "In Progress"),
            ("Assigned", "Completed"),
            ("Completed", "In Progress"),
            ("In Progress", "Assigned"),
            ("Completed", "Pending"),
        ],
    )
    def test_skips_and_backward_moves_rejected(self, current, target):
        with pytest.raises(StateConflict):
            validate_transition(current, target)

    def test_unknown_status_is_validation_failure(self):
        with pytest.raises(ValidationFailure):
            validate_transition("Assigned", "Cancelled")


class TestAssignmentWindow:
    @pytest.mark.parametrize("status", ["Pending", "Assigned"])
    def test_open_before_work_starts(self, status):
        validate_assignment(status)

    @pytest.mark.parametrize("status", ["In Progress", "Completed"])
    def test_closed_once_work_started(self, status):
        with pytest.raises(StateConflict):
            validate_assignment(status)


@pytest.mark.parametrize("status", ["Pending", "Assigned", "In Progress"])
def test_rating_requires_completion(status):
    with pytest.raises(ValidationFailure):
        validate_rating(status)


def test_rating_allowed_when_completed():
    validate_rating("Completed")
