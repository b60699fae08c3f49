"""Unit tests for StateMachine."""

import pytest

from scout.core.state_machine import (
    InvalidTransitionError,
    StateMachine,
    create_job_state_machine,
)
from scout.models.job import JobStatus


class TestStateMachine:
    """Tests for generic StateMachine."""

    @pytest.fixture
    def simple_transitions(self):
        """Create simple transition map for testing."""
        return {
            "start": ["middle", "end"],
            "middle": ["end"],
            "end": [],
        }

    @pytest.fixture
    def state_machine(self, simple_transitions):
        """Create state machine with simple transitions."""
        return StateMachine("start", simple_transitions)

    def test_initial_state(self, state_machine):
        """Test that initial state is set correctly."""
        assert state_machine.current == "start"

    def test_can_transition(self, state_machine):
        """Test can_transition for valid and invalid targets."""
        assert state_machine.can_transition("middle") is True
        assert state_machine.can_transition("nonexistent") is False

    def test_transition_invalid_raises(self, state_machine):
        """Test invalid transition raises error with context."""
        state_machine.transition("middle")

        with pytest.raises(InvalidTransitionError) as exc_info:
            state_machine.transition("start")

        assert exc_info.value.current == "middle"
        assert exc_info.value.target == "start"
        assert "end" in exc_info.value.allowed
        assert exc_info.value.context["target"] == "start"

    def test_transition_to_returns_state(self, state_machine):
        """Test transition_to returns new state."""
        assert state_machine.transition_to("end") == "end"
        assert state_machine.allowed_transitions == []

    def test_repr_representation(self, state_machine):
        """Test repr lists allowed transitions."""
        repr_str = repr(state_machine)
        assert "start" in repr_str
        assert "middle" in repr_str


class TestJobStateMachine:
    """Tests for the collection job state machine."""

    def test_create_with_default(self):
        """Test creating with default initial state."""
        sm = create_job_state_machine()
        assert sm.current == JobStatus.PENDING

    def test_create_with_initial(self):
        """Test creating with specific initial state."""
        sm = create_job_state_machine("failed")
        assert sm.current == JobStatus.FAILED

    def test_success_workflow(self):
        """Test PENDING -> PROCESSING -> COMPLETED."""
        sm = create_job_state_machine()
        sm.transition_to(JobStatus.PROCESSING)
        sm.transition_to(JobStatus.COMPLETED)
        assert sm.current == JobStatus.COMPLETED

    def test_failure_and_retry(self):
        """Test FAILED -> PENDING is the only way back."""
        sm = create_job_state_machine("processing")
        sm.transition_to(JobStatus.FAILED)
        assert sm.allowed_transitions == [JobStatus.PENDING]

        sm.transition_to(JobStatus.PENDING)
        assert sm.current == JobStatus.PENDING

    def test_completed_is_terminal(self):
        """Test COMPLETED has no outgoing transitions."""
        sm = create_job_state_machine("completed")
        assert sm.allowed_transitions == []
        with pytest.raises(InvalidTransitionError):
            sm.transition(JobStatus.PENDING)

    @pytest.mark.parametrize(
        "initial,target",
        [
            ("pending", JobStatus.COMPLETED),
            ("pending", JobStatus.FAILED),
            ("processing", JobStatus.PENDING),
            ("failed", JobStatus.PROCESSING),
        ],
    )
    def test_illegal_transitions(self, initial, target):
        """Test transitions outside the lifecycle are rejected."""
        sm = create_job_state_machine(initial)
        with pytest.raises(InvalidTransitionError):
            sm.transition(target)
