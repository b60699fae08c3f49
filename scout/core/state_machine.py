"""Status transition guard.

Records whose status follows a fixed lifecycle change it only through a
StateMachine built from a transition table. The collection job lifecycle
is defined here:

    pending ──► processing ──► completed
       ▲             │
       └── failed ◄──┘

A failed job returns to pending only through an explicit retry.
"""

from enum import Enum
from typing import Generic, TypeVar

from scout.core.exceptions import ScoutError
from scout.models.job import JobStatus

S = TypeVar("S", bound=str | Enum)

TransitionMap = dict[S, list[S]]

JOB_TRANSITIONS: TransitionMap[JobStatus] = {
    JobStatus.PENDING: [JobStatus.PROCESSING],
    JobStatus.PROCESSING: [JobStatus.COMPLETED, JobStatus.FAILED],
    JobStatus.COMPLETED: [],
    JobStatus.FAILED: [JobStatus.PENDING],
}


class InvalidTransitionError(ScoutError):
    """The requested status is not reachable from the current one.

    Attributes:
        current: Status at the time of the request
        target: Requested status
        allowed: Statuses that would have been accepted
    """

    def __init__(self, current: S, target: S, allowed: list[S] | None = None):
        self.current = current
        self.target = target
        self.allowed = list(allowed or [])
        names = [str(s) for s in self.allowed]
        super().__init__(
            f"Invalid transition from '{current}' to '{target}'. "
            f"Allowed transitions: {', '.join(names) or 'none'}",
            context={"current": str(current), "target": str(target), "allowed": names},
        )


class StateMachine(Generic[S]):
    """Holds one status and refuses moves the table does not list.

    Example:
        >>> sm = StateMachine("draft", {"draft": ["live"], "live": []})
        >>> sm.transition_to("live")
        'live'
    """

    def __init__(self, initial: S, transitions: TransitionMap[S]):
        self._current = initial
        self._transitions = transitions

    @property
    def current(self) -> S:
        return self._current

    @property
    def allowed_transitions(self) -> list[S]:
        return self._transitions.get(self._current, [])

    def can_transition(self, target: S) -> bool:
        return target in self.allowed_transitions

    def transition(self, target: S) -> None:
        """Move to target.

        Raises:
            InvalidTransitionError: If target is not allowed from the current status
        """
        allowed = self.allowed_transitions
        if target not in allowed:
            raise InvalidTransitionError(self._current, target, allowed)
        self._current = target

    def transition_to(self, target: S) -> S:
        """Move to target and return it."""
        self.transition(target)
        return self._current

    def __repr__(self) -> str:
        return f"StateMachine(current={self._current!r}, allowed={self.allowed_transitions!r})"


def create_job_state_machine(initial_status: str | None = None) -> StateMachine[JobStatus]:
    """Build a machine for a job currently in initial_status (pending if None)."""
    initial = JobStatus(initial_status) if initial_status else JobStatus.PENDING
    return StateMachine(initial, JOB_TRANSITIONS)
