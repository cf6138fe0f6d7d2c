"""Legal status transitions for requests, provider verification and reports."""

from enum import Enum
from typing import Type

from exceptions import InvalidTransitionError
from models import ReportStatus, RequestStatus, VerificationStatus


class StateMachine:
    def __init__(self, kind: str, states: Type[Enum], transitions: dict):
        self.kind = kind
        self.states = states
        self.transitions = {
            states(src): frozenset(states(dst) for dst in dsts)
            for src, dsts in transitions.items()
        }

    def allowed(self, current) -> frozenset:
        return self.transitions.get(self.states(current), frozenset())

    def can_transition(self, current, target) -> bool:
        return self.states(target) in self.allowed(current)

    def is_terminal(self, state) -> bool:
        return not self.allowed(state)

    def check(self, current, target):
        """Return the target state, or raise if it cannot follow ``current``."""
        current, target = self.states(current), self.states(target)
        if target not in self.allowed(current):
            raise InvalidTransitionError(self.kind, current.value, target.value)
        return target


REQUEST_LIFECYCLE = StateMachine(
    "service request",
    RequestStatus,
    {
        RequestStatus.pending: [RequestStatus.accepted, RequestStatus.cancelled],
        RequestStatus.accepted: [RequestStatus.in_progress, RequestStatus.cancelled],
        RequestStatus.in_progress: [RequestStatus.completed, RequestStatus.cancelled],
    },
)

PROVIDER_VERIFICATION = StateMachine(
    "provider verification",
    VerificationStatus,
    {
        VerificationStatus.pending: [VerificationStatus.approved, VerificationStatus.rejected],
        VerificationStatus.rejected: [VerificationStatus.pending],
    },
)

REPORT_RESOLUTION = StateMachine(
    "report",
    ReportStatus,
    {
        ReportStatus.pending: [ReportStatus.investigating, ReportStatus.resolved, ReportStatus.dismissed],
        ReportStatus.investigating: [ReportStatus.resolved, ReportStatus.dismissed],
    },
)
