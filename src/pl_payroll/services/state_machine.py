"""Payroll period state machine with transition validation."""

from __future__ import annotations

from uuid import UUID

from pl_payroll.calculators.types import PeriodStatus
from pl_payroll.errors import PayrollError, PeriodClosedError, PeriodLockedError


class InvalidTransitionError(PayrollError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PeriodStateMachine:
    """State machine for payroll period status transitions.

    Allowed transitions:
    - OPEN → CALCULATING
    - CALCULATING → CALCULATED
    - CALCULATING → OPEN (batch aborted or cancelled)
    - CALCULATED → CALCULATING (recalculation)
    - CALCULATED → APPROVED
    - APPROVED → PAID
    - PAID → CLOSED

    The engine drives CALCULATING/CALCULATED; APPROVED, PAID and CLOSED are
    owned by the period lifecycle outside the engine.
    """

    VALID_TRANSITIONS: dict[PeriodStatus, list[PeriodStatus]] = {
        PeriodStatus.OPEN: [PeriodStatus.CALCULATING],
        PeriodStatus.CALCULATING: [PeriodStatus.CALCULATED, PeriodStatus.OPEN],
        PeriodStatus.CALCULATED: [PeriodStatus.CALCULATING, PeriodStatus.APPROVED],
        PeriodStatus.APPROVED: [PeriodStatus.PAID],
        PeriodStatus.PAID: [PeriodStatus.CLOSED],
        PeriodStatus.CLOSED: [],  # Terminal state
    }

    # Statuses where records may be (re)calculated
    CALCULATION_ALLOWED = {
        PeriodStatus.OPEN,
        PeriodStatus.CALCULATING,
        PeriodStatus.CALCULATED,
    }

    # Statuses whose records are final and count towards year-to-date figures
    FINALIZED = {
        PeriodStatus.APPROVED,
        PeriodStatus.PAID,
        PeriodStatus.CLOSED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(PeriodStatus(from_status), [])
        return PeriodStatus(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_calculate(cls, status: str) -> bool:
        """Check if calculation is allowed in this status."""
        return PeriodStatus(status) in cls.CALCULATION_ALLOWED

    @classmethod
    def is_finalized(cls, status: str) -> bool:
        """Check if records of a period in this status are immutable."""
        return PeriodStatus(status) in cls.FINALIZED

    @classmethod
    def ensure_calculable(cls, period_id: UUID, status: str) -> None:
        """Raise the matching period-state error if calculation is not allowed."""
        status = PeriodStatus(status)
        if status == PeriodStatus.CLOSED:
            raise PeriodClosedError(period_id, status.value)
        if not cls.can_calculate(status):
            raise PeriodLockedError(period_id, status.value, "records are final once approved")
