"""
Scheduling error taxonomy

Every error carries a stable ``code`` and a ``details`` payload
(conflicting interval, violated bound) so API clients can correct
the request on their own.
"""

from typing import Any, Dict, Optional


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling engine."""

    code = 'scheduling_error'

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'detail': self.message, 'details': self.details}


class NotFoundError(SchedulingError):
    """Unknown provider, service or booking id. Not retried."""

    code = 'not_found'


class SlotConflict(SchedulingError):
    """
    Capacity exhausted at commit time.

    Safe to retry once the client has re-fetched availability.
    """

    code = 'slot_conflict'


class PolicyViolation(SchedulingError):
    """Request breaks a booking rule; ``rule`` names which one."""

    code = 'policy_violation'

    def __init__(self, message: str, rule: str, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details.setdefault('rule', rule)
        super().__init__(message, details)
        self.rule = rule


class InvalidTransition(PolicyViolation):
    """Status change that is not listed in the transition table."""

    code = 'invalid_transition'

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move booking from {current} to {target}",
            rule='status_transition',
            details={'current_status': current, 'target_status': target},
        )


class TransientStoreError(SchedulingError):
    """
    Ledger I/O failure.

    Read-only queries retry it with backoff, the reservation write path
    surfaces it to the caller untouched.
    """

    code = 'store_unavailable'
