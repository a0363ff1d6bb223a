# crm/dashboard/workflow.py
"""
Callback status workflow.

    pending   -> contacted | cancelled
    contacted -> completed | cancelled
    completed, cancelled: terminal

Transitions are checked at the point of mutation (CRMService), and the
same table decides which action buttons a callback row shows.
"""

import logging
from dataclasses import replace
from typing import Dict, FrozenSet, List

from .models import Callback

logger = logging.getLogger(__name__)

CALLBACK_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    'pending': frozenset({'contacted', 'cancelled'}),
    'contacted': frozenset({'completed', 'cancelled'}),
    'completed': frozenset(),
    'cancelled': frozenset(),
}

TRANSITION_LABELS = {
    'contacted': "📞 Mark Contacted",
    'completed': "✅ Complete",
    'cancelled': "❌ Cancel",
}


class InvalidTransitionError(ValueError):
    """Raised when a callback status change is not in the transition table."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move callback from '{current}' to '{requested}'")


def allowed_transitions(status: str) -> List[str]:
    """Statuses reachable from `status`, in a stable display order."""
    order = ['contacted', 'completed', 'cancelled']
    allowed = CALLBACK_TRANSITIONS.get((status or '').lower(), frozenset())
    return [s for s in order if s in allowed]


def can_transition(current: str, requested: str) -> bool:
    current = (current or '').lower()
    requested = (requested or '').lower()
    if current == requested:
        return current in CALLBACK_TRANSITIONS
    return requested in CALLBACK_TRANSITIONS.get(current, frozenset())


def is_terminal(status: str) -> bool:
    return not CALLBACK_TRANSITIONS.get((status or '').lower(), frozenset())


def transition(callback: Callback, new_status: str) -> Callback:
    """
    Return a copy of `callback` with the new status.

    Re-applying the current status is a no-op.

    Raises:
        InvalidTransitionError: if the move is not allowed
    """
    new_status = (new_status or '').lower()
    if not can_transition(callback.status, new_status):
        logger.warning(
            f"Rejected callback {callback.callback_id} transition "
            f"{callback.status} -> {new_status}"
        )
        raise InvalidTransitionError(callback.status, new_status)

    if callback.status == new_status:
        return callback
    return replace(callback, status=new_status)


__all__ = [
    'CALLBACK_TRANSITIONS',
    'TRANSITION_LABELS',
    'InvalidTransitionError',
    'allowed_transitions',
    'can_transition',
    'is_terminal',
    'transition',
]
