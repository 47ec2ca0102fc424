"""Booking state machine.

States:
- pending: Booking admitted, waiting for payment or host confirmation
- awaiting: Payment confirmed by the payment collaborator, host has not confirmed yet
- confirmed: Host (or admin/worker) confirmed the stay
- cancelled: Terminal
- ended: Stay finished (terminal)
"""

from akwanda.core.exceptions import InvalidStateTransition

BOOKING_TRANSITIONS = {
    "pending": {"awaiting", "confirmed", "cancelled"},
    "awaiting": {"confirmed", "cancelled"},
    "confirmed": {"ended", "cancelled"},
    "cancelled": set(),
    "ended": set(),
}

TERMINAL_STATES = frozenset(state for state, targets in BOOKING_TRANSITIONS.items() if not targets)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATES


def assert_booking_transition(current: str, target: str) -> None:
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidStateTransition(
            f"Invalid booking transition: {current} → {target}"
        )
