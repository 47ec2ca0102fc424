"""Host account access state machine.

States (ordered by restriction):
- active: Dashboard and public listings available
- limited_access: Dashboard unlocked, listings still hidden (``is_blocked`` stays set)
- blocked: Dashboard locked and listings hidden

The flags on ``User`` are only written through ``apply_access_state``.
"""

from datetime import datetime
from enum import Enum

from akwanda.core.exceptions import InvalidStateTransition
from akwanda.models.user import User
from akwanda.utils.dates import as_utc, utcnow


class AccessState(str, Enum):
    """Host account access states."""

    ACTIVE = "active"
    LIMITED_ACCESS = "limited_access"
    BLOCKED = "blocked"

    @property
    def rank(self) -> int:
        return RESTRICTION_RANK[self]


RESTRICTION_RANK = {
    AccessState.ACTIVE: 0,
    AccessState.LIMITED_ACCESS: 1,
    AccessState.BLOCKED: 2,
}

ACCESS_TRANSITIONS = {
    AccessState.ACTIVE: {AccessState.BLOCKED},
    AccessState.LIMITED_ACCESS: {AccessState.ACTIVE, AccessState.BLOCKED},
    AccessState.BLOCKED: {AccessState.LIMITED_ACCESS, AccessState.ACTIVE},
}


def current_access_state(user: User) -> AccessState:
    """Read the access state encoded in the user's flags."""
    if not user.is_blocked:
        return AccessState.ACTIVE
    if user.limited_access:
        return AccessState.LIMITED_ACCESS
    return AccessState.BLOCKED


def assert_access_transition(current: AccessState, target: AccessState) -> None:
    allowed = ACCESS_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidStateTransition(
            f"Invalid access transition: {current.value} → {target.value}"
        )


def apply_access_state(
    user: User,
    target: AccessState,
    *,
    reason: str | None = None,
    until: datetime | None = None,
    now: datetime | None = None,
) -> bool:
    """Move the user to ``target``, writing the flags it implies.

    Returns False when the user is already in ``target``.

    Raises:
        InvalidStateTransition: If the transition is not allowed
    """
    current = current_access_state(user)
    if current == target:
        return False
    assert_access_transition(current, target)

    if target == AccessState.ACTIVE:
        user.is_blocked = False
        user.limited_access = False
        user.blocked_at = None
        user.blocked_until = None
        user.block_reason = None
    elif target == AccessState.LIMITED_ACCESS:
        user.is_blocked = True
        user.limited_access = True
    else:
        user.is_blocked = True
        user.limited_access = False
        user.blocked_at = now or utcnow()
        user.block_reason = reason
        user.blocked_until = until
    return True


def auto_unblock_if_expired(user: User, now: datetime | None = None) -> bool:
    """Lift a timed block whose ``blocked_until`` has passed."""
    if not user.is_blocked or user.blocked_until is None:
        return False
    now = now or utcnow()
    if as_utc(user.blocked_until) > now:
        return False
    return apply_access_state(user, AccessState.ACTIVE)


def min_partial_payment(total_due_before: int) -> int:
    """Smallest payment that earns limited access: ceil(total / 2)."""
    return -(-total_due_before // 2)


def derive_settlement_access(
    current: AccessState,
    total_due_before: int,
    remaining_due: int,
    amount: int,
) -> AccessState:
    """Access state after a settlement.

    The result is never more restricted than ``current``.
    """
    if remaining_due <= 0:
        candidate = AccessState.ACTIVE
    elif amount >= min_partial_payment(total_due_before):
        candidate = AccessState.LIMITED_ACCESS
    else:
        candidate = current
    return min(current, candidate, key=lambda state: state.rank)
