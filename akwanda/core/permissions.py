"""Who may act on which booking."""

from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.core.exceptions import Unauthorized
from akwanda.core.security import Actor
from akwanda.models.user import WorkerPrivilege


class BookingAction(str, Enum):
    """Actions on a booking."""

    VIEW = "view"
    CREATE_DIRECT = "create_direct"
    CONFIRM = "confirm"
    MODIFY = "modify"
    CANCEL = "cancel"
    END = "end"


# Actions a party may take by virtue of its relation to the booking
GUEST_ACTIONS = {BookingAction.VIEW, BookingAction.MODIFY, BookingAction.CANCEL}
MANAGE_PRIVILEGE_ACTIONS = {
    BookingAction.VIEW,
    BookingAction.CREATE_DIRECT,
    BookingAction.CONFIRM,
    BookingAction.END,
}
CANCEL_PRIVILEGE_ACTIONS = {BookingAction.VIEW, BookingAction.CANCEL}


async def get_worker_privilege(
    db: AsyncSession, worker_id: UUID, host_id: UUID
) -> WorkerPrivilege | None:
    result = await db.execute(
        select(WorkerPrivilege).where(
            WorkerPrivilege.worker_id == worker_id,
            WorkerPrivilege.host_id == host_id,
        )
    )
    return result.scalar_one_or_none()


async def authorize_booking_action(
    db: AsyncSession,
    actor: Actor,
    action: BookingAction,
    host_id: UUID,
    guest_id: UUID | None = None,
) -> str:
    """Check that ``actor`` may take ``action``.

    Returns:
        str: The capacity the actor acts in (admin, host, guest, worker)

    Raises:
        Unauthorized: If the actor has no claim to the booking
    """
    if actor.is_admin:
        return "admin"
    if actor.user_id == host_id:
        return "host"
    if guest_id is not None and actor.user_id == guest_id and action in GUEST_ACTIONS:
        return "guest"

    if actor.role == "worker":
        privilege = await get_worker_privilege(db, actor.user_id, host_id)
        if privilege is not None:
            if privilege.can_manage_bookings and action in MANAGE_PRIVILEGE_ACTIONS:
                return "worker"
            if privilege.can_cancel_bookings and action in CANCEL_PRIVILEGE_ACTIONS:
                return "worker"

    raise Unauthorized(f"You don't have permission to {action.value.replace('_', ' ')} this booking")


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise Unauthorized("Admin access required")
