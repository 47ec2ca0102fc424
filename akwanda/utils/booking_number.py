"""Confirmation code generation."""

import random
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.config import settings

CODE_ALPHABET = string.ascii_uppercase + string.digits


def random_confirmation_code() -> str:
    """Random code like 'AKW-A3B7K9' (not checked for uniqueness)."""
    random_part = "".join(random.choices(CODE_ALPHABET, k=settings.confirmation_code_length))
    return f"{settings.confirmation_code_prefix}-{random_part}"


async def generate_confirmation_code(db: AsyncSession) -> str:
    """Generate a confirmation code not used by any booking.

    Args:
        db: Database session for uniqueness check

    Returns:
        str: Unique confirmation code like 'AKW-A3B7K9'
    """
    from akwanda.models.booking import Booking

    while True:
        code = random_confirmation_code()

        # Check uniqueness
        result = await db.execute(
            select(Booking.id).where(Booking.confirmation_code == code)
        )
        if result.scalar_one_or_none() is None:
            return code
