"""Commission calculation service.

Rules:
- Commission is charged on a booking's amount before tax, never on add-ons
- A property's own rate applies only while it lies inside the admin band,
  the band being [lowest tier rate, highest tier rate]
- Otherwise the default rate of the property's tier (base/premium/featured) applies
- The rate is fixed on the booking at creation time
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.config import settings
from akwanda.core.exceptions import Unauthorized, ValidationError
from akwanda.core.security import Actor
from akwanda.models.property import CommissionSettings
from akwanda.utils.money import percent_of

logger = logging.getLogger(__name__)

COMMISSION_TIERS = ("base", "premium", "featured")
SETTINGS_ROW_ID = 1


def default_tier_rates() -> dict[str, Decimal]:
    return {
        "base": settings.default_commission_base_rate,
        "premium": settings.default_commission_premium_rate,
        "featured": settings.default_commission_featured_rate,
    }


class CommissionService:
    """Service for resolving commission rates and amounts."""

    async def get_settings(self, db: AsyncSession) -> CommissionSettings:
        """Load the settings row, creating it with configured defaults."""
        result = await db.execute(
            select(CommissionSettings).where(CommissionSettings.id == SETTINGS_ROW_ID)
        )
        commission_settings = result.scalar_one_or_none()
        if commission_settings is None:
            defaults = default_tier_rates()
            commission_settings = CommissionSettings(
                id=SETTINGS_ROW_ID,
                base_rate=defaults["base"],
                premium_rate=defaults["premium"],
                featured_rate=defaults["featured"],
                enforcement_paused=False,
            )
            db.add(commission_settings)
            await db.flush()
        return commission_settings

    async def update_settings(
        self,
        db: AsyncSession,
        actor: Actor,
        base_rate: Decimal | None = None,
        premium_rate: Decimal | None = None,
        featured_rate: Decimal | None = None,
        enforcement_paused: bool | None = None,
        notes: str | None = None,
    ) -> CommissionSettings:
        """Update tier rates or the enforcement switch (admin only)."""
        if not actor.is_admin:
            raise Unauthorized("Only administrators can change commission settings")

        commission_settings = await self.get_settings(db)
        for field, value in (
            ("base_rate", base_rate),
            ("premium_rate", premium_rate),
            ("featured_rate", featured_rate),
        ):
            if value is None:
                continue
            if not Decimal("0") <= value <= Decimal("100"):
                raise ValidationError(f"{field} must be between 0 and 100")
            setattr(commission_settings, field, value)
        if enforcement_paused is not None:
            commission_settings.enforcement_paused = enforcement_paused
        if notes is not None:
            commission_settings.notes = notes

        await db.flush()
        logger.info(
            "Commission settings updated by %s: base=%s premium=%s featured=%s paused=%s",
            actor.user_id,
            commission_settings.base_rate,
            commission_settings.premium_rate,
            commission_settings.featured_rate,
            commission_settings.enforcement_paused,
        )
        return commission_settings

    def tier_rates(self, commission_settings: CommissionSettings) -> dict[str, Decimal]:
        return {
            "base": Decimal(commission_settings.base_rate),
            "premium": Decimal(commission_settings.premium_rate),
            "featured": Decimal(commission_settings.featured_rate),
        }

    def commission_band(self, commission_settings: CommissionSettings) -> tuple[Decimal, Decimal]:
        rates = self.tier_rates(commission_settings).values()
        return min(rates), max(rates)

    def resolve_rate(
        self,
        property_rate: Decimal | None,
        tier: str | None,
        commission_settings: CommissionSettings,
    ) -> Decimal:
        """Pick the commission rate for a property.

        Args:
            property_rate: Rate configured on the property, if any
            tier: Property's commission tier
            commission_settings: Platform tier rates

        Returns:
            Decimal: Rate as percentage (e.g., 10 for 10%)
        """
        low, high = self.commission_band(commission_settings)
        if property_rate is not None and low <= Decimal(property_rate) <= high:
            return Decimal(property_rate)

        rates = self.tier_rates(commission_settings)
        return rates.get(tier or "premium", rates["premium"])

    def calculate_commission(self, commission_base: int, rate: Decimal) -> int:
        """Commission in whole currency units, rounded half up."""
        return percent_of(commission_base, rate)


# Singleton instance
commission_service = CommissionService()
