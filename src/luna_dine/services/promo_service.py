"""Promo code listing and validation for the storefront offers panel."""

import logging
from decimal import Decimal

from luna_dine.models.catalog_models import DEFAULT_CURRENCY_SYMBOL
from luna_dine.models.order_models import (
    PromoCodeRecord,
    PromoOffer,
    PromoType,
    PromoValidation,
)
from luna_dine.repositories.order_repositories import PromoCodeRepository
from luna_dine.services.errors import NotFoundError

logger = logging.getLogger(__name__)

PROMO_TITLES = {
    "WELCOME10": "Welcome Offer",
    "SUMMER20": "Summer Special",
    "FLAT5": "Flat Discount",
    "LOYALTY": "Loyalty Reward",
}
DEFAULT_PROMO_TITLE = "Special Offer"


def format_amount(value: Decimal) -> str:
    """Render an amount without trailing zeros (10.00 -> "10", 7.50 -> "7.5")."""
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return str(value.normalize())


def promo_discount_label(promo: PromoCodeRecord, currency: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    if promo.type == PromoType.PERCENTAGE:
        return f"{format_amount(promo.value)}% OFF"
    return f"{currency}{format_amount(promo.value)} OFF"


def promo_description(promo: PromoCodeRecord, currency: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    minimum = format_amount(promo.min_order_amount)
    if promo.type == PromoType.PERCENTAGE:
        return (
            f"Get {promo_discount_label(promo, currency)} on orders above "
            f"{currency}{minimum}. Use code {promo.code}."
        )
    return (
        f"Save {currency}{format_amount(promo.value)} on orders above "
        f"{currency}{minimum}. Use code {promo.code}."
    )


class PromoService:
    """Service exposing active promo codes to guests.

    Validation here reports an unknown code as an error, while order placement
    silently ignores it.
    """

    def __init__(self, promo_repository: PromoCodeRepository) -> None:
        self.promo_repository = promo_repository

    async def list_promocodes(self) -> list[PromoOffer]:
        """List active promo codes, highest value first, ready for display."""
        return [
            PromoOffer(
                id=promo.id,
                code=promo.code,
                title=PROMO_TITLES.get(promo.code, DEFAULT_PROMO_TITLE),
                discount=promo_discount_label(promo),
                description=promo_description(promo),
                type=promo.type,
                value=float(promo.value),
                min_order_amount=float(promo.min_order_amount),
                expires_at=promo.expires_at,
            )
            for promo in self.promo_repository.list_active_promos()
        ]

    async def validate_promocode(self, code: str) -> PromoValidation:
        """Check that a promo code exists and is active.

        The minimum order amount is returned, not enforced.

        Raises:
            NotFoundError: If the code is unknown or inactive
        """
        promo = self.promo_repository.get_active_promo(code)
        if promo is None:
            logger.info(f"Rejected promo code '{code}'")
            raise NotFoundError("Invalid or expired promo code")

        return PromoValidation(
            code=promo.code,
            type=promo.type,
            discount=float(promo.value),
            min_order_amount=float(promo.min_order_amount),
        )
