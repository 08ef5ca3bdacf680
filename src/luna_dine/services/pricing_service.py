"""Pricing engine computing subtotal, VAT, promo discount and total."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from luna_dine.models.order_models import OrderLineRequest, OrderPricing, PromoType
from luna_dine.observability.metrics import record_promo_ignored
from luna_dine.repositories.catalog_repository import CatalogRepository
from luna_dine.repositories.order_repositories import PromoCodeRepository
from luna_dine.services.errors import InvalidMenuItemError, NotFoundError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> Decimal:
    """Round a money amount half-up to two decimal places."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_discount(promo_type: PromoType, value: Decimal, subtotal: Decimal) -> Decimal:
    """Compute a promo discount, never exceeding the subtotal."""
    if promo_type == PromoType.PERCENTAGE:
        discount = subtotal * value / 100
    else:
        discount = value
    return to_cents(min(discount, subtotal))


class PricingEngine:
    """Prices cart lines against current branch menu prices.

    Customization prices are carried in the order snapshot but are not part of
    the subtotal. A promo code that is unknown, inactive or below its minimum
    order amount is ignored without telling the caller.
    """

    def __init__(
        self,
        catalog_repository: CatalogRepository,
        promo_repository: PromoCodeRepository,
    ) -> None:
        """Initialize the PricingEngine.

        Args:
            catalog_repository: Repository for menu prices and branch settings
            promo_repository: Repository for promo code lookups
        """
        self.catalog_repository = catalog_repository
        self.promo_repository = promo_repository

    def price_order(
        self,
        branch_id: int,
        items: list[OrderLineRequest],
        promo_code: str | None = None,
    ) -> OrderPricing:
        """Compute the money amounts of an order.

        Args:
            branch_id: Branch whose VAT setting applies
            items: Cart lines with branch menu item ids and quantities
            promo_code: Optional promo code entered at checkout

        Returns:
            OrderPricing with subtotal, VAT, discount, total and applied promo id

        Raises:
            InvalidMenuItemError: If any line references an unknown menu item
            NotFoundError: If the branch does not exist
        """
        prices = self.catalog_repository.get_item_prices([line.branch_menu_item_id for line in items])

        subtotal = Decimal("0")
        for line in items:
            price = prices.get(line.branch_menu_item_id)
            if price is None:
                logger.warning(f"Order references unknown menu item {line.branch_menu_item_id}")
                raise InvalidMenuItemError(line.branch_menu_item_id)
            subtotal += price * line.quantity

        branch = self.catalog_repository.get_branch_settings(branch_id)
        if branch is None:
            raise NotFoundError("Branch not found")

        vat_percentage = Decimal(str(branch.settings.vat_percentage))
        vat_amount = to_cents(subtotal * vat_percentage / 100)

        discount_amount = Decimal("0")
        promo_code_id: int | None = None
        if promo_code:
            discount_amount, promo_code_id = self._apply_promo(promo_code, subtotal)

        subtotal = to_cents(subtotal)
        total_amount = subtotal + vat_amount - discount_amount

        return OrderPricing(
            subtotal=subtotal,
            vat_amount=vat_amount,
            discount_amount=discount_amount,
            total_amount=total_amount,
            promo_code_id=promo_code_id,
        )

    def _apply_promo(self, promo_code: str, subtotal: Decimal) -> tuple[Decimal, int | None]:
        promo = self.promo_repository.get_active_promo(promo_code)
        if promo is None:
            logger.info(f"Ignoring unknown or inactive promo code '{promo_code}'")
            record_promo_ignored("unknown")
            return Decimal("0"), None

        if subtotal < promo.min_order_amount:
            logger.info(
                f"Ignoring promo code '{promo_code}': subtotal {subtotal} "
                f"below minimum {promo.min_order_amount}"
            )
            record_promo_ignored("below_minimum")
            return Decimal("0"), None

        return compute_discount(promo.type, promo.value, subtotal), promo.id
