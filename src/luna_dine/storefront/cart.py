"""Client-side shopping cart with persisted state."""

import json
import logging
import uuid
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from luna_dine.models.catalog_models import DEFAULT_VAT_PERCENTAGE, MenuItem
from luna_dine.models.order_models import OrderType, PromoValidation
from luna_dine.services.pricing_service import compute_discount, to_cents
from luna_dine.storefront.storage import CART_KEY, ClientStorage

logger = logging.getLogger(__name__)


class CartLine(BaseModel):
    """One line in the cart.

    ``customizations`` holds the selected options as submitted with the order,
    each with its ``additional_price``.
    """

    line_id: str
    branch_menu_item_id: int
    name: str
    price: float
    quantity: int = Field(..., gt=0)
    customizations: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def unit_price(self) -> Decimal:
        extras = sum(
            (Decimal(str(option.get("additional_price", 0) or 0)) for option in self.customizations),
            Decimal("0"),
        )
        return Decimal(str(self.price)) + extras

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def matches(self, branch_menu_item_id: int, customizations: list[dict[str, Any]]) -> bool:
        return self.branch_menu_item_id == branch_menu_item_id and _canonical(
            self.customizations
        ) == _canonical(customizations)


class CartState(BaseModel):
    """Persisted cart document."""

    lines: list[CartLine] = Field(default_factory=list)
    branch_id: int | None = None
    vat_percentage: float = DEFAULT_VAT_PERCENTAGE
    order_type: OrderType = OrderType.DINE_IN
    table_id: int | None = None
    promo: PromoValidation | None = None


def _canonical(customizations: list[dict[str, Any]]) -> str:
    return json.dumps(customizations, sort_keys=True, default=str)


class Cart:
    """Shopping cart for one storefront session.

    The subtotal shown here includes customization prices, while the server
    charges base prices only; the server's figures are authoritative.
    Every mutation is written to storage immediately.
    """

    def __init__(self, storage: ClientStorage) -> None:
        """Initialize the cart, restoring any persisted state.

        Args:
            storage: Storage holding the cart document
        """
        self.storage = storage
        self.state = self._load()

    @property
    def lines(self) -> list[CartLine]:
        return list(self.state.lines)

    @property
    def is_empty(self) -> bool:
        return not self.state.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.state.lines)

    def set_branch(self, branch_id: int, vat_percentage: float | None = None) -> None:
        """Bind the cart to a branch, clearing it when the branch changes."""
        if self.state.branch_id is not None and self.state.branch_id != branch_id and self.state.lines:
            logger.info(f"Branch changed from {self.state.branch_id} to {branch_id}, clearing cart")
            self.state.lines = []
            self.state.promo = None
            self.state.table_id = None
        self.state.branch_id = branch_id
        self.state.vat_percentage = DEFAULT_VAT_PERCENTAGE if vat_percentage is None else vat_percentage
        self._save()

    def set_order_type(self, order_type: OrderType) -> None:
        self.state.order_type = order_type
        self._save()

    def set_table(self, table_id: int | None) -> None:
        self.state.table_id = table_id
        self._save()

    def add_item(
        self,
        item: MenuItem,
        quantity: int = 1,
        customizations: list[dict[str, Any]] | None = None,
    ) -> CartLine:
        """Add an item, merging into an existing line with identical customizations.

        Args:
            item: Menu item being added
            quantity: Units to add
            customizations: Selected options, each with ``additional_price``

        Returns:
            CartLine: The new or updated line
        """
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        selected = list(customizations or [])

        for line in self.state.lines:
            if line.matches(item.branch_menu_item_id, selected):
                line.quantity += quantity
                self._save()
                return line

        line = CartLine(
            line_id=f"cart-{uuid.uuid4().hex[:12]}",
            branch_menu_item_id=item.branch_menu_item_id,
            name=item.name,
            price=item.price,
            quantity=quantity,
            customizations=selected,
        )
        self.state.lines.append(line)
        self._save()
        return line

    def update_quantity(self, line_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_line(line_id)
            return
        for line in self.state.lines:
            if line.line_id == line_id:
                line.quantity = quantity
                self._save()
                return
        logger.warning(f"Cart line {line_id} not found")

    def remove_line(self, line_id: str) -> None:
        self.state.lines = [line for line in self.state.lines if line.line_id != line_id]
        self._save()

    def clear(self) -> None:
        """Empty the cart, dropping the promo code and table selection."""
        self.state.lines = []
        self.state.promo = None
        self.state.table_id = None
        self._save()

    def apply_promo(self, promo: PromoValidation) -> bool:
        """Attach a validated promo code.

        Returns:
            bool: False when the subtotal is below the code's minimum (not attached)
        """
        if self.subtotal < Decimal(str(promo.min_order_amount)):
            return False
        self.state.promo = promo
        self._save()
        return True

    def remove_promo(self) -> None:
        self.state.promo = None
        self._save()

    @property
    def promo_code(self) -> str | None:
        return self.state.promo.code if self.state.promo else None

    @property
    def subtotal(self) -> Decimal:
        return to_cents(sum((line.line_total for line in self.state.lines), Decimal("0")))

    @property
    def vat_amount(self) -> Decimal:
        return to_cents(self.subtotal * Decimal(str(self.state.vat_percentage)) / 100)

    @property
    def discount_amount(self) -> Decimal:
        promo = self.state.promo
        subtotal = self.subtotal
        if promo is None or subtotal < Decimal(str(promo.min_order_amount)):
            return Decimal("0")
        return compute_discount(promo.type, Decimal(str(promo.discount)), subtotal)

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.vat_amount - self.discount_amount

    def order_items(self) -> list[dict[str, Any]]:
        """Cart lines in the shape the orders endpoint expects."""
        return [
            {
                "branch_menu_item_id": line.branch_menu_item_id,
                "quantity": line.quantity,
                "customizations": line.customizations,
            }
            for line in self.state.lines
        ]

    def _load(self) -> CartState:
        data = self.storage.get(CART_KEY)
        if not isinstance(data, dict):
            return CartState()
        try:
            return CartState.model_validate(data)
        except ValidationError:
            logger.warning("Stored cart is unreadable, starting with an empty cart")
            return CartState()

    def _save(self) -> None:
        self.storage.set(CART_KEY, self.state.model_dump(mode="json"))
