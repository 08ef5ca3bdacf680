"""Storefront controller driving browsing, cart and checkout.

All state lives on the controller instance; the API client and storage are
passed in. Only order placement, promo validation and the explicit fetches
touch the network. Fetch failures never raise: they produce an empty result
and a notification.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from luna_dine.models.catalog_models import (
    DEFAULT_VAT_PERCENTAGE,
    BranchSummary,
    Language,
    MenuItem,
    MenuResponse,
    RestaurantTable,
)
from luna_dine.models.order_models import (
    OrderStatusView,
    OrderType,
    PlacedOrder,
    PromoOffer,
    ServiceRequestResult,
)
from luna_dine.storefront.api_client import StorefrontApiClient, StorefrontApiError
from luna_dine.storefront.cart import Cart
from luna_dine.storefront.storage import (
    FAVORITES_KEY,
    LANGUAGE_KEY,
    ORDER_HISTORY_KEY,
    PENDING_PROMO_KEY,
    ClientStorage,
)

logger = logging.getLogger(__name__)

MAX_ORDER_HISTORY = 50
DEFAULT_LANGUAGE = "en"


class Step(str, Enum):
    """Where the guest is in the browse-to-order flow."""

    BROWSING = "browsing"
    ITEM_CUSTOMIZING = "item-customizing"
    CART_REVIEW = "cart-review"
    ORDER_DETAILS = "order-details"
    CUSTOMER_INFO = "customer-info"
    PAYMENT = "payment"
    ORDER_PLACED = "order-placed"


CHECKOUT_STEPS = [Step.ORDER_DETAILS, Step.CUSTOMER_INFO, Step.PAYMENT]


@dataclass
class Notification:
    level: str
    message: str


@dataclass
class CustomerInfo:
    name: str = ""
    phone: str = ""
    address: str = ""


class StorefrontController:
    """Explicit application state for one storefront session."""

    def __init__(self, api: StorefrontApiClient, storage: ClientStorage) -> None:
        """Initialize the controller.

        Args:
            api: Client for the LunaDine API
            storage: Durable storage for cart, favorites, history and language
        """
        self.api = api
        self.storage = storage
        self.cart = Cart(storage)

        self.step = Step.BROWSING
        self.language: str = storage.get(LANGUAGE_KEY) or DEFAULT_LANGUAGE
        self.branches: list[BranchSummary] = []
        self.languages: list[Language] = []
        self.branch: BranchSummary | None = None
        self.settings: dict[str, Any] = {}
        self.tables: list[RestaurantTable] = []
        self.menu: MenuResponse | None = None
        self.customizing_item: MenuItem | None = None
        self.customer = CustomerInfo()
        self.notifications: list[Notification] = []
        self.last_order: PlacedOrder | None = None

        self._menu_request_seq = 0

    # Notifications

    def notify(self, level: str, message: str) -> None:
        logger.debug(f"Notification [{level}]: {message}")
        self.notifications.append(Notification(level, message))

    def drain_notifications(self) -> list[Notification]:
        pending, self.notifications = self.notifications, []
        return pending

    # Catalog

    async def load_branches(self) -> list[BranchSummary]:
        try:
            self.branches = await self.api.list_branches()
        except StorefrontApiError as e:
            logger.error(f"Failed to load branches: {e.message}")
            self.branches = []
            self.notify("error", "Failed to load branches")
        return self.branches

    async def load_languages(self) -> list[Language]:
        try:
            self.languages = await self.api.list_languages()
        except StorefrontApiError as e:
            logger.error(f"Failed to load languages: {e.message}")
            self.languages = []
            self.notify("error", "Failed to load languages")
        return self.languages

    async def select_branch(self, branch_id: int) -> None:
        """Switch to a branch and load its settings, tables and menu."""
        self.branch = next((b for b in self.branches if b.id == branch_id), None)

        try:
            self.settings = await self.api.get_settings(branch_id)
        except StorefrontApiError as e:
            logger.error(f"Failed to load settings for branch {branch_id}: {e.message}")
            self.settings = {}
            self.notify("error", "Failed to load branch settings")

        vat = self.settings.get("vat_percentage")
        self.cart.set_branch(branch_id, float(vat) if vat is not None else DEFAULT_VAT_PERCENTAGE)

        try:
            self.tables = await self.api.list_tables(branch_id)
        except StorefrontApiError as e:
            logger.error(f"Failed to load tables for branch {branch_id}: {e.message}")
            self.tables = []

        self.step = Step.BROWSING
        await self.load_menu()

    async def load_menu(self) -> MenuResponse | None:
        """Fetch the menu for the current branch and language.

        Each call takes a sequence number; a response that arrives after a
        newer request was issued is discarded.
        """
        if self.cart.state.branch_id is None:
            self.notify("warning", "Please select a branch first")
            return None

        self._menu_request_seq += 1
        seq = self._menu_request_seq
        branch_id = self.cart.state.branch_id

        try:
            menu = await self.api.get_menu(branch_id, self.language)
        except StorefrontApiError as e:
            if seq != self._menu_request_seq:
                return self.menu
            logger.error(f"Failed to load menu for branch {branch_id}: {e.message}")
            self.menu = MenuResponse(categories=[], language=self.language)
            self.notify("error", "Failed to load menu")
            return self.menu

        if seq != self._menu_request_seq:
            logger.debug(f"Discarding stale menu response {seq} (latest {self._menu_request_seq})")
            return self.menu

        self.menu = menu
        return menu

    async def set_language(self, code: str) -> None:
        """Persist the selected language and reload the menu in it."""
        self.language = code
        self.storage.set(LANGUAGE_KEY, code)
        if self.cart.state.branch_id is not None:
            await self.load_menu()

    def find_item(self, branch_menu_item_id: int) -> MenuItem | None:
        if self.menu is None:
            return None
        for category in self.menu.categories:
            for item in category.items:
                if item.branch_menu_item_id == branch_menu_item_id:
                    return item
        return None

    # Item selection and cart

    def open_item(self, item: MenuItem) -> None:
        self.customizing_item = item
        self.step = Step.ITEM_CUSTOMIZING

    def close_item(self) -> None:
        self.customizing_item = None
        self.step = Step.BROWSING

    def add_to_cart(
        self,
        item: MenuItem,
        quantity: int = 1,
        customizations: list[dict[str, Any]] | None = None,
    ) -> None:
        if not item.is_available:
            self.notify("warning", f"{item.name} is currently unavailable")
            return
        self.cart.add_item(item, quantity, customizations)
        self.customizing_item = None
        self.step = Step.BROWSING
        self.notify("success", f"{item.name} added to cart")

    def view_cart(self) -> None:
        self.step = Step.CART_REVIEW

    # Checkout

    def begin_checkout(self) -> bool:
        if self.cart.is_empty:
            self.notify("warning", "Your cart is empty")
            return False
        self.step = Step.ORDER_DETAILS
        return True

    def set_order_details(self, order_type: OrderType, table_id: int | None = None) -> None:
        self.cart.set_order_type(order_type)
        self.cart.set_table(table_id)

    def set_customer_info(self, name: str, phone: str, address: str = "") -> None:
        self.customer = CustomerInfo(name=name.strip(), phone=phone.strip(), address=address.strip())

    def validate_current_step(self) -> bool:
        """Validate the current checkout step locally.

        Customer details need a name and phone number, plus an address for
        delivery orders. Other steps always pass.
        """
        if self.step != Step.CUSTOMER_INFO:
            return True
        return self._customer_info_valid()

    def _customer_info_valid(self) -> bool:
        if not self.customer.name:
            self.notify("warning", "Please enter your name")
            return False
        if not self.customer.phone:
            self.notify("warning", "Please enter your phone number")
            return False
        if self.cart.state.order_type == OrderType.DELIVERY and not self.customer.address:
            self.notify("warning", "Please enter your delivery address")
            return False
        return True

    def next_step(self) -> bool:
        if self.step not in CHECKOUT_STEPS or not self.validate_current_step():
            return False
        index = CHECKOUT_STEPS.index(self.step)
        if index + 1 < len(CHECKOUT_STEPS):
            self.step = CHECKOUT_STEPS[index + 1]
        return True

    def previous_step(self) -> None:
        if self.step in CHECKOUT_STEPS:
            index = CHECKOUT_STEPS.index(self.step)
            self.step = CHECKOUT_STEPS[index - 1] if index > 0 else Step.CART_REVIEW
        elif self.step in (Step.CART_REVIEW, Step.ITEM_CUSTOMIZING):
            self.step = Step.BROWSING

    # Promo codes

    async def load_offers(self) -> list[PromoOffer]:
        try:
            return await self.api.list_promocodes()
        except StorefrontApiError as e:
            logger.error(f"Failed to load offers: {e.message}")
            self.notify("error", "Failed to load offers")
            return []

    def remember_promo_code(self, code: str) -> None:
        """Keep a code picked from the offers list until checkout."""
        self.storage.set(PENDING_PROMO_KEY, code)

    @property
    def pending_promo_code(self) -> str | None:
        return self.storage.get(PENDING_PROMO_KEY)

    async def apply_promo_code(self, code: str | None = None) -> bool:
        code = (code or self.pending_promo_code or "").strip()
        if not code:
            self.notify("warning", "Please enter a promo code")
            return False

        try:
            promo = await self.api.validate_promocode(code)
        except StorefrontApiError as e:
            if e.status_code is None:
                self.notify("error", "Failed to apply promo code")
            else:
                self.notify("error", "Invalid or expired promo code")
            return False

        if not self.cart.apply_promo(promo):
            currency = self.settings.get("currency_symbol", "৳")
            self.notify("warning", f"Minimum order amount is {currency}{promo.min_order_amount:g}")
            return False

        self.storage.remove(PENDING_PROMO_KEY)
        self.notify("success", "Promo code applied successfully!")
        return True

    def remove_promo_code(self) -> None:
        if self.cart.promo_code is None:
            return
        self.cart.remove_promo()
        self.notify("info", "Promo code removed")

    # Orders

    def build_order(self) -> dict[str, Any]:
        state = self.cart.state
        return {
            "branch_id": state.branch_id,
            "order_type": state.order_type.value,
            "table_id": state.table_id,
            "customer_name": self.customer.name,
            "customer_phone": self.customer.phone,
            "customer_address": self.customer.address if state.order_type == OrderType.DELIVERY else None,
            "language": self.language,
            "promo_code": self.cart.promo_code,
            "items": self.cart.order_items(),
        }

    async def place_order(self) -> PlacedOrder | None:
        """Submit the cart as an order.

        On success the cart is cleared and the order is added to the local
        history. On failure the cart is kept and the server's message is shown.
        """
        if self.cart.is_empty:
            self.notify("warning", "Your cart is empty")
            return None
        if self.cart.state.branch_id is None:
            self.notify("warning", "Please select a branch first")
            return None

        if not self._customer_info_valid():
            return None

        order = self.build_order()
        try:
            placed = await self.api.place_order(order)
        except StorefrontApiError as e:
            self.notify("error", e.message or "Failed to place order")
            return None

        self._add_to_history(
            {
                **placed.model_dump(mode="json"),
                "branch_id": order["branch_id"],
                "order_type": order["order_type"],
                "items": [line.model_dump(mode="json") for line in self.cart.lines],
                "customer": {
                    "name": order["customer_name"],
                    "phone": order["customer_phone"],
                    "address": order["customer_address"],
                },
                "total": str(self.cart.total),
                "placed_at": datetime.now(UTC).isoformat(),
            }
        )
        self.cart.clear()
        self.last_order = placed
        self.step = Step.ORDER_PLACED
        self.notify("success", "Order placed successfully!")
        return placed

    async def track_order(self, order_uid: str) -> OrderStatusView | None:
        try:
            return await self.api.get_order_status(order_uid)
        except StorefrontApiError as e:
            self.notify("error", e.message or "Failed to load order status")
            return None

    def start_new_order(self) -> None:
        self.last_order = None
        self.step = Step.BROWSING

    @property
    def order_history(self) -> list[dict[str, Any]]:
        history = self.storage.get(ORDER_HISTORY_KEY, [])
        return history if isinstance(history, list) else []

    def _add_to_history(self, entry: dict[str, Any]) -> None:
        history = [entry, *self.order_history][:MAX_ORDER_HISTORY]
        self.storage.set(ORDER_HISTORY_KEY, history)

    # Favorites

    @property
    def favorites(self) -> list[dict[str, Any]]:
        favorites = self.storage.get(FAVORITES_KEY, [])
        return favorites if isinstance(favorites, list) else []

    def is_favorite(self, branch_menu_item_id: int) -> bool:
        return any(f.get("branch_menu_item_id") == branch_menu_item_id for f in self.favorites)

    def toggle_favorite(self, item: MenuItem) -> bool:
        """Add or remove an item from favorites.

        Returns:
            bool: True if the item is a favorite afterwards
        """
        favorites = self.favorites
        remaining = [f for f in favorites if f.get("branch_menu_item_id") != item.branch_menu_item_id]
        if len(remaining) != len(favorites):
            self.storage.set(FAVORITES_KEY, remaining)
            self.notify("info", f"{item.name} removed from favorites")
            return False

        remaining.append(
            {
                "branch_menu_item_id": item.branch_menu_item_id,
                "master_item_id": item.master_item_id,
                "branch_id": self.cart.state.branch_id,
                "name": item.name,
                "price": item.price,
                "image_url": item.image_url,
            }
        )
        self.storage.set(FAVORITES_KEY, remaining)
        self.notify("success", f"{item.name} added to favorites!")
        return True

    # Guest requests

    async def request_service(self, request_type: str) -> ServiceRequestResult | None:
        state = self.cart.state
        if state.branch_id is None or state.table_id is None:
            self.notify("warning", "Please select your table first")
            return None
        try:
            result = await self.api.create_service_request(
                state.branch_id, state.table_id, request_type, self.language
            )
        except StorefrontApiError as e:
            self.notify("error", e.message)
            return None
        self.notify("success", result.display_text)
        return result

    async def submit_feedback(
        self,
        order_uid: str,
        overall: int,
        food: int | None = None,
        service: int | None = None,
        comment: str | None = None,
    ) -> bool:
        feedback = {
            "order_id": order_uid,
            "ratings": {"overall": overall, "food": food, "service": service},
            "comment": comment,
        }
        try:
            await self.api.submit_feedback(feedback)
        except StorefrontApiError as e:
            self.notify("error", e.message)
            return False
        self.notify("success", "Thank you for your feedback!")
        return True
