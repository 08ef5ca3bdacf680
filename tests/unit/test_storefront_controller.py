"""Unit tests for StorefrontController."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from luna_dine.models.catalog_models import BranchSummary, Language, MenuCategory, MenuItem, MenuResponse
from luna_dine.models.order_models import (
    OrderStatus,
    OrderType,
    PlacedOrder,
    PromoType,
    PromoValidation,
    ServiceRequestResult,
    ServiceRequestType,
)
from luna_dine.storefront.api_client import StorefrontApiClient, StorefrontApiError
from luna_dine.storefront.controller import MAX_ORDER_HISTORY, Step, StorefrontController
from luna_dine.storefront.storage import LANGUAGE_KEY, ORDER_HISTORY_KEY, PENDING_PROMO_KEY, ClientStorage

BURGER = MenuItem(
    branch_menu_item_id=1,
    price=200.0,
    is_available=True,
    master_item_id=1,
    category_id=1,
    name="Burger",
)
SOLD_OUT = BURGER.model_copy(update={"branch_menu_item_id": 4, "is_available": False, "name": "Soup"})

PLACED = PlacedOrder(
    order_id="ORDABC",
    status=OrderStatus.PLACED,
    estimated_completion_time="2026-03-14 12:30:00",
    language="en",
)


def menu_in(language: str) -> MenuResponse:
    return MenuResponse(
        categories=[MenuCategory(id=1, name="Mains", items=[BURGER])],
        language=language,
    )


@pytest.fixture
def storage(tmp_path: Path) -> ClientStorage:
    return ClientStorage(tmp_path)


@pytest.fixture
def api() -> MagicMock:
    api = MagicMock(spec=StorefrontApiClient)
    api.list_branches = AsyncMock(
        return_value=[
            BranchSummary(id=1, name="Gulshan", status="open", default_language="en", language_name="English")
        ]
    )
    api.get_settings = AsyncMock(return_value={"vat_percentage": 15, "currency_symbol": "৳"})
    api.list_tables = AsyncMock(return_value=[])
    api.get_menu = AsyncMock(side_effect=lambda branch_id, language: menu_in(language))
    api.place_order = AsyncMock(return_value=PLACED)
    return api


@pytest.fixture
def controller(api: MagicMock, storage: ClientStorage) -> StorefrontController:
    return StorefrontController(api, storage)


async def ready(controller: StorefrontController) -> StorefrontController:
    await controller.load_branches()
    await controller.select_branch(1)
    controller.drain_notifications()
    return controller


def messages(controller: StorefrontController) -> list[str]:
    return [n.message for n in controller.drain_notifications()]


@pytest.mark.unit
class TestCatalogLoading:
    """Tests for branch selection and menu loading."""

    @pytest.mark.asyncio
    async def test_select_branch_loads_menu(self, controller: StorefrontController, api: MagicMock) -> None:
        await ready(controller)

        assert controller.branch is not None and controller.branch.name == "Gulshan"
        assert controller.cart.state.vat_percentage == 15.0
        assert controller.menu is not None
        assert controller.find_item(1) == BURGER
        api.get_menu.assert_called_once_with(1, "en")

    @pytest.mark.asyncio
    async def test_branch_load_failure(self, controller: StorefrontController, api: MagicMock) -> None:
        api.list_branches = AsyncMock(side_effect=StorefrontApiError(None, "Network error"))

        assert await controller.load_branches() == []
        assert messages(controller) == ["Failed to load branches"]

    @pytest.mark.asyncio
    async def test_load_languages(self, controller: StorefrontController, api: MagicMock) -> None:
        languages = [Language(id=2, code="bn", name="Bangla"), Language(id=1, code="en", name="English")]
        api.list_languages = AsyncMock(return_value=languages)

        assert await controller.load_languages() == languages
        assert controller.languages == languages
        assert messages(controller) == []

    @pytest.mark.asyncio
    async def test_language_load_failure(self, controller: StorefrontController, api: MagicMock) -> None:
        api.list_languages = AsyncMock(return_value=[Language(id=1, code="en", name="English")])
        await controller.load_languages()
        api.list_languages = AsyncMock(side_effect=StorefrontApiError(500, "Database error"))

        assert await controller.load_languages() == []
        assert controller.languages == []
        assert messages(controller) == ["Failed to load languages"]

    @pytest.mark.asyncio
    async def test_menu_failure_gives_empty_menu(self, controller: StorefrontController, api: MagicMock) -> None:
        api.get_menu = AsyncMock(side_effect=StorefrontApiError(500, "Database error"))

        await controller.load_branches()
        await controller.select_branch(1)

        assert controller.menu == MenuResponse(categories=[], language="en")
        assert "Failed to load menu" in messages(controller)

    @pytest.mark.asyncio
    async def test_menu_requires_branch(self, controller: StorefrontController) -> None:
        assert await controller.load_menu() is None
        assert messages(controller) == ["Please select a branch first"]

    @pytest.mark.asyncio
    async def test_language_persisted_and_menu_reloaded(
        self, controller: StorefrontController, storage: ClientStorage, api: MagicMock
    ) -> None:
        await ready(controller)

        await controller.set_language("bn")

        assert storage.get(LANGUAGE_KEY) == "bn"
        assert controller.menu is not None and controller.menu.language == "bn"
        assert StorefrontController(api, storage).language == "bn"

    @pytest.mark.asyncio
    async def test_stale_menu_response_is_discarded(
        self, controller: StorefrontController, api: MagicMock
    ) -> None:
        await ready(controller)
        release_slow = asyncio.Event()

        async def get_menu(branch_id: int, language: str) -> MenuResponse:
            if language == "bn":
                await release_slow.wait()
            return menu_in(language)

        api.get_menu = AsyncMock(side_effect=get_menu)

        slow = asyncio.create_task(controller.set_language("bn"))
        await asyncio.sleep(0)
        await controller.set_language("ar")
        release_slow.set()
        await slow

        assert controller.menu is not None
        assert controller.menu.language == "ar"


@pytest.mark.unit
class TestCartFlow:
    """Tests for adding items and checkout steps."""

    @pytest.mark.asyncio
    async def test_add_to_cart(self, controller: StorefrontController) -> None:
        await ready(controller)
        controller.open_item(BURGER)
        assert controller.step == Step.ITEM_CUSTOMIZING

        controller.add_to_cart(BURGER, 2)

        assert controller.cart.item_count == 2
        assert controller.step == Step.BROWSING
        assert messages(controller) == ["Burger added to cart"]

    @pytest.mark.asyncio
    async def test_unavailable_item_not_added(self, controller: StorefrontController) -> None:
        await ready(controller)

        controller.add_to_cart(SOLD_OUT)

        assert controller.cart.is_empty
        assert messages(controller) == ["Soup is currently unavailable"]

    def test_close_item_returns_to_browsing(self, controller: StorefrontController) -> None:
        controller.open_item(BURGER)
        assert controller.step == Step.ITEM_CUSTOMIZING

        controller.close_item()

        assert controller.customizing_item is None
        assert controller.step == Step.BROWSING
        assert controller.cart.is_empty

    def test_checkout_needs_items(self, controller: StorefrontController) -> None:
        assert controller.begin_checkout() is False
        assert messages(controller) == ["Your cart is empty"]

    @pytest.mark.asyncio
    async def test_step_navigation_with_validation(self, controller: StorefrontController) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER)
        controller.view_cart()
        assert controller.begin_checkout() is True

        controller.set_order_details(OrderType.DELIVERY)
        assert controller.next_step() is True
        assert controller.step == Step.CUSTOMER_INFO

        controller.set_customer_info("  Rafi ", "0170", "")
        controller.drain_notifications()
        assert controller.next_step() is False
        assert messages(controller) == ["Please enter your delivery address"]

        controller.set_customer_info("Rafi", "0170", "Road 2")
        assert controller.next_step() is True
        assert controller.step == Step.PAYMENT

        controller.previous_step()
        controller.previous_step()
        controller.previous_step()
        assert controller.step == Step.CART_REVIEW

    def test_customer_name_required(self, controller: StorefrontController) -> None:
        controller.step = Step.CUSTOMER_INFO
        controller.set_customer_info("   ", "0170")

        assert controller.validate_current_step() is False
        assert messages(controller) == ["Please enter your name"]


@pytest.mark.unit
class TestPromoCodes:
    """Tests for applying promo codes from the controller."""

    @pytest.mark.asyncio
    async def test_apply_valid_code(self, controller: StorefrontController, api: MagicMock) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER, 2)
        controller.drain_notifications()
        api.validate_promocode = AsyncMock(
            return_value=PromoValidation(code="WELCOME10", type=PromoType.PERCENTAGE, discount=10, min_order_amount=300)
        )

        assert await controller.apply_promo_code("WELCOME10") is True
        assert controller.cart.promo_code == "WELCOME10"
        assert messages(controller) == ["Promo code applied successfully!"]

    @pytest.mark.asyncio
    async def test_below_minimum(self, controller: StorefrontController, api: MagicMock) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER, 1)
        controller.drain_notifications()
        api.validate_promocode = AsyncMock(
            return_value=PromoValidation(code="WELCOME10", type=PromoType.PERCENTAGE, discount=10, min_order_amount=300)
        )

        assert await controller.apply_promo_code("WELCOME10") is False
        assert messages(controller) == ["Minimum order amount is ৳300"]

    @pytest.mark.asyncio
    async def test_pending_code_used_and_cleared(
        self, controller: StorefrontController, api: MagicMock, storage: ClientStorage
    ) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER, 1)
        controller.remember_promo_code("FLAT5")
        api.validate_promocode = AsyncMock(
            return_value=PromoValidation(code="FLAT5", type=PromoType.FIXED, discount=5, min_order_amount=0)
        )

        assert await controller.apply_promo_code() is True
        api.validate_promocode.assert_called_once_with("FLAT5")
        assert storage.get(PENDING_PROMO_KEY) is None

    @pytest.mark.asyncio
    async def test_invalid_and_network_failures(self, controller: StorefrontController, api: MagicMock) -> None:
        api.validate_promocode = AsyncMock(side_effect=StorefrontApiError(404, "Invalid or expired promo code"))
        assert await controller.apply_promo_code("NOPE") is False
        assert messages(controller) == ["Invalid or expired promo code"]

        api.validate_promocode = AsyncMock(side_effect=StorefrontApiError(None, "Network error: timeout"))
        assert await controller.apply_promo_code("NOPE") is False
        assert messages(controller) == ["Failed to apply promo code"]

    @pytest.mark.asyncio
    async def test_remove_promo_code(self, controller: StorefrontController, api: MagicMock) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER, 2)
        api.validate_promocode = AsyncMock(
            return_value=PromoValidation(code="FLAT5", type=PromoType.FIXED, discount=5, min_order_amount=0)
        )
        await controller.apply_promo_code("FLAT5")
        controller.drain_notifications()

        controller.remove_promo_code()

        assert controller.cart.promo_code is None
        assert controller.cart.discount_amount == 0
        assert controller.build_order()["promo_code"] is None
        assert messages(controller) == ["Promo code removed"]

        controller.remove_promo_code()
        assert messages(controller) == []


@pytest.mark.unit
class TestPlaceOrder:
    """Tests for order submission."""

    @pytest.mark.asyncio
    async def test_success_clears_cart_and_records_history(
        self, controller: StorefrontController, api: MagicMock, storage: ClientStorage
    ) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER, 2)
        controller.set_order_details(OrderType.DINE_IN, table_id=1)
        controller.set_customer_info("Rafi", "0170")
        controller.drain_notifications()

        placed = await controller.place_order()

        assert placed == PLACED
        order = api.place_order.call_args.args[0]
        assert order["branch_id"] == 1
        assert order["order_type"] == "dine-in"
        assert order["table_id"] == 1
        assert order["customer_address"] is None
        assert order["items"] == [{"branch_menu_item_id": 1, "quantity": 2, "customizations": []}]
        assert controller.cart.is_empty
        assert controller.step == Step.ORDER_PLACED
        assert messages(controller) == ["Order placed successfully!"]
        history = controller.order_history
        assert history[0]["order_id"] == "ORDABC"
        assert history[0]["total"] == "460.00"
        assert storage.get(ORDER_HISTORY_KEY)[0]["items"][0]["name"] == "Burger"

    @pytest.mark.asyncio
    async def test_failure_keeps_cart(self, controller: StorefrontController, api: MagicMock) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER)
        controller.set_customer_info("Rafi", "0170")
        controller.drain_notifications()
        api.place_order = AsyncMock(side_effect=StorefrontApiError(400, "Invalid menu item"))

        assert await controller.place_order() is None
        assert controller.cart.item_count == 1
        assert messages(controller) == ["Invalid menu item"]

    @pytest.mark.asyncio
    async def test_history_is_capped(self, controller: StorefrontController, storage: ClientStorage) -> None:
        storage.set(ORDER_HISTORY_KEY, [{"order_id": f"OLD{i}"} for i in range(MAX_ORDER_HISTORY)])
        await ready(controller)
        controller.add_to_cart(BURGER)
        controller.set_customer_info("Rafi", "0170")

        await controller.place_order()

        history = controller.order_history
        assert len(history) == MAX_ORDER_HISTORY
        assert history[0]["order_id"] == "ORDABC"
        assert history[-1]["order_id"] == f"OLD{MAX_ORDER_HISTORY - 2}"

    @pytest.mark.asyncio
    async def test_missing_customer_info_blocks_order(
        self, controller: StorefrontController, api: MagicMock
    ) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER)
        controller.drain_notifications()

        assert await controller.place_order() is None
        api.place_order.assert_not_called()
        assert messages(controller) == ["Please enter your name"]

    @pytest.mark.asyncio
    async def test_start_new_order_after_placing(self, controller: StorefrontController) -> None:
        await ready(controller)
        controller.add_to_cart(BURGER)
        controller.set_customer_info("Rafi", "0170")
        await controller.place_order()
        assert controller.last_order == PLACED

        controller.start_new_order()

        assert controller.last_order is None
        assert controller.step == Step.BROWSING
        # History survives the reset
        assert controller.order_history[0]["order_id"] == "ORDABC"


@pytest.mark.unit
class TestFavoritesAndRequests:
    """Tests for favorites, service requests and feedback."""

    @pytest.mark.asyncio
    async def test_toggle_favorite(self, controller: StorefrontController, storage: ClientStorage) -> None:
        await ready(controller)

        assert controller.toggle_favorite(BURGER) is True
        assert controller.is_favorite(1)
        assert StorefrontController(MagicMock(spec=StorefrontApiClient), storage).is_favorite(1)

        assert controller.toggle_favorite(BURGER) is False
        assert not controller.is_favorite(1)

    @pytest.mark.asyncio
    async def test_service_request_needs_table(self, controller: StorefrontController, api: MagicMock) -> None:
        await ready(controller)
        api.create_service_request = AsyncMock()

        assert await controller.request_service("water") is None
        api.create_service_request.assert_not_called()
        assert messages(controller) == ["Please select your table first"]

    @pytest.mark.asyncio
    async def test_service_request(self, controller: StorefrontController, api: MagicMock) -> None:
        await ready(controller)
        controller.set_order_details(OrderType.DINE_IN, table_id=2)
        api.create_service_request = AsyncMock(
            return_value=ServiceRequestResult(
                request_type=ServiceRequestType.WATER, display_text="Water requested", language="en"
            )
        )

        result = await controller.request_service("water")

        assert result is not None
        api.create_service_request.assert_called_once_with(1, 2, "water", "en")
        assert messages(controller) == ["Water requested"]

    @pytest.mark.asyncio
    async def test_submit_feedback(self, controller: StorefrontController, api: MagicMock) -> None:
        api.submit_feedback = AsyncMock(return_value=True)

        assert await controller.submit_feedback("ORDABC", 5, comment="Great") is True
        feedback = api.submit_feedback.call_args.args[0]
        assert feedback["ratings"]["overall"] == 5
        assert feedback["comment"] == "Great"
