"""Order service for placing orders and reading their status."""

import logging
import random
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from luna_dine.models.order_models import (
    NewOrder,
    OrderStatus,
    OrderStatusView,
    PlacedOrder,
    PlaceOrderRequest,
)
from luna_dine.observability import annotate_span, traced
from luna_dine.observability.metrics import record_order_placed
from luna_dine.repositories.catalog_repository import CatalogRepository
from luna_dine.repositories.order_repositories import TIMESTAMP_FORMAT, OrderRepository
from luna_dine.services.errors import NotFoundError, OrderUidExhaustedError
from luna_dine.services.pricing_service import PricingEngine
from luna_dine.services.translation import LanguageResolver

logger = logging.getLogger(__name__)

ORDER_UID_PREFIX = "ORD"
MAX_UID_ATTEMPTS = 5
COMPLETION_ESTIMATE = timedelta(minutes=30)


def utc_now() -> datetime:
    return datetime.now(UTC)


def make_order_uid(now: datetime, rng: random.Random) -> str:
    """Build a public order id from a timestamp token and a random suffix.

    The token is the epoch seconds as 8 hex digits followed by the
    microseconds as 5 hex digits, uppercased; the suffix is 4 decimal digits.
    """
    seconds = int(now.timestamp())
    token = f"{seconds:08x}{now.microsecond:05x}".upper()
    return f"{ORDER_UID_PREFIX}{token}{rng.randint(1000, 9999)}"


class OrderService:
    """Service for checkout and order tracking.

    Pricing happens before anything is written. The order header and all of its
    lines are then written in a single transaction by the repository.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        catalog_repository: CatalogRepository,
        pricing_engine: PricingEngine,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the OrderService.

        Args:
            order_repository: Repository for writing and reading orders
            catalog_repository: Repository used to resolve the language and check tables
            pricing_engine: Engine computing order totals
            clock: Returns the current time as an aware UTC datetime
            rng: Random source for order id suffixes
        """
        self.order_repository = order_repository
        self.catalog_repository = catalog_repository
        self.pricing_engine = pricing_engine
        self.language_resolver = LanguageResolver(catalog_repository)
        self.clock = clock
        self.rng = rng or random.Random()

    @traced("place_order", record_args=("branch_id", "order_type", "table_id"))
    async def place_order(self, request: PlaceOrderRequest) -> PlacedOrder:
        """Price and persist an order.

        Args:
            request: Validated checkout payload

        Returns:
            PlacedOrder carrying the public order id and completion estimate

        Raises:
            InvalidMenuItemError: If any line references an unknown menu item
            NotFoundError: If the branch does not exist or the table is not one of its tables
            OrderUidExhaustedError: If no unused order id could be generated
        """
        language = self.language_resolver.resolve(request.branch_id, request.language)
        pricing = self.pricing_engine.price_order(request.branch_id, request.items, request.promo_code)
        if request.table_id is not None and not self.catalog_repository.table_belongs_to_branch(
            request.table_id, request.branch_id
        ):
            raise NotFoundError("Invalid table for this branch")

        order_uid = self._allocate_order_uid()
        estimated = (self.clock() + COMPLETION_ESTIMATE).astimezone(UTC).replace(tzinfo=None)

        order = NewOrder(
            order_uid=order_uid,
            branch_id=request.branch_id,
            table_id=request.table_id,
            order_type=request.order_type,
            status=OrderStatus.PLACED,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            customer_address=request.customer_address,
            language_id=language.id,
            pricing=pricing,
            estimated_completion_time=estimated,
        )
        self.order_repository.create_order(order, request.items)
        annotate_span(
            order_uid=order_uid,
            language=language.code,
            promo_code_id=pricing.promo_code_id,
            total_amount=float(pricing.total_amount),
        )

        record_order_placed(request.branch_id, request.order_type.value, float(pricing.total_amount))
        logger.info(
            f"Placed order {order_uid} at branch {request.branch_id} "
            f"({request.order_type.value}, total {pricing.total_amount})"
        )

        return PlacedOrder(
            order_id=order_uid,
            status=OrderStatus.PLACED,
            estimated_completion_time=estimated.strftime(TIMESTAMP_FORMAT),
            language=language.code,
        )

    async def get_order_status(self, order_uid: str) -> OrderStatusView:
        """Look up the public status of an order.

        Raises:
            NotFoundError: If no order has this uid
        """
        status = self.order_repository.get_order_status(order_uid)
        if status is None:
            raise NotFoundError("Order not found")
        return status

    def _allocate_order_uid(self) -> str:
        for attempt in range(1, MAX_UID_ATTEMPTS + 1):
            candidate = make_order_uid(self.clock(), self.rng)
            if not self.order_repository.order_uid_exists(candidate):
                return candidate
            logger.warning(f"Order id collision on {candidate} (attempt {attempt})")
        raise OrderUidExhaustedError("Could not generate a unique order id")
