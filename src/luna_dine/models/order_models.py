"""Order, pricing, promo and guest-request models.

Request models validate client input at the HTTP boundary; the remaining
models describe priced orders and the shapes returned to the storefront.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator

# SQLite stores INTEGER as a signed 64-bit value
SQLITE_MIN_INT = -(2**63)
SQLITE_MAX_INT = 2**63 - 1

RowId = Annotated[int, Field(ge=SQLITE_MIN_INT, le=SQLITE_MAX_INT)]


class OrderType(str, Enum):
    """Enumeration of order types."""

    DINE_IN = "dine-in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class OrderStatus(str, Enum):
    """Enumeration of order status values.

    Only PLACED is set by the storefront; the rest belong to the kitchen workflow.
    """

    PLACED = "placed"
    IN_KITCHEN = "in_kitchen"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PromoType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ServiceRequestType(str, Enum):
    ASSISTANCE = "assistance"
    WATER = "water"
    BILL = "bill"


class OrderLineRequest(BaseModel):
    """One cart line submitted at checkout.

    ``customizations`` is stored verbatim as the order item snapshot.
    """

    branch_menu_item_id: RowId = Field(..., description="Branch menu item being ordered")
    quantity: int = Field(..., description="Number of units", gt=0, le=SQLITE_MAX_INT)
    customizations: list[Any] = Field(default_factory=list)

    @field_validator("customizations", mode="before")
    @classmethod
    def default_customizations(cls, v: Any) -> Any:
        """Treat a null customization list as empty."""
        return [] if v is None else v


class PlaceOrderRequest(BaseModel):
    """Checkout payload for the orders endpoint."""

    branch_id: RowId
    order_type: OrderType
    items: list[OrderLineRequest] = Field(..., min_length=1)
    table_id: RowId | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    language: str | None = None
    promo_code: str | None = None


class OrderPricing(BaseModel):
    """Computed money amounts for an order.

    ``total_amount == subtotal + vat_amount - discount_amount`` holds exactly.
    """

    subtotal: Decimal = Field(..., ge=0)
    vat_amount: Decimal = Field(..., ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal
    promo_code_id: int | None = Field(None, description="Promo code applied, if any")


class NewOrder(BaseModel):
    """Fully resolved order header ready to be written."""

    order_uid: str
    branch_id: int
    table_id: int | None = None
    order_type: OrderType
    status: OrderStatus = OrderStatus.PLACED
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    language_id: int
    pricing: OrderPricing
    estimated_completion_time: datetime = Field(..., description="Naive UTC datetime")


class PlacedOrder(BaseModel):
    """Response for a successfully placed order.

    ``order_id`` is the public order uid; the internal row id is never exposed.
    """

    order_id: str
    status: OrderStatus
    estimated_completion_time: str
    language: str


class OrderStatusView(BaseModel):
    """Public view of an order's progress."""

    order_id: str
    status: str
    order_type: str
    estimated_completion_time: str | None = None
    language: str


class PromoCodeRecord(BaseModel):
    """Promo code as stored."""

    id: int
    code: str
    type: PromoType
    value: Decimal
    min_order_amount: Decimal = Decimal("0")
    is_active: bool = True
    expires_at: date | None = None


class ValidatePromoRequest(BaseModel):
    code: str


class FeedbackRatings(BaseModel):
    overall: int | None = None
    food: int | None = Field(None, ge=1, le=5)
    service: int | None = Field(None, ge=1, le=5)


class FeedbackRequest(BaseModel):
    """Feedback payload; ``order_id`` is the public order uid."""

    order_id: str
    ratings: FeedbackRatings
    item_feedback: list[Any] | dict[str, Any] = Field(default_factory=list)
    comment: str | None = None


class ServiceRequestCreate(BaseModel):
    branch_id: RowId
    table_id: RowId
    request_type: ServiceRequestType
    language: str | None = None


class ServiceRequestResult(BaseModel):
    success: bool = True
    request_type: ServiceRequestType
    display_text: str
    language: str


class PromoOffer(BaseModel):
    """Active promo code formatted for the offers list."""

    id: int
    code: str
    title: str
    discount: str
    description: str
    type: PromoType
    value: float
    min_order_amount: float
    expires_at: date | None = Field(None, description="Advertised last day of the offer")


class PromoValidation(BaseModel):
    success: bool = True
    code: str
    type: PromoType
    discount: float
    min_order_amount: float
