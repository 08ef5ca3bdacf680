"""Custom metrics for the LunaDine ordering service."""

from opentelemetry import metrics

meter = metrics.get_meter("luna-dine")

orders_placed_counter = meter.create_counter(
    name="orders_placed_total",
    description="Total number of orders placed by branch and order type",
    unit="1",
)

order_total_histogram = meter.create_histogram(
    name="order_total_amount",
    description="Total amount of placed orders, VAT and discount included",
    unit="1",
)

promo_ignored_counter = meter.create_counter(
    name="promo_code_ignored_total",
    description="Promo codes submitted with an order but not applied",
    unit="1",
)

menu_resolve_duration_histogram = meter.create_histogram(
    name="menu_resolve_duration_seconds",
    description="Duration of menu resolution by branch",
    unit="s",
)

service_requests_counter = meter.create_counter(
    name="service_requests_total",
    description="Table service requests by type",
    unit="1",
)


def record_order_placed(branch_id: int, order_type: str, total_amount: float) -> None:
    """Record a successfully placed order.

    Args:
        branch_id: Branch the order was placed at
        order_type: dine-in, takeaway or delivery
        total_amount: Order total including VAT and discount
    """
    attributes = {"branch_id": str(branch_id), "order_type": order_type}
    orders_placed_counter.add(1, attributes)
    order_total_histogram.record(total_amount, attributes)


def record_promo_ignored(reason: str) -> None:
    """Record a promo code that was submitted with an order but not applied.

    Args:
        reason: Why the code was ignored (e.g. "unknown", "below_minimum")
    """
    promo_ignored_counter.add(1, {"reason": reason})


def record_menu_resolve_duration(branch_id: int, duration_seconds: float) -> None:
    """Record how long resolving a branch menu took."""
    menu_resolve_duration_histogram.record(duration_seconds, {"branch_id": str(branch_id)})


def record_service_request(request_type: str) -> None:
    """Record a table service request."""
    service_requests_counter.add(1, {"request_type": request_type})
