"""SQLite repositories for orders and promo codes.

Order creation is the only multi-statement write in the system: the header
and every line item are inserted inside one transaction, so a failure on any
line leaves no trace of the order.
"""

import json
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from luna_dine.models.db_models import (
    BranchMenuItem,
    Language,
    Order,
    OrderItem,
    PromoCode,
)
from luna_dine.models.order_models import (
    NewOrder,
    OrderLineRequest,
    OrderStatusView,
    PromoCodeRecord,
    PromoType,
)
from luna_dine.services.errors import InvalidMenuItemError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class OrderRepository:
    """Repository for writing orders and reading their status."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        """Initialize repository.

        Args:
            session_factory: Factory for short-lived database sessions
        """
        self.session_factory = session_factory

    def order_uid_exists(self, order_uid: str) -> bool:
        """Check whether a public order identifier is already taken."""
        with self.session_factory() as session:
            found = session.execute(
                select(Order.id).where(Order.order_uid == order_uid)
            ).first()
        return found is not None

    def create_order(self, order: NewOrder, lines: list[OrderLineRequest]) -> int:
        """Insert an order header and its line items atomically.

        Each line's unit price is re-read from ``branch_menu_items`` inside the
        transaction; client-submitted prices are never trusted. Customizations
        are stored as a JSON snapshot of what the client submitted.

        Args:
            order: Resolved and priced order header
            lines: Cart lines to persist

        Returns:
            int: Internal id of the new order row

        Raises:
            InvalidMenuItemError: If a line references an unknown menu item
            SQLAlchemyError: If the database rejects any insert
        """
        with self.session_factory.begin() as session:
            header = Order(
                order_uid=order.order_uid,
                branch_id=order.branch_id,
                table_id=order.table_id,
                order_type=order.order_type.value,
                status=order.status.value,
                customer_name=order.customer_name,
                customer_phone=order.customer_phone,
                customer_address=order.customer_address,
                language_id=order.language_id,
                subtotal=order.pricing.subtotal,
                vat_amount=order.pricing.vat_amount,
                discount_amount=order.pricing.discount_amount,
                total_amount=order.pricing.total_amount,
                promo_code_id=order.pricing.promo_code_id,
                estimated_completion_time=order.estimated_completion_time,
            )
            session.add(header)
            session.flush()

            for line in lines:
                unit_price = session.execute(
                    select(BranchMenuItem.price).where(BranchMenuItem.id == line.branch_menu_item_id)
                ).scalar_one_or_none()
                if unit_price is None:
                    raise InvalidMenuItemError(line.branch_menu_item_id)

                session.add(
                    OrderItem(
                        order_id=header.id,
                        branch_menu_item_id=line.branch_menu_item_id,
                        quantity=line.quantity,
                        unit_price=unit_price,
                        customizations=json.dumps(line.customizations),
                    )
                )
            session.flush()
            order_id = header.id

        logger.info(f"Order {order.order_uid} written with {len(lines)} line(s)")
        return order_id

    def get_order_id(self, order_uid: str) -> int | None:
        """Return the internal id for a public order uid, or None if unknown."""
        with self.session_factory() as session:
            return session.execute(
                select(Order.id).where(Order.order_uid == order_uid)
            ).scalar_one_or_none()

    def get_order_status(self, order_uid: str) -> OrderStatusView | None:
        """Retrieve the public status view of an order.

        Args:
            order_uid: Public order identifier

        Returns:
            OrderStatusView if found, None otherwise
        """
        stmt = (
            select(
                Order.order_uid,
                Order.status,
                Order.order_type,
                Order.estimated_completion_time,
                Language.code,
            )
            .join(Language, Order.language_id == Language.id)
            .where(Order.order_uid == order_uid)
        )
        with self.session_factory() as session:
            row = session.execute(stmt).first()

        if row is None:
            return None

        uid, status, order_type, estimated, language = row
        return OrderStatusView(
            order_id=uid,
            status=status,
            order_type=order_type,
            estimated_completion_time=estimated.strftime(TIMESTAMP_FORMAT) if estimated else None,
            language=language,
        )


class PromoCodeRepository:
    """Read-only repository for promo codes."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def get_active_promo(self, code: str) -> PromoCodeRecord | None:
        """Look up an active promo code by exact match.

        Args:
            code: Promo code as entered

        Returns:
            PromoCodeRecord if an active code matches, None otherwise
        """
        stmt = select(PromoCode).where(PromoCode.code == code, PromoCode.is_active.is_(True))
        with self.session_factory() as session:
            row = session.execute(stmt).scalar_one_or_none()
        return self._to_record(row) if row is not None else None

    def list_active_promos(self) -> list[PromoCodeRecord]:
        """List active promo codes, highest value first."""
        stmt = (
            select(PromoCode)
            .where(PromoCode.is_active.is_(True))
            .order_by(PromoCode.value.desc(), PromoCode.id)
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).scalars().all()
        return [self._to_record(row) for row in rows]

    def _to_record(self, row: PromoCode) -> PromoCodeRecord:
        return PromoCodeRecord(
            id=row.id,
            code=row.code,
            type=PromoType(row.type),
            value=Decimal(str(row.value)),
            min_order_amount=Decimal(str(row.min_order_amount or 0)),
            is_active=bool(row.is_active),
            expires_at=row.expires_at,
        )
