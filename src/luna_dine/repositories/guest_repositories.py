"""SQLite repositories for guest feedback and table service requests."""

import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from luna_dine.models.db_models import (
    Feedback,
    ServiceRequest,
    ServiceRequestTranslation,
)

logger = logging.getLogger(__name__)


class FeedbackRepository:
    """Repository for order feedback."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def save_feedback(
        self,
        order_id: int,
        overall_rating: int,
        food_rating: int | None = None,
        service_rating: int | None = None,
        item_feedback: Any = None,
        comment: str | None = None,
    ) -> int:
        """Insert a feedback row for an order.

        Args:
            order_id: Internal order id
            overall_rating: Overall rating (1-5)
            food_rating: Optional food rating
            service_rating: Optional service rating
            item_feedback: Optional per-item feedback, stored as JSON
            comment: Optional free-text comment

        Returns:
            int: Id of the new feedback row
        """
        with self.session_factory.begin() as session:
            row = Feedback(
                order_id=order_id,
                overall_rating=overall_rating,
                food_rating=food_rating,
                service_rating=service_rating,
                item_feedback=json.dumps(item_feedback if item_feedback is not None else []),
                comment=comment,
            )
            session.add(row)
            session.flush()
            return row.id


class ServiceRequestRepository:
    """Repository for table service requests (assistance, water, bill)."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def save_request(self, table_id: int, request_type: str) -> int:
        """Insert a pending service request and return its id."""
        with self.session_factory.begin() as session:
            row = ServiceRequest(table_id=table_id, request_type=request_type, status="pending")
            session.add(row)
            session.flush()
            return row.id

    def get_display_text(self, request_type: str, language_id: int) -> str | None:
        """Return the translated label for a request type, or None if untranslated."""
        stmt = select(ServiceRequestTranslation.display_text).where(
            ServiceRequestTranslation.request_type == request_type,
            ServiceRequestTranslation.language_id == language_id,
        )
        with self.session_factory() as session:
            return session.execute(stmt).scalar_one_or_none()
