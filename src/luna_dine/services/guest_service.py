"""Guest-facing writes that are not orders: feedback and table service requests."""

import logging

from luna_dine.models.order_models import (
    FeedbackRequest,
    ServiceRequestCreate,
    ServiceRequestResult,
)
from luna_dine.observability.metrics import record_service_request
from luna_dine.repositories.catalog_repository import CatalogRepository
from luna_dine.repositories.guest_repositories import (
    FeedbackRepository,
    ServiceRequestRepository,
)
from luna_dine.repositories.order_repositories import OrderRepository
from luna_dine.services.errors import InvalidRequestError, NotFoundError
from luna_dine.services.translation import LanguageResolver

logger = logging.getLogger(__name__)


class GuestService:
    """Service for order feedback and "call the waiter" style requests."""

    def __init__(
        self,
        feedback_repository: FeedbackRepository,
        service_request_repository: ServiceRequestRepository,
        order_repository: OrderRepository,
        catalog_repository: CatalogRepository,
    ) -> None:
        """Initialize the GuestService.

        Args:
            feedback_repository: Repository for feedback rows
            service_request_repository: Repository for table service requests
            order_repository: Repository used to resolve public order ids
            catalog_repository: Repository used to resolve the language and check tables
        """
        self.feedback_repository = feedback_repository
        self.service_request_repository = service_request_repository
        self.order_repository = order_repository
        self.catalog_repository = catalog_repository
        self.language_resolver = LanguageResolver(catalog_repository)

    async def submit_feedback(self, request: FeedbackRequest) -> int:
        """Store feedback for a placed order.

        Args:
            request: Feedback payload referencing the public order id

        Returns:
            int: Id of the stored feedback row

        Raises:
            InvalidRequestError: If the overall rating is missing or out of range
            NotFoundError: If the order does not exist
        """
        overall = request.ratings.overall
        if overall is None or not 1 <= overall <= 5:
            raise InvalidRequestError("Overall rating is required and must be between 1 and 5")

        order_id = self.order_repository.get_order_id(request.order_id)
        if order_id is None:
            raise NotFoundError("Order not found")

        feedback_id = self.feedback_repository.save_feedback(
            order_id=order_id,
            overall_rating=overall,
            food_rating=request.ratings.food,
            service_rating=request.ratings.service,
            item_feedback=request.item_feedback,
            comment=request.comment,
        )
        logger.info(f"Stored feedback {feedback_id} for order {request.order_id}")
        return feedback_id

    async def create_service_request(self, request: ServiceRequestCreate) -> ServiceRequestResult:
        """Record a pending service request for a table.

        The returned display text is the request type translated into the
        resolved language, or the raw request type when no translation exists.

        Raises:
            NotFoundError: If the table does not belong to the branch
        """
        language = self.language_resolver.resolve(request.branch_id, request.language)

        if not self.catalog_repository.table_belongs_to_branch(request.table_id, request.branch_id):
            raise NotFoundError("Invalid table for this branch")

        request_type = request.request_type.value
        self.service_request_repository.save_request(request.table_id, request_type)
        record_service_request(request_type)

        display_text = self.service_request_repository.get_display_text(request_type, language.id)
        logger.info(f"Service request '{request_type}' for table {request.table_id}")

        return ServiceRequestResult(
            request_type=request.request_type,
            display_text=display_text or request_type,
            language=language.code,
        )
