"""HTTP client for the LunaDine storefront API."""

import logging
from typing import Any

import httpx

from luna_dine.models.catalog_models import (
    BranchSummary,
    Language,
    MenuResponse,
    RestaurantTable,
)
from luna_dine.models.order_models import (
    OrderStatusView,
    PlacedOrder,
    PromoOffer,
    PromoValidation,
    ServiceRequestResult,
)

logger = logging.getLogger(__name__)


class StorefrontApiError(Exception):
    """Raised when the API answers with an error or cannot be reached.

    ``status_code`` is None for network failures.
    """

    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class StorefrontApiClient:
    """HTTP client for the storefront endpoints.

    Endpoints are addressed through their query trigger on ``/api/``, the
    same way the browser storefront calls them.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the storefront client.

        Args:
            base_url: Base URL of the LunaDine API host (e.g., "https://lunadine.example.com")
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to stub the server in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def list_branches(self) -> list[BranchSummary]:
        data = await self._request("GET", "branches")
        return [BranchSummary(**branch) for branch in data]

    async def get_settings(self, branch_id: int) -> dict[str, Any]:
        """Fetch a branch's settings (VAT, currency and any extra keys)."""
        data: dict[str, Any] = await self._request("GET", "settings", params={"branch_id": branch_id})
        return data

    async def list_languages(self) -> list[Language]:
        data = await self._request("GET", "languages")
        return [Language(**language) for language in data]

    async def get_menu(self, branch_id: int, language: str | None = None) -> MenuResponse:
        """Fetch a branch menu, translated when a language code is given."""
        params: dict[str, Any] = {"branch_id": branch_id}
        if language:
            params["language"] = language
        data = await self._request("GET", "menu", params=params)
        return MenuResponse(**data)

    async def list_tables(self, branch_id: int) -> list[RestaurantTable]:
        data = await self._request("GET", "tables", params={"branch_id": branch_id})
        return [RestaurantTable(**table) for table in data]

    async def get_order_status(self, order_uid: str) -> OrderStatusView:
        data = await self._request("GET", "order_status", params={"order_uid": order_uid})
        return OrderStatusView(**data)

    async def place_order(self, order: dict[str, Any]) -> PlacedOrder:
        """Submit a checkout payload.

        Args:
            order: Order body (branch_id, order_type, items, customer fields...)

        Returns:
            PlacedOrder with the public order id

        Raises:
            StorefrontApiError: If the server rejects the order
        """
        data = await self._request("POST", "orders", json=order)
        return PlacedOrder(**data)

    async def list_promocodes(self) -> list[PromoOffer]:
        data = await self._request("GET", "promocode")
        return [PromoOffer(**offer) for offer in data.get("promocodes", [])]

    async def validate_promocode(self, code: str) -> PromoValidation:
        data = await self._request("POST", "promocode", json={"code": code})
        return PromoValidation(**data)

    async def submit_feedback(self, feedback: dict[str, Any]) -> bool:
        data = await self._request("POST", "feedback", json=feedback)
        return bool(data.get("success"))

    async def create_service_request(
        self, branch_id: int, table_id: int, request_type: str, language: str | None = None
    ) -> ServiceRequestResult:
        body: dict[str, Any] = {
            "branch_id": branch_id,
            "table_id": table_id,
            "request_type": request_type,
        }
        if language:
            body["language"] = language
        data = await self._request("POST", "service_request", json=body)
        return ServiceRequestResult(**data)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}/api/"
        query = {endpoint: 1, **(params or {})}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, params=query, json=json)
        except httpx.RequestError as e:
            logger.error(f"Request to {endpoint} failed: {e}")
            raise StorefrontApiError(None, f"Network error: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"{method} {endpoint} returned {response.status_code}: {message}")
            raise StorefrontApiError(response.status_code, message)

        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason_phrase
