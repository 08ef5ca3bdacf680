"""FastAPI application for the LunaDine storefront JSON API.

Every endpoint is reachable two ways: through a query trigger on the API root
(``/api?menu=1&branch_id=1``) or as a path (``/api/menu?branch_id=1``). The
first trigger present in the query string wins, in the order of ``ENDPOINTS``.
"""

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from luna_dine.models.order_models import (
    SQLITE_MAX_INT,
    SQLITE_MIN_INT,
    FeedbackRequest,
    PlaceOrderRequest,
    ServiceRequestCreate,
    ValidatePromoRequest,
)
from luna_dine.services.catalog_service import CatalogService
from luna_dine.services.errors import (
    InvalidRequestError,
    LunaDineError,
    MethodNotAllowedError,
    NotFoundError,
)
from luna_dine.services.guest_service import GuestService
from luna_dine.services.order_service import OrderService
from luna_dine.services.promo_service import PromoService

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ENDPOINTS = (
    "branches",
    "settings",
    "languages",
    "menu",
    "tables",
    "order_status",
    "orders",
    "promocode",
    "feedback",
    "service_request",
)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

EndpointHandler = Callable[[str, Mapping[str, str], dict[str, Any]], Awaitable[Any]]


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


def resolve_endpoint(query: Mapping[str, str], path_endpoint: str | None) -> str | None:
    """Pick the endpoint for a request.

    Args:
        query: Query string parameters
        path_endpoint: Last path segment after ``/api/``, if any

    Returns:
        The endpoint name, or None when nothing matches
    """
    for name in ENDPOINTS:
        if name in query:
            return name
    if path_endpoint in ENDPOINTS:
        return path_endpoint
    return None


def int_param(params: Mapping[str, str], name: str) -> int:
    """Read a required integer query parameter that fits a database id."""
    raw = params.get(name)
    if raw is None or raw == "":
        raise InvalidRequestError(f"Missing required parameter: {name}")
    try:
        value = int(raw)
    except ValueError:
        raise InvalidRequestError(f"Invalid value for parameter: {name}") from None
    if not SQLITE_MIN_INT <= value <= SQLITE_MAX_INT:
        raise InvalidRequestError(f"Invalid value for parameter: {name}")
    return value


def str_param(params: Mapping[str, str], name: str) -> str:
    """Read a required string query parameter."""
    raw = params.get(name)
    if raw is None or raw == "":
        raise InvalidRequestError(f"Missing required parameter: {name}")
    return raw


def parse_body(model: type[M], body: dict[str, Any]) -> M:
    """Validate a JSON body, naming the first offending field on failure."""
    try:
        return model.model_validate(body)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        if first["type"] == "missing":
            raise InvalidRequestError(f"Missing required field: {field}") from None
        raise InvalidRequestError(f"Invalid value for field: {field}") from None


async def read_json_body(request: Request) -> dict[str, Any]:
    """Read the request body as a JSON object; anything else reads as empty."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def require_method(method: str, *allowed: str) -> None:
    if method not in allowed:
        raise MethodNotAllowedError()


def create_app(
    catalog_service: CatalogService,
    order_service: OrderService,
    promo_service: PromoService,
    guest_service: GuestService,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        catalog_service: Service for branches, languages, tables and menus
        order_service: Service for placing orders and reading their status
        promo_service: Service for listing and validating promo codes
        guest_service: Service for feedback and table service requests

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="LunaDine API",
        description="Menu browsing and ordering API for LunaDine restaurant branches",
        version="1.0.0",
    )

    # Store services in app state for access in route handlers
    app.state.catalog_service = catalog_service
    app.state.order_service = order_service
    app.state.promo_service = promo_service
    app.state.guest_service = guest_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(LunaDineError)
    async def handle_domain_error(_request: Request, exc: LunaDineError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(f"Database error while handling request: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Database error"})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status indicating service is running
        """
        return HealthResponse(status="healthy")

    async def branches(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "GET")
        result = await app.state.catalog_service.list_branches()
        return [branch.model_dump() for branch in result]

    async def settings(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "GET")
        view = await app.state.catalog_service.get_branch_settings(int_param(params, "branch_id"))
        return view.to_response()

    async def languages(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "GET")
        result = await app.state.catalog_service.list_languages()
        return [language.model_dump() for language in result]

    async def menu(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "GET")
        branch_id = int_param(params, "branch_id")
        resolved = await app.state.catalog_service.resolve_menu(branch_id, params.get("language") or None)
        return resolved.model_dump()

    async def tables(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "GET")
        result = await app.state.catalog_service.list_tables(int_param(params, "branch_id"))
        return [table.model_dump() for table in result]

    async def order_status(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "GET")
        status = await app.state.order_service.get_order_status(str_param(params, "order_uid"))
        return status.model_dump()

    async def orders(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "POST")
        placed = await app.state.order_service.place_order(parse_body(PlaceOrderRequest, body))
        return placed.model_dump(mode="json")

    async def promocode(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "GET", "POST")
        if method == "GET":
            offers = await app.state.promo_service.list_promocodes()
            return {"success": True, "promocodes": [offer.model_dump(mode="json") for offer in offers]}
        request = parse_body(ValidatePromoRequest, body)
        validation = await app.state.promo_service.validate_promocode(request.code)
        return validation.model_dump(mode="json")

    async def feedback(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "POST")
        await app.state.guest_service.submit_feedback(parse_body(FeedbackRequest, body))
        return {"success": True}

    async def service_request(method: str, params: Mapping[str, str], body: dict[str, Any]) -> Any:
        require_method(method, "POST")
        result = await app.state.guest_service.create_service_request(parse_body(ServiceRequestCreate, body))
        return result.model_dump(mode="json")

    handlers: dict[str, EndpointHandler] = {
        "branches": branches,
        "settings": settings,
        "languages": languages,
        "menu": menu,
        "tables": tables,
        "order_status": order_status,
        "orders": orders,
        "promocode": promocode,
        "feedback": feedback,
        "service_request": service_request,
    }

    async def dispatch(request: Request, path_endpoint: str | None) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200)

        name = resolve_endpoint(request.query_params, path_endpoint)
        if name is None:
            raise NotFoundError("Endpoint not found")

        body = await read_json_body(request) if request.method == "POST" else {}
        logger.debug(f"{request.method} {name} {dict(request.query_params)}")
        content = await handlers[name](request.method, request.query_params, body)
        return JSONResponse(content=content)

    @app.api_route("/api", methods=ALL_METHODS, include_in_schema=False)
    @app.api_route("/api/", methods=ALL_METHODS, include_in_schema=False)
    async def api_root(request: Request) -> Response:
        return await dispatch(request, None)

    @app.api_route("/api/{endpoint}", methods=ALL_METHODS, tags=["Storefront"])
    async def api_endpoint(endpoint: str, request: Request) -> Response:
        """Serve one endpoint by path; ``/api/index.php`` behaves like the root."""
        return await dispatch(request, None if endpoint == "index.php" else endpoint)

    return app
