"""Main application entry point for the LunaDine ordering API.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os

from fastapi import FastAPI
from sqlalchemy import Engine

from luna_dine.handlers.api_handler import create_app
from luna_dine.observability import configure_logging, setup_observability
from luna_dine.repositories.catalog_repository import CatalogRepository
from luna_dine.repositories.database import (
    DEFAULT_DATABASE_URL,
    create_database_engine,
    create_schema,
    create_session_factory,
)
from luna_dine.repositories.guest_repositories import (
    FeedbackRepository,
    ServiceRequestRepository,
)
from luna_dine.repositories.order_repositories import OrderRepository, PromoCodeRepository
from luna_dine.repositories.seed import seed_demo_data
from luna_dine.services.catalog_service import CatalogService
from luna_dine.services.guest_service import GuestService
from luna_dine.services.order_service import OrderService
from luna_dine.services.pricing_service import PricingEngine
from luna_dine.services.promo_service import PromoService

logger = logging.getLogger(__name__)


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def create_application(engine: Engine | None = None) -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Opens the database and creates missing tables
    3. Initializes repositories and services
    4. Creates the FastAPI app
    5. Sets up observability when enabled

    Args:
        engine: Optional pre-built engine (defaults to one for DATABASE_URL)

    Returns:
        Configured FastAPI application instance
    """
    # Configure structured logging
    log_level = os.getenv("LOG_LEVEL", "INFO")
    configure_logging(log_level)

    logger.info("Initializing LunaDine API...")

    if engine is None:
        database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        engine = create_database_engine(database_url)
    create_schema(engine)
    session_factory = create_session_factory(engine)

    if env_flag("SEED_DEMO_DATA"):
        seed_demo_data(session_factory)

    # Create repositories
    catalog_repository = CatalogRepository(session_factory)
    order_repository = OrderRepository(session_factory)
    promo_repository = PromoCodeRepository(session_factory)
    feedback_repository = FeedbackRepository(session_factory)
    service_request_repository = ServiceRequestRepository(session_factory)

    # Create services
    pricing_engine = PricingEngine(catalog_repository, promo_repository)
    app = create_app(
        catalog_service=CatalogService(catalog_repository),
        order_service=OrderService(order_repository, catalog_repository, pricing_engine),
        promo_service=PromoService(promo_repository),
        guest_service=GuestService(
            feedback_repository,
            service_request_repository,
            order_repository,
            catalog_repository,
        ),
    )

    if env_flag("ENABLE_OBSERVABILITY"):
        setup_observability(app=app, engine=engine)

    logger.info("LunaDine API initialized successfully")

    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "8001"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
