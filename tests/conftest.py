"""Shared pytest fixtures and configuration for all tests."""

import json
import os
from collections.abc import Iterator
from datetime import date
from decimal import Decimal

os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402
from sqlalchemy import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from luna_dine.models.db_models import (  # noqa: E402
    Branch,
    BranchMenuItem,
    CategoryTranslation,
    CustomizationGroup,
    CustomizationOption,
    GroupTranslation,
    ItemTranslation,
    Language,
    MasterMenuItem,
    MenuCategory,
    OptionTranslation,
    PromoCode,
    RestaurantTable,
    ServiceRequestTranslation,
)
from luna_dine.repositories.catalog_repository import CatalogRepository  # noqa: E402
from luna_dine.repositories.database import (  # noqa: E402
    create_database_engine,
    create_schema,
    create_session_factory,
)
from luna_dine.repositories.guest_repositories import (  # noqa: E402
    FeedbackRepository,
    ServiceRequestRepository,
)
from luna_dine.repositories.order_repositories import (  # noqa: E402
    OrderRepository,
    PromoCodeRepository,
)
from luna_dine.services.pricing_service import PricingEngine  # noqa: E402


def populate_test_catalog(session: Session) -> None:
    """Insert a small catalog covering the translation and pricing edge cases.

    Branch 1 (English default, VAT 15):
      Mains (order 1): Burger 200 (en + bn), Zucchini Fries 150 (en only)
      Desserts (order 2): Apple Pie 100 (en only)
      Empty (order 3): no items
      untranslated category (order 4): one untranslated item at 50
    Branch 2 (Bengali default, no settings): Mains with Burger 250
    """
    session.add_all(
        [
            Language(id=1, code="en", name="English"),
            Language(id=2, code="bn", name="Bangla"),
            Language(id=3, code="fr", name="French", is_active=False),
        ]
    )
    session.flush()

    session.add_all(
        [
            Branch(
                id=1,
                name="Test Branch",
                address="1 Test Road",
                phone="0100",
                status="open",
                default_language_id=1,
                settings=json.dumps({"vat_percentage": 15, "currency_symbol": "৳", "delivery_fee": 60}),
            ),
            Branch(id=2, name="Second Branch", status="open", default_language_id=2, settings=None),
        ]
    )
    session.flush()

    session.add_all(
        [
            MenuCategory(id=1, branch_id=1, display_order=1),
            MenuCategory(id=2, branch_id=1, display_order=2),
            MenuCategory(id=3, branch_id=1, display_order=3),
            MenuCategory(id=4, branch_id=1, display_order=4),
            MenuCategory(id=5, branch_id=2, display_order=1),
            MasterMenuItem(id=1, image_url="burger.jpg", tags=json.dumps(["bestseller"])),
            MasterMenuItem(id=2, image_url=None, tags="not json"),
            MasterMenuItem(id=3, image_url=None, tags=None),
            MasterMenuItem(id=4, image_url=None, tags=json.dumps([])),
        ]
    )
    session.flush()

    session.add_all(
        [
            CategoryTranslation(category_id=1, language_id=1, name="Mains"),
            CategoryTranslation(category_id=1, language_id=2, name="প্রধান"),
            CategoryTranslation(category_id=2, language_id=1, name="Desserts"),
            CategoryTranslation(category_id=3, language_id=1, name="Empty"),
            CategoryTranslation(category_id=5, language_id=1, name="Mains"),
            ItemTranslation(item_id=1, language_id=1, name="Burger", description="Beef burger"),
            ItemTranslation(item_id=1, language_id=2, name="বার্গার", description=None),
            ItemTranslation(item_id=2, language_id=1, name="Apple Pie", description="Warm pie"),
            ItemTranslation(item_id=3, language_id=1, name="Zucchini Fries", description=None),
            BranchMenuItem(id=1, branch_id=1, master_item_id=1, category_id=1, price=Decimal("200.00")),
            BranchMenuItem(id=2, branch_id=1, master_item_id=3, category_id=1, price=Decimal("150.00")),
            BranchMenuItem(id=3, branch_id=1, master_item_id=2, category_id=2, price=Decimal("100.00")),
            BranchMenuItem(
                id=4, branch_id=1, master_item_id=4, category_id=4, price=Decimal("50.00"), is_available=False
            ),
            BranchMenuItem(id=5, branch_id=2, master_item_id=1, category_id=5, price=Decimal("250.00")),
        ]
    )
    session.flush()

    session.add_all(
        [
            CustomizationGroup(id=1, master_item_id=1, selection_type="single"),
            CustomizationGroup(id=2, master_item_id=1, selection_type="multiple"),
        ]
    )
    session.flush()
    session.add_all(
        [
            GroupTranslation(group_id=1, language_id=1, name="Size"),
            GroupTranslation(group_id=1, language_id=2, name="আকার"),
            GroupTranslation(group_id=2, language_id=1, name="Extras"),
            CustomizationOption(id=1, group_id=1, additional_price=Decimal("0")),
            CustomizationOption(id=2, group_id=1, additional_price=Decimal("50")),
        ]
    )
    session.flush()
    session.add_all(
        [
            OptionTranslation(option_id=1, language_id=1, name="Regular"),
            OptionTranslation(option_id=2, language_id=1, name="Large"),
            RestaurantTable(id=1, branch_id=1, table_identifier="T2", capacity=4),
            RestaurantTable(id=2, branch_id=1, table_identifier="T1", capacity=2),
            RestaurantTable(id=3, branch_id=2, table_identifier="A1", capacity=4),
            PromoCode(
                id=1,
                code="WELCOME10",
                type="percentage",
                value=Decimal("10"),
                min_order_amount=Decimal("300"),
                expires_at=date(2027, 1, 31),
            ),
            PromoCode(id=2, code="FLAT5", type="fixed", value=Decimal("5"), min_order_amount=Decimal("0")),
            PromoCode(id=3, code="BIGFIX", type="fixed", value=Decimal("1000"), min_order_amount=Decimal("0")),
            PromoCode(
                id=4,
                code="EXPIRED",
                type="percentage",
                value=Decimal("50"),
                min_order_amount=Decimal("0"),
                is_active=False,
            ),
            ServiceRequestTranslation(request_type="assistance", language_id=1, display_text="Assistance requested"),
            ServiceRequestTranslation(request_type="assistance", language_id=2, display_text="সহায়তা প্রয়োজন"),
            ServiceRequestTranslation(request_type="water", language_id=1, display_text="Water requested"),
        ]
    )


@pytest.fixture
def engine() -> Iterator[Engine]:
    """Fresh in-memory database with the schema created."""
    engine = create_database_engine("sqlite://")
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory over the in-memory database, populated with the test catalog."""
    factory = create_session_factory(engine)
    with factory.begin() as session:
        populate_test_catalog(session)
    return factory


@pytest.fixture
def catalog_repository(session_factory: sessionmaker[Session]) -> CatalogRepository:
    return CatalogRepository(session_factory)


@pytest.fixture
def order_repository(session_factory: sessionmaker[Session]) -> OrderRepository:
    return OrderRepository(session_factory)


@pytest.fixture
def promo_repository(session_factory: sessionmaker[Session]) -> PromoCodeRepository:
    return PromoCodeRepository(session_factory)


@pytest.fixture
def feedback_repository(session_factory: sessionmaker[Session]) -> FeedbackRepository:
    return FeedbackRepository(session_factory)


@pytest.fixture
def service_request_repository(session_factory: sessionmaker[Session]) -> ServiceRequestRepository:
    return ServiceRequestRepository(session_factory)


@pytest.fixture
def pricing_engine(
    catalog_repository: CatalogRepository, promo_repository: PromoCodeRepository
) -> PricingEngine:
    return PricingEngine(catalog_repository, promo_repository)
